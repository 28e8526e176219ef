"""Kanban board over cached task or project lists.

Dropping a card on a column updates its status optimistically: every cached
list is rewritten before the PATCH goes out, and restored if it fails.
"""

from typing import Any, Optional, Union

from core.logging import get_logger
from domain.common import WorkStatus, resolve_enum_value
from frontend.api import ApiClient
from frontend.query_cache import QueryCache, prefix_predicate
from frontend.query_keys import PROJECT_KEYS, TASK_KEYS, QueryKey

logger = get_logger(__name__)

STATUSES = (WorkStatus.todo, WorkStatus.in_progress, WorkStatus.done)

STATUS_LABELS = {
    WorkStatus.todo: "To Do",
    WorkStatus.in_progress: "In Progress",
    WorkStatus.done: "Done",
}

BOARD_KINDS = ("tasks", "projects")


def _with_status(items: Any, item_id: str, status: WorkStatus) -> Any:
    if not isinstance(items, list):
        return items
    return [
        {**item, "status": status.value} if item.get("id") == item_id else item
        for item in items
    ]


def resolve_drop_target(target: Any) -> Optional[WorkStatus]:
    """Map a drop target to a column status.

    ``target`` is a column id (``"done"``), a dict with ``data.status`` and/or
    ``id``, or None when the card was dropped outside the board. The data
    payload wins over the id, so dropping on a card resolves to that card's
    column.
    """
    if target is None:
        return None
    if isinstance(target, dict):
        data = target.get("data") or {}
        status = resolve_enum_value(data.get("status"), WorkStatus)
        if status is not None:
            return status
        return resolve_enum_value(target.get("id"), WorkStatus)
    return resolve_enum_value(target, WorkStatus)


async def optimistic_status_update(
    cache: QueryCache,
    api: ApiClient,
    item_id: str,
    status: Union[WorkStatus, str],
    kind: str = "tasks",
) -> dict:
    """Rewrite ``item_id``'s status in every cached list, then PATCH it.

    On failure the snapshot is written back and the error re-raised. On
    success the list queries and the affected project detail are
    invalidated.
    """
    status = WorkStatus(status)
    keys = TASK_KEYS if kind == "tasks" else PROJECT_KEYS
    lists = prefix_predicate(keys.lists())

    snapshot = cache.get_queries_data(lists)
    cache.set_queries_data(lists, lambda items: _with_status(items, item_id, status))

    try:
        if kind == "tasks":
            updated = await api.update_task_status(item_id, status.value)
        else:
            updated = await api.update_project_status(item_id, status.value)
    except Exception:
        for key, data in snapshot:
            cache.set_query_data(key, data)
        logger.warning("status_update_rolled_back", kind=kind, item_id=item_id)
        raise

    if kind == "tasks":
        await cache.invalidate(TASK_KEYS.lists())
        await cache.invalidate(PROJECT_KEYS.lists())
        project_id = updated.get("projectId")
        if project_id:
            await cache.invalidate(PROJECT_KEYS.detail(project_id))
    else:
        await cache.invalidate(PROJECT_KEYS.lists())
        await cache.invalidate(PROJECT_KEYS.detail(item_id))
    return updated


class KanbanBoard:
    """Three-column board rendered from one cached list query."""

    def __init__(self, cache: QueryCache, api: ApiClient, list_key: QueryKey, kind: str = "tasks"):
        if kind not in BOARD_KINDS:
            raise ValueError(f"Unknown board kind: {kind}")
        self.cache = cache
        self.api = api
        self.list_key = tuple(list_key)
        self.kind = kind

    @property
    def items(self) -> list[dict]:
        return self.cache.get_query_data(self.list_key) or []

    def buckets(self) -> dict[WorkStatus, list[dict]]:
        grouped: dict[WorkStatus, list[dict]] = {status: [] for status in STATUSES}
        for item in self.items:
            status = resolve_enum_value(item.get("status"), WorkStatus)
            if status is not None:
                grouped[status].append(item)
        return grouped

    def find(self, item_id: str) -> Optional[dict]:
        return next((item for item in self.items if item.get("id") == item_id), None)

    resolve_drop_target = staticmethod(resolve_drop_target)

    async def move(self, item_id: str, target: Any) -> Optional[dict]:
        """Handle a drag end. Returns the updated item, or None when nothing moved."""
        next_status = resolve_drop_target(target)
        if next_status is None:
            return None

        item = self.find(item_id)
        if item is None or item.get("status") == next_status.value:
            return None

        return await optimistic_status_update(
            self.cache, self.api, item_id, next_status, kind=self.kind
        )
