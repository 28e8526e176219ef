"""Client-side data layer: API client, query cache and Kanban board."""

from frontend.api import ApiClient, ApiError
from frontend.kanban import KanbanBoard, optimistic_status_update, resolve_drop_target
from frontend.query_cache import QueryCache
from frontend.query_keys import CLIENT_KEYS, FILE_KEYS, PROJECT_KEYS, TASK_KEYS

__all__ = [
    "ApiClient",
    "ApiError",
    "KanbanBoard",
    "optimistic_status_update",
    "resolve_drop_target",
    "QueryCache",
    "CLIENT_KEYS",
    "FILE_KEYS",
    "PROJECT_KEYS",
    "TASK_KEYS",
]
