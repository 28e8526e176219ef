"""Cache keys for list and detail queries.

List keys end with a canonical JSON string of the filters so two filter
dicts with the same effective values share one cache entry.
"""

import json
from typing import Any, Optional

QueryKey = tuple


def _filters_key(values: dict[str, Any]) -> str:
    return json.dumps(values, separators=(",", ":"))


def project_filters_key(filters: Optional[dict] = None) -> str:
    filters = filters or {}
    return _filters_key(
        {
            "sortBy": filters.get("sortBy") or "createdAt",
            "sortOrder": filters.get("sortOrder") or "desc",
            "status": filters.get("status") or "all",
            "priority": filters.get("priority") or "all",
        }
    )


def task_filters_key(filters: Optional[dict] = None) -> str:
    filters = filters or {}
    return _filters_key(
        {
            "status": filters.get("status") or "all",
            "priority": filters.get("priority") or "all",
            "projectId": filters.get("projectId") or "all",
        }
    )


def client_filters_key(filters: Optional[dict] = None) -> str:
    filters = filters or {}
    return _filters_key(
        {
            "type": filters.get("type") or "all",
            "page": filters.get("page") or 1,
            "limit": filters.get("limit") or 10,
            "sortBy": filters.get("sortBy") or "createdAt",
            "sortOrder": filters.get("sortOrder") or "desc",
        }
    )


def file_filters_key(filters: Optional[dict] = None) -> str:
    filters = filters or {}
    return _filters_key(
        {
            "projectId": filters.get("projectId") or "all",
            "mimeType": filters.get("mimeType") or "all",
        }
    )


class ResourceKeys:
    """Key builders for one resource: ``(scope,)``, ``(scope, "list", filters)``, ``(scope, "detail", id)``."""

    def __init__(self, scope: str, filters_key):
        self.scope = scope
        self._filters_key = filters_key

    @property
    def all(self) -> QueryKey:
        return (self.scope,)

    def lists(self) -> QueryKey:
        return (self.scope, "list")

    def list(self, filters: Optional[dict] = None) -> QueryKey:
        return (*self.lists(), self._filters_key(filters))

    def details(self) -> QueryKey:
        return (self.scope, "detail")

    def detail(self, item_id: str) -> QueryKey:
        return (*self.details(), str(item_id))


PROJECT_KEYS = ResourceKeys("projects", project_filters_key)
TASK_KEYS = ResourceKeys("tasks", task_filters_key)
CLIENT_KEYS = ResourceKeys("clients", client_filters_key)
FILE_KEYS = ResourceKeys("files", file_filters_key)
