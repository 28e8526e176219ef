"""In-memory query cache keyed by tuples, with prefix invalidation."""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

import httpx

from core.logging import get_logger
from frontend.api import ApiError
from frontend.query_keys import QueryKey

logger = get_logger(__name__)

Fetcher = Callable[[], Awaitable[Any]]
KeyPredicate = Callable[[QueryKey], bool]


@dataclass
class QueryEntry:
    data: Any = None
    stale: bool = False
    fetcher: Optional[Fetcher] = None


def has_prefix(key: QueryKey, prefix: QueryKey) -> bool:
    return tuple(key[: len(prefix)]) == tuple(prefix)


def prefix_predicate(prefix: QueryKey) -> KeyPredicate:
    return lambda key: has_prefix(key, prefix)


class QueryCache:
    """Holds server state for the UI.

    Fetched queries remember their fetcher so ``invalidate`` can refetch
    them; entries written with ``set_query_data`` alone are only marked
    stale.
    """

    def __init__(self):
        self._entries: dict[QueryKey, QueryEntry] = {}

    def get_query_data(self, key: QueryKey) -> Any:
        entry = self._entries.get(tuple(key))
        return entry.data if entry else None

    def set_query_data(self, key: QueryKey, data: Any) -> None:
        entry = self._entries.setdefault(tuple(key), QueryEntry())
        entry.data = data
        entry.stale = False

    def is_stale(self, key: QueryKey) -> bool:
        entry = self._entries.get(tuple(key))
        return entry is None or entry.stale

    def get_queries_data(self, predicate: KeyPredicate) -> list[tuple[QueryKey, Any]]:
        return [(key, entry.data) for key, entry in self._entries.items() if predicate(key)]

    def set_queries_data(self, predicate: KeyPredicate, updater: Callable[[Any], Any]) -> None:
        """Rewrite every matching entry that has data."""
        for key, entry in self._entries.items():
            if predicate(key) and entry.data is not None:
                entry.data = updater(entry.data)

    async def fetch_query(self, key: QueryKey, fetcher: Fetcher) -> Any:
        key = tuple(key)
        entry = self._entries.setdefault(key, QueryEntry())
        entry.fetcher = fetcher
        entry.data = await fetcher()
        entry.stale = False
        return entry.data

    async def invalidate(self, prefix: QueryKey) -> None:
        """Mark every key under ``prefix`` stale and refetch those with a fetcher."""
        for key, entry in list(self._entries.items()):
            if not has_prefix(key, prefix):
                continue
            entry.stale = True
            if entry.fetcher is None:
                continue
            try:
                entry.data = await entry.fetcher()
                entry.stale = False
            except ApiError as e:
                logger.warning(
                    "query_refetch_failed", key=list(key), status=e.status, error=e.message
                )
            except httpx.HTTPError as e:
                logger.warning("query_refetch_failed", key=list(key), error=str(e))

