"""fetchQuery-style data-fetch primitive backed by QueryCache."""

from typing import Any, Optional

from rtlink.domain.protocols import FetchFunction
from rtlink.infrastructure.cache import QueryCache
from rtlink.logger import get_logger
from rtlink.utils import normalize_query_key

logger = get_logger("polling.query_client")


class QueryClient:
    """Runs fetch functions and keeps the latest payload per query key.

    Keys may be strings or (nested) lists/tuples; ``"jobs"``, ``["jobs"]``
    and ``("jobs",)`` address the same entry.
    """

    def __init__(self, cache: Optional[QueryCache] = None):
        self._cache = cache or QueryCache()

    async def fetch_query(self, query_key: Any, fetch_fn: FetchFunction, *, force: bool = False) -> Any:
        """
        Return data for ``query_key``.

        Args:
            query_key: Cache key
            fetch_fn: Coroutine function producing the payload
            force: Skip the cache and always call ``fetch_fn``

        Returns:
            The payload (also stored in the cache)
        """
        key = normalize_query_key(query_key)
        if not force and key in self._cache:
            logger.debug(f"Serving {key} from cache")
            return self._cache.get(key)

        data = await fetch_fn()
        self._cache.set(key, data)
        return data

    def get_query_data(self, query_key: Any) -> Optional[Any]:
        return self._cache.get(normalize_query_key(query_key))

    def get_updated_at(self, query_key: Any) -> Optional[float]:
        return self._cache.get_updated_at(normalize_query_key(query_key))

    def set_query_data(self, query_key: Any, data: Any) -> None:
        self._cache.set(normalize_query_key(query_key), data)

    def invalidate(self, query_key: Any = None) -> None:
        """Drop one key, or everything when ``query_key`` is None."""
        self._cache.clear(None if query_key is None else normalize_query_key(query_key))
