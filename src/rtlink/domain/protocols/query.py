"""Data-fetch primitive used by the polling path."""

from typing import Any, Awaitable, Callable, Optional, Protocol

__all__ = ["FetchFunction", "Fetcher", "QueryClientProtocol"]

FetchFunction = Callable[[], Awaitable[Any]]

# Given an endpoint, returns the parsed payload
Fetcher = Callable[[str], Awaitable[Any]]


class QueryClientProtocol(Protocol):
    """fetchQuery-style cache-backed fetch contract."""

    async def fetch_query(self, query_key: Any, fetch_fn: FetchFunction, *, force: bool = False) -> Any:
        """Run ``fetch_fn`` (or serve from cache when not forced) and cache the result under ``query_key``."""
        ...

    def get_query_data(self, query_key: Any) -> Optional[Any]:
        """Return the last payload stored under ``query_key``."""
        ...
