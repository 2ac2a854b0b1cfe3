"""Keyed cache for polled query results.

Stores each value together with the time it was written so callers can tell
how fresh a payload is.
"""

import time
from typing import Any, Callable, Hashable, Optional


class QueryCache:
    """In-memory cache of query payloads with update timestamps.

    Example:
        >>> cache = QueryCache()
        >>> cache.set(("jobs",), [1, 2])
        >>> cache.get(("jobs",))
        [1, 2]
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._data: dict[Hashable, tuple[Any, float]] = {}  # (value, updated_at)
        self._clock = clock

    def get(self, key: Hashable) -> Optional[Any]:
        """Return the cached value, or None."""
        entry = self._data.get(key)
        return entry[0] if entry is not None else None

    def get_updated_at(self, key: Hashable) -> Optional[float]:
        """Return when ``key`` was last written, or None."""
        entry = self._data.get(key)
        return entry[1] if entry is not None else None

    def set(self, key: Hashable, value: Any) -> None:
        self._data[key] = (value, self._clock())

    def clear(self, key: Optional[Hashable] = None) -> None:
        """Clear one key, or every entry when ``key`` is None."""
        if key is None:
            self._data.clear()
        else:
            self._data.pop(key, None)

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._data
