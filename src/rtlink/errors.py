"""Exception types raised by rtlink.

Runtime failures inside the realtime layer are reported as events (see
``rtlink.domain.events``); these exceptions cover configuration problems and
the adapter boundaries (websocket, HTTP).
"""

from typing import Optional


class RealtimeError(Exception):
    """Base class for rtlink errors."""


class ConfigurationError(RealtimeError):
    """Settings are missing or invalid."""


class TransportError(RealtimeError):
    """The push transport could not perform the requested operation."""


class FetchError(RealtimeError):
    """A polling fetch failed."""

    def __init__(self, message: str, status_code: Optional[int] = None, url: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.url = url
