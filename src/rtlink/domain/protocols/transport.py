"""Push transport protocol.

A transport is a single connection attempt to one URL. It reports its
lifecycle through the callbacks it was created with; the ConnectionManager
owns it exclusively and creates a fresh one for every attempt.
"""

from dataclasses import dataclass
from typing import Callable, Protocol

from rtlink.domain.types import ReadyState

__all__ = [
    "ABNORMAL_CLOSURE",
    "HEARTBEAT_TIMEOUT_CLOSE",
    "NORMAL_CLOSURE",
    "PushTransport",
    "TransportCallbacks",
    "TransportFactory",
]

NORMAL_CLOSURE = 1000
ABNORMAL_CLOSURE = 1006
HEARTBEAT_TIMEOUT_CLOSE = 4000


@dataclass(frozen=True)
class TransportCallbacks:
    """Callbacks a transport invokes on the event loop thread."""

    on_open: Callable[[], None]
    on_message: Callable[[str], None]
    on_close: Callable[[int, str], None]
    on_error: Callable[[BaseException], None]


class PushTransport(Protocol):
    """Protocol for a bidirectional text-message transport."""

    @property
    def ready_state(self) -> ReadyState:
        """Current state of the underlying socket."""
        ...

    def send(self, message: str) -> None:
        """Transmit one text frame. Raises if the transport is not open."""
        ...

    def close(self, code: int = NORMAL_CLOSURE, reason: str = "") -> None:
        """Begin closing. ``on_close`` fires once the socket is closed."""
        ...


# Creates a transport and starts opening it towards the given URL
TransportFactory = Callable[[str, TransportCallbacks], PushTransport]
