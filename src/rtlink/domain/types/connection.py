"""Connection-related domain types."""

from enum import Enum

__all__ = ["ConnectionState", "ReadyState", "TransportMode"]


class ConnectionState(Enum):
    """State of the push connection owned by a ConnectionManager.

    Exactly one value is current per manager instance; no other component
    keeps its own copy of the connection status.
    """

    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    ERROR = "error"


class ReadyState(Enum):
    """Low-level state of a single transport handle."""

    UNINITIALIZED = "uninitialized"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


class TransportMode(Enum):
    """Which transport currently serves subscriptions."""

    WEBSOCKET = "websocket"
    POLLING = "polling"
