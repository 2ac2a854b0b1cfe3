"""Event system for decoupled component communication.

Example:
    ```python
    from rtlink.domain.events import EventEmitter, ConnectionStatusEvent
    from rtlink.domain.types import ConnectionState

    emitter = EventEmitter()
    emitter.on("connection", lambda e: print(e.status.value))
    emitter.emit("connection", ConnectionStatusEvent(status=ConnectionState.CONNECTING))
    ```
"""

from .emitter import EventEmitter, Listener
from .types import (
    ConnectionStatusEvent,
    ErrorEvent,
    ErrorKind,
    Event,
    HeartbeatEvent,
    MessageEvent,
    RealtimeEvent,
    TransportModeChanged,
)

__all__ = [
    "EventEmitter",
    "Listener",
    "Event",
    "ConnectionStatusEvent",
    "HeartbeatEvent",
    "MessageEvent",
    "ErrorEvent",
    "ErrorKind",
    "RealtimeEvent",
    "TransportModeChanged",
]
