"""Event payload types.

Every event delivered through an ``EventEmitter`` is one of the dataclasses
below, so consumers can pattern-match on the concrete type:

    match event:
        case ConnectionStatusEvent(status=ConnectionState.CONNECTED):
            ...
        case ErrorEvent(kind=ErrorKind.PARSE):
            ...
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

from rtlink.domain.types import ConnectionState, TransportMode


class ErrorKind(Enum):
    """Category of an ErrorEvent."""

    TRANSPORT = "transport_error"
    CONNECTION = "connection_error"
    PARSE = "parse_error"
    SEND = "send_error"


@dataclass(frozen=True)
class Event:
    """Base class for all events.

    The timestamp field is set automatically when the event is created.
    """

    timestamp: float = field(default_factory=time.time, init=False, compare=False)
    """Timestamp when the event was created (Unix timestamp)."""


@dataclass(frozen=True)
class ConnectionStatusEvent(Event):
    """The push connection changed state.

    Attributes:
        status: New connection state
        is_alternate: Whether the alternate endpoint is in use
        code: Close code (disconnected only)
        reason: Close reason (disconnected only)
        message: Human-readable detail (error only)
        fatal: True when reconnect attempts are exhausted
    """

    status: ConnectionState
    is_alternate: bool = False
    code: Optional[int] = None
    reason: Optional[str] = None
    message: Optional[str] = None
    fatal: bool = False


@dataclass(frozen=True)
class HeartbeatEvent(Event):
    """A heartbeat response arrived.

    Attributes:
        action: "pong" for responses to our pings
        latency: Round trip in seconds, when the peer echoed our timestamp
    """

    action: str
    latency: Optional[float] = None


@dataclass(frozen=True)
class MessageEvent(Event):
    """A parsed inbound push message.

    Attributes:
        type: Value of the message's "type" field, if any
        data: Parsed JSON payload
        raw: Raw text as received
    """

    type: Optional[str]
    data: Any
    raw: str = ""


@dataclass(frozen=True)
class ErrorEvent(Event):
    """A non-fatal failure in the push path.

    Attributes:
        kind: Error category
        message: Human-readable description
        error: Underlying exception, if any
        raw_data: Offending payload (parse and send errors)
    """

    kind: ErrorKind
    message: str
    error: Optional[BaseException] = None
    raw_data: Any = None


@dataclass(frozen=True)
class TransportModeChanged(Event):
    """The realtime service switched transports."""

    previous: TransportMode
    current: TransportMode
    reason: str = ""


RealtimeEvent = Union[
    ConnectionStatusEvent,
    HeartbeatEvent,
    MessageEvent,
    ErrorEvent,
    TransportModeChanged,
]
