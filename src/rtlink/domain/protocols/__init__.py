"""Protocols describing rtlink's external collaborators."""

from .query import Fetcher, FetchFunction, QueryClientProtocol
from .scheduler import Scheduler, TaskHandle
from .transport import (
    ABNORMAL_CLOSURE,
    HEARTBEAT_TIMEOUT_CLOSE,
    NORMAL_CLOSURE,
    PushTransport,
    TransportCallbacks,
    TransportFactory,
)

__all__ = [
    "ABNORMAL_CLOSURE",
    "HEARTBEAT_TIMEOUT_CLOSE",
    "NORMAL_CLOSURE",
    "Fetcher",
    "FetchFunction",
    "PushTransport",
    "QueryClientProtocol",
    "Scheduler",
    "TaskHandle",
    "TransportCallbacks",
    "TransportFactory",
]
