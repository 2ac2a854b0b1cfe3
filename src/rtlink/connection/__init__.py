"""Push connection: state machine, backoff, heartbeat and endpoint failover."""

from .endpoints import EndpointSelector, FailoverAction
from .heartbeat import HeartbeatMonitor
from .manager import ConnectionManager
from .reconnect import ReconnectPolicy

__all__ = [
    "ConnectionManager",
    "EndpointSelector",
    "FailoverAction",
    "HeartbeatMonitor",
    "ReconnectPolicy",
]
