"""rtlink: realtime connectivity with websocket push, failover and polling fallback."""

from rtlink.application import RealtimeService, Subscription, SubscriptionOptions, build_realtime_service
from rtlink.connection import ConnectionManager, EndpointSelector, HeartbeatMonitor, ReconnectPolicy
from rtlink.core.config import RealtimeSettings, load_settings
from rtlink.core.scheduling import AsyncioScheduler, ManualScheduler
from rtlink.domain.types import ConnectionState, TransportMode
from rtlink.polling import PollingConfig, PollingService, QueryClient

__version__ = "0.1.0"

__all__ = [
    "AsyncioScheduler",
    "ConnectionManager",
    "ConnectionState",
    "EndpointSelector",
    "HeartbeatMonitor",
    "ManualScheduler",
    "PollingConfig",
    "PollingService",
    "QueryClient",
    "RealtimeService",
    "RealtimeSettings",
    "ReconnectPolicy",
    "Subscription",
    "SubscriptionOptions",
    "TransportMode",
    "build_realtime_service",
    "load_settings",
]
