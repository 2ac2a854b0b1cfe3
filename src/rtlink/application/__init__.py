"""Application layer: the transport arbiter and its wiring."""

from .factory import build_realtime_service
from .realtime_service import RealtimeService, Subscription, SubscriptionOptions

__all__ = ["RealtimeService", "Subscription", "SubscriptionOptions", "build_realtime_service"]
