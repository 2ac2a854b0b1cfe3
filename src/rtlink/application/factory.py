"""Wiring of the realtime layer from settings."""

import random
from typing import Callable, Optional

from rtlink.connection import ConnectionManager, HeartbeatMonitor
from rtlink.core.config import RealtimeSettings
from rtlink.core.scheduling import AsyncioScheduler
from rtlink.domain.protocols import Fetcher, Scheduler, TransportFactory
from rtlink.infrastructure.http import HttpFetcher
from rtlink.logger import get_logger
from rtlink.polling import PollingService, QueryClient

from .realtime_service import RealtimeService

logger = get_logger("application.factory")


def build_realtime_service(
    settings: RealtimeSettings,
    *,
    transport_factory: Optional[TransportFactory] = None,
    fetcher: Optional[Fetcher] = None,
    query_client: Optional[QueryClient] = None,
    scheduler: Optional[Scheduler] = None,
    rand: Callable[[], float] = random.random,
) -> RealtimeService:
    """
    Build a RealtimeService with its ConnectionManager and PollingService.

    Args:
        settings: Realtime settings
        transport_factory: Push transport factory (websockets adapter by default)
        fetcher: Polling fetcher (HttpFetcher on ``settings.poll_base_url`` by default)
        query_client: Fetch/cache primitive (a fresh QueryClient by default)
        scheduler: Shared timer source (running asyncio loop by default)
        rand: Jitter source

    Returns:
        An uninitialized service; call ``init()`` inside a running event loop
    """
    scheduler = scheduler or AsyncioScheduler()

    heartbeat = HeartbeatMonitor(
        interval=settings.heartbeat.interval,
        timeout=settings.heartbeat.timeout,
        scheduler=scheduler,
    )
    connection = ConnectionManager(
        settings.primary_url,
        settings.derive_alternate_url(),
        reconnect_policy=settings.reconnect,
        heartbeat=heartbeat,
        heartbeat_enabled=settings.heartbeat.enabled,
        max_fails_before_switch=settings.failover.max_fails_before_switch,
        transport_factory=transport_factory,
        scheduler=scheduler,
        rand=rand,
    )
    polling = PollingService(
        query_client or QueryClient(),
        fetcher or HttpFetcher(base_url=settings.poll_base_url, timeout=settings.polling.request_timeout),
        min_interval=settings.polling.min_interval,
        max_interval=settings.polling.max_interval,
        scheduler=scheduler,
    )
    logger.debug(
        f"Realtime layer wired (primary={settings.primary_url}, alternate={settings.derive_alternate_url()})"
    )
    return RealtimeService(
        connection,
        polling,
        failure_threshold=settings.transport.failure_threshold,
        default_interval=settings.polling.default_interval,
    )
