"""Polling fallback: scheduler of periodic fetch tasks and the fetch/cache primitive."""

from .query_client import QueryClient
from .service import PollingConfig, PollingService, PollingTask

__all__ = ["PollingConfig", "PollingService", "PollingTask", "QueryClient"]
