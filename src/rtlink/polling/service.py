"""Periodic polling as a substitute for push delivery."""

import asyncio
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Optional

from rtlink.core.scheduling import AsyncioScheduler
from rtlink.domain.protocols import Fetcher, QueryClientProtocol, Scheduler, TaskHandle
from rtlink.logger import get_logger

logger = get_logger("polling.service")

DEFAULT_INTERVAL = 10.0
MIN_INTERVAL = 3.0
MAX_INTERVAL = 300.0


@dataclass(frozen=True)
class PollingConfig:
    """What to poll for one subscription.

    Attributes:
        endpoint: Endpoint passed to the fetcher
        query_key: Cache key for the payload
        interval: Seconds between polls (clamped by the service)
        on_data: Called with each fetched payload
        on_error: Called with the exception when a fetch fails
    """

    endpoint: str
    query_key: Any
    on_data: Callable[[Any], None]
    interval: float = DEFAULT_INTERVAL
    on_error: Optional[Callable[[BaseException], None]] = None


@dataclass
class PollingTask:
    """Runtime record of one polling schedule. Owned by PollingService."""

    id: str
    config: PollingConfig
    handle: Optional[TaskHandle] = None
    last_poll_time: Optional[float] = None
    is_active: bool = True
    in_flight: bool = False
    poll_count: int = 0
    error_count: int = 0
    last_error: Optional[BaseException] = field(default=None, repr=False)


class PollingService:
    """
    Runs one independently clocked fetch loop per subscription id.

    Each poll schedules the next one only after it finishes, so a slow fetch
    never overlaps with the next poll for the same id. Fetch failures are
    reported through ``on_error`` and never stop the schedule.
    """

    def __init__(
        self,
        query_client: QueryClientProtocol,
        fetcher: Fetcher,
        *,
        min_interval: float = MIN_INTERVAL,
        max_interval: float = MAX_INTERVAL,
        scheduler: Optional[Scheduler] = None,
    ):
        """
        Initialize polling service.

        Args:
            query_client: Cache-backed fetch primitive
            fetcher: Coroutine function fetching one endpoint
            min_interval: Lower bound for any polling interval (seconds)
            max_interval: Upper bound for any polling interval (seconds)
            scheduler: Timer source (defaults to the running asyncio loop)
        """
        if min_interval <= 0 or max_interval < min_interval:
            raise ValueError(f"Invalid interval bounds [{min_interval}, {max_interval}]")
        self._query_client = query_client
        self._fetcher = fetcher
        self._scheduler = scheduler or AsyncioScheduler()
        self.min_interval = min_interval
        self.max_interval = max_interval
        self._tasks: dict[str, PollingTask] = {}
        self._inflight: set[asyncio.Task] = set()
        self._enabled = True

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def active_ids(self) -> list[str]:
        return [task_id for task_id, task in self._tasks.items() if task.is_active]

    def is_polling(self, task_id: str) -> bool:
        task = self._tasks.get(task_id)
        return task is not None and task.is_active

    def get_task(self, task_id: str) -> Optional[PollingTask]:
        return self._tasks.get(task_id)

    def clamp_interval(self, interval: float) -> float:
        return min(self.max_interval, max(self.min_interval, interval))

    def start_polling(self, task_id: str, config: PollingConfig) -> Optional[PollingTask]:
        """
        Start (or restart) polling for ``task_id`` and poll once right away.

        Returns:
            The new task, or None while polling is globally disabled
        """
        if not self._enabled:
            logger.warning(f"Polling is disabled, not starting {task_id}")
            return None

        if task_id in self._tasks:
            self.stop_polling(task_id)

        interval = self.clamp_interval(config.interval)
        if interval != config.interval:
            logger.warning(f"Polling interval for {task_id} clamped from {config.interval}s to {interval}s")
            config = replace(config, interval=interval)

        task = PollingTask(id=task_id, config=config)
        self._tasks[task_id] = task
        logger.info(f"Started polling {task_id} every {interval}s ({config.endpoint})")
        self._spawn(task)
        return task

    def stop_polling(self, task_id: str) -> bool:
        """Stop polling ``task_id``. An in-flight fetch finishes but its result is discarded."""
        task = self._tasks.pop(task_id, None)
        if task is None:
            return False
        task.is_active = False
        if task.handle is not None:
            task.handle.cancel()
            task.handle = None
        logger.info(f"Stopped polling {task_id}")
        return True

    def stop_all(self) -> int:
        """Stop every task. Returns how many were stopped."""
        task_ids = list(self._tasks)
        for task_id in task_ids:
            self.stop_polling(task_id)
        return len(task_ids)

    def update_polling_interval(self, task_id: str, interval: float) -> bool:
        """
        Change the interval of a running task without an extra immediate poll.

        Returns:
            False if no such task is active
        """
        task = self._tasks.get(task_id)
        if task is None or not task.is_active:
            return False

        clamped = self.clamp_interval(interval)
        task.config = replace(task.config, interval=clamped)
        if task.handle is not None:
            task.handle.cancel()
            task.handle = None
        # An in-flight poll reschedules itself with the new interval
        if not task.in_flight:
            task.handle = self._scheduler.call_later(clamped, self._spawn, task)
        logger.info(f"Polling interval for {task_id} set to {clamped}s")
        return True

    def enable(self) -> None:
        """Allow polling again. Stopped tasks are not resumed."""
        self._enabled = True

    def disable(self) -> None:
        """Turn polling off and stop every task."""
        self._enabled = False
        stopped = self.stop_all()
        logger.info(f"Polling disabled ({stopped} task(s) stopped)")

    async def execute_poll(self, task_id: str) -> None:
        """Poll ``task_id`` once, then schedule the next poll."""
        task = self._tasks.get(task_id)
        if task is None or not task.is_active or task.in_flight:
            return
        if task.handle is not None:
            task.handle.cancel()
            task.handle = None
        await self._poll(task)

    async def drain(self) -> None:
        """Wait for every in-flight poll to finish."""
        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    def _spawn(self, task: PollingTask) -> None:
        task.handle = None
        if not task.is_active:
            return
        aio_task = asyncio.get_running_loop().create_task(self._poll(task), name=f"poll:{task.id}")
        self._inflight.add(aio_task)
        aio_task.add_done_callback(self._inflight.discard)

    async def _poll(self, task: PollingTask) -> None:
        if not task.is_active or task.in_flight:
            return
        config = task.config
        task.in_flight = True
        try:
            data = await self._query_client.fetch_query(
                config.query_key, lambda: self._fetcher(config.endpoint), force=True
            )
            task.poll_count += 1
            if task.is_active:
                self._deliver(task, config.on_data, data)
        except Exception as e:
            task.error_count += 1
            task.last_error = e
            logger.error(f"Polling error for {task.id}: {e}")
            if task.is_active and config.on_error is not None:
                self._deliver(task, config.on_error, e)
        finally:
            task.in_flight = False
            task.last_poll_time = self._scheduler.now()
            if task.is_active and self._tasks.get(task.id) is task:
                task.handle = self._scheduler.call_later(task.config.interval, self._spawn, task)

    @staticmethod
    def _deliver(task: PollingTask, callback: Callable[[Any], None], value: Any) -> None:
        try:
            callback(value)
        except Exception as e:
            logger.exception(f"Error in polling callback for {task.id}: {e}")
