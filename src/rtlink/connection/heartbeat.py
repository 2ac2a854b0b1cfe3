"""Heartbeat liveness monitoring for the push connection."""

from typing import Callable, Optional

from rtlink.core.scheduling import AsyncioScheduler
from rtlink.domain.protocols import Scheduler, TaskHandle
from rtlink.logger import get_logger

logger = get_logger("connection.heartbeat")


class HeartbeatMonitor:
    """Detects connections that are open but silently dead.

    Every ``interval`` seconds while running, the monitor first checks
    staleness: if no response arrived for more than ``timeout`` seconds it
    calls ``on_timeout`` and stops ticking (the owner is expected to tear the
    connection down and restart the monitor on the next open). Otherwise it
    calls ``send_ping`` with the current clock value.
    """

    def __init__(
        self,
        interval: float = 15.0,
        timeout: float = 30.0,
        scheduler: Optional[Scheduler] = None,
    ):
        """
        Initialize heartbeat monitor.

        Args:
            interval: Seconds between ticks
            timeout: Seconds without a response before the connection is considered dead
            scheduler: Timer source (defaults to the running asyncio loop)
        """
        if interval <= 0 or timeout <= 0:
            raise ValueError("Heartbeat interval and timeout must be positive")
        self.interval = interval
        self.timeout = timeout
        self._scheduler = scheduler or AsyncioScheduler()
        self._handle: Optional[TaskHandle] = None
        self._send_ping: Optional[Callable[[float], None]] = None
        self._on_timeout: Optional[Callable[[float], None]] = None
        self.last_response_at: Optional[float] = None
        self.last_latency: Optional[float] = None

    @property
    def is_running(self) -> bool:
        return self._handle is not None

    def start(self, send_ping: Callable[[float], None], on_timeout: Callable[[float], None]) -> None:
        """
        Start ticking. Any previous run is stopped first.

        Args:
            send_ping: Called with the clock value to transmit a ping
            on_timeout: Called with the seconds elapsed since the last response
        """
        self.stop()
        self._send_ping = send_ping
        self._on_timeout = on_timeout
        self.last_response_at = self._scheduler.now()
        self._handle = self._scheduler.call_later(self.interval, self._tick)
        logger.debug(f"Heartbeat monitoring started (interval={self.interval}s, timeout={self.timeout}s)")

    def stop(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
            logger.debug("Heartbeat monitoring stopped")

    def seconds_since_response(self) -> Optional[float]:
        if self.last_response_at is None:
            return None
        return self._scheduler.now() - self.last_response_at

    def is_stale(self) -> bool:
        elapsed = self.seconds_since_response()
        return elapsed is not None and elapsed > self.timeout

    def record_response(self, sent_at: Optional[float] = None) -> Optional[float]:
        """
        Record a heartbeat response.

        Args:
            sent_at: Clock value carried by the ping being answered

        Returns:
            Round-trip latency in seconds when ``sent_at`` is known
        """
        now = self._scheduler.now()
        self.last_response_at = now
        if sent_at is None:
            return None
        self.last_latency = max(0.0, now - sent_at)
        return self.last_latency

    def _tick(self) -> None:
        self._handle = None
        if self.is_stale():
            elapsed = self.seconds_since_response() or 0.0
            logger.warning(f"No heartbeat response in {elapsed:.1f}s (timeout {self.timeout}s), connection may be dead")
            if self._on_timeout:
                self._on_timeout(elapsed)
            return

        # Reschedule first so a failing ping does not end monitoring
        self._handle = self._scheduler.call_later(self.interval, self._tick)
        if self._send_ping:
            try:
                self._send_ping(self._scheduler.now())
            except Exception as e:
                logger.error(f"Error sending heartbeat: {e}")
