"""Timer scheduling.

Every timer in rtlink (reconnect delay, heartbeat tick, polling interval)
goes through a ``Scheduler`` so time can be driven deterministically in
tests with ``ManualScheduler``.
"""

import asyncio
import heapq
import itertools
from typing import Any, Callable, Optional

from rtlink.logger import get_logger

logger = get_logger("core.scheduling")


class AsyncioScheduler:
    """Scheduler backed by the running asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        return self.loop.time()

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> asyncio.TimerHandle:
        return self.loop.call_later(max(0.0, delay), callback, *args)


class ManualHandle:
    """Handle for a timer registered with ManualScheduler."""

    __slots__ = ("when", "callback", "args", "_cancelled")

    def __init__(self, when: float, callback: Callable[..., Any], args: tuple):
        self.when = when
        self.callback = callback
        self.args = args
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled

    def __repr__(self) -> str:
        state = "cancelled" if self._cancelled else "pending"
        return f"<ManualHandle when={self.when:.3f} {state} {getattr(self.callback, '__name__', self.callback)}>"


class ManualScheduler:
    """Virtual-clock scheduler; time only moves when ``advance`` is called.

    Example:
        >>> scheduler = ManualScheduler()
        >>> fired = []
        >>> _ = scheduler.call_later(5.0, fired.append, "tick")
        >>> scheduler.advance(4.9)
        0
        >>> scheduler.advance(0.1)
        1
        >>> fired
        ['tick']
    """

    def __init__(self, start: float = 0.0):
        self._now = start
        self._heap: list[tuple[float, int, ManualHandle]] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> ManualHandle:
        handle = ManualHandle(self._now + max(0.0, delay), callback, args)
        heapq.heappush(self._heap, (handle.when, next(self._seq), handle))
        return handle

    @property
    def pending(self) -> list[ManualHandle]:
        """Outstanding (not cancelled) timers in due order."""
        return [h for _, _, h in sorted(self._heap) if not h.cancelled()]

    def next_due(self) -> Optional[float]:
        """Delay until the next pending timer, or None if nothing is pending."""
        pending = self.pending
        if not pending:
            return None
        return pending[0].when - self._now

    def advance(self, seconds: float) -> int:
        """
        Move the clock forward, firing every timer that falls due.

        Timers scheduled by fired callbacks also fire if they fall inside
        the window.

        Returns:
            Number of callbacks invoked
        """
        target = self._now + seconds
        fired = 0
        while self._heap and self._heap[0][0] <= target:
            when, _, handle = heapq.heappop(self._heap)
            if handle.cancelled():
                continue
            self._now = when
            fired += 1
            handle.callback(*handle.args)
        self._now = target
        return fired

    def run_all(self, limit: int = 1000) -> int:
        """Fire pending timers until none remain (bounded by ``limit``)."""
        fired = 0
        while fired < limit:
            delay = self.next_due()
            if delay is None:
                break
            fired += self.advance(delay)
        return fired
