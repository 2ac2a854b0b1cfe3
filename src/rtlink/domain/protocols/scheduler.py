"""Timer scheduling protocol."""

from typing import Any, Callable, Protocol

__all__ = ["Scheduler", "TaskHandle"]


class TaskHandle(Protocol):
    """Cancelable handle returned by every scheduling call."""

    def cancel(self) -> None:
        ...

    def cancelled(self) -> bool:
        ...


class Scheduler(Protocol):
    """Clock plus one-shot timers."""

    def now(self) -> float:
        """Current time in seconds (monotonic)."""
        ...

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TaskHandle:
        """Run ``callback(*args)`` after ``delay`` seconds."""
        ...
