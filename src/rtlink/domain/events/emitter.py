"""Named-event publish/subscribe registry.

Listeners are registered per event name and removed by identity. ``emit``
snapshots the listener list before dispatching, so a listener may remove
itself (or others) while an event is being delivered without affecting the
current dispatch.

Event Handler Contract:
    Listeners MUST be synchronous. They run on the event loop thread and
    should schedule async work with asyncio.create_task() instead of
    awaiting it.
"""

import asyncio
from typing import Callable

from rtlink.logger import get_logger

from .types import RealtimeEvent

logger = get_logger("events.emitter")

# Type alias for listeners - must be synchronous
Listener = Callable[[RealtimeEvent], None]


class EventEmitter:
    """Registry of listeners keyed by event name.

    Example:
        ```python
        emitter = EventEmitter()

        def on_status(event: ConnectionStatusEvent):
            print(event.status.value)

        emitter.on("connection", on_status)
        emitter.emit("connection", ConnectionStatusEvent(status=ConnectionState.CONNECTED))
        emitter.off("connection", on_status)
        ```

    Thread safety:
        Not thread-safe. All calls are expected on the event loop thread.
    """

    def __init__(self):
        self._listeners: dict[str, list[Listener]] = {}

    def on(self, event: str, listener: Listener) -> "EventEmitter":
        """
        Register ``listener`` for ``event``.

        Raises:
            TypeError: If listener is a coroutine function
        """
        if asyncio.iscoroutinefunction(listener):
            raise TypeError(
                f"Listeners must be synchronous functions. "
                f"{getattr(listener, '__name__', listener)!r} is a coroutine function; "
                f"schedule async work with asyncio.create_task() instead."
            )
        self._listeners.setdefault(event, []).append(listener)
        return self

    def once(self, event: str, listener: Listener) -> "EventEmitter":
        """Register ``listener`` to run for the next ``event`` only."""

        def _once(payload: RealtimeEvent) -> None:
            self.off(event, _once)
            listener(payload)

        # Lets off(event, listener) remove the wrapper before it fires
        _once.__wrapped__ = listener  # type: ignore[attr-defined]
        return self.on(event, _once)

    def off(self, event: str, listener: Listener) -> "EventEmitter":
        """Remove ``listener`` from ``event``. No-op if it is not registered."""
        listeners = self._listeners.get(event)
        if not listeners:
            return self
        remaining = [
            cb for cb in listeners if cb is not listener and getattr(cb, "__wrapped__", None) is not listener
        ]
        if remaining:
            self._listeners[event] = remaining
        else:
            del self._listeners[event]
        return self

    def emit(self, event: str, payload: RealtimeEvent) -> int:
        """
        Deliver ``payload`` to every listener registered for ``event``.

        A failing listener is logged and does not stop delivery to the
        others.

        Returns:
            Number of listeners invoked
        """
        listeners = list(self._listeners.get(event, ()))
        for listener in listeners:
            try:
                listener(payload)
            except Exception as e:
                logger.exception(f"Error in {event!r} listener: {e}")
        return len(listeners)

    def listener_count(self, event: str) -> int:
        """Number of listeners currently registered for ``event``."""
        return len(self._listeners.get(event, ()))

    def has_listeners(self, event: str) -> bool:
        return self.listener_count(event) > 0

    def event_names(self) -> list[str]:
        return list(self._listeners)

    def clear(self, event: str | None = None) -> None:
        """Remove all listeners, or only those for ``event``."""
        if event is None:
            self._listeners.clear()
        else:
            self._listeners.pop(event, None)
