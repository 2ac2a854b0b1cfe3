"""Transport arbiter: one subscription API over push and polling."""

from dataclasses import dataclass
from typing import Any, Callable, Optional

from rtlink.connection import ConnectionManager
from rtlink.domain.events import (
    ConnectionStatusEvent,
    EventEmitter,
    Listener,
    MessageEvent,
    RealtimeEvent,
    TransportModeChanged,
)
from rtlink.domain.types import ConnectionState, TransportMode
from rtlink.logger import get_logger
from rtlink.polling import PollingConfig, PollingService

logger = get_logger("application.realtime")

DEFAULT_FAILURE_THRESHOLD = 3


@dataclass(frozen=True)
class SubscriptionOptions:
    """What a subscriber wants delivered.

    Attributes:
        event: Push message type to listen for
        endpoint: Endpoint polled when push is unavailable
        query_key: Cache key for the polled payload
        callback: Receives each payload (push message data or polled result)
        interval: Polling interval in seconds (service default when None)
        on_error: Receives polling fetch errors
    """

    event: str
    endpoint: str
    query_key: Any
    callback: Callable[[Any], None]
    interval: Optional[float] = None
    on_error: Optional[Callable[[BaseException], None]] = None


@dataclass(frozen=True)
class Subscription:
    """A registered subscription. Identity and callback never change across transport switches."""

    id: str
    options: SubscriptionOptions
    push_listener: Listener
    polling_config: PollingConfig

    @property
    def event(self) -> str:
        return self.options.event


class RealtimeService:
    """
    Decides which transport is authoritative and keeps subscriptions alive
    across switches.

    Every subscription is registered with the ConnectionManager immediately
    and also gets a precomputed polling config, so switching mode only
    starts or stops polling tasks. The service flips to polling after
    ``failure_threshold`` connection errors and back to push on the next
    ``connected`` status; the ConnectionManager keeps reconnecting on its own
    in the meantime.

    Mode changes are published as ``TransportModeChanged`` on the ``mode``
    event of this service.
    """

    def __init__(
        self,
        connection: ConnectionManager,
        polling: PollingService,
        *,
        failure_threshold: int = DEFAULT_FAILURE_THRESHOLD,
        default_interval: float = 10.0,
    ):
        """
        Initialize the realtime service.

        Args:
            connection: Push connection manager
            polling: Polling scheduler
            failure_threshold: Connection errors before switching to polling
            default_interval: Polling interval for subscriptions that give none
        """
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be >= 1")
        self._connection = connection
        self._polling = polling
        self._failure_threshold = failure_threshold
        self._default_interval = default_interval
        self._emitter = EventEmitter()
        self._subscriptions: dict[str, Subscription] = {}
        self._mode = TransportMode.WEBSOCKET
        self._failure_streak = 0
        self._initialized = False

    # -- lifecycle -------------------------------------------------------

    def init(self) -> None:
        """Attach to the connection manager and start connecting."""
        if self._initialized:
            return
        self._connection.on("connection", self._on_connection_status)
        self._initialized = True
        logger.info("Realtime service initialized")
        self._connection.connect()

    def shutdown(self) -> None:
        """Stop polling, disconnect and drop every subscription."""
        for sub_id in list(self._subscriptions):
            self.unsubscribe(sub_id)
        self._polling.stop_all()
        if self._initialized:
            self._connection.off("connection", self._on_connection_status)
            self._initialized = False
        self._connection.disconnect()
        self._emitter.clear()
        logger.info("Realtime service shut down")

    def connect(self) -> None:
        self._connection.connect()

    def disconnect(self) -> None:
        self._connection.disconnect()

    # -- observation -----------------------------------------------------

    @property
    def connection(self) -> ConnectionManager:
        return self._connection

    @property
    def polling(self) -> PollingService:
        return self._polling

    @property
    def mode(self) -> TransportMode:
        return self._mode

    @property
    def failure_streak(self) -> int:
        return self._failure_streak

    @property
    def subscriptions(self) -> dict[str, Subscription]:
        return dict(self._subscriptions)

    def get_connection_method(self) -> str:
        """``"websocket"`` or ``"polling"``."""
        return self._mode.value

    def get_connection_status(self) -> str:
        return self._connection.state.value

    def on(self, event: str, listener: Listener) -> "RealtimeService":
        self._emitter.on(event, listener)
        return self

    def off(self, event: str, listener: Listener) -> "RealtimeService":
        self._emitter.off(event, listener)
        return self

    # -- subscriptions ---------------------------------------------------

    def subscribe(self, sub_id: str, options: SubscriptionOptions) -> Subscription:
        """
        Register a subscription on both transports.

        Re-subscribing an existing id replaces it.
        """
        if sub_id in self._subscriptions:
            logger.debug(f"Replacing subscription {sub_id}")
            self.unsubscribe(sub_id)

        callback = options.callback

        def push_listener(event: RealtimeEvent) -> None:
            if isinstance(event, MessageEvent):
                callback(event.data)

        polling_config = PollingConfig(
            endpoint=options.endpoint,
            query_key=options.query_key,
            interval=options.interval if options.interval is not None else self._default_interval,
            on_data=callback,
            on_error=options.on_error,
        )
        subscription = Subscription(
            id=sub_id, options=options, push_listener=push_listener, polling_config=polling_config
        )
        self._subscriptions[sub_id] = subscription
        self._connection.on(options.event, push_listener)

        if self._mode is TransportMode.POLLING:
            self._polling.start_polling(sub_id, polling_config)

        logger.info(f"Subscribed {sub_id} to {options.event!r} ({self._mode.value})")
        return subscription

    def unsubscribe(self, sub_id: str) -> bool:
        """Remove a subscription from both transports, whatever the current mode."""
        subscription = self._subscriptions.pop(sub_id, None)
        if subscription is None:
            return False
        self._connection.off(subscription.event, subscription.push_listener)
        self._polling.stop_polling(sub_id)
        logger.info(f"Unsubscribed {sub_id}")
        return True

    def send(self, data: Any) -> bool:
        """Send through the push connection. Always False in polling mode (receive-only)."""
        if self._mode is not TransportMode.WEBSOCKET:
            logger.warning("Cannot send while in polling mode: polling is receive-only")
            return False
        return self._connection.send(data)

    # -- mode switching --------------------------------------------------

    def force_polling(self) -> None:
        """Switch to polling regardless of connection health (testing aid)."""
        self._switch_to_polling("forced")

    def force_websockets(self) -> None:
        """Return to push mode and ask the connection manager to connect (testing aid)."""
        self._failure_streak = 0
        self._switch_to_push("forced")
        self._connection.connect()

    def _on_connection_status(self, event: RealtimeEvent) -> None:
        if not isinstance(event, ConnectionStatusEvent):
            return
        if event.status is ConnectionState.CONNECTED:
            self._failure_streak = 0
            if self._mode is TransportMode.POLLING:
                self._switch_to_push("connection restored")
        elif event.status is ConnectionState.ERROR:
            self._failure_streak += 1
            logger.debug(f"Connection error {self._failure_streak}/{self._failure_threshold}")
            if self._mode is not TransportMode.WEBSOCKET:
                return
            if event.fatal:
                # The manager has stopped retrying
                self._switch_to_polling(event.message or "reconnect attempts exhausted")
            elif self._failure_streak >= self._failure_threshold:
                self._switch_to_polling(f"{self._failure_streak} consecutive connection errors")

    def _switch_to_polling(self, reason: str) -> None:
        if self._mode is TransportMode.POLLING:
            return
        logger.warning(f"Switching to polling: {reason}")
        self._mode = TransportMode.POLLING
        for sub_id, subscription in self._subscriptions.items():
            self._polling.start_polling(sub_id, subscription.polling_config)
        self._emitter.emit(
            "mode", TransportModeChanged(previous=TransportMode.WEBSOCKET, current=TransportMode.POLLING, reason=reason)
        )

    def _switch_to_push(self, reason: str) -> None:
        if self._mode is TransportMode.WEBSOCKET:
            return
        logger.info(f"Switching back to websocket: {reason}")
        self._mode = TransportMode.WEBSOCKET
        self._polling.stop_all()
        self._emitter.emit(
            "mode", TransportModeChanged(previous=TransportMode.POLLING, current=TransportMode.WEBSOCKET, reason=reason)
        )
