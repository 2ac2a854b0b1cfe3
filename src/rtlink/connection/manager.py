"""Connection manager that owns the push transport, reconnection, heartbeat and failover."""

import json
import random
from functools import partial
from typing import Any, Callable, Optional

from rtlink.core.scheduling import AsyncioScheduler
from rtlink.domain.events import (
    ConnectionStatusEvent,
    ErrorEvent,
    ErrorKind,
    EventEmitter,
    HeartbeatEvent,
    Listener,
    MessageEvent,
    RealtimeEvent,
)
from rtlink.domain.protocols import (
    HEARTBEAT_TIMEOUT_CLOSE,
    NORMAL_CLOSURE,
    PushTransport,
    Scheduler,
    TaskHandle,
    TransportCallbacks,
    TransportFactory,
)
from rtlink.domain.types import ConnectionState, ReadyState
from rtlink.logger import get_logger

from .endpoints import EndpointSelector, FailoverAction
from .heartbeat import HeartbeatMonitor
from .reconnect import ReconnectPolicy

logger = get_logger("connection.manager")

HEARTBEAT_TYPE = "heartbeat"
MAX_ATTEMPTS_MESSAGE = "Maximum reconnection attempts reached"


def _default_transport_factory(url: str, callbacks: TransportCallbacks) -> PushTransport:
    from rtlink.infrastructure.websocket import WebSocketTransport

    return WebSocketTransport(url, callbacks)


class ConnectionManager:
    """
    Maintains a single logical push connection.

    This manager coordinates:
    - Connection state (connecting, connected, disconnected, error)
    - Reconnection with exponential backoff and jitter
    - Heartbeat liveness checks that force a reconnect on silent drops
    - Failover between a primary and an alternate endpoint

    Everything observable goes through the event interface (``on``/``off``/
    ``once``). Event names:

    - ``connection``: ConnectionStatusEvent on every state change
    - ``error``: ErrorEvent for transport, connection, parse and send errors
    - ``message``: MessageEvent for every parsed non-heartbeat message
    - ``<type>``: the same MessageEvent under the message's ``type`` value
    - ``heartbeat``: HeartbeatEvent for every pong received

    All methods must be called on the event loop thread.
    """

    def __init__(
        self,
        primary_url: str,
        alternate_url: Optional[str] = None,
        *,
        reconnect_policy: Optional[ReconnectPolicy] = None,
        heartbeat: Optional[HeartbeatMonitor] = None,
        heartbeat_enabled: bool = True,
        max_fails_before_switch: int = 3,
        transport_factory: Optional[TransportFactory] = None,
        scheduler: Optional[Scheduler] = None,
        rand: Callable[[], float] = random.random,
    ):
        """
        Initialize connection manager.

        Args:
            primary_url: Endpoint tried first
            alternate_url: Fallback endpoint on the same host (optional)
            reconnect_policy: Backoff configuration (defaults to ReconnectPolicy())
            heartbeat: Heartbeat monitor; pass None to use defaults. It must share ``scheduler``.
            heartbeat_enabled: Whether to run heartbeat checks while connected
            max_fails_before_switch: Consecutive failures before switching endpoint
            transport_factory: Creates transports (defaults to the websockets adapter)
            scheduler: Timer source (defaults to the running asyncio loop)
            rand: Uniform [0, 1) source used for jitter
        """
        self._scheduler = scheduler or AsyncioScheduler()
        self._policy = reconnect_policy or ReconnectPolicy()
        self._heartbeat = heartbeat or HeartbeatMonitor(scheduler=self._scheduler)
        self._heartbeat_enabled = heartbeat_enabled
        self._endpoints = EndpointSelector(primary_url, alternate_url, max_fails_before_switch)
        self._transport_factory = transport_factory or _default_transport_factory
        self._rand = rand
        self._emitter = EventEmitter()

        self._state = ConnectionState.DISCONNECTED
        self._transport: Optional[PushTransport] = None
        # Bumped whenever a transport is superseded; callbacks from older ones are ignored
        self._generation = 0
        self._reconnect_handle: Optional[TaskHandle] = None
        self._next_retry_delay: Optional[float] = None
        self._attempt = 0
        self._intentional_disconnect = False
        self._started = False

    # -- observation -----------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        """Get current connection state."""
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    @property
    def attempt(self) -> int:
        """Reconnect attempts since the last successful open."""
        return self._attempt

    @property
    def policy(self) -> ReconnectPolicy:
        return self._policy

    @property
    def endpoints(self) -> EndpointSelector:
        return self._endpoints

    @property
    def heartbeat(self) -> HeartbeatMonitor:
        return self._heartbeat

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_handle is not None

    @property
    def ready_state(self) -> ReadyState:
        """State of the current transport handle."""
        if self._transport is None:
            return ReadyState.CLOSED if self._started else ReadyState.UNINITIALIZED
        return self._transport.ready_state

    @property
    def connection_info(self) -> dict[str, Any]:
        """
        Get diagnostic information about the connection.

        Returns:
            Dictionary with state, attempts, max_attempts, next_retry_delay,
            endpoint details and heartbeat figures
        """
        info: dict[str, Any] = {
            "state": self._state.value,
            "ready_state": self.ready_state.value,
            "attempts": self._attempt,
            "max_attempts": self._policy.max_attempts,
            "next_retry_delay": self._next_retry_delay if self.reconnect_pending else None,
            "last_heartbeat_response": self._heartbeat.last_response_at,
            "latency": self._heartbeat.last_latency,
        }
        info.update(self._endpoints.snapshot())
        return info

    def on(self, event: str, listener: Listener) -> "ConnectionManager":
        self._emitter.on(event, listener)
        return self

    def once(self, event: str, listener: Listener) -> "ConnectionManager":
        self._emitter.once(event, listener)
        return self

    def off(self, event: str, listener: Listener) -> "ConnectionManager":
        self._emitter.off(event, listener)
        return self

    def listener_count(self, event: str) -> int:
        return self._emitter.listener_count(event)

    # -- lifecycle -------------------------------------------------------

    def connect(self) -> None:
        """Open the push connection towards the currently selected endpoint.

        No-op while a connection is already opening or open.
        """
        if self._transport is not None and self._state in (ConnectionState.CONNECTING, ConnectionState.CONNECTED):
            return

        self._cancel_reconnect()

        self._intentional_disconnect = False
        self._started = True
        self._discard_transport()
        self._set_state(ConnectionState.CONNECTING)
        self._emit_status(ConnectionStatusEvent(status=ConnectionState.CONNECTING, is_alternate=self._endpoints.use_alternate))

        url = self._endpoints.current
        label = "ALTERNATE" if self._endpoints.use_alternate else "PRIMARY"
        logger.info(f"Connecting to {label} endpoint: {url}")

        self._generation += 1
        generation = self._generation
        callbacks = TransportCallbacks(
            on_open=partial(self._handle_open, generation),
            on_message=partial(self._handle_message, generation),
            on_close=partial(self._handle_close, generation),
            on_error=partial(self._handle_error, generation),
        )
        try:
            self._transport = self._transport_factory(url, callbacks)
        except Exception as e:
            logger.error(f"Error creating connection to {url}: {e}")
            self._transport = None
            self._set_state(ConnectionState.ERROR)
            self._emitter.emit(
                "error", ErrorEvent(kind=ErrorKind.CONNECTION, message=f"Could not open {url}: {e}", error=e)
            )
            self._emit_status(ConnectionStatusEvent(status=ConnectionState.ERROR, message=str(e)))
            if not self._intentional_disconnect:
                self._handle_failure()

    def disconnect(self) -> None:
        """Close the connection on purpose; no reconnection follows."""
        self._intentional_disconnect = True
        self._heartbeat.stop()
        self._cancel_reconnect()

        transport = self._transport
        self._transport = None
        self._generation += 1

        if transport is not None and transport.ready_state not in (ReadyState.CLOSING, ReadyState.CLOSED):
            try:
                transport.close(NORMAL_CLOSURE, "Intentional disconnection")
            except Exception as e:
                logger.error(f"Error closing transport: {e}")

        if transport is not None or self._state is not ConnectionState.DISCONNECTED:
            self._set_state(ConnectionState.DISCONNECTED)
            self._emit_status(
                ConnectionStatusEvent(
                    status=ConnectionState.DISCONNECTED, code=NORMAL_CLOSURE, reason="Intentional disconnection"
                )
            )
        logger.info("Disconnected")

    def retry(self) -> None:
        """Manually restart after reconnect attempts were exhausted."""
        if self._state is not ConnectionState.ERROR:
            logger.warning(f"Cannot retry: state is {self._state.value}, not error")
            return
        logger.info("Manual retry requested")
        self._attempt = 0
        self.connect()

    # -- sending ---------------------------------------------------------

    def send(self, data: Any) -> bool:
        """
        Send a message.

        Strings are sent as-is; anything else is JSON-encoded. While the
        transport is still opening (or after an unintentional close, which
        triggers a reconnect) the message is queued until the next
        ``connected`` status and True is returned optimistically.

        Returns:
            True if sent or queued, False otherwise (an ``error`` event with
            kind ``send_error`` is emitted)
        """
        transport = self._transport

        if transport is None:
            if self._started and not self._intentional_disconnect:
                logger.warning("Connection is closed, reconnecting before sending")
                self.connect()
                if self._transport is not None:
                    self._queue_until_connected(data)
                    return True
            return self._send_failed(data, f"Connection is {self._state.value}")

        ready_state = transport.ready_state
        if ready_state is ReadyState.OPEN and self._state is ConnectionState.CONNECTED:
            return self._transmit(data)

        if ready_state is ReadyState.CONNECTING:
            logger.warning("Connection is still opening, message will be queued")
            self._queue_until_connected(data)
            return True

        return self._send_failed(data, f"Transport is {ready_state.value}")

    def _transmit(self, data: Any) -> bool:
        transport = self._transport
        if transport is None:
            return self._send_failed(data, "Connection is closed")
        try:
            message = data if isinstance(data, str) else json.dumps(data)
            transport.send(message)
            return True
        except Exception as e:
            logger.error(f"Error sending message: {e}")
            self._emitter.emit("error", ErrorEvent(kind=ErrorKind.SEND, message=str(e), error=e, raw_data=data))
            return False

    def _send_failed(self, data: Any, message: str) -> bool:
        logger.error(f"Cannot send message: {message}")
        self._emitter.emit("error", ErrorEvent(kind=ErrorKind.SEND, message=message, raw_data=data))
        return False

    def _queue_until_connected(self, data: Any) -> None:
        def _flush(event: RealtimeEvent) -> None:
            if not isinstance(event, ConnectionStatusEvent) or event.status is ConnectionState.CONNECTING:
                return
            self.off("connection", _flush)
            if event.status is ConnectionState.CONNECTED:
                self._transmit(data)
            else:
                logger.warning(f"Dropping queued message, connection went {event.status.value}")

        self.on("connection", _flush)

    # -- transport callbacks -------------------------------------------

    def _handle_open(self, generation: int) -> None:
        if generation != self._generation:
            return
        self._attempt = 0
        self._next_retry_delay = None
        self._endpoints.record_success()
        self._set_state(ConnectionState.CONNECTED)
        label = "ALTERNATE" if self._endpoints.use_alternate else "PRIMARY"
        logger.info(f"Connected using {label} endpoint")
        self._emit_status(ConnectionStatusEvent(status=ConnectionState.CONNECTED, is_alternate=self._endpoints.use_alternate))
        if self._heartbeat_enabled:
            self._heartbeat.start(send_ping=self._send_ping, on_timeout=self._on_heartbeat_timeout)

    def _handle_message(self, generation: int, raw: str) -> None:
        if generation != self._generation:
            return
        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.error(f"Error parsing message: {e}")
            self._emitter.emit("error", ErrorEvent(kind=ErrorKind.PARSE, message=str(e), error=e, raw_data=raw))
            return

        message_type = data.get("type") if isinstance(data, dict) else None
        if message_type == HEARTBEAT_TYPE:
            self._handle_heartbeat(data)
            return

        logger.debug(f"Message received (type={message_type})")
        event = MessageEvent(type=message_type, data=data, raw=raw)
        self._emitter.emit("message", event)
        if isinstance(message_type, str) and message_type:
            self._emitter.emit(message_type, event)

    def _handle_heartbeat(self, data: dict) -> None:
        action = data.get("action")
        timestamp = data.get("timestamp")
        if action == "pong":
            sent_at = timestamp / 1000 if isinstance(timestamp, (int, float)) else None
            latency = self._heartbeat.record_response(sent_at)
            if latency is not None:
                logger.debug(f"Connection healthy, latency: {latency * 1000:.0f}ms")
            self._emitter.emit(HEARTBEAT_TYPE, HeartbeatEvent(action="pong", latency=latency))
        elif action == "ping":
            self._transmit({"type": HEARTBEAT_TYPE, "action": "pong", "timestamp": timestamp})

    def _handle_error(self, generation: int, error: BaseException) -> None:
        if generation != self._generation:
            return
        # Reconnection is left to the close callback that follows
        logger.error(f"Transport error: {error}")
        self._set_state(ConnectionState.ERROR)
        self._emitter.emit("error", ErrorEvent(kind=ErrorKind.TRANSPORT, message=str(error), error=error))
        self._emit_status(ConnectionStatusEvent(status=ConnectionState.ERROR, message=str(error)))

    def _handle_close(self, generation: int, code: int, reason: str) -> None:
        if generation != self._generation:
            return
        logger.info(f"Connection closed: {code}, reason: {reason or 'No reason provided'}")
        self._heartbeat.stop()
        self._transport = None
        self._set_state(ConnectionState.DISCONNECTED)
        self._emit_status(ConnectionStatusEvent(status=ConnectionState.DISCONNECTED, code=code, reason=reason))

        if self._intentional_disconnect:
            return

        self._handle_failure()

    # -- reconnection ----------------------------------------------------

    def _handle_failure(self) -> None:
        action = self._endpoints.record_failure()
        if action is FailoverAction.SWITCH_TO_ALTERNATE:
            # Planned failover, not a retry: connect straight away
            self.connect()
            return
        self._schedule_reconnect_or_fail()

    def _schedule_reconnect_or_fail(self) -> None:
        if self._policy.should_retry(self._attempt):
            self._attempt += 1
            delay = self._policy.calculate_delay(self._attempt, self._rand)
            self._next_retry_delay = delay
            logger.info(
                f"Attempting to reconnect ({self._attempt}/{self._policy.max_attempts}), waiting {delay:.1f}s"
            )
            self._reconnect_handle = self._scheduler.call_later(delay, self._reconnect)
            return

        logger.error(f"{MAX_ATTEMPTS_MESSAGE} ({self._policy.max_attempts})")
        self._set_state(ConnectionState.ERROR)
        self._emit_status(ConnectionStatusEvent(status=ConnectionState.ERROR, message=MAX_ATTEMPTS_MESSAGE, fatal=True))

    def _reconnect(self) -> None:
        self._reconnect_handle = None
        self.connect()

    def _cancel_reconnect(self) -> None:
        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None

    # -- heartbeat -------------------------------------------------------

    def _send_ping(self, now: float) -> None:
        if self._state is not ConnectionState.CONNECTED:
            return
        self._transmit({"type": HEARTBEAT_TYPE, "action": "ping", "timestamp": int(now * 1000)})

    def _on_heartbeat_timeout(self, elapsed: float) -> None:
        transport = self._transport
        if transport is None:
            return
        logger.warning("Forcing connection reset due to heartbeat timeout")
        try:
            # The close callback drives the usual reconnect path
            transport.close(HEARTBEAT_TIMEOUT_CLOSE, "Heartbeat timeout")
        except Exception as e:
            logger.error(f"Error closing transport after heartbeat timeout: {e}")
            self._generation += 1
            self._transport = None
            self._set_state(ConnectionState.DISCONNECTED)
            self.connect()

    # -- helpers ---------------------------------------------------------

    def _discard_transport(self) -> None:
        # A transport that errored but has not reported its close yet
        transport = self._transport
        if transport is None:
            return
        self._transport = None
        self._generation += 1
        self._heartbeat.stop()
        if transport.ready_state not in (ReadyState.CLOSING, ReadyState.CLOSED):
            try:
                transport.close(NORMAL_CLOSURE, "Superseded")
            except Exception as e:
                logger.error(f"Error closing superseded transport: {e}")

    def _set_state(self, state: ConnectionState) -> None:
        if self._state is not state:
            logger.debug(f"State changed: {self._state.value} -> {state.value}")
            self._state = state

    def _emit_status(self, event: ConnectionStatusEvent) -> None:
        self._emitter.emit("connection", event)
