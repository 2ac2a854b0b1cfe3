"""Push transport backed by the ``websockets`` library."""

import asyncio
from typing import Any, Optional

import websockets
from websockets.exceptions import ConnectionClosed, InvalidHandshake, InvalidURI

from rtlink.domain.protocols import ABNORMAL_CLOSURE, NORMAL_CLOSURE, TransportCallbacks
from rtlink.domain.types import ReadyState
from rtlink.errors import TransportError
from rtlink.logger import get_logger

logger = get_logger("infrastructure.websocket")


class WebSocketTransport:
    """One websocket connection attempt, reported through TransportCallbacks.

    Creating the transport starts a background task on the running loop that
    opens the socket and pumps inbound frames. ``on_close`` is invoked exactly
    once, after ``on_open`` (if the socket opened) and any ``on_error``.

    Keep-alive pings of the websocket protocol itself are disabled; liveness
    is handled by the application-level heartbeat.
    """

    def __init__(
        self,
        url: str,
        callbacks: TransportCallbacks,
        *,
        open_timeout: Optional[float] = 10.0,
        extra_headers: Optional[dict[str, str]] = None,
    ):
        """
        Create the transport and start connecting.

        Args:
            url: ws:// or wss:// URL
            callbacks: Lifecycle callbacks
            open_timeout: Handshake timeout in seconds
            extra_headers: Additional handshake headers

        Raises:
            RuntimeError: If there is no running event loop
        """
        self.url = url
        self._callbacks = callbacks
        self._open_timeout = open_timeout
        self._extra_headers = extra_headers
        self._state = ReadyState.CONNECTING
        self._ws: Any = None
        self._close_request: Optional[tuple[int, str]] = None
        self._close_reported = False
        self._send_tasks: set[asyncio.Task] = set()
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run(), name=f"websocket:{url}")

    @property
    def ready_state(self) -> ReadyState:
        return self._state

    def send(self, message: str) -> None:
        if self._state is not ReadyState.OPEN or self._ws is None:
            raise TransportError(f"Cannot send, websocket is {self._state.value}")
        task = asyncio.get_running_loop().create_task(self._send(message))
        self._send_tasks.add(task)
        task.add_done_callback(self._send_tasks.discard)

    def close(self, code: int = NORMAL_CLOSURE, reason: str = "") -> None:
        if self._state in (ReadyState.CLOSING, ReadyState.CLOSED):
            return
        self._close_request = (code, reason)
        self._state = ReadyState.CLOSING
        if self._ws is None:
            # Still handshaking; the task may not have started yet
            self._task.cancel()
            self._task.add_done_callback(lambda _: self._report_close(code, reason))
        else:
            task = asyncio.get_running_loop().create_task(self._ws.close(code, reason))
            self._send_tasks.add(task)
            task.add_done_callback(self._send_tasks.discard)

    async def _send(self, message: str) -> None:
        try:
            await self._ws.send(message)
        except ConnectionClosed:
            # The reader loop reports the close
            logger.debug("Send on a closed websocket ignored")
        except Exception as e:
            logger.error(f"Websocket send failed: {e}")
            self._callbacks.on_error(e)

    async def _run(self) -> None:
        code, reason = ABNORMAL_CLOSURE, ""
        try:
            connect_kwargs: dict[str, Any] = {"open_timeout": self._open_timeout, "ping_interval": None}
            if self._extra_headers:
                connect_kwargs["additional_headers"] = self._extra_headers
            async with websockets.connect(self.url, **connect_kwargs) as ws:
                self._ws = ws
                if self._state is ReadyState.CONNECTING:
                    self._state = ReadyState.OPEN
                    self._callbacks.on_open()
                async for frame in ws:
                    text = frame if isinstance(frame, str) else frame.decode("utf-8", errors="replace")
                    self._callbacks.on_message(text)
        except asyncio.CancelledError:
            if self._close_request is None:
                raise
        except ConnectionClosed as e:
            logger.debug(f"Websocket closed with error: {e}")
        except (OSError, asyncio.TimeoutError, InvalidHandshake, InvalidURI) as e:
            logger.warning(f"Websocket connection to {self.url} failed: {e}")
            self._callbacks.on_error(e)
        except Exception as e:
            logger.exception(f"Unexpected websocket failure on {self.url}: {e}")
            self._callbacks.on_error(e)
        finally:
            if self._ws is not None and self._ws.close_code is not None:
                code, reason = self._ws.close_code, self._ws.close_reason or ""
            elif self._close_request is not None:
                code, reason = self._close_request
            self._report_close(code, reason)

    def _report_close(self, code: int, reason: str) -> None:
        if self._close_reported:
            return
        self._close_reported = True
        self._state = ReadyState.CLOSED
        self._callbacks.on_close(code, reason)
