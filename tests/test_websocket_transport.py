"""Tests for the websockets-backed push transport."""

import asyncio

import pytest
from websockets.asyncio.server import serve

from rtlink.domain.protocols import TransportCallbacks
from rtlink.domain.types import ReadyState
from rtlink.errors import TransportError
from rtlink.infrastructure.websocket import WebSocketTransport


class Recorder:
    """Collects transport callbacks and exposes events to await them."""

    def __init__(self):
        self.opened = asyncio.Event()
        self.closed = asyncio.Event()
        self.message_received = asyncio.Event()
        self.messages = []
        self.errors = []
        self.close_args = None

    def callbacks(self):
        return TransportCallbacks(
            on_open=self.opened.set,
            on_message=self._on_message,
            on_close=self._on_close,
            on_error=self.errors.append,
        )

    def _on_message(self, text):
        self.messages.append(text)
        self.message_received.set()

    def _on_close(self, code, reason):
        self.close_args = (code, reason)
        self.closed.set()


async def echo(websocket):
    async for message in websocket:
        await websocket.send(message)


class TestWebSocketTransport:
    """Tests for WebSocketTransport against a local server."""

    @pytest.mark.asyncio
    async def test_open_send_receive_close(self):
        async with serve(echo, "127.0.0.1", 0) as server:
            port = next(iter(server.sockets)).getsockname()[1]
            rec = Recorder()
            transport = WebSocketTransport(f"ws://127.0.0.1:{port}/ws", rec.callbacks())
            assert transport.ready_state is ReadyState.CONNECTING

            await asyncio.wait_for(rec.opened.wait(), timeout=5)
            assert transport.ready_state is ReadyState.OPEN

            transport.send('{"type": "hello"}')
            await asyncio.wait_for(rec.message_received.wait(), timeout=5)
            assert rec.messages == ['{"type": "hello"}']

            transport.close(4000, "Heartbeat timeout")
            await asyncio.wait_for(rec.closed.wait(), timeout=5)

        assert rec.close_args == (4000, "Heartbeat timeout")
        assert transport.ready_state is ReadyState.CLOSED
        assert rec.errors == []

    @pytest.mark.asyncio
    async def test_invalid_uri_reports_error_then_close(self):
        rec = Recorder()
        transport = WebSocketTransport("not a websocket url", rec.callbacks())

        await asyncio.wait_for(rec.closed.wait(), timeout=5)

        assert len(rec.errors) == 1
        assert rec.close_args == (1006, "")
        assert not rec.opened.is_set()
        assert transport.ready_state is ReadyState.CLOSED

    @pytest.mark.asyncio
    async def test_send_before_open_raises(self):
        rec = Recorder()
        transport = WebSocketTransport("ws://127.0.0.1:9/never", rec.callbacks())

        with pytest.raises(TransportError):
            transport.send("too early")

        transport.close()
        await asyncio.wait_for(rec.closed.wait(), timeout=5)
        assert rec.close_args == (1000, "")

    def test_requires_running_loop(self):
        with pytest.raises(RuntimeError):
            WebSocketTransport("ws://127.0.0.1:9/ws", Recorder().callbacks())
