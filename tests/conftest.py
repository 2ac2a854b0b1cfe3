"""Shared fakes for rtlink tests."""

import asyncio
import json
from typing import Any, Optional

import pytest

from rtlink.connection import ConnectionManager, HeartbeatMonitor, ReconnectPolicy
from rtlink.core.scheduling import ManualScheduler
from rtlink.domain.protocols import TransportCallbacks
from rtlink.domain.types import ReadyState

PRIMARY_URL = "ws://realtime.test/ws"
ALTERNATE_URL = "ws://realtime.test/ws-alt"


class FakeTransport:
    """In-memory transport driven explicitly by tests."""

    def __init__(self, url: str, callbacks: TransportCallbacks):
        self.url = url
        self.callbacks = callbacks
        self._ready_state = ReadyState.CONNECTING
        self.sent: list[str] = []
        self.close_calls: list[tuple[int, str]] = []
        self.fail_send = False

    @property
    def ready_state(self) -> ReadyState:
        return self._ready_state

    @property
    def sent_json(self) -> list[Any]:
        return [json.loads(message) for message in self.sent]

    def send(self, message: str) -> None:
        if self._ready_state is not ReadyState.OPEN:
            raise RuntimeError(f"transport is {self._ready_state.value}")
        if self.fail_send:
            raise RuntimeError("send failed")
        self.sent.append(message)

    def close(self, code: int = 1000, reason: str = "") -> None:
        self.close_calls.append((code, reason))
        self._ready_state = ReadyState.CLOSED
        self.callbacks.on_close(code, reason)

    # Test drivers

    def simulate_open(self) -> None:
        self._ready_state = ReadyState.OPEN
        self.callbacks.on_open()

    def simulate_message(self, data: Any) -> None:
        self.callbacks.on_message(data if isinstance(data, str) else json.dumps(data))

    def simulate_error(self, error: Optional[BaseException] = None) -> None:
        self.callbacks.on_error(error or ConnectionError("connection reset"))

    def simulate_close(self, code: int = 1006, reason: str = "") -> None:
        self._ready_state = ReadyState.CLOSED
        self.callbacks.on_close(code, reason)


class FakeTransportFactory:
    """Records every transport the manager creates."""

    def __init__(self):
        self.transports: list[FakeTransport] = []
        self.attempted_urls: list[str] = []
        self.fail_next: Optional[Exception] = None
        self.fail_always: Optional[Exception] = None

    def __call__(self, url: str, callbacks: TransportCallbacks) -> FakeTransport:
        self.attempted_urls.append(url)
        if self.fail_always is not None:
            raise self.fail_always
        if self.fail_next is not None:
            error, self.fail_next = self.fail_next, None
            raise error
        transport = FakeTransport(url, callbacks)
        self.transports.append(transport)
        return transport

    @property
    def last(self) -> FakeTransport:
        return self.transports[-1]

    @property
    def urls(self) -> list[str]:
        return [t.url for t in self.transports]


class FakeFetcher:
    """Async fetcher returning canned payloads per endpoint."""

    def __init__(self, responses: Optional[dict[str, Any]] = None):
        self.responses = responses or {}
        self.calls: list[str] = []
        self.gate: Optional[asyncio.Event] = None

    async def __call__(self, endpoint: str) -> Any:
        self.calls.append(endpoint)
        if self.gate is not None:
            await self.gate.wait()
        response = self.responses.get(endpoint, {"endpoint": endpoint, "n": len(self.calls)})
        if isinstance(response, BaseException):
            raise response
        return response


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def factory() -> FakeTransportFactory:
    return FakeTransportFactory()


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


def make_manager(
    scheduler: ManualScheduler,
    factory: FakeTransportFactory,
    *,
    max_attempts: int = 12,
    max_fails_before_switch: int = 3,
    alternate_url: Optional[str] = ALTERNATE_URL,
) -> ConnectionManager:
    """ConnectionManager with deterministic backoff (no jitter effect)."""
    policy = ReconnectPolicy(
        base_delay=1.0,
        max_delay=30.0,
        backoff_factor=2.0,
        jitter_ratio=0.1,
        max_attempts=max_attempts,
    )
    return ConnectionManager(
        PRIMARY_URL,
        alternate_url,
        reconnect_policy=policy,
        heartbeat=HeartbeatMonitor(interval=15.0, timeout=30.0, scheduler=scheduler),
        max_fails_before_switch=max_fails_before_switch,
        transport_factory=factory,
        scheduler=scheduler,
        rand=lambda: 0.5,
    )


@pytest.fixture
def manager(scheduler, factory) -> ConnectionManager:
    return make_manager(scheduler, factory)
