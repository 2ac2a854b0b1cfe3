"""Tests for the requests-based polling fetcher."""

import pytest
import requests

from rtlink.errors import FetchError
from rtlink.infrastructure.http import HttpFetcher


class FakeResponse:
    def __init__(self, status_code=200, payload=None, invalid_json=False):
        self.status_code = status_code
        self.ok = 200 <= status_code < 400
        self._payload = payload
        self._invalid_json = invalid_json

    def json(self):
        if self._invalid_json:
            raise ValueError("Expecting value")
        return self._payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response or FakeResponse(payload={"ok": True})
        self.error = error
        self.requests = []
        self.closed = False

    def get(self, url, params=None, headers=None, timeout=None):
        self.requests.append({"url": url, "params": params, "headers": headers, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response

    def close(self):
        self.closed = True


class TestHttpFetcher:
    """Tests for HttpFetcher."""

    def test_resolve(self):
        fetcher = HttpFetcher(base_url="https://app.test/api", session=FakeSession())

        assert fetcher.resolve("jobs") == "https://app.test/api/jobs"
        assert fetcher.resolve("/jobs") == "https://app.test/api/jobs"
        assert fetcher.resolve("https://other.test/x") == "https://other.test/x"
        assert HttpFetcher(session=FakeSession()).resolve("/jobs") == "/jobs"

    def test_fetch_sends_cache_busting_request(self):
        session = FakeSession()
        fetcher = HttpFetcher(base_url="https://app.test/", timeout=3.0, session=session, headers={"X-Client": "t"})

        assert fetcher.fetch("/api/jobs") == {"ok": True}

        request = session.requests[0]
        assert request["url"] == "https://app.test/api/jobs"
        assert request["timeout"] == 3.0
        assert request["params"]["_t"].isdigit()
        assert request["headers"]["Cache-Control"] == "no-cache, no-store"
        assert request["headers"]["X-Client"] == "t"

    def test_http_error_status(self):
        fetcher = HttpFetcher(session=FakeSession(FakeResponse(status_code=503)))

        with pytest.raises(FetchError) as exc_info:
            fetcher.fetch("https://app.test/api/jobs")

        assert exc_info.value.status_code == 503
        assert exc_info.value.url == "https://app.test/api/jobs"

    def test_network_error(self):
        fetcher = HttpFetcher(session=FakeSession(error=requests.ConnectionError("refused")))

        with pytest.raises(FetchError, match="failed"):
            fetcher.fetch("https://app.test/api/jobs")

    def test_invalid_json(self):
        fetcher = HttpFetcher(session=FakeSession(FakeResponse(invalid_json=True)))

        with pytest.raises(FetchError, match="Invalid JSON"):
            fetcher.fetch("https://app.test/api/jobs")

    @pytest.mark.asyncio
    async def test_async_call_runs_in_thread(self):
        fetcher = HttpFetcher(session=FakeSession(FakeResponse(payload=[1, 2, 3])))

        assert await fetcher("https://app.test/api/jobs") == [1, 2, 3]

    def test_close(self):
        session = FakeSession()
        HttpFetcher(session=session).close()

        assert session.closed
