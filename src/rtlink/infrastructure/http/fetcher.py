"""HTTP fetcher used by the polling path."""

import asyncio
import time
from typing import Any, Optional
from urllib.parse import urljoin

import requests

from rtlink.errors import FetchError
from rtlink.logger import get_logger

logger = get_logger("infrastructure.http")

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store",
    "Pragma": "no-cache",
    "Accept": "application/json",
}


class HttpFetcher:
    """Cache-busting JSON GETs through ``requests``.

    ``requests`` is blocking, so each call runs in a worker thread via
    ``asyncio.to_thread`` and never stalls the event loop.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
        headers: Optional[dict[str, str]] = None,
    ):
        """
        Initialize the fetcher.

        Args:
            base_url: Prefix joined with relative endpoints
            timeout: Per-request timeout in seconds
            session: Shared requests session (one is created if omitted)
            headers: Extra headers sent with every request
        """
        self.base_url = base_url
        self.timeout = timeout
        self._session = session or requests.Session()
        self._headers = {**NO_CACHE_HEADERS, **(headers or {})}

    def resolve(self, endpoint: str) -> str:
        if self.base_url and not endpoint.startswith(("http://", "https://")):
            return urljoin(self.base_url.rstrip("/") + "/", endpoint.lstrip("/"))
        return endpoint

    async def __call__(self, endpoint: str) -> Any:
        return await asyncio.to_thread(self.fetch, endpoint)

    def fetch(self, endpoint: str) -> Any:
        """
        Perform one blocking GET and return the decoded JSON body.

        Raises:
            FetchError: On network failure, non-2xx status or invalid JSON
        """
        url = self.resolve(endpoint)
        params = {"_t": str(int(time.time() * 1000))}
        try:
            response = self._session.get(url, params=params, headers=self._headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise FetchError(f"Request to {url} failed: {e}", url=url) from e

        if not response.ok:
            raise FetchError(
                f"Request to {url} returned {response.status_code}", status_code=response.status_code, url=url
            )

        try:
            return response.json()
        except ValueError as e:
            raise FetchError(f"Invalid JSON from {url}: {e}", status_code=response.status_code, url=url) from e

    def close(self) -> None:
        self._session.close()
