from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import aiohttp

from arbitrage_scanner.core.exceptions import ExchangeError

log = logging.getLogger(__name__)

_DEFAULT_HEADERS = {
    "Accept": "application/json, text/plain, */*",
    "Accept-Language": "en-US,en;q=0.9",
    "Accept-Encoding": "gzip, deflate",
    "Connection": "keep-alive",
    "Cache-Control": "no-cache",
}


class HttpClientFactory:
    """Lazily creates one shared aiohttp session for every exchange adapter.

    The total timeout configured here is the per-request timeout of every quote
    source; the refresh orchestrator does not add its own.
    """

    def __init__(self, timeout: float = 10.0, max_retries: int = 3, user_agent: str | None = None) -> None:
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._max_retries = max_retries
        self._user_agent = user_agent or "arbitrage-scanner/0.1"
        self._session: aiohttp.ClientSession | None = None
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def session(self) -> AsyncIterator[aiohttp.ClientSession]:
        if self._session is None or self._session.closed:
            async with self._lock:
                if self._session is None or self._session.closed:
                    self._session = aiohttp.ClientSession(
                        timeout=self._timeout,
                        headers={"User-Agent": self._user_agent, **_DEFAULT_HEADERS},
                        connector=aiohttp.TCPConnector(limit=100),
                    )
        yield self._session

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()

    async def get_json(self, url: str, params: dict[str, Any] | None = None) -> Any:
        """GET a public endpoint and decode the JSON body.

        HTTP 429 responses are retried with exponential backoff honouring
        ``Retry-After``; other HTTP errors propagate as ``aiohttp.ClientResponseError``.
        """
        log.debug("GET %s with params: %s", url, params)
        async with self.session() as session:
            for attempt in range(self._max_retries):
                async with session.get(url, params=params) as response:
                    if response.status == 429:
                        try:
                            retry_after = int(response.headers.get("Retry-After", "1"))
                        except (TypeError, ValueError):
                            retry_after = 1
                        wait_time = min(retry_after * (2 ** attempt), 10)
                        log.warning("Rate limit exceeded (429) for %s, waiting %d seconds", url, wait_time)
                        await asyncio.sleep(wait_time)
                        continue
                    response.raise_for_status()
                    data = await response.json(content_type=None)
                    log.debug("Response status: %d for %s", response.status, url)
                    return data
        raise ExchangeError(f"Rate limit exceeded after {self._max_retries} attempts: {url}")
