"""Resilient JSON fetcher for the Safe Transaction Service."""

import asyncio
import logging
from typing import Any, Awaitable, Callable
from urllib.parse import urlsplit

import httpx

from app.core.exceptions import RateLimitExhaustedError, ServiceError
from app.core.fetcher import JsonFetcher

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class HostThrottle:
    """
    Spaces out requests to the same host.

    Each network's transaction service lives on its own host, so every host
    gets its own budget. The throttle is shared by every caller of a fetcher.
    The fixed pauses between calls in the services still apply on top.
    """

    def __init__(self, requests_per_second: float, sleep: Sleep = asyncio.sleep) -> None:
        self._min_interval = 1.0 / requests_per_second
        self._last_request: dict[str, float] = {}
        self._lock = asyncio.Lock()
        self._sleep = sleep

    async def wait(self, host: str) -> None:
        """Block until a request to ``host`` is allowed."""
        async with self._lock:
            loop = asyncio.get_running_loop()
            elapsed = loop.time() - self._last_request.get(host, float("-inf"))
            if elapsed < self._min_interval:
                wait_time = self._min_interval - elapsed
                logger.debug(f"[Throttle] Waiting {wait_time:.3f}s before next request to {host}")
                await self._sleep(wait_time)
            self._last_request[host] = loop.time()


class ResilientFetcher(JsonFetcher):
    """
    GETs JSON with rate-limit backoff.

    - 404 means the resource does not exist and yields None.
    - 429 sleeps ``min(base_delay * 2**attempt, max_delay)`` and retries, up to
      ``max_retries`` retries.
    - Every other non-success status raises ``ServiceError`` at once.
    """

    def __init__(
        self,
        max_retries: int = 5,
        base_delay: float = 2.0,
        max_delay: float = 32.0,
        requests_per_second: float | None = 4.0,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        """
        Initialize the fetcher.

        Args:
            max_retries: Retries allowed after rate-limited responses.
            base_delay: First backoff delay in seconds.
            max_delay: Ceiling for a single backoff delay.
            requests_per_second: Per-host throttle; None disables it.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport (tests use MockTransport).
            sleep: Coroutine used for backoff sleeps.
        """
        self._max_retries = max_retries
        self._base_delay = base_delay
        self._max_delay = max_delay
        self._timeout = timeout
        self._transport = transport
        self._sleep = sleep
        self._throttle = (
            HostThrottle(requests_per_second, sleep=sleep) if requests_per_second else None
        )
        self._client: httpx.AsyncClient | None = None
        self._request_count = 0

    @property
    def request_count(self) -> int:
        """Number of HTTP requests issued so far."""
        return self._request_count

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                headers={
                    "Accept": "application/json",
                    "User-Agent": "SafeFlow/1.0",
                },
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    def backoff_delay(self, attempt: int) -> float:
        """Delay before retry number ``attempt + 1``."""
        return min(self._base_delay * (2**attempt), self._max_delay)

    async def fetch(self, url: str, *, required: bool = True) -> Any | None:
        """Fetch JSON from ``url``; see ``JsonFetcher.fetch``."""
        client = await self._get_client()
        host = urlsplit(url).netloc

        for attempt in range(self._max_retries + 1):
            if self._throttle is not None:
                await self._throttle.wait(host)

            self._request_count += 1
            logger.debug(f"[SafeAPI] GET {url} (attempt {attempt + 1}/{self._max_retries + 1})")
            try:
                response = await client.get(url)
            except httpx.TransportError as e:
                logger.warning(f"[SafeAPI] Transport error for {url}: {e}")
                raise ServiceError(None, url, str(e) or type(e).__name__) from e

            if response.status_code == 404:
                logger.debug(f"[SafeAPI] Not found (404): {url}")
                return None

            if response.status_code == 429:
                if attempt < self._max_retries:
                    delay = self.backoff_delay(attempt)
                    logger.warning(
                        f"[SafeAPI] Rate limited (429), retry {attempt + 1}/{self._max_retries} "
                        f"in {delay:.1f}s"
                    )
                    await self._sleep(delay)
                    continue
                break

            if not response.is_success:
                logger.error(f"[SafeAPI] HTTP {response.status_code} for {url}")
                raise ServiceError(response.status_code, url, response.reason_phrase)

            try:
                return response.json()
            except ValueError as e:
                raise ServiceError(response.status_code, url, "invalid JSON body") from e

        attempts = self._max_retries + 1
        if required:
            logger.error(f"[SafeAPI] Rate limited after {attempts} attempts: {url}")
            raise RateLimitExhaustedError(url, attempts)
        logger.error(f"[SafeAPI] Rate limited after {attempts} attempts, skipping: {url}")
        return None

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
