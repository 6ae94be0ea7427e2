"""
Async HTTP client for public blockchain and DeFi APIs.

Optimized for the proxy workload with:
- Connection pooling and keep-alive
- Fast JSON parsing with orjson
- Per-call timeouts, so one slow source fails alone
- Latency and failure accounting per upstream source
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any, TypeVar

import aiohttp
import orjson

from djedops.config.constants import (
    DEFAULT_TIMEOUT_S,
    RETRY_ATTEMPTS,
    RETRY_INITIAL_DELAY,
    RETRY_MULTIPLIER,
)
from djedops.telemetry.metrics import MetricsCollector
from djedops.utils.time import LatencyTimer


logger = logging.getLogger(__name__)

T = TypeVar("T")


class UpstreamError(Exception):
    """Base exception for failed upstream calls."""

    def __init__(self, message: str, source: str = "", status: int | None = None) -> None:
        super().__init__(message)
        self.source = source
        self.status = status


class UpstreamTimeoutError(UpstreamError):
    """The upstream did not answer within the per-call timeout."""

    pass


class UpstreamRateLimitError(UpstreamError):
    """The upstream answered HTTP 429."""

    pass


class HttpClient:
    """
    Async JSON-over-HTTP client shared by every feed.

    Features:
    - Single session with connection pooling
    - orjson for request and response bodies
    - Typed error family instead of raw aiohttp exceptions
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT_S,
        headers: dict[str, str] | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            timeout: Default per-call timeout in seconds.
            headers: Headers sent with every request.
            metrics: Optional collector for latency and failure accounting.
        """
        self._timeout = timeout
        self._headers = {"Accept": "application/json", **(headers or {})}
        self._metrics = metrics
        self._session: aiohttp.ClientSession | None = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create the aiohttp session."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=50,
                limit_per_host=10,
                keepalive_timeout=30,
                enable_cleanup_closed=True,
            )
            self._session = aiohttp.ClientSession(
                connector=connector,
                headers=self._headers,
                json_serialize=lambda x: orjson.dumps(x).decode(),
            )

        return self._session

    async def close(self) -> None:
        """Close the client session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    @asynccontextmanager
    async def _request_context(self, source: str) -> AsyncIterator[aiohttp.ClientSession]:
        """Translate transport failures into the upstream error family."""
        session = await self._get_session()
        timer = LatencyTimer()
        failed = False
        try:
            with timer:
                yield session
        except asyncio.TimeoutError as e:
            failed = True
            raise UpstreamTimeoutError(f"{source} timed out", source=source) from e
        except aiohttp.ClientError as e:
            failed = True
            raise UpstreamError(f"{source} network error: {e}", source=source) from e
        except UpstreamError:
            failed = True
            raise
        finally:
            if self._metrics is not None:
                self._metrics.record_upstream(source, timer.latency_us, failed=failed)

    async def get_json(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
        source: str = "upstream",
        headers: dict[str, str] | None = None,
    ) -> Any:
        """
        GET a URL and return the decoded JSON body.

        Args:
            url: Absolute URL.
            params: Query parameters.
            timeout: Per-call timeout, defaults to the client timeout.
            source: Source name used in errors, logs and metrics.
            headers: Extra headers for this call.

        Returns:
            Decoded JSON value.

        Raises:
            UpstreamError: On network error, HTTP error status or invalid JSON.
        """
        client_timeout = aiohttp.ClientTimeout(total=timeout or self._timeout)
        async with self._request_context(source) as session:
            async with session.get(
                url, params=params, timeout=client_timeout, headers=headers
            ) as response:
                return await self._handle_response(response, source)

    async def post_json(
        self,
        url: str,
        payload: Any,
        timeout: float | None = None,
        source: str = "upstream",
        headers: dict[str, str] | None = None,
    ) -> Any:
        """
        POST a JSON payload and return the decoded JSON body.

        Raises:
            UpstreamError: On network error, HTTP error status or invalid JSON.
        """
        client_timeout = aiohttp.ClientTimeout(total=timeout or self._timeout)
        async with self._request_context(source) as session:
            async with session.post(
                url, json=payload, timeout=client_timeout, headers=headers
            ) as response:
                return await self._handle_response(response, source)

    async def _handle_response(self, response: aiohttp.ClientResponse, source: str) -> Any:
        """Parse and validate response."""
        body = await response.read()

        if response.status == 429:
            raise UpstreamRateLimitError(
                f"Rate limited by {source}. Please wait and try again.",
                source=source,
                status=429,
            )
        if response.status >= 400:
            raise UpstreamError(
                f"{source} API error: {response.status}",
                source=source,
                status=response.status,
            )

        try:
            return orjson.loads(body)
        except orjson.JSONDecodeError as e:
            raise UpstreamError(f"Invalid JSON response from {source}: {e}", source=source) from e

    async def __aenter__(self) -> "HttpClient":
        """Async context manager entry."""
        await self._get_session()
        return self

    async def __aexit__(self, *args: object) -> None:
        """Async context manager exit."""
        await self.close()


async def fetch_with_retry(
    call: Callable[[], Awaitable[T]],
    attempts: int = RETRY_ATTEMPTS,
    initial_delay: float = RETRY_INITIAL_DELAY,
    multiplier: float = RETRY_MULTIPLIER,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Await `call` with capped exponential backoff between attempts.

    With the defaults a failing call is tried 3 times, waiting 1s then 2s.

    Args:
        call: Zero-argument coroutine factory.
        attempts: Maximum number of attempts.
        initial_delay: Delay before the second attempt in seconds.
        multiplier: Backoff multiplier.
        sleep: Sleep function, injectable for tests.

    Returns:
        The first successful result.

    Raises:
        The exception of the last attempt.
    """
    if attempts < 1:
        raise ValueError("attempts must be >= 1")

    delay = initial_delay
    for attempt in range(attempts):
        try:
            return await call()
        except Exception as e:
            if attempt == attempts - 1:
                raise
            logger.warning(
                f"Attempt {attempt + 1}/{attempts} failed: {e}; retrying in {delay:.1f}s"
            )
            await sleep(delay)
            delay *= multiplier

    raise AssertionError("unreachable")
