"""HTTP page fetcher with retries, size cap and paywall detection."""

import asyncio
import itertools
import logging
import time
from typing import Awaitable, Callable, Optional, Union

import httpx

from ..config.models import FetcherConfig
from .models import FetchedPage, FetchFailure, FetchFailureKind
from .throttle import SourceThrottle

logger = logging.getLogger(__name__)

FetchResult = Union[FetchedPage, FetchFailure]


class _Abort(Exception):
    """Internal signal carrying a classified failure out of an attempt."""

    def __init__(self, kind: FetchFailureKind, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status_code = status_code


def classify_status(status_code: int) -> Optional[FetchFailureKind]:
    """Map an HTTP status to a failure kind, or None for success."""
    if status_code < 400:
        return None
    if status_code in (401, 403):
        return FetchFailureKind.ACCESS_DENIED
    if status_code == 429:
        return FetchFailureKind.RATE_LIMITED
    if status_code >= 500:
        return FetchFailureKind.HTTP_5XX
    return FetchFailureKind.HTTP_ERROR


class ArticleFetcher:
    """Fetch HTML pages.

    Each URL gets up to ``max_attempts`` attempts. Only timeouts, network
    errors, 5xx and 429 responses are retried; the delay before attempt ``n``
    is ``retry_delays[n - 2]`` (the last delay repeats). Every attempt uses the
    next user agent from the pool.

    The client and sleep function can be injected for tests.
    """

    def __init__(
        self,
        config: Optional[FetcherConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
        semaphore: Optional[asyncio.Semaphore] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ) -> None:
        """Initialize article fetcher."""
        self.config = config or FetcherConfig()
        self._client = client
        self._owns_client = client is None
        self._semaphore = semaphore or asyncio.Semaphore(self.config.max_concurrent)
        self._sleep = sleep or asyncio.sleep
        self._user_agents = itertools.cycle(self.config.user_agents)
        self._paywall = [p.lower() for p in self.config.paywall_indicators]

    async def __aenter__(self) -> "ArticleFetcher":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(follow_redirects=True)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _delay_before(self, attempt: int) -> float:
        delays = self.config.retry_delays
        return delays[min(attempt - 2, len(delays) - 1)]

    async def _read_capped(self, response: httpx.Response) -> bytes:
        limit = self.config.max_body_bytes
        declared = response.headers.get("content-length")
        if declared and declared.isdigit() and int(declared) > limit:
            raise _Abort(
                FetchFailureKind.TOO_LARGE,
                f"Content-Length {declared} exceeds {limit} bytes",
                response.status_code,
            )

        chunks = []
        size = 0
        async for chunk in response.aiter_bytes():
            size += len(chunk)
            if size > limit:
                raise _Abort(
                    FetchFailureKind.TOO_LARGE,
                    f"Body exceeds {limit} bytes",
                    response.status_code,
                )
            chunks.append(chunk)
        return b"".join(chunks)

    async def _attempt(self, url: str, user_agent: str, check_paywall: bool) -> FetchedPage:
        headers = {
            "User-Agent": user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-GB,en;q=0.9",
        }
        started = time.monotonic()
        async with self.client.stream("GET", url, headers=headers, follow_redirects=True) as response:
            kind = classify_status(response.status_code)
            if kind is not None:
                raise _Abort(kind, f"HTTP {response.status_code}", response.status_code)

            content = await self._read_capped(response)
            encoding = response.encoding or "utf-8"
            try:
                html = content.decode(encoding, errors="replace")
            except LookupError:
                html = content.decode("utf-8", errors="replace")

        if check_paywall:
            lowered = html.lower()
            for indicator in self._paywall:
                if indicator in lowered:
                    raise _Abort(
                        FetchFailureKind.PAYWALL_DETECTED,
                        f"Paywall indicator: {indicator!r}",
                        response.status_code,
                    )

        return FetchedPage(
            url=url,
            final_url=str(response.url),
            status_code=response.status_code,
            html=html,
            elapsed_ms=int((time.monotonic() - started) * 1000),
        )

    async def _attempt_with_timeout(self, url: str, user_agent: str, check_paywall: bool) -> FetchedPage:
        try:
            return await asyncio.wait_for(
                self._attempt(url, user_agent, check_paywall), self.config.timeout
            )
        except asyncio.TimeoutError:
            raise _Abort(FetchFailureKind.TIMEOUT, f"No response within {self.config.timeout}s")
        except httpx.TimeoutException as e:
            raise _Abort(FetchFailureKind.TIMEOUT, str(e) or "Request timed out")
        except httpx.TransportError as e:
            raise _Abort(FetchFailureKind.NETWORK_ERROR, str(e) or type(e).__name__)
        except httpx.TooManyRedirects as e:
            raise _Abort(FetchFailureKind.HTTP_ERROR, str(e) or "Too many redirects")
        except httpx.RequestError as e:
            # DecodingError and anything else raised while sending
            raise _Abort(FetchFailureKind.NETWORK_ERROR, str(e) or type(e).__name__)
        except httpx.InvalidURL as e:
            raise _Abort(FetchFailureKind.HTTP_ERROR, f"Invalid URL: {e}")

    async def fetch(
        self,
        url: str,
        throttle: Optional[SourceThrottle] = None,
        check_paywall: bool = True,
    ) -> FetchResult:
        """Fetch a page, applying the retry policy.

        Args:
            url: Page URL
            throttle: Per-source throttle, awaited before every attempt
            check_paywall: Reject pages containing paywall indicators

        Returns:
            FetchedPage on success, FetchFailure with the last failure kind otherwise
        """
        started = time.monotonic()
        failure: Optional[_Abort] = None
        attempts = 0

        for attempt in range(1, self.config.max_attempts + 1):
            if attempt > 1:
                delay = self._delay_before(attempt)
                logger.debug("Retrying %s in %.1fs (attempt %d)", url, delay, attempt)
                await self._sleep(delay)
            if throttle is not None:
                await throttle.wait()

            attempts = attempt
            try:
                async with self._semaphore:
                    page = await self._attempt_with_timeout(
                        url, next(self._user_agents), check_paywall
                    )
                page.attempts = attempt
                return page
            except _Abort as e:
                failure = e
                logger.info("Fetch attempt %d for %s failed: %s (%s)", attempt, url, e.kind.value, e.message)
                if not e.kind.retryable:
                    break

        return FetchFailure(
            url=url,
            kind=failure.kind,
            message=failure.message,
            status_code=failure.status_code,
            attempts=attempts,
            elapsed_ms=int((time.monotonic() - started) * 1000),
        )
