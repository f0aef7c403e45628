"""Tests for the article fetcher retry policy and the source throttle."""

import asyncio

import httpx
import pytest

from curator.config import FetcherConfig
from curator.ingestion import ArticleFetcher, FetchFailureKind, SourceThrottle
from curator.ingestion.fetcher import classify_status

URL = "https://www.bournefree.co.uk/news/harbour-budget"
PAGE = "<html><body><p>Harbour budget approved.</p></body></html>"


class FakeSleep:
    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


def run_fetch(handler, config=None, **fetch_kwargs):
    """Fetch URL through a mock transport; returns (result, sleeps)."""
    sleep = FakeSleep()

    async def go():
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        async with client:
            fetcher = ArticleFetcher(config or FetcherConfig(), client=client, sleep=sleep)
            return await fetcher.fetch(URL, **fetch_kwargs)

    return asyncio.run(go()), sleep.calls


class TestRetryPolicy:
    def test_success_on_first_attempt(self):
        result, sleeps = run_fetch(lambda request: httpx.Response(200, html=PAGE))

        assert result.success
        assert result.attempts == 1
        assert result.status_code == 200
        assert "Harbour budget" in result.html
        assert sleeps == []

    def test_three_timeouts_give_up_after_three_attempts(self):
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ReadTimeout("timed out", request=request)

        result, sleeps = run_fetch(handler)

        assert not result.success
        assert result.kind == FetchFailureKind.TIMEOUT
        assert result.attempts == 3
        assert len(calls) == 3
        assert sleeps == [1.0, 3.0]

    def test_hard_timeout_covers_slow_responses(self):
        async def handler(request):
            await asyncio.sleep(1)
            return httpx.Response(200, html=PAGE)

        config = FetcherConfig(timeout=0.05, max_attempts=2)
        result, sleeps = run_fetch(handler, config)

        assert result.kind == FetchFailureKind.TIMEOUT
        assert result.attempts == 2
        assert sleeps == [1.0]

    def test_server_error_then_success(self):
        responses = iter([httpx.Response(503), httpx.Response(200, html=PAGE)])
        result, sleeps = run_fetch(lambda request: next(responses))

        assert result.success
        assert result.attempts == 2
        assert sleeps == [1.0]

    def test_rate_limit_is_retried(self):
        result, sleeps = run_fetch(lambda request: httpx.Response(429))

        assert result.kind == FetchFailureKind.RATE_LIMITED
        assert result.attempts == 3
        assert result.status_code == 429

    @pytest.mark.parametrize(
        "status,kind",
        [
            (403, FetchFailureKind.ACCESS_DENIED),
            (401, FetchFailureKind.ACCESS_DENIED),
            (404, FetchFailureKind.HTTP_ERROR),
            (410, FetchFailureKind.HTTP_ERROR),
        ],
    )
    def test_client_errors_are_not_retried(self, status, kind):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(status)

        result, sleeps = run_fetch(handler)

        assert result.kind == kind
        assert result.attempts == 1
        assert len(calls) == 1
        assert sleeps == []

    def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        result, _ = run_fetch(handler, FetcherConfig(max_attempts=2))

        assert result.kind == FetchFailureKind.NETWORK_ERROR
        assert result.attempts == 2

    def test_last_delay_repeats(self):
        def handler(request):
            raise httpx.ConnectError("down", request=request)

        config = FetcherConfig(max_attempts=5, retry_delays=[1.0, 2.0])
        _, sleeps = run_fetch(handler, config)

        assert sleeps == [1.0, 2.0, 2.0, 2.0]

    def test_user_agents_rotate_per_attempt(self):
        agents = []

        def handler(request):
            agents.append(request.headers["user-agent"])
            return httpx.Response(500)

        run_fetch(handler, FetcherConfig(user_agents=["agent-a", "agent-b"]))

        assert agents == ["agent-a", "agent-b", "agent-a"]


class TestResponseChecks:
    def test_oversized_body_is_rejected(self):
        config = FetcherConfig(max_body_bytes=100)
        result, sleeps = run_fetch(lambda request: httpx.Response(200, html="x" * 500), config)

        assert result.kind == FetchFailureKind.TOO_LARGE
        assert result.attempts == 1

    def test_paywall_is_detected(self):
        page = "<html><body><p>Subscribe to read the full story.</p></body></html>"
        result, _ = run_fetch(lambda request: httpx.Response(200, html=page))

        assert result.kind == FetchFailureKind.PAYWALL_DETECTED
        assert result.attempts == 1

    def test_paywall_check_can_be_disabled(self):
        page = "<html><body><p>Subscribe to read the full story.</p></body></html>"
        result, _ = run_fetch(lambda request: httpx.Response(200, html=page), check_paywall=False)

        assert result.success

    def test_redirect_sets_final_url(self):
        def handler(request):
            if request.url.path == "/news/harbour-budget":
                return httpx.Response(301, headers={"Location": "https://www.bournefree.co.uk/2024/harbour"})
            return httpx.Response(200, html=PAGE)

        result, _ = run_fetch(handler)

        assert result.success
        assert result.final_url == "https://www.bournefree.co.uk/2024/harbour"

    def test_redirect_loop_is_a_failure_not_an_exception(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(302, headers={"Location": URL})

        result, sleeps = run_fetch(handler)

        assert not result.success
        assert result.kind == FetchFailureKind.HTTP_ERROR
        assert result.attempts == 1
        assert "redirect" in result.message.lower()
        assert sleeps == []

    def test_undecodable_body_is_a_network_error(self):
        def handler(request):
            raise httpx.DecodingError("Error -3 while decompressing data", request=request)

        result, _ = run_fetch(handler, FetcherConfig(max_attempts=2))

        assert result.kind == FetchFailureKind.NETWORK_ERROR
        assert result.attempts == 2
        assert "decompressing" in result.message

    @pytest.mark.parametrize(
        "status,kind",
        [(200, None), (304, None), (429, FetchFailureKind.RATE_LIMITED), (502, FetchFailureKind.HTTP_5XX)],
    )
    def test_classify_status(self, status, kind):
        assert classify_status(status) == kind


class TestSourceThrottle:
    def test_enforces_min_interval(self):
        now = [100.0]
        sleeps = []

        async def sleep(seconds):
            sleeps.append(seconds)
            now[0] += seconds

        throttle = SourceThrottle(2.0, clock=lambda: now[0], sleep=sleep)

        async def go():
            first = await throttle.wait()
            now[0] += 0.5
            second = await throttle.wait()
            now[0] += 5.0
            third = await throttle.wait()
            return first, second, third

        first, second, third = asyncio.run(go())

        assert first == 0.0
        assert second == pytest.approx(1.5)
        assert third == 0.0
        assert sleeps == [pytest.approx(1.5)]

    def test_fetch_waits_on_throttle_before_each_attempt(self):
        waits = []

        class RecordingThrottle:
            async def wait(self):
                waits.append(True)
                return 0.0

        run_fetch(lambda request: httpx.Response(503), throttle=RecordingThrottle())

        assert len(waits) == 3
