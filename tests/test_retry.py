from __future__ import annotations

import asyncio

import httpx
import pytest
from conftest import FakeUpstream

from gateway.services.client import ServiceClient
from gateway.services.errors import (
    RateLimitError,
    ServiceUnavailableError,
    UpstreamFatalError,
)
from gateway.services.retry import RetryExecutor, backoff_delay, is_retryable

URL = "https://api.example.test/v1/data"


def run_async(coro):
    return asyncio.run(coro)


class SleepRecorder:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def make_client(upstream: FakeUpstream, sleep: SleepRecorder, max_retries: int = 2):
    retry = RetryExecutor(
        max_retries=max_retries, base_delay=0.2, jitter=0.0, max_delay=2.0, sleep=sleep
    )
    return ServiceClient(timeout=1.0, retry=retry, transport=upstream.transport)


def test_rate_limits_within_budget_then_success():
    upstream = FakeUpstream().add("/data", 429, 429, {"ok": True})
    sleep = SleepRecorder()

    async def scenario() -> None:
        async with make_client(upstream, sleep) as client:
            data = await client.get_json("example", URL)

        assert data == {"ok": True}
        assert len(upstream.calls("/data")) == 3
        assert sleep.delays == [0.2, 0.4]

    run_async(scenario())


def test_rate_limits_beyond_budget_fail():
    upstream = FakeUpstream().add("/data", 429)
    sleep = SleepRecorder()

    async def scenario() -> None:
        async with make_client(upstream, sleep) as client:
            with pytest.raises(RateLimitError):
                await client.get_json("example", URL)

        assert len(upstream.calls("/data")) == 3

    run_async(scenario())


def test_per_call_retry_budget():
    upstream = FakeUpstream().add("/data", 503)
    sleep = SleepRecorder()

    async def scenario() -> None:
        async with make_client(upstream, sleep, max_retries=5) as client:
            with pytest.raises(ServiceUnavailableError):
                await client.get_json("example", URL, retries=1)

        assert len(upstream.calls("/data")) == 2

    run_async(scenario())


def test_fatal_errors_are_not_retried():
    upstream = FakeUpstream().add("/data", 404)
    sleep = SleepRecorder()

    async def scenario() -> None:
        async with make_client(upstream, sleep) as client:
            with pytest.raises(UpstreamFatalError) as exc_info:
                await client.get_json("example", URL)

        assert exc_info.value.status_code == 404
        assert len(upstream.calls("/data")) == 1
        assert sleep.delays == []

    run_async(scenario())


def test_retry_after_is_honoured_within_max_delay():
    limited = httpx.Response(429, headers={"Retry-After": "1.5"})
    upstream = FakeUpstream().add("/data", limited, {"ok": True})
    sleep = SleepRecorder()

    async def scenario() -> None:
        async with make_client(upstream, sleep) as client:
            await client.get_json("example", URL)

        assert sleep.delays == [1.5]

    run_async(scenario())


def test_backoff_delay_is_bounded():
    assert backoff_delay(0, 0.2, 0.0) == 0.2
    assert backoff_delay(3, 0.2, 0.0) == pytest.approx(1.6)
    assert backoff_delay(10, 0.2, 0.0, max_delay=2.0) == 2.0
    for attempt in range(5):
        assert 0.2 * 2**attempt <= backoff_delay(attempt, 0.2, 0.1) <= 0.2 * 2**attempt + 0.1


def test_retry_classification():
    assert is_retryable(RateLimitError("x"))
    assert is_retryable(ServiceUnavailableError("x", 502))
    assert not is_retryable(UpstreamFatalError("bad request", "x", 400))
    assert not is_retryable(ValueError("boom"))


def test_executor_runs_plain_operations():
    attempts = []

    async def flaky() -> str:
        attempts.append(1)
        if len(attempts) < 2:
            raise ServiceUnavailableError("example", 500)
        return "done"

    async def scenario() -> None:
        executor = RetryExecutor(max_retries=1, base_delay=0, jitter=0, sleep=SleepRecorder())
        assert await executor.execute(flaky, "example") == "done"

    run_async(scenario())
    assert len(attempts) == 2
