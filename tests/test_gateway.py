from __future__ import annotations

import asyncio
import gc
from typing import Any

import pytest

from gateway.services import (
    CacheManager,
    Gateway,
    RequestDeduplicator,
    ServiceUnavailableError,
    TtlPolicy,
    UpstreamFatalError,
)


def run_async(coro):
    return asyncio.run(coro)


class Ticker:
    def __init__(self, now: int = 1_700_000_000_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now


class Query:
    def __init__(self, **params: Any) -> None:
        self.params = params

    def cache_params(self) -> dict[str, Any]:
        return self.params


class Loader:
    """Scripted loader: each call pops the next outcome (value or exception)."""

    def __init__(self, *outcomes: Any) -> None:
        self.outcomes = list(outcomes)
        self.calls = 0

    async def __call__(self, query: Query) -> Any:
        self.calls += 1
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


def make_gateway(loader: Loader, clock: Ticker, **kwargs: Any) -> Gateway:
    policy = TtlPolicy(domain_seconds={"standings": 600})
    return Gateway("standings", loader, CacheManager(clock=clock), policy, **kwargs)


def test_fresh_hit_skips_the_loader():
    loader = Loader(["row"])
    clock = Ticker()

    async def scenario() -> None:
        gateway = make_gateway(loader, clock)
        first = await gateway.fetch_result(Query(league=39, season=2024))
        clock.now += 599_000
        second = await gateway.fetch_result(Query(season="2024", league="39"))

        assert first.data == second.data == ["row"]
        assert not first.from_cache
        assert second.from_cache and not second.is_stale
        assert second.key == "standings?league=39&season=2024"

    run_async(scenario())
    assert loader.calls == 1


def test_expired_entry_is_refreshed():
    loader = Loader(["old"], ["new"])
    clock = Ticker()

    async def scenario() -> None:
        gateway = make_gateway(loader, clock)
        await gateway.fetch(Query(league=39))
        clock.now += 600_000

        assert await gateway.fetch(Query(league=39)) == ["new"]

    run_async(scenario())
    assert loader.calls == 2


def test_stale_value_served_when_refresh_fails():
    loader = Loader(["cached"], ServiceUnavailableError("api-football", 500))
    clock = Ticker()

    async def scenario() -> None:
        gateway = make_gateway(loader, clock)
        fresh = await gateway.fetch_result(Query(league=39))
        clock.now += 3_600_000

        result = await gateway.fetch_result(Query(league=39))

        assert result.data == ["cached"]
        assert result.is_stale
        assert result.fetched_at_ms == fresh.fetched_at_ms

    run_async(scenario())


def test_stale_value_served_on_fatal_refresh_failure_too():
    loader = Loader(["cached"], UpstreamFatalError("bad request", "api-football", 400))
    clock = Ticker()

    async def scenario() -> None:
        gateway = make_gateway(loader, clock)
        await gateway.fetch(Query(league=39))
        clock.now += 3_600_000

        assert await gateway.fetch(Query(league=39)) == ["cached"]

    run_async(scenario())


def test_fatal_failure_with_empty_cache_raises():
    loader = Loader(UpstreamFatalError("bad request", "api-football", 400))

    async def scenario() -> None:
        gateway = make_gateway(loader, Ticker())
        with pytest.raises(UpstreamFatalError):
            await gateway.fetch(Query(league=39))

    run_async(scenario())


def test_failed_refresh_does_not_overwrite_cache():
    loader = Loader(["cached"], ServiceUnavailableError("api-football", 503), ["fresh"])
    clock = Ticker()

    async def scenario() -> None:
        gateway = make_gateway(loader, clock)
        await gateway.fetch(Query(league=39))
        clock.now += 3_600_000
        assert (await gateway.fetch_result(Query(league=39))).is_stale

        result = await gateway.fetch_result(Query(league=39))
        assert result.data == ["fresh"]
        assert not result.is_stale

    run_async(scenario())


def test_single_flight_shares_one_upstream_call():
    started = 0

    async def slow_loader(query: Query) -> list[str]:
        nonlocal started
        started += 1
        await asyncio.sleep(0.01)
        return ["row"]

    async def scenario() -> None:
        dedup = RequestDeduplicator()
        gateway = Gateway(
            "standings",
            slow_loader,
            CacheManager(),
            TtlPolicy(),
            deduplicator=dedup,
        )
        results = await asyncio.gather(*(gateway.fetch(Query(league=39)) for _ in range(5)))

        assert results == [["row"]] * 5
        assert dedup.to_dict() == {"total_requests": 1, "deduplicated": 4, "in_flight": 0}

    run_async(scenario())
    assert started == 1


def test_without_single_flight_concurrent_misses_each_call_upstream():
    started = 0

    async def slow_loader(query: Query) -> list[str]:
        nonlocal started
        started += 1
        await asyncio.sleep(0.01)
        return ["row"]

    async def scenario() -> None:
        gateway = Gateway("standings", slow_loader, CacheManager(), TtlPolicy())
        await asyncio.gather(*(gateway.fetch(Query(league=39)) for _ in range(3)))

    run_async(scenario())
    assert started == 3


def test_shared_failure_is_retrieved_when_every_caller_gave_up():
    reported: list[dict[str, Any]] = []

    async def failing_call() -> list[str]:
        await asyncio.sleep(0.01)
        raise ServiceUnavailableError("api-football", 503)

    async def scenario() -> None:
        asyncio.get_running_loop().set_exception_handler(
            lambda loop, context: reported.append(context)
        )
        dedup = RequestDeduplicator()
        caller = asyncio.create_task(dedup.dedupe("standings:league=39", failing_call))
        await asyncio.sleep(0)
        caller.cancel()
        with pytest.raises(asyncio.CancelledError):
            await caller

        await asyncio.sleep(0.05)
        gc.collect()
        assert dedup.to_dict()["in_flight"] == 0

    run_async(scenario())
    assert reported == []
