from __future__ import annotations

import asyncio

from gateway.services.cache import DAY_MS, CacheEntry, CacheManager


def run_async(coro):
    return asyncio.run(coro)


class Ticker:
    def __init__(self, now: int = 1_000_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now


def test_freshness_boundary():
    entry = CacheEntry(data="x", fetched_at_ms=1_000, ttl_ms=500, last_access_ms=1_000)

    assert CacheManager.is_fresh(entry, 1_000 + 500 - 1)
    assert not CacheManager.is_fresh(entry, 1_000 + 500)


def test_expired_entries_are_retained():
    async def scenario() -> None:
        clock = Ticker()
        cache = CacheManager(clock=clock)
        await cache.put("weather?lat=1&lon=2", {"t": 20}, ttl_ms=1_000)

        clock.now += 5_000
        entry = await cache.get("weather?lat=1&lon=2")

        assert entry is not None
        assert entry.data == {"t": 20}
        assert not cache.is_fresh(entry, cache.now_ms())
        assert entry.last_access_ms == clock.now

        stats = cache.get_stats()
        assert stats.stale_hits == 1
        assert stats.hits == 0

    run_async(scenario())


def test_put_replaces_whole_entry():
    async def scenario() -> None:
        clock = Ticker()
        cache = CacheManager(clock=clock)
        await cache.put("k", "old", ttl_ms=1_000)
        clock.now += 10
        new_entry = await cache.put("k", "new", ttl_ms=2_000)

        entry = await cache.get("k")
        assert entry is not None
        assert entry.data == "new"
        assert entry.ttl_ms == 2_000
        assert entry.fetched_at_ms == new_entry.fetched_at_ms == clock.now
        assert len(cache) == 1

    run_async(scenario())


def test_lru_eviction_at_capacity():
    async def scenario() -> None:
        clock = Ticker()
        cache = CacheManager(max_size=2, clock=clock)
        await cache.put("a", 1, ttl_ms=1_000)
        clock.now += 1
        await cache.put("b", 2, ttl_ms=1_000)
        clock.now += 1
        await cache.get("a")
        clock.now += 1
        await cache.put("c", 3, ttl_ms=1_000)

        assert await cache.get("b") is None
        assert (await cache.get("a")).data == 1
        assert (await cache.get("c")).data == 3
        assert cache.get_stats().evictions == 1

    run_async(scenario())


def test_idle_entries_are_swept_on_put():
    async def scenario() -> None:
        clock = Ticker()
        cache = CacheManager(clock=clock)
        await cache.put("old", 1, ttl_ms=1_000)
        clock.now += DAY_MS - 1
        await cache.put("recent", 2, ttl_ms=1_000)

        clock.now += 2
        await cache.put("newest", 3, ttl_ms=1_000)

        assert await cache.get("old") is None
        assert await cache.get("recent") is not None
        assert len(cache) == 2

    run_async(scenario())


def test_sweep_keeps_recently_read_entries():
    async def scenario() -> None:
        clock = Ticker()
        cache = CacheManager(max_idle_ms=1_000, clock=clock)
        await cache.put("read", 1, ttl_ms=10)
        await cache.put("unread", 2, ttl_ms=10)
        clock.now += 900
        await cache.get("read")
        clock.now += 500

        removed = await cache.sweep()

        assert removed == 1
        assert await cache.get("read") is not None
        assert await cache.get("unread") is None

    run_async(scenario())


def test_invalidate_delete_and_clear():
    async def scenario() -> None:
        cache = CacheManager()
        await cache.put("fixtures?league=39", [], ttl_ms=1_000)
        await cache.put("fixtures?league=140", [], ttl_ms=1_000)
        await cache.put("rates?base=COP", {}, ttl_ms=1_000)

        assert await cache.invalidate("fixtures") == 2
        assert await cache.delete("rates?base=COP")
        assert not await cache.delete("rates?base=COP")

        await cache.put("weather", {}, ttl_ms=1_000)
        await cache.clear()
        assert len(cache) == 0

    run_async(scenario())


def test_stats_dict():
    async def scenario() -> None:
        cache = CacheManager(max_size=10)
        await cache.get("missing")
        await cache.put("k", 1, ttl_ms=60_000)
        await cache.get("k")

        stats = cache.get_stats().to_dict()
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["size"] == 1
        assert stats["max_size"] == 10
        assert stats["hit_rate"] == "50.00%"

    run_async(scenario())
