"""
CacheManager - Async-compatible in-memory cache with TTL and stale retention.

Features:
- One map guarded by an asyncio lock; entries are replaced whole
- Expired entries are kept so they can be served as stale fallback
- Idle entries are swept after `max_idle_ms`, LRU eviction at `max_size`
- Injectable clock for deterministic tests
"""

import asyncio
import time
from dataclasses import dataclass, replace
from typing import Any, Callable, Generic, TypeVar

from loguru import logger

T = TypeVar("T")

DAY_MS = 24 * 60 * 60 * 1000


def epoch_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """A single cache entry with metadata."""

    data: T
    fetched_at_ms: int
    ttl_ms: int
    last_access_ms: int

    def is_fresh(self, now_ms: int) -> bool:
        return now_ms - self.fetched_at_ms < self.ttl_ms

    def age_ms(self, now_ms: int) -> int:
        return now_ms - self.fetched_at_ms


class CacheManager:
    """
    Process-local cache shared by all gateways of one DataGateway.

    Usage:
        cache = CacheManager(max_size=1000)

        entry = await cache.get("weather?lat=4.711&lon=-74.072")
        if entry and cache.is_fresh(entry, epoch_ms()):
            return entry.data

        data = await fetch_data()
        await cache.put("weather?lat=4.711&lon=-74.072", data, ttl_ms=300_000)
    """

    def __init__(
        self,
        max_size: int = 1000,
        max_idle_ms: int = DAY_MS,
        clock: Callable[[], int] = epoch_ms,
        debug: bool = False,
    ):
        self._memory: dict[str, CacheEntry[Any]] = {}
        self._max_size = max_size
        self._max_idle_ms = max_idle_ms
        self._clock = clock
        self._debug = debug
        self._lock = asyncio.Lock()
        self._stats = CacheStats()
        self._last_sweep_ms = clock()

    def now_ms(self) -> int:
        return self._clock()

    @staticmethod
    def is_fresh(entry: CacheEntry[Any], now_ms: int) -> bool:
        """Fresh iff now - fetched_at < ttl."""
        return entry.is_fresh(now_ms)

    async def get(self, key: str) -> CacheEntry[Any] | None:
        """
        Get an entry, fresh or expired.

        Returns None only when nothing was ever stored (or it was evicted).
        """
        async with self._lock:
            entry = self._memory.get(key)
            if entry is None:
                self._stats.misses += 1
                self._log(f"MISS: {key[:50]}...")
                return None

            now = self._clock()
            entry = replace(entry, last_access_ms=now)
            self._memory[key] = entry

            if entry.is_fresh(now):
                self._stats.hits += 1
                self._log(f"HIT: {key[:50]}...")
            else:
                self._stats.stale_hits += 1
                self._log(f"STALE HIT: {key[:50]}...")

            return entry

    async def put(self, key: str, data: Any, ttl_ms: int) -> CacheEntry[Any]:
        """
        Store a value, replacing any previous entry for the key atomically.

        Args:
            key: Cache key
            data: Value to cache (treated as immutable)
            ttl_ms: Freshness duration in milliseconds
        """
        now = self._clock()
        entry = CacheEntry(
            data=data,
            fetched_at_ms=now,
            ttl_ms=ttl_ms,
            last_access_ms=now,
        )

        async with self._lock:
            if now - self._last_sweep_ms >= self._max_idle_ms:
                self._sweep_locked(now)

            # LRU eviction if at capacity
            if len(self._memory) >= self._max_size and key not in self._memory:
                self._evict_least_recent()

            self._memory[key] = entry
            self._log(f"SET: {key[:50]}... (TTL: {ttl_ms / 1000}s)")

        return entry

    async def delete(self, key: str) -> bool:
        """Delete a specific key from cache."""
        async with self._lock:
            if key in self._memory:
                del self._memory[key]
                self._log(f"DELETE: {key[:50]}...")
                return True
            return False

    async def invalidate(self, pattern: str) -> int:
        """
        Invalidate all keys matching a pattern.

        Args:
            pattern: Substring to match in keys

        Returns:
            Number of entries invalidated
        """
        async with self._lock:
            keys_to_delete = [k for k in self._memory if pattern in k]
            for key in keys_to_delete:
                del self._memory[key]

            if keys_to_delete:
                self._log(
                    f"INVALIDATE: {len(keys_to_delete)} entries matching '{pattern}'"
                )

            return len(keys_to_delete)

    async def clear(self) -> None:
        """Clear all cache entries."""
        async with self._lock:
            count = len(self._memory)
            self._memory.clear()
            self._log(f"CLEAR: {count} entries removed")

    async def sweep(self) -> int:
        """Remove entries unused for longer than max_idle_ms."""
        async with self._lock:
            return self._sweep_locked(self._clock())

    def _sweep_locked(self, now: int) -> int:
        idle_keys = [
            k
            for k, v in self._memory.items()
            if now - v.last_access_ms > self._max_idle_ms
        ]
        for key in idle_keys:
            del self._memory[key]

        self._last_sweep_ms = now
        self._stats.evictions += len(idle_keys)
        if idle_keys:
            self._log(f"SWEEP: {len(idle_keys)} idle entries removed")
        return len(idle_keys)

    def _evict_least_recent(self) -> None:
        if not self._memory:
            return

        oldest_key = min(
            self._memory.keys(),
            key=lambda k: self._memory[k].last_access_ms,
        )
        del self._memory[oldest_key]
        self._stats.evictions += 1
        self._log(f"EVICT: {oldest_key[:50]}...")

    def __len__(self) -> int:
        return len(self._memory)

    def get_stats(self) -> "CacheStats":
        """Get cache statistics."""
        self._stats.size = len(self._memory)
        self._stats.max_size = self._max_size
        return self._stats

    def _log(self, message: str) -> None:
        """Log debug message if debug mode is enabled."""
        if self._debug:
            logger.debug(f"[CacheManager] {message}")


@dataclass
class CacheStats:
    """Cache statistics."""

    hits: int = 0
    misses: int = 0
    stale_hits: int = 0
    evictions: int = 0
    size: int = 0
    max_size: int = 0

    @property
    def hit_rate(self) -> float:
        """Fresh hits over all lookups."""
        total = self.hits + self.stale_hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "stale_hits": self.stale_hits,
            "evictions": self.evictions,
            "size": self.size,
            "max_size": self.max_size,
            "hit_rate": f"{self.hit_rate:.2%}",
        }
