"""
Gateway - per-domain fetch entry point with stale-on-error fallback.

Flow:
    normalize key -> fresh cache entry? return it
                  -> otherwise call the loader (which retries internally)
                  -> success: store with the policy TTL and return
                  -> failure: return any previous entry (stale) or raise
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Mapping, Protocol, TypeVar

from loguru import logger

from gateway.services.cache import CacheManager
from gateway.services.deduplicator import RequestDeduplicator
from gateway.services.keys import normalize
from gateway.services.ttl import TtlPolicy

Q = TypeVar("Q", bound="CacheableQuery")
R = TypeVar("R")


class CacheableQuery(Protocol):
    def cache_params(self) -> Mapping[str, Any]: ...


@dataclass
class GatewayResult(Generic[R]):
    """Result from a gateway fetch."""

    data: R
    key: str
    fetched_at_ms: int
    from_cache: bool = False
    is_stale: bool = False


class Gateway(Generic[Q, R]):
    """
    Ties the key normalizer, the cache and one data source loader together.

    Usage:
        weather = Gateway("weather", source.fetch, cache, ttl_policy)
        bundle = await weather.fetch(WeatherQuery(latitude=4.711, longitude=-74.072))

    `prepare` fills source defaults into a query before its key is built, so
    an omitted value and its explicit default share one cache entry.
    """

    def __init__(
        self,
        domain: str,
        loader: Callable[[Q], Awaitable[R]],
        cache: CacheManager,
        ttl_policy: TtlPolicy,
        deduplicator: RequestDeduplicator | None = None,
        prepare: Callable[[Q], Q] | None = None,
    ):
        self.domain = domain
        self._loader = loader
        self._cache = cache
        self._ttl_policy = ttl_policy
        self._deduplicator = deduplicator
        self._prepare = prepare

    async def fetch(self, query: Q) -> R:
        """Fetch the domain result, fresh or (on upstream failure) stale."""
        result = await self.fetch_result(query)
        return result.data

    async def fetch_result(self, query: Q) -> GatewayResult[R]:
        """
        Fetch with cache metadata.

        Raises:
            The loader's error when the upstream failed and no cache entry of
            any age exists for the key.
        """
        if self._prepare is not None:
            query = self._prepare(query)
        params = query.cache_params()
        key = normalize(self.domain, params)

        cached = await self._cache.get(key)
        if cached is not None and self._cache.is_fresh(cached, self._cache.now_ms()):
            return GatewayResult(
                data=cached.data,
                key=key,
                fetched_at_ms=cached.fetched_at_ms,
                from_cache=True,
            )

        try:
            if self._deduplicator is not None:
                data = await self._deduplicator.dedupe(key, lambda: self._loader(query))
            else:
                data = await self._loader(query)

        except Exception as e:
            if cached is not None:
                logger.warning(
                    f"Refresh of {key} failed, returning stale data "
                    f"({cached.age_ms(self._cache.now_ms()) / 1000:.0f}s old): {e}"
                )
                return GatewayResult(
                    data=cached.data,
                    key=key,
                    fetched_at_ms=cached.fetched_at_ms,
                    from_cache=True,
                    is_stale=True,
                )
            raise

        ttl_ms = self._ttl_policy.ttl_for(self.domain, params)
        entry = await self._cache.put(key, data, ttl_ms)
        return GatewayResult(data=data, key=key, fetched_at_ms=entry.fetched_at_ms)
