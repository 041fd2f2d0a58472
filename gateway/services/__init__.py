"""
Service layer infrastructure - resilience patterns for external API calls.

Provides:
- normalize: canonical cache keys
- TtlPolicy: freshness per request shape
- CacheManager: in-memory cache with stale retention and bounded size
- RetryExecutor: bounded retries with exponential backoff and jitter
- ServiceClient: httpx client mapping failures onto the error taxonomy
- RequestDeduplicator: optional single-flight for cold keys
- Gateway: per-domain facade with stale-on-error fallback
"""

from gateway.services.errors import (
    InvalidRequestError,
    InvalidResponseError,
    RateLimitError,
    RequestTimeoutError,
    ServiceError,
    ServiceUnavailableError,
    SourceNotConfiguredError,
    UnknownCityError,
    UnknownCurrencyError,
    UnknownLeagueError,
    UpstreamConnectionError,
    UpstreamFatalError,
    UpstreamTransientError,
)
from gateway.services.keys import normalize
from gateway.services.ttl import TtlPolicy
from gateway.services.cache import CacheEntry, CacheManager, CacheStats
from gateway.services.retry import RetryExecutor
from gateway.services.client import ServiceClient
from gateway.services.deduplicator import RequestDeduplicator
from gateway.services.gateway import Gateway, GatewayResult

__all__ = [
    # Errors
    "ServiceError",
    "UpstreamTransientError",
    "RequestTimeoutError",
    "UpstreamConnectionError",
    "RateLimitError",
    "ServiceUnavailableError",
    "UpstreamFatalError",
    "InvalidResponseError",
    "InvalidRequestError",
    "UnknownCurrencyError",
    "UnknownCityError",
    "UnknownLeagueError",
    "SourceNotConfiguredError",
    # Keys / TTL
    "normalize",
    "TtlPolicy",
    # Cache
    "CacheManager",
    "CacheEntry",
    "CacheStats",
    # Retry / HTTP
    "RetryExecutor",
    "ServiceClient",
    "RequestDeduplicator",
    # Gateway
    "Gateway",
    "GatewayResult",
]
