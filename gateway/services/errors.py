"""
Service layer exceptions.

Upstream failures are split into transient ones (retried, masked by stale
cache when possible) and fatal ones (surfaced immediately). Request errors
are raised before any network call and are never retried.
"""


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, service_id: str | None = None):
        self.service_id = service_id
        super().__init__(message)


class UpstreamTransientError(ServiceError):
    """Upstream failure worth retrying later."""

    pass


class RequestTimeoutError(UpstreamTransientError):
    """Request timed out."""

    def __init__(self, service_id: str, timeout: float):
        self.timeout = timeout
        super().__init__(
            f"Request to service '{service_id}' timed out after {timeout}s",
            service_id=service_id,
        )


class UpstreamConnectionError(UpstreamTransientError):
    """Network error before a response was received."""

    pass


class RateLimitError(UpstreamTransientError):
    """Rate limit exceeded."""

    def __init__(self, service_id: str, retry_after: float | None = None):
        self.retry_after = retry_after
        msg = f"Rate limit exceeded for service '{service_id}'"
        if retry_after:
            msg += f", retry after {retry_after}s"
        super().__init__(msg, service_id=service_id)


class ServiceUnavailableError(UpstreamTransientError):
    """Service is temporarily unavailable (HTTP 5xx)."""

    def __init__(self, service_id: str, status_code: int, detail: str = ""):
        self.status_code = status_code
        msg = f"Service '{service_id}' returned HTTP {status_code}"
        if detail:
            msg += f": {detail}"
        super().__init__(msg, service_id=service_id)


class UpstreamFatalError(ServiceError):
    """Upstream rejected the request; retrying will not help."""

    def __init__(
        self,
        message: str,
        service_id: str | None = None,
        status_code: int | None = None,
    ):
        self.status_code = status_code
        super().__init__(message, service_id=service_id)


class InvalidResponseError(ServiceError):
    """Upstream response could not be parsed or failed validation."""

    pass


class InvalidRequestError(ServiceError, ValueError):
    """Request is invalid and was rejected before reaching the upstream."""

    pass


class UnknownCurrencyError(InvalidRequestError):
    """Currency code missing from the rate sheet."""

    def __init__(self, code: str):
        self.code = code
        super().__init__(f"Currency {code} not found in rates", service_id="rates")


class UnknownCityError(InvalidRequestError):
    """City slug is not one of the known cities."""

    def __init__(self, slug: str):
        self.slug = slug
        super().__init__(f"Unknown city '{slug}'", service_id="weather")


class UnknownLeagueError(InvalidRequestError):
    """League alias could not be resolved."""

    def __init__(self, league: str):
        self.league = league
        super().__init__(f"Unknown league '{league}'")


class SourceNotConfiguredError(InvalidRequestError):
    """Data source is missing required configuration (e.g. API key)."""

    pass
