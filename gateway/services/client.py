"""
ServiceClient - async HTTP client for upstream providers.

Each `get_json` call performs one GET per attempt, with its own timeout,
through a RetryExecutor. HTTP and transport failures are mapped onto the
transient/fatal error taxonomy so the retry and fallback layers can tell
"try again later" apart from "this request is invalid".
"""

from typing import Any, Callable

import httpx
from loguru import logger

from gateway.services.errors import (
    InvalidResponseError,
    RateLimitError,
    RequestTimeoutError,
    ServiceUnavailableError,
    UpstreamConnectionError,
    UpstreamFatalError,
)
from gateway.services.retry import RetryExecutor


def _parse_retry_after(value: str | None) -> float | None:
    if not value:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None


class ServiceClient:
    """
    Shared HTTP client used by every data source.

    Usage:
        client = ServiceClient(timeout=8.0)

        data = await client.get_json(
            service_id="open-meteo",
            url="https://api.open-meteo.com/v1/forecast",
            params={"latitude": 4.711, "longitude": -74.072},
            retries=1,
        )
    """

    def __init__(
        self,
        timeout: float = 8.0,
        retry: RetryExecutor | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        debug: bool = False,
    ):
        self._timeout = timeout
        self._retry = retry if retry is not None else RetryExecutor()
        self._transport = transport
        self._debug = debug

        # HTTP client (lazy initialization)
        self._http_client: httpx.AsyncClient | None = None

    @property
    def retry(self) -> RetryExecutor:
        return self._retry

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                follow_redirects=True,
                transport=self._transport,
            )
        return self._http_client

    async def get_json(
        self,
        service_id: str,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
        retries: int | None = None,
        inspect: Callable[[dict[str, Any]], None] | None = None,
    ) -> dict[str, Any]:
        """
        GET a JSON object from an upstream provider.

        Args:
            service_id: Identifier of the upstream (used in errors and logs)
            url: Full URL to request
            params: Query parameters (None values are dropped)
            headers: Request headers
            timeout: Per-call timeout override
            retries: Retry budget override for this call
            inspect: Called with each decoded body inside the retry loop;
                may raise to reject an HTTP 200 error payload

        Returns:
            Decoded JSON object

        Raises:
            UpstreamTransientError: timeout, network error, 429 or 5xx after
                the retry budget is exhausted
            UpstreamFatalError: any other 4xx
            InvalidResponseError: body is not a JSON object
        """
        clean_params = (
            {k: v for k, v in params.items() if v is not None} if params else None
        )
        executor = self._retry if retries is None else self._retry.with_retries(retries)

        async def do_request() -> dict[str, Any]:
            data = await self._execute_request(
                url=url,
                params=clean_params,
                headers=headers or {},
                timeout=timeout or self._timeout,
                service_id=service_id,
            )
            if inspect is not None:
                inspect(data)
            return data

        return await executor.execute(do_request, service_id)

    async def _execute_request(
        self,
        url: str,
        params: dict[str, Any] | None,
        headers: dict[str, str],
        timeout: float,
        service_id: str,
    ) -> dict[str, Any]:
        """Execute exactly one HTTP request."""
        client = await self._get_http_client()

        try:
            response = await client.get(
                url,
                params=params,
                headers=headers,
                timeout=timeout,
            )
        except httpx.TimeoutException as e:
            raise RequestTimeoutError(service_id, timeout) from e
        except httpx.TransportError as e:
            raise UpstreamConnectionError(
                f"Network error calling '{service_id}': {e}", service_id=service_id
            ) from e

        status = response.status_code
        if status == 429:
            raise RateLimitError(
                service_id, _parse_retry_after(response.headers.get("retry-after"))
            )
        if status >= 500:
            raise ServiceUnavailableError(service_id, status, response.text[:200])
        if status >= 400:
            raise UpstreamFatalError(
                f"HTTP {status} from '{service_id}': {response.text[:200]}",
                service_id=service_id,
                status_code=status,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise InvalidResponseError(
                f"Invalid JSON from '{service_id}'", service_id=service_id
            ) from e

        if not isinstance(data, dict):
            raise InvalidResponseError(
                f"Expected a JSON object from '{service_id}', got {type(data).__name__}",
                service_id=service_id,
            )

        if self._debug:
            logger.debug(f"[ServiceClient] {service_id} GET {url} -> {status}")
        return data

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None
        logger.debug("ServiceClient closed")

    async def __aenter__(self) -> "ServiceClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()


# Global client instance
_global_client: ServiceClient | None = None


def get_service_client() -> ServiceClient:
    """Get the global service client instance."""
    global _global_client
    if _global_client is None:
        from gateway.settings import global_settings

        _global_client = ServiceClient(
            timeout=global_settings.http_timeout,
            retry=RetryExecutor(
                base_delay=global_settings.retry_base_delay,
                jitter=global_settings.retry_jitter,
                max_delay=global_settings.retry_max_delay,
            ),
        )
    return _global_client


async def close_service_client() -> None:
    """Close the global service client."""
    global _global_client
    if _global_client:
        await _global_client.close()
        _global_client = None
