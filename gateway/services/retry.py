"""
RetryExecutor - bounded retries with exponential backoff and jitter.

Only transient upstream failures (network errors, timeouts, HTTP 429 and
5xx) are retried. Everything else is raised on the first attempt.
"""

import asyncio
import random
from typing import Awaitable, Callable, TypeVar

from loguru import logger

from gateway.services.errors import RateLimitError, UpstreamTransientError

T = TypeVar("T")


def is_retryable(error: BaseException) -> bool:
    """Classify a failure raised by a single upstream call."""
    return isinstance(error, UpstreamTransientError)


def backoff_delay(
    attempt: int,
    base_delay: float,
    jitter: float,
    max_delay: float | None = None,
) -> float:
    """Delay in seconds before retry number `attempt` (0-based)."""
    delay = base_delay * (2**attempt) + random.uniform(0, jitter)
    if max_delay is not None:
        delay = min(delay, max_delay)
    return delay


class RetryExecutor:
    """
    Wraps one upstream call with a bounded retry budget.

    Usage:
        executor = RetryExecutor(max_retries=2)
        data = await executor.execute(lambda: client.get_once(url), "weather")
    """

    def __init__(
        self,
        max_retries: int = 2,
        base_delay: float = 0.2,
        jitter: float = 0.1,
        max_delay: float = 2.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.max_retries = max(0, max_retries)
        self.base_delay = base_delay
        self.jitter = jitter
        self.max_delay = max_delay
        self._sleep = sleep

    def with_retries(self, max_retries: int) -> "RetryExecutor":
        """Copy of this executor with a different retry budget."""
        return RetryExecutor(
            max_retries=max_retries,
            base_delay=self.base_delay,
            jitter=self.jitter,
            max_delay=self.max_delay,
            sleep=self._sleep,
        )

    def _delay_for(self, attempt: int, error: BaseException) -> float:
        delay = backoff_delay(attempt, self.base_delay, self.jitter, self.max_delay)
        if isinstance(error, RateLimitError) and error.retry_after:
            # Honour Retry-After only while it stays within our latency bound
            if error.retry_after <= self.max_delay:
                delay = max(delay, error.retry_after)
        return delay

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        service_id: str | None = None,
    ) -> T:
        """
        Run the operation, retrying transient failures.

        Raises:
            The last failure once the budget is exhausted, or the first
            non-retryable failure immediately.
        """
        attempt = 0
        while True:
            try:
                return await operation()
            except Exception as e:
                if not is_retryable(e) or attempt >= self.max_retries:
                    if is_retryable(e) and self.max_retries:
                        logger.warning(
                            f"Retries exhausted for {service_id or 'upstream'} "
                            f"after {attempt + 1} attempts: {e}"
                        )
                    raise

                delay = self._delay_for(attempt, e)
                logger.warning(
                    f"Transient failure from {service_id or 'upstream'} "
                    f"(attempt {attempt + 1}/{self.max_retries + 1}), "
                    f"retrying in {delay:.2f}s: {e}"
                )
                await self._sleep(delay)
                attempt += 1
