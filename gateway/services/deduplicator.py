"""
RequestDeduplicator - single-flight registry for cold cache keys.

When several callers miss the cache for the same key at once, only the first
one reaches the upstream; the others await the same task. Off by default
(see GATEWAY_SINGLE_FLIGHT).
"""

import asyncio
from typing import Any, Awaitable, Callable, TypeVar

from loguru import logger

T = TypeVar("T")


class RequestDeduplicator:
    """
    Shares one in-flight upstream call per key.

    The call runs in its own task and is shielded, so a caller that gives up
    does not cancel the request other callers are waiting on.
    """

    def __init__(self, debug: bool = False):
        self._in_flight: dict[str, asyncio.Task[Any]] = {}
        self._lock = asyncio.Lock()
        self._debug = debug
        self.total = 0  # upstream calls started
        self.deduplicated = 0  # callers that joined an existing call

    async def dedupe(self, key: str, request_fn: Callable[[], Awaitable[T]]) -> T:
        """Run request_fn for key unless an identical call is already running."""
        async with self._lock:
            task = self._in_flight.get(key)
            if task is not None:
                self.deduplicated += 1
                self._log(f"JOIN: {key[:50]}...")
            else:
                self.total += 1
                self._log(f"NEW: {key[:50]}...")
                task = asyncio.create_task(self._execute_and_cleanup(key, request_fn))
                task.add_done_callback(self._retrieve_exception)
                self._in_flight[key] = task

        return await asyncio.shield(task)

    async def _execute_and_cleanup(
        self,
        key: str,
        request_fn: Callable[[], Awaitable[T]],
    ) -> T:
        try:
            return await request_fn()
        finally:
            async with self._lock:
                self._in_flight.pop(key, None)

    @staticmethod
    def _retrieve_exception(task: asyncio.Task[Any]) -> None:
        # Marks the error as seen when every waiter was cancelled
        if not task.cancelled():
            task.exception()

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_requests": self.total,
            "deduplicated": self.deduplicated,
            "in_flight": len(self._in_flight),
        }

    def _log(self, message: str) -> None:
        if self._debug:
            logger.debug(f"[Deduplicator] {message}")
