from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable

import httpx
import pytest

from gateway.hub import DataGateway
from gateway.services import CacheManager
from gateway.settings import Settings

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)

FAST_RETRIES = {
    "GATEWAY_RETRY_BASE_DELAY": 0,
    "GATEWAY_RETRY_JITTER": 0,
}


class FakeUpstream:
    """
    Canned upstream behind an httpx.MockTransport.

    Routes match on the end of the URL path. Each route holds a sequence of
    replies; the last one repeats once the others are used up. A reply is a
    dict (200 JSON), an int (status code), an httpx.Response, an exception
    to raise, or a callable taking the request.
    """

    def __init__(self) -> None:
        self.routes: dict[str, list[Any]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, path_suffix: str, *replies: Any) -> "FakeUpstream":
        self.routes[path_suffix] = list(replies)
        return self

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for suffix, replies in self.routes.items():
            if request.url.path.endswith(suffix):
                reply = replies.pop(0) if len(replies) > 1 else replies[0]
                return self._respond(reply, request)
        return httpx.Response(404, json={"message": "no route"})

    def _respond(self, reply: Any, request: httpx.Request) -> httpx.Response:
        if isinstance(reply, BaseException):
            raise reply
        if callable(reply):
            return reply(request)
        if isinstance(reply, httpx.Response):
            return reply
        if isinstance(reply, int):
            return httpx.Response(reply, text="upstream says no")
        return httpx.Response(200, json=reply)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def calls(self, path_suffix: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith(path_suffix)]


class FakeClock:
    """Mutable clock serving both datetime and epoch-ms callers."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def ms(self) -> int:
        return int(self.now.timestamp() * 1000)

    def advance(self, seconds: float) -> None:
        self.now = datetime.fromtimestamp(self.now.timestamp() + seconds, tz=timezone.utc)


async def no_sleep(delay: float) -> None:
    return None


def make_settings(**env: Any) -> Settings:
    return Settings.model_validate({**FAST_RETRIES, **env})


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_hub(upstream: FakeUpstream, clock: FakeClock) -> Callable[..., DataGateway]:
    """Build a DataGateway wired to the fake upstream and clock."""

    def _make(**env: Any) -> DataGateway:
        settings = make_settings(**env)
        cache = CacheManager(max_size=settings.cache_max_size, clock=clock.ms)
        return DataGateway(
            settings,
            cache=cache,
            transport=upstream.transport,
            clock=clock,
            sleep=no_sleep,
        )

    return _make
