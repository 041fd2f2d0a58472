"""
TTL policy - how long a fetched result may be reused.

Live data gets a very short TTL, today's data a short one, everything else
(past/future dates, standings, forecasts, rates) a long one.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Callable, Mapping

from gateway.settings import Settings

LIVE_VALUES = {"true", "all", "1"}

# Domains whose data is never intraday-volatile in this product
FIXED_TTL_DOMAINS = {"rates"}


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def is_live(value: Any) -> bool:
    """True for live=True / "all" / "1"."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in LIVE_VALUES


@dataclass
class TtlPolicy:
    """TTL values in seconds; `ttl_for` answers in milliseconds."""

    live_seconds: int = 10
    today_seconds: int = 60
    default_seconds: int = 300
    domain_seconds: dict[str, int] = field(default_factory=dict)
    today: Callable[[], date] = field(default=utc_today, repr=False)

    @classmethod
    def from_settings(
        cls, settings: Settings, today: Callable[[], date] = utc_today
    ) -> "TtlPolicy":
        return cls(
            today=today,
            live_seconds=settings.live_ttl_seconds,
            today_seconds=settings.today_ttl_seconds,
            default_seconds=settings.fixtures_ttl_seconds,
            domain_seconds={
                "weather": settings.weather_ttl_seconds,
                "fixtures": settings.fixtures_ttl_seconds,
                "sportsdb_fixtures": settings.fixtures_ttl_seconds,
                "standings": settings.standings_ttl_seconds,
                "sportsdb_standings": settings.standings_ttl_seconds,
                "rates": settings.rates_ttl_seconds,
                "team_search": settings.teams_ttl_seconds,
                "next_events": settings.events_ttl_seconds,
                "last_events": settings.events_ttl_seconds,
            },
        )

    def ttl_for(
        self,
        domain: str,
        params: Mapping[str, Any] | None = None,
        today: date | str | None = None,
    ) -> int:
        """
        Return the freshness duration in milliseconds for a request.

        `today` defaults to the policy clock.
        """
        params = params or {}
        domain_ttl = self.domain_seconds.get(domain, self.default_seconds)

        if domain in FIXED_TTL_DOMAINS:
            return domain_ttl * 1000

        if is_live(params.get("live")):
            return self.live_seconds * 1000

        requested = params.get("date")
        if today is None:
            today = self.today()
        if requested is not None and str(requested) == str(today):
            return self.today_seconds * 1000

        return domain_ttl * 1000
