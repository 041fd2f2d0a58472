"""
Normalized football shapes shared by both providers, plus gateway queries.
"""

from datetime import date as date_type
from datetime import datetime, timezone
from typing import Any

from pydantic import Field, field_validator

from gateway.datasource.models import DomainModel, GatewayQuery


def utc_today() -> date_type:
    return datetime.now(timezone.utc).date()


class LeagueRef(DomainModel):
    id: int | None = None
    name: str
    country: str | None = None
    logo: str | None = None


class TeamRef(DomainModel):
    id: int | None = None
    name: str
    logo: str | None = None


class Goals(DomainModel):
    home: int | None = None
    away: int | None = None


class Fixture(DomainModel):
    """One match summary."""

    id: int
    date_iso: datetime
    status: str
    elapsed: int | None = None
    league: LeagueRef
    home: TeamRef
    away: TeamRef
    goals: Goals


class Standing(DomainModel):
    """One row of a league table."""

    rank: int
    team: TeamRef
    points: int
    played: int
    won: int
    draw: int
    lost: int
    goals_for: int
    goals_against: int
    goals_diff: int
    group: str | None = None


class Team(DomainModel):
    """Team search hit."""

    id: int
    name: str
    country: str | None = None
    badge: str | None = None
    league: str | None = None


class LeagueSummary(DomainModel):
    id: int
    name: str
    standings: tuple[Standing, ...] = ()
    today_fixtures: tuple[Fixture, ...] = ()
    live_fixtures: tuple[Fixture, ...] = ()


class NationalTeamFixtures(DomainModel):
    team_id: int
    fixtures: tuple[Fixture, ...] = ()


class SportsSummary(DomainModel):
    leagues: tuple[LeagueSummary, ...] = ()
    nationals: tuple[NationalTeamFixtures, ...] = ()


class LeagueOverview(DomainModel):
    """One league's results of a day and its table."""

    league: LeagueRef
    season: str
    results: tuple[Fixture, ...] = ()
    standings: tuple[Standing, ...] = ()


# Queries


class FixturesQuery(GatewayQuery):
    """
    Fixture list request for API-Football.

    `live` accepts True/"all"/"1" (live matches only) and False/"0" (no
    filter). With `all_pages`, pages after `page` are walked up to page
    `max_pages` and concatenated.
    """

    date: date_type | None = None
    live: bool = False
    league: int | None = None
    season: int | None = None
    team: int | None = None
    timezone: str | None = None
    page: int = Field(default=1, ge=1)
    all_pages: bool = False
    max_pages: int = Field(default=5, ge=1, le=50)

    @field_validator("live", mode="before")
    @classmethod
    def coerce_live(cls, value: Any) -> Any:
        if value is None:
            return False
        if isinstance(value, str):
            return value.strip().lower() in {"all", "1", "true"}
        return value

    def cache_params(self) -> dict[str, Any]:
        params: dict[str, Any] = {
            "date": self.date,
            "live": "all" if self.live else None,
            "league": self.league,
            "season": self.season,
            "team": self.team,
            "timezone": self.timezone,
            "page": self.page,
        }
        if self.all_pages:
            params["all_pages"] = True
            params["max_pages"] = self.max_pages
        return params


class StandingsQuery(GatewayQuery):
    league: int
    season: int


class DayEventsQuery(GatewayQuery):
    """TheSportsDB soccer events of one day, optionally filtered by league id or name."""

    date: date_type = Field(default_factory=utc_today)
    league: str | None = None

    @field_validator("league", mode="before")
    @classmethod
    def coerce_league(cls, value: Any) -> Any:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    def cache_params(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "league": self.league.lower() if self.league else None,
        }


class TableQuery(GatewayQuery):
    """TheSportsDB league table; `league` is a numeric id or a league name."""

    league: str
    season: str

    @field_validator("league", mode="before")
    @classmethod
    def coerce_league(cls, value: Any) -> Any:
        return str(value).strip()

    def cache_params(self) -> dict[str, Any]:
        return {"league": self.league.lower(), "season": self.season}


class TeamSearchQuery(GatewayQuery):
    query: str = Field(min_length=2, max_length=64)

    @field_validator("query", mode="before")
    @classmethod
    def strip_query(cls, value: Any) -> Any:
        return str(value).strip() if value is not None else value

    def cache_params(self) -> dict[str, Any]:
        return {"query": self.query.casefold()}


class TeamEventsQuery(GatewayQuery):
    team_id: int = Field(gt=0)
