"""
API-Football (v3) data source for fixtures and standings.

API Documentation: https://www.api-football.com/documentation-v3
Requires an API key (direct or through RapidAPI).
"""

from datetime import datetime, timezone
from typing import Any, Callable

from loguru import logger
from pydantic import BaseModel, Field

from gateway.datasource.base import BaseDataSource
from gateway.datasource.football.models import (
    Fixture,
    FixturesQuery,
    Goals,
    LeagueRef,
    Standing,
    StandingsQuery,
    TeamRef,
)
from gateway.services.client import ServiceClient
from gateway.services.errors import (
    RateLimitError,
    SourceNotConfiguredError,
    UpstreamFatalError,
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# Upstream payload schema


class _Status(BaseModel):
    short: str | None = None
    long: str | None = None
    elapsed: int | None = None


class _FixtureInfo(BaseModel):
    id: int
    date: datetime
    status: _Status = Field(default_factory=_Status)


class _League(BaseModel):
    id: int | None = None
    name: str = ""
    country: str | None = None
    logo: str | None = None


class _Team(BaseModel):
    id: int | None = None
    name: str = ""
    logo: str | None = None


class _Teams(BaseModel):
    home: _Team = Field(default_factory=_Team)
    away: _Team = Field(default_factory=_Team)


class _Goals(BaseModel):
    home: int | None = None
    away: int | None = None


class _FixtureItem(BaseModel):
    fixture: _FixtureInfo
    league: _League = Field(default_factory=_League)
    teams: _Teams = Field(default_factory=_Teams)
    goals: _Goals = Field(default_factory=_Goals)


class _Paging(BaseModel):
    current: int = 1
    total: int = 1


class _FixturesPayload(BaseModel):
    response: list[_FixtureItem] = Field(default_factory=list)
    paging: _Paging = Field(default_factory=_Paging)


class _GoalsFor(BaseModel):
    for_: int = Field(default=0, alias="for")
    against: int = 0


class _Record(BaseModel):
    played: int = 0
    win: int = 0
    draw: int = 0
    lose: int = 0
    goals: _GoalsFor = Field(default_factory=_GoalsFor)


class _StandingRow(BaseModel):
    rank: int
    team: _Team
    points: int = 0
    goalsDiff: int | None = None
    group: str | None = None
    all: _Record = Field(default_factory=_Record)


class _LeagueTable(BaseModel):
    standings: list[list[_StandingRow]] = Field(default_factory=list)


class _StandingsItem(BaseModel):
    league: _LeagueTable = Field(default_factory=_LeagueTable)


class _StandingsPayload(BaseModel):
    response: list[_StandingsItem] = Field(default_factory=list)


class ApiFootballSource(BaseDataSource):
    """
    API-Football data source.

    Fetches fixture lists (optionally aggregated over several pages) and
    league standings flattened out of their groups.
    """

    BASE_URL = "https://v3.football.api-sports.io"
    SERVICE_ID = "api-football"
    DEFAULT_TIMEZONE = "America/Bogota"
    RAPID_HOST = "api-football-v1.p.rapidapi.com"

    def __init__(
        self,
        api_key: str,
        client: ServiceClient | None = None,
        base_url: str | None = None,
        use_rapidapi: bool = False,
        rapid_host: str | None = None,
        default_timezone: str | None = None,
        default_season: str | None = None,
        max_retries: int = 2,
        clock: Callable[[], datetime] = utc_now,
    ):
        super().__init__(client)
        self.api_key = api_key
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.use_rapidapi = use_rapidapi
        self.rapid_host = rapid_host or self.RAPID_HOST
        self.default_timezone = default_timezone or self.DEFAULT_TIMEZONE
        self._default_season = default_season
        self.max_retries = max_retries
        self._clock = clock

    @property
    def service_id(self) -> str:
        return self.SERVICE_ID

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def default_season(self) -> int:
        """SPORTS_DEFAULT_SEASON when it is a 4-digit year, else the current UTC year."""
        season = (self._default_season or "").strip()
        if len(season) == 4 and season.isdigit():
            return int(season)
        return self._clock().year

    def _headers(self) -> dict[str, str]:
        if self.use_rapidapi:
            return {
                "x-rapidapi-key": self.api_key,
                "x-rapidapi-host": self.rapid_host,
                "accept": "application/json",
            }
        return {"x-apisports-key": self.api_key, "accept": "application/json"}

    async def _get(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        if not self.is_configured():
            raise SourceNotConfiguredError(
                "API football key not configured", service_id=self.SERVICE_ID
            )

        def check_errors(data: dict[str, Any]) -> None:
            # API-Football reports request problems with HTTP 200 and an errors object
            errors = data.get("errors")
            if not errors:
                return
            if isinstance(errors, dict) and "rateLimit" in errors:
                raise RateLimitError(self.SERVICE_ID)
            raise UpstreamFatalError(
                f"API-Football rejected {path}: {errors}", service_id=self.SERVICE_ID
            )

        return await self.client.get_json(
            service_id=self.SERVICE_ID,
            url=f"{self.base_url}{path}",
            params=params,
            headers=self._headers(),
            retries=self.max_retries,
            inspect=check_errors,
        )

    def with_defaults(self, query: FixturesQuery) -> FixturesQuery:
        if query.timezone:
            return query
        return query.model_copy(update={"timezone": self.default_timezone})

    def _fixture_params(self, query: FixturesQuery) -> dict[str, Any]:
        return {
            "date": query.date.isoformat() if query.date else None,
            "live": "all" if query.live else None,
            "league": query.league,
            "season": query.season,
            "team": query.team,
            "timezone": query.timezone or self.default_timezone,
        }

    async def _fetch_page(
        self, params: dict[str, Any], page: int
    ) -> tuple[list[Fixture], int]:
        data = await self._get("/fixtures", {**params, "page": page})
        payload = self.parse(_FixturesPayload, data)
        fixtures = [self._transform_fixture(item) for item in payload.response]
        return fixtures, max(1, payload.paging.total)

    async def fetch_fixtures(self, query: FixturesQuery) -> tuple[Fixture, ...]:
        """
        Fetch fixtures for a date, live matches, a league/season or a team.

        With `query.all_pages`, pages query.page+1 .. min(paging.total,
        query.max_pages) are fetched in order after the first one and
        concatenated. A failing page fails the whole fetch.
        """
        params = self._fixture_params(query)
        fixtures, total_pages = await self._fetch_page(params, query.page)

        if query.all_pages:
            last_page = min(total_pages, query.max_pages)
            for page in range(query.page + 1, last_page + 1):
                page_items, _ = await self._fetch_page(params, page)
                fixtures.extend(page_items)

        logger.info(f"Fetched {len(fixtures)} fixtures from API-Football")
        return tuple(fixtures)

    def _transform_fixture(self, item: _FixtureItem) -> Fixture:
        fx = item.fixture
        return Fixture(
            id=fx.id,
            date_iso=fx.date,
            status=fx.status.short or fx.status.long or "NS",
            elapsed=fx.status.elapsed,
            league=LeagueRef(
                id=item.league.id,
                name=item.league.name,
                country=item.league.country,
                logo=item.league.logo,
            ),
            home=TeamRef(
                id=item.teams.home.id,
                name=item.teams.home.name,
                logo=item.teams.home.logo,
            ),
            away=TeamRef(
                id=item.teams.away.id,
                name=item.teams.away.name,
                logo=item.teams.away.logo,
            ),
            goals=Goals(home=item.goals.home, away=item.goals.away),
        )

    async def fetch_standings(self, query: StandingsQuery) -> tuple[Standing, ...]:
        """Fetch a league table, flattening grouped standings in order."""
        data = await self._get(
            "/standings", {"league": query.league, "season": query.season}
        )
        payload = self.parse(_StandingsPayload, data)
        if not payload.response:
            return ()

        standings = tuple(
            self._transform_row(row)
            for group in payload.response[0].league.standings
            for row in group
        )
        logger.info(
            f"Fetched {len(standings)} standings rows for league {query.league}"
        )
        return standings

    def _transform_row(self, row: _StandingRow) -> Standing:
        goals = row.all.goals
        return Standing(
            rank=row.rank,
            team=TeamRef(id=row.team.id, name=row.team.name, logo=row.team.logo),
            points=row.points,
            played=row.all.played,
            won=row.all.win,
            draw=row.all.draw,
            lost=row.all.lose,
            goals_for=goals.for_,
            goals_against=goals.against,
            goals_diff=(
                row.goalsDiff
                if row.goalsDiff is not None
                else goals.for_ - goals.against
            ),
            group=row.group or None,
        )
