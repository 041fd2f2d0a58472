"""
TheSportsDB data source for soccer events, league tables and teams.

API Documentation: https://www.thesportsdb.com/documentation
The API key is embedded in the path; "123" is the public test key.
Numeric fields arrive as strings and are coerced explicitly.
"""

from datetime import date, datetime, timezone
from typing import Annotated, Any

from loguru import logger
from pydantic import BaseModel, BeforeValidator, model_validator

from gateway.datasource.base import BaseDataSource
from gateway.datasource.football.models import (
    DayEventsQuery,
    Fixture,
    Goals,
    LeagueRef,
    Standing,
    TableQuery,
    Team,
    TeamEventsQuery,
    TeamRef,
    TeamSearchQuery,
)
from gateway.services.client import ServiceClient
from gateway.services.errors import UnknownLeagueError


def _to_int(value: Any) -> Any:
    """'' and None -> None, '3' / '3.0' -> 3, anything else left for pydantic to reject."""
    if value is None:
        return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return int(text)
        except ValueError:
            try:
                number = float(text)
            except ValueError:
                return value
            return int(number) if number.is_integer() else value
    return value


def _to_count(value: Any) -> Any:
    coerced = _to_int(value)
    return 0 if coerced is None else coerced


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


OptionalInt = Annotated[int | None, BeforeValidator(_to_int)]
Count = Annotated[int, BeforeValidator(_to_count)]
OptionalStr = Annotated[str | None, BeforeValidator(_blank_to_none)]


# Upstream payload schema


class _Event(BaseModel):
    idEvent: Annotated[int, BeforeValidator(_to_int)]
    dateEvent: Annotated[date | None, BeforeValidator(_blank_to_none)] = None
    strTimestamp: Annotated[datetime | None, BeforeValidator(_blank_to_none)] = None
    strStatus: OptionalStr = None
    idLeague: OptionalInt = None
    strLeague: OptionalStr = None
    idHomeTeam: OptionalInt = None
    idAwayTeam: OptionalInt = None
    strHomeTeam: OptionalStr = None
    strAwayTeam: OptionalStr = None
    intHomeScore: OptionalInt = None
    intAwayScore: OptionalInt = None

    @model_validator(mode="after")
    def check_date(self) -> "_Event":
        if self.strTimestamp is None and self.dateEvent is None:
            raise ValueError(f"event {self.idEvent} has no date")
        return self


class _EventsPayload(BaseModel):
    events: list[_Event] | None = None


class _ResultsPayload(BaseModel):
    results: list[_Event] | None = None


class _TableRow(BaseModel):
    intRank: Count = 0
    idTeam: OptionalInt = None
    strTeam: str = ""
    strBadge: OptionalStr = None
    intPoints: Count = 0
    intPlayed: Count = 0
    intWin: Count = 0
    intDraw: Count = 0
    intLoss: Count = 0
    intGoalsFor: Count = 0
    intGoalsAgainst: Count = 0
    intGoalDifference: Count = 0


class _TablePayload(BaseModel):
    table: list[_TableRow] | None = None


class _TeamItem(BaseModel):
    idTeam: Annotated[int, BeforeValidator(_to_int)]
    strTeam: str
    strCountry: OptionalStr = None
    strBadge: OptionalStr = None
    strTeamBadge: OptionalStr = None
    strLeague: OptionalStr = None


class _TeamsPayload(BaseModel):
    teams: list[_TeamItem] | None = None


class _LeagueItem(BaseModel):
    idLeague: OptionalInt = None
    strLeague: str = ""
    strSport: str = ""


class _LeagueSearchPayload(BaseModel):
    countrys: list[_LeagueItem] | None = None
    leagues: list[_LeagueItem] | None = None


class SportsDBSource(BaseDataSource):
    """
    TheSportsDB data source.

    Events of a day, league tables, team search and a team's next/last events,
    all normalized into the same shapes as API-Football.
    """

    BASE_URL = "https://www.thesportsdb.com/api/v1/json"
    SERVICE_ID = "thesportsdb"

    def __init__(
        self,
        api_key: str = "123",
        client: ServiceClient | None = None,
        base_url: str | None = None,
        max_retries: int = 1,
    ):
        super().__init__(client)
        self.api_key = api_key or "123"
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.max_retries = max_retries

    @property
    def service_id(self) -> str:
        return self.SERVICE_ID

    def is_configured(self) -> bool:
        """Falls back to the public test key."""
        return True

    @staticmethod
    def default_season(now: datetime | None = None) -> str:
        """European season label, e.g. "2024-2025"; switches in July."""
        now = now or datetime.now(timezone.utc)
        start = now.year if now.month >= 7 else now.year - 1
        return f"{start}-{start + 1}"

    async def _get(self, endpoint: str, params: dict[str, Any]) -> dict[str, Any]:
        return await self.client.get_json(
            service_id=self.SERVICE_ID,
            url=f"{self.base_url}/{self.api_key}/{endpoint}",
            params=params,
            retries=self.max_retries,
        )

    async def fetch_fixtures(self, query: DayEventsQuery) -> tuple[Fixture, ...]:
        """Soccer events of a day, filtered by league id or league name substring."""
        data = await self._get(
            "eventsday.php", {"d": query.date.isoformat(), "s": "Soccer"}
        )
        events = self.parse(_EventsPayload, data).events or []

        if query.league:
            if query.league.isdigit():
                league_id = int(query.league)
                events = [e for e in events if e.idLeague == league_id]
            else:
                name = query.league.lower()
                events = [e for e in events if name in (e.strLeague or "").lower()]

        fixtures = tuple(self._transform_event(e) for e in events)
        logger.info(f"Fetched {len(fixtures)} TheSportsDB events for {query.date}")
        return fixtures

    async def fetch_next_events(self, query: TeamEventsQuery) -> tuple[Fixture, ...]:
        """Upcoming events of a team."""
        data = await self._get("eventsnext.php", {"id": query.team_id})
        events = self.parse(_EventsPayload, data).events or []
        return tuple(self._transform_event(e) for e in events)

    async def fetch_last_events(self, query: TeamEventsQuery) -> tuple[Fixture, ...]:
        """Most recent events of a team."""
        data = await self._get("eventslast.php", {"id": query.team_id})
        events = self.parse(_ResultsPayload, data).results or []
        return tuple(self._transform_event(e) for e in events)

    def _transform_event(self, e: _Event) -> Fixture:
        if e.strTimestamp is not None:
            date_iso = e.strTimestamp
        else:
            date_iso = datetime.combine(e.dateEvent, datetime.min.time())
        if date_iso.tzinfo is None:
            date_iso = date_iso.replace(tzinfo=timezone.utc)

        has_score = e.intHomeScore is not None or e.intAwayScore is not None
        return Fixture(
            id=e.idEvent,
            date_iso=date_iso,
            status=e.strStatus or ("FT" if has_score else "NS"),
            elapsed=None,
            league=LeagueRef(id=e.idLeague, name=e.strLeague or ""),
            home=TeamRef(id=e.idHomeTeam, name=e.strHomeTeam or ""),
            away=TeamRef(id=e.idAwayTeam, name=e.strAwayTeam or ""),
            goals=Goals(home=e.intHomeScore, away=e.intAwayScore),
        )

    async def fetch_standings(self, query: TableQuery) -> tuple[Standing, ...]:
        """
        League table by numeric id, or by league name via a league search.

        Raises:
            UnknownLeagueError: no soccer league matches the name
        """
        league_id: int | None
        if query.league.isdigit():
            league_id = int(query.league)
        else:
            league_id = await self.find_league_id(query.league)
            if league_id is None:
                raise UnknownLeagueError(query.league)

        data = await self._get("lookuptable.php", {"l": league_id, "s": query.season})
        rows = self.parse(_TablePayload, data).table or []
        standings = tuple(
            Standing(
                rank=r.intRank,
                team=TeamRef(id=r.idTeam, name=r.strTeam, logo=r.strBadge),
                points=r.intPoints,
                played=r.intPlayed,
                won=r.intWin,
                draw=r.intDraw,
                lost=r.intLoss,
                goals_for=r.intGoalsFor,
                goals_against=r.intGoalsAgainst,
                goals_diff=r.intGoalDifference,
            )
            for r in rows
        )
        logger.info(f"Fetched {len(standings)} TheSportsDB table rows for {league_id}")
        return standings

    async def find_league_id(self, name: str) -> int | None:
        """Resolve a league name to its TheSportsDB id."""
        data = await self._get("searchleagues.php", {"l": name})
        payload = self.parse(_LeagueSearchPayload, data)
        candidates = payload.countrys or payload.leagues or []

        needle = name.lower()
        for item in candidates:
            if item.idLeague is None:
                continue
            if item.strSport.lower() == "soccer" or needle in item.strLeague.lower():
                return item.idLeague
        return None

    async def search_teams(self, query: TeamSearchQuery) -> tuple[Team, ...]:
        """Search teams by name."""
        data = await self._get("searchteams.php", {"t": query.query})
        items = self.parse(_TeamsPayload, data).teams or []
        return tuple(
            Team(
                id=t.idTeam,
                name=t.strTeam,
                country=t.strCountry,
                badge=t.strBadge or t.strTeamBadge,
                league=t.strLeague,
            )
            for t in items
        )
