"""
DataGateway - one cache, one HTTP client, one facade per domain.

Built once at startup and shared by the API layer:

    hub = DataGateway(global_settings)
    bundle = await hub.weather.fetch(WeatherQuery.for_city("bogota"))
    await hub.close()
"""

import asyncio
from datetime import date, datetime
from typing import Any, Awaitable, Callable, Iterable, TypeVar

import httpx
from loguru import logger

from gateway.datasource.football import (
    ApiFootballSource,
    DayEventsQuery,
    Fixture,
    FixturesQuery,
    LeagueOverview,
    LeagueRef,
    SportsDBSource,
    SportsSummary,
    Standing,
    StandingsQuery,
    TableQuery,
    Team,
    TeamEventsQuery,
    TeamSearchQuery,
)
from gateway.datasource.football.leagues import (
    configured_leagues,
    resolve_league,
    sportsdb_league_name,
)
from gateway.datasource.football.models import (
    LeagueSummary,
    NationalTeamFixtures,
)
from gateway.datasource.rates import (
    Conversion,
    ExchangeRateSource,
    RateSheet,
    RatesQuery,
    convert_currency,
)
from gateway.datasource.weather import OpenMeteoSource, WeatherBundle, WeatherQuery
from gateway.datasource.weather.openmeteo import utc_now
from gateway.services import (
    CacheManager,
    Gateway,
    RequestDeduplicator,
    RetryExecutor,
    ServiceClient,
    TtlPolicy,
    UnknownLeagueError,
)
from gateway.settings import Settings, global_settings

T = TypeVar("T")


class DataGateway:
    """
    Facade registry for every volatile data domain of the portal.

    Attributes:
        weather, fixtures, standings, sportsdb_fixtures, sportsdb_standings,
        team_search, next_events, last_events, rates: per-domain Gateways
    """

    def __init__(
        self,
        settings: Settings | None = None,
        cache: CacheManager | None = None,
        client: ServiceClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], datetime] = utc_now,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.settings = settings if settings is not None else global_settings
        s = self.settings

        if cache is None:
            cache = CacheManager(
                max_size=s.cache_max_size,
                max_idle_ms=int(s.cache_max_idle_hours * 60 * 60 * 1000),
                debug=s.cache_debug,
            )
        self.cache = cache

        self._owns_client = client is None
        if client is None:
            client = ServiceClient(
                timeout=s.http_timeout,
                retry=RetryExecutor(
                    base_delay=s.retry_base_delay,
                    jitter=s.retry_jitter,
                    max_delay=s.retry_max_delay,
                    sleep=sleep,
                ),
                transport=transport,
                debug=s.cache_debug,
            )
        self.client = client

        self._clock = clock
        self.ttl_policy = TtlPolicy.from_settings(s, today=self._today)
        self.deduplicator = (
            RequestDeduplicator(debug=s.cache_debug) if s.single_flight else None
        )

        # Upstream adapters
        self.open_meteo = OpenMeteoSource(
            client=self.client,
            base_url=s.weather_base_url,
            max_retries=s.weather_max_retries,
            clock=clock,
        )
        self.api_football = ApiFootballSource(
            api_key=s.football_key,
            client=self.client,
            base_url=s.api_football_base_url,
            use_rapidapi=s.api_football_use_rapidapi,
            rapid_host=s.api_football_host,
            default_timezone=s.sports_default_timezone,
            default_season=s.sports_default_season,
            max_retries=s.football_max_retries,
            clock=clock,
        )
        self.sportsdb = SportsDBSource(
            api_key=s.sportsdb_api_key,
            client=self.client,
            base_url=s.sportsdb_base_url,
            max_retries=s.sportsdb_max_retries,
        )
        self.exchange_rate = ExchangeRateSource(
            api_key=s.exchange_rate_api_key,
            client=self.client,
            free_url=s.exchange_rate_free_url,
            paid_url=s.exchange_rate_paid_url,
            max_retries=s.rates_max_retries,
        )

        # Facades
        self.weather: Gateway[WeatherQuery, WeatherBundle] = self._gateway(
            "weather", self.open_meteo.fetch
        )
        self.fixtures: Gateway[FixturesQuery, tuple[Fixture, ...]] = self._gateway(
            "fixtures",
            self.api_football.fetch_fixtures,
            prepare=self.api_football.with_defaults,
        )
        self.standings: Gateway[StandingsQuery, tuple[Standing, ...]] = self._gateway(
            "standings", self.api_football.fetch_standings
        )
        self.sportsdb_fixtures: Gateway[DayEventsQuery, tuple[Fixture, ...]] = self._gateway(
            "sportsdb_fixtures", self.sportsdb.fetch_fixtures
        )
        self.sportsdb_standings: Gateway[TableQuery, tuple[Standing, ...]] = self._gateway(
            "sportsdb_standings", self.sportsdb.fetch_standings
        )
        self.team_search: Gateway[TeamSearchQuery, tuple[Team, ...]] = self._gateway(
            "team_search", self.sportsdb.search_teams
        )
        self.next_events: Gateway[TeamEventsQuery, tuple[Fixture, ...]] = self._gateway(
            "next_events", self.sportsdb.fetch_next_events
        )
        self.last_events: Gateway[TeamEventsQuery, tuple[Fixture, ...]] = self._gateway(
            "last_events", self.sportsdb.fetch_last_events
        )
        self.rates: Gateway[RatesQuery, RateSheet] = self._gateway(
            "rates", self.exchange_rate.fetch
        )

    def _gateway(
        self,
        domain: str,
        loader: Callable[[Any], Awaitable[Any]],
        prepare: Callable[[Any], Any] | None = None,
    ) -> Gateway:
        return Gateway(
            domain,
            loader,
            self.cache,
            self.ttl_policy,
            deduplicator=self.deduplicator,
            prepare=prepare,
        )

    def _today(self) -> date:
        return self._clock().date()

    async def convert(
        self, amount: float, source: str, target: str
    ) -> Conversion:
        """
        Convert `amount` from `source` to `target` with the `source` rate sheet.

        Raises:
            UnknownCurrencyError: a code is missing from the sheet
        """
        sheet = await self.rates.fetch(RatesQuery(base=source))
        converted = convert_currency(amount, source, target, sheet)
        return Conversion(
            source_currency=sheet.base_currency,
            source_amount=amount,
            target_currency=target.strip().upper(),
            target_amount=converted,
            rate=sheet.rates.get(target.strip().upper()),
            last_update=sheet.last_update,
        )

    async def _or_empty(
        self, fetch: Awaitable[tuple[T, ...]], what: str
    ) -> tuple[T, ...]:
        try:
            return await fetch
        except Exception as e:
            logger.warning(f"{what} unavailable, using an empty result: {e}")
            return ()

    async def sports_summary(
        self,
        season: int | None = None,
        national_team_ids: Iterable[int] = (),
    ) -> SportsSummary:
        """
        Standings, today's and live fixtures of every configured league.

        Each part degrades to an empty list on failure; the summary itself
        never fails because of one upstream.
        """
        season = season or self.api_football.default_season()
        today = self._today()

        async def league_summary(league: LeagueRef) -> LeagueSummary:
            standings, today_fixtures, live_fixtures = await asyncio.gather(
                self._or_empty(
                    self.standings.fetch(
                        StandingsQuery(league=league.id, season=season)
                    ),
                    f"Standings of {league.name}",
                ),
                self._or_empty(
                    self.fixtures.fetch(
                        FixturesQuery(league=league.id, season=season, date=today)
                    ),
                    f"Today's fixtures of {league.name}",
                ),
                self._or_empty(
                    self.fixtures.fetch(
                        FixturesQuery(league=league.id, season=season, live=True)
                    ),
                    f"Live fixtures of {league.name}",
                ),
            )
            return LeagueSummary(
                id=league.id,
                name=league.name,
                standings=standings,
                today_fixtures=today_fixtures,
                live_fixtures=live_fixtures,
            )

        async def national_summary(team_id: int) -> NationalTeamFixtures:
            fixtures = await self._or_empty(
                self.fixtures.fetch(FixturesQuery(team=team_id, date=today)),
                f"Fixtures of team {team_id}",
            )
            return NationalTeamFixtures(team_id=team_id, fixtures=fixtures)

        leagues = await asyncio.gather(
            *(league_summary(lg) for lg in configured_leagues(self.settings))
        )
        nationals = await asyncio.gather(
            *(national_summary(team_id) for team_id in national_team_ids)
        )
        return SportsSummary(leagues=list(leagues), nationals=list(nationals))

    async def sportsdb_summary(self, season: str | None = None) -> SportsSummary:
        """
        Standings and today's fixtures of every configured league from
        TheSportsDB. Degrades per part like `sports_summary`.
        """
        season = season or self.sportsdb.default_season(self._clock())
        today = self._today()

        async def league_summary(league: LeagueRef) -> LeagueSummary:
            target = str(league.id)
            standings, today_fixtures = await asyncio.gather(
                self._or_empty(
                    self.sportsdb_standings.fetch(
                        TableQuery(league=target, season=season)
                    ),
                    f"Table of {league.name}",
                ),
                self._or_empty(
                    self.sportsdb_fixtures.fetch(
                        DayEventsQuery(date=today, league=target)
                    ),
                    f"Today's events of {league.name}",
                ),
            )
            return LeagueSummary(
                id=league.id,
                name=league.name,
                standings=standings,
                today_fixtures=today_fixtures,
            )

        leagues = await asyncio.gather(
            *(league_summary(lg) for lg in configured_leagues(self.settings))
        )
        return SportsSummary(leagues=leagues)

    async def league_overview(
        self,
        league: str,
        season: str | None = None,
        include: Iterable[str] = ("results", "standings"),
        day: date | None = None,
    ) -> LeagueOverview:
        """
        Results of a day and the table of one league from TheSportsDB.

        `league` is a numeric id, a configured alias ("colombia", "ucl") or a
        TheSportsDB league alias. Each part degrades to an empty list.

        Raises:
            UnknownLeagueError: the league can't be resolved at all
        """
        resolved = resolve_league(league, self.settings)
        league_name = sportsdb_league_name(league)
        if resolved is None and league_name is None:
            raise UnknownLeagueError(league)

        season = season or self.sportsdb.default_season(self._clock())
        parts = {part.strip().lower() for part in include}
        target = str(resolved.id) if resolved else league_name

        async def nothing() -> tuple[Any, ...]:
            return ()

        results, standings = await asyncio.gather(
            self._or_empty(
                self.sportsdb_fixtures.fetch(
                    DayEventsQuery(date=day or self._today(), league=target)
                ),
                f"Results of {target}",
            )
            if "results" in parts
            else nothing(),
            self._or_empty(
                self.sportsdb_standings.fetch(TableQuery(league=target, season=season)),
                f"Table of {target}",
            )
            if "standings" in parts
            else nothing(),
        )
        return LeagueOverview(
            league=resolved or LeagueRef(id=0, name=league_name),
            season=season,
            results=results,
            standings=standings,
        )

    async def health(self) -> dict[str, Any]:
        """Cache and source status for the health endpoint."""
        sources = [self.open_meteo, self.api_football, self.sportsdb, self.exchange_rate]
        return {
            "status": "ok",
            "cache": self.cache.get_stats().to_dict(),
            "single_flight": self.deduplicator.to_dict() if self.deduplicator else None,
            "sources": {src.service_id: src.is_configured() for src in sources},
        }

    async def close(self) -> None:
        """Close the HTTP client if this hub created it."""
        if self._owns_client:
            await self.client.close()
        logger.info("DataGateway closed")
