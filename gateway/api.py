"""FastAPI server exposing the gateway to the portal UI."""

import math
from contextlib import asynccontextmanager
from datetime import date
from typing import Any, Awaitable, Callable, Optional

from fastapi import FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel, ValidationError

from gateway.datasource.football import FixturesQuery, TeamSearchQuery
from gateway.datasource.rates import RatesQuery, popular_rates
from gateway.datasource.weather import WeatherQuery
from gateway.hub import DataGateway
from gateway.services import (
    InvalidRequestError,
    SourceNotConfiguredError,
    UnknownCityError,
    UnknownLeagueError,
)

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"
SEASON_PATTERN = r"^\d{4}$"
PROVIDER_PATTERN = r"^(api-football|thesportsdb)$"


def _dump(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, (list, tuple)):
        return [_dump(v) for v in value]
    if isinstance(value, dict):
        return {k: _dump(v) for k, v in value.items()}
    return value


def ok(data: Any) -> JSONResponse:
    return JSONResponse({"success": True, "data": _dump(data)})


def fail(error: str, status_code: int) -> JSONResponse:
    return JSONResponse({"success": False, "error": error}, status_code=status_code)


class GatewayServer:
    """HTTP server for weather, sports and exchange rate data."""

    def __init__(self, hub: DataGateway):
        self.hub = hub
        self.app = FastAPI(title="Portal Data Gateway", lifespan=self._lifespan)
        self.app.add_exception_handler(RequestValidationError, self.invalid_query)

        # Register routes
        self.app.get("/api/weather")(self.get_weather)
        self.app.get("/api/tasas")(self.get_rates)
        self.app.get("/api/sports/fixtures")(self.get_fixtures)
        self.app.get("/api/sports/league")(self.get_league)
        self.app.get("/api/sports/teams")(self.search_teams)
        self.app.get("/api/sports/summary")(self.get_summary)
        self.app.get("/health")(self.health_check)

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI):
        logger.info("Gateway API started")
        yield
        await self.hub.close()

    async def invalid_query(
        self, request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        logger.debug(f"Rejected {request.url.path}: {exc.errors()}")
        return fail("Invalid query", 400)

    async def _run(
        self, failure: str, action: Callable[[], Awaitable[Any]]
    ) -> JSONResponse:
        """Run one gateway call and map its outcome onto the JSON envelope."""
        try:
            data = await action()
        except UnknownCityError:
            return fail("Unknown city", 404)
        except UnknownLeagueError:
            return fail("Unknown league", 404)
        except SourceNotConfiguredError as e:
            logger.error(f"{failure}: {e}")
            return fail(failure, 502)
        except InvalidRequestError as e:
            return fail(str(e), 400)
        except ValidationError:
            return fail("Invalid query", 400)
        except Exception as e:
            logger.error(f"{failure}: {e}")
            return fail(failure, 502)
        return ok(data)

    async def get_weather(
        self,
        lat: Optional[str] = None,
        lon: Optional[str] = None,
        city: Optional[str] = None,
    ) -> JSONResponse:
        """Current weather and next 24 hours, by coordinates or city slug."""

        async def action():
            if lat and lon:
                query = WeatherQuery(latitude=lat, longitude=lon)
            elif city:
                query = WeatherQuery.for_city(city)
            else:
                raise InvalidRequestError("Missing coordinates", service_id="weather")
            return await self.hub.weather.fetch(query)

        return await self._run("Weather fetch failed", action)

    async def get_rates(
        self,
        base: Optional[str] = None,
        target: Optional[str] = None,
        amount: Optional[str] = None,
        popular: Optional[str] = None,
    ) -> JSONResponse:
        """
        Exchange rates for a base currency, or one conversion.

        Args:
            base: Base currency, defaults to DEFAULT_BASE_CURRENCY
            target: Target currency for a conversion
            amount: Amount to convert (needs target)
            popular: "1" to return only popular currencies
        """
        try:
            query = RatesQuery(base=base or self.hub.settings.default_base_currency)
        except ValidationError:
            return fail("Invalid base currency code", 400)

        if target:
            try:
                target = RatesQuery(base=target).base
            except ValidationError:
                return fail("Invalid target currency code", 400)

        if target and amount:
            try:
                value = float(amount)
            except ValueError:
                value = math.nan
            if not math.isfinite(value) or value < 0:
                return fail("Invalid amount", 400)

            async def convert():
                conversion = await self.hub.convert(value, query.base, target)
                return {
                    "from": {
                        "currency": conversion.source_currency,
                        "amount": conversion.source_amount,
                    },
                    "to": {
                        "currency": conversion.target_currency,
                        "amount": conversion.target_amount,
                    },
                    "rate": conversion.rate,
                    "lastUpdate": conversion.last_update.isoformat(),
                }

            return await self._run("Failed to fetch exchange rates", convert)

        async def sheet():
            rates = await self.hub.rates.fetch(query)
            return {
                "baseCurrency": rates.base_currency,
                "lastUpdate": rates.last_update.isoformat(),
                "rates": popular_rates(rates) if popular == "1" else dict(rates.rates),
            }

        return await self._run("Failed to fetch exchange rates", sheet)

    async def get_fixtures(
        self,
        date: Optional[str] = Query(None, pattern=DATE_PATTERN),
        live: Optional[str] = Query(None, pattern=r"^(all|1|0)$"),
        league: Optional[str] = Query(None, pattern=r"^\d+$"),
        team: Optional[str] = Query(None, pattern=r"^\d+$"),
        season: Optional[str] = Query(None, pattern=SEASON_PATTERN),
        timezone: Optional[str] = Query(None, min_length=2),
    ) -> JSONResponse:
        """Fixtures from API-Football."""

        async def action():
            query = FixturesQuery(
                date=date,
                live=live,
                league=league,
                team=team,
                season=season,
                timezone=timezone,
            )
            return await self.hub.fixtures.fetch(query)

        return await self._run("Sports fetch failed", action)

    async def get_league(
        self,
        league: str = Query(..., min_length=1),
        season: Optional[str] = Query(None, pattern=SEASON_PATTERN),
        include: Optional[str] = None,
        date: Optional[str] = Query(None, pattern=DATE_PATTERN),
    ) -> JSONResponse:
        """Results of a day and the table of a league, by id or alias."""
        parts = [p for p in (include or "results,standings").split(",") if p.strip()]
        day = None
        if date:
            try:
                day = _parse_date(date)
            except ValueError:
                return fail("Invalid query", 400)

        return await self._run(
            "League fetch failed",
            lambda: self.hub.league_overview(league, season, parts, day),
        )

    async def search_teams(
        self, query: str = Query(..., min_length=2, max_length=64)
    ) -> JSONResponse:
        """Search teams by name."""
        return await self._run(
            "Team search failed",
            lambda: self.hub.team_search.fetch(TeamSearchQuery(query=query)),
        )

    async def get_summary(
        self,
        season: Optional[str] = Query(None, pattern=SEASON_PATTERN),
        provider: str = Query("api-football", pattern=PROVIDER_PATTERN),
    ) -> JSONResponse:
        """Standings and today's fixtures of every configured league.

        API-Football adds live fixtures; TheSportsDB needs no API key.
        """
        if provider == "thesportsdb":
            return await self._run(
                "Sports summary failed", lambda: self.hub.sportsdb_summary(season)
            )
        return await self._run(
            "Sports summary failed",
            lambda: self.hub.sports_summary(int(season) if season else None),
        )

    async def health_check(self):
        """Health check endpoint."""
        return await self.hub.health()


def _parse_date(value: str) -> date:
    return date.fromisoformat(value)


def create_app(hub: DataGateway | None = None) -> FastAPI:
    """Create the FastAPI app.

    Args:
        hub: DataGateway instance, built from global settings when omitted

    Returns:
        FastAPI app
    """
    server = GatewayServer(hub if hub is not None else DataGateway())
    return server.app
