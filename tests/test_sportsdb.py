from __future__ import annotations

import asyncio
from datetime import date, datetime, timezone

import pytest

from gateway.datasource.football import (
    DayEventsQuery,
    SportsDBSource,
    TableQuery,
    TeamEventsQuery,
    TeamSearchQuery,
)
from gateway.services import InvalidResponseError, UnknownLeagueError


def run_async(coro):
    return asyncio.run(coro)


def event(event_id: str, league_id: str, league: str, **extra) -> dict:
    item = {
        "idEvent": event_id,
        "dateEvent": "2024-01-01",
        "strTimestamp": "2024-01-01T20:00:00",
        "strStatus": None,
        "idLeague": league_id,
        "strLeague": league,
        "idHomeTeam": "133602",
        "idAwayTeam": "133604",
        "strHomeTeam": "Liverpool",
        "strAwayTeam": "Arsenal",
        "intHomeScore": None,
        "intAwayScore": None,
    }
    item.update(extra)
    return item


DAY_EVENTS = {
    "events": [
        event("1", "4328", "English Premier League"),
        event("2", "4335", "Spanish La Liga", intHomeScore="2", intAwayScore="0"),
        event("3", "4497", "Colombian Primera A", strStatus="1H", strTimestamp=""),
    ]
}


def test_day_events_filtered_by_league_id(upstream, make_hub):
    upstream.add("/eventsday.php", DAY_EVENTS)
    hub = make_hub()

    async def scenario() -> None:
        fixtures = await hub.sportsdb_fixtures.fetch(
            DayEventsQuery(date=date(2024, 1, 1), league="4328")
        )
        await hub.close()

        assert [f.id for f in fixtures] == [1]
        assert fixtures[0].status == "NS"
        assert fixtures[0].date_iso == datetime(2024, 1, 1, 20, tzinfo=timezone.utc)

    run_async(scenario())

    request = upstream.requests[0]
    assert request.url.path == "/api/v1/json/123/eventsday.php"
    assert request.url.params["d"] == "2024-01-01"
    assert request.url.params["s"] == "Soccer"


def test_day_events_filtered_by_league_name(upstream, make_hub):
    upstream.add("/eventsday.php", DAY_EVENTS)
    hub = make_hub()

    async def scenario() -> None:
        fixtures = await hub.sportsdb_fixtures.fetch(DayEventsQuery(league="la liga"))
        everything = await hub.sportsdb.fetch_fixtures(DayEventsQuery())
        await hub.close()

        assert [f.id for f in fixtures] == [2]
        assert fixtures[0].status == "FT"
        assert (fixtures[0].goals.home, fixtures[0].goals.away) == (2, 0)

        colombian = everything[2]
        assert colombian.status == "1H"
        assert colombian.date_iso == datetime(2024, 1, 1, tzinfo=timezone.utc)

    run_async(scenario())


def test_unparseable_numbers_are_rejected(upstream, make_hub):
    upstream.add("/eventsday.php", {"events": [event("1", "4328", "EPL", intHomeScore="two")]})
    hub = make_hub()

    async def scenario() -> None:
        with pytest.raises(InvalidResponseError):
            await hub.sportsdb_fixtures.fetch(DayEventsQuery())
        await hub.close()

    run_async(scenario())


def test_null_events_mean_no_fixtures(upstream, make_hub):
    upstream.add("/eventsday.php", {"events": None})
    hub = make_hub()

    async def scenario() -> None:
        assert await hub.sportsdb_fixtures.fetch(DayEventsQuery()) == ()
        await hub.close()

    run_async(scenario())


def test_team_next_and_last_events(upstream, make_hub):
    upstream.add("/eventsnext.php", {"events": [event("10", "4328", "EPL")]})
    upstream.add(
        "/eventslast.php",
        {"results": [event("9", "4328", "EPL", intHomeScore="1", intAwayScore="1")]},
    )
    hub = make_hub(THESPORTSDB_API_KEY="secret")

    async def scenario() -> None:
        upcoming = await hub.next_events.fetch(TeamEventsQuery(team_id=133602))
        past = await hub.last_events.fetch(TeamEventsQuery(team_id=133602))
        await hub.close()

        assert [f.id for f in upcoming] == [10]
        assert past[0].status == "FT"

    run_async(scenario())

    assert upstream.calls("/eventsnext.php")[0].url.path.startswith("/api/v1/json/secret/")
    assert upstream.calls("/eventslast.php")[0].url.params["id"] == "133602"


def test_table_by_numeric_league(upstream, make_hub):
    upstream.add(
        "/lookuptable.php",
        {
            "table": [
                {
                    "intRank": "1",
                    "idTeam": "133604",
                    "strTeam": "Arsenal",
                    "strBadge": "https://x/arsenal.png",
                    "intPoints": "40",
                    "intPlayed": "18",
                    "intWin": "12",
                    "intDraw": "4",
                    "intLoss": "2",
                    "intGoalsFor": "36",
                    "intGoalsAgainst": "16",
                    "intGoalDifference": "20",
                },
                {"intRank": "2", "strTeam": "Liverpool", "intPoints": "", "intGoalDifference": "-1"},
            ]
        },
    )
    hub = make_hub()

    async def scenario() -> None:
        table = await hub.sportsdb_standings.fetch(TableQuery(league="4328", season="2023-2024"))
        await hub.close()

        assert table[0].points == 40
        assert table[0].team.logo == "https://x/arsenal.png"
        assert table[1].points == 0
        assert table[1].goals_diff == -1
        assert table[1].team.id is None

    run_async(scenario())
    params = upstream.calls("/lookuptable.php")[0].url.params
    assert (params["l"], params["s"]) == ("4328", "2023-2024")


def test_table_by_league_name(upstream, make_hub):
    upstream.add(
        "/searchleagues.php",
        {"countrys": [{"idLeague": "4335", "strLeague": "Spanish La Liga", "strSport": "Soccer"}]},
    )
    upstream.add("/lookuptable.php", {"table": []})
    hub = make_hub()

    async def scenario() -> None:
        assert await hub.sportsdb_standings.fetch(
            TableQuery(league="Spanish La Liga", season="2023-2024")
        ) == ()
        await hub.close()

    run_async(scenario())
    assert upstream.calls("/lookuptable.php")[0].url.params["l"] == "4335"


def test_unknown_league_name(upstream, make_hub):
    upstream.add("/searchleagues.php", {"countrys": None})
    hub = make_hub()

    async def scenario() -> None:
        with pytest.raises(UnknownLeagueError):
            await hub.sportsdb_standings.fetch(TableQuery(league="Atlantis Cup", season="2024"))
        await hub.close()

    run_async(scenario())
    assert upstream.calls("/lookuptable.php") == []


def test_team_search(upstream, make_hub):
    upstream.add(
        "/searchteams.php",
        {
            "teams": [
                {
                    "idTeam": "135286",
                    "strTeam": "Millonarios",
                    "strCountry": "Colombia",
                    "strBadge": "",
                    "strTeamBadge": "https://x/millos.png",
                    "strLeague": "Colombian Primera A",
                }
            ]
        },
    )
    hub = make_hub()

    async def scenario() -> None:
        teams = await hub.team_search.fetch(TeamSearchQuery(query="  Millonarios "))
        again = await hub.team_search.fetch(TeamSearchQuery(query="MILLONARIOS"))
        await hub.close()

        assert teams == again
        assert teams[0].id == 135286
        assert teams[0].badge == "https://x/millos.png"

    run_async(scenario())
    assert len(upstream.calls("/searchteams.php")) == 1
    assert upstream.requests[0].url.params["t"] == "Millonarios"


def test_team_search_query_bounds():
    with pytest.raises(ValueError):
        TeamSearchQuery(query="a")
    with pytest.raises(ValueError):
        TeamSearchQuery(query="x" * 65)


def test_default_season_switches_in_july():
    assert SportsDBSource.default_season(datetime(2024, 6, 30, tzinfo=timezone.utc)) == "2023-2024"
    assert SportsDBSource.default_season(datetime(2024, 7, 1, tzinfo=timezone.utc)) == "2024-2025"
