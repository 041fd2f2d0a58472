"""
Football data sources: API-Football (provider A) and TheSportsDB (provider B).
"""

from gateway.datasource.football.api_football import ApiFootballSource
from gateway.datasource.football.models import (
    DayEventsQuery,
    Fixture,
    FixturesQuery,
    LeagueOverview,
    LeagueRef,
    Standing,
    StandingsQuery,
    SportsSummary,
    TableQuery,
    Team,
    TeamEventsQuery,
    TeamSearchQuery,
)
from gateway.datasource.football.sportsdb import SportsDBSource

__all__ = [
    "ApiFootballSource",
    "SportsDBSource",
    "DayEventsQuery",
    "Fixture",
    "FixturesQuery",
    "LeagueOverview",
    "LeagueRef",
    "Standing",
    "StandingsQuery",
    "SportsSummary",
    "TableQuery",
    "Team",
    "TeamEventsQuery",
    "TeamSearchQuery",
]
