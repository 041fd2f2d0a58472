"""
League aliases for both football providers and their resolution.
"""

from gateway.datasource.football.models import LeagueRef
from gateway.settings import Settings

# League names as TheSportsDB spells them (strLeague)
TSDB_LEAGUE_NAMES = {
    "england": "English Premier League",
    "spain": "Spanish La Liga",
    "italy": "Italian Serie A",
    "germany": "German Bundesliga",
    "france": "French Ligue 1",
    "ucl": "UEFA Champions League",
    "europa": "UEFA Europa League",
    "colombia": "Colombian Primera A",
}

# alias -> (settings attribute, display name)
LEAGUE_ALIASES = {
    "colombia": ("league_colombia_id", "Liga Colombiana"),
    "spain": ("league_spain_id", "La Liga"),
    "england": ("league_england_id", "Premier League"),
    "germany": ("league_germany_id", "Bundesliga"),
    "ucl": ("league_champions_id", "Champions League"),
    "champions": ("league_champions_id", "Champions League"),
    "uel": ("league_europa_id", "Europa League"),
    "europa": ("league_europa_id", "Europa League"),
}

# Order used by the sports summary
SUMMARY_LEAGUES = [
    ("league_england_id", "Premier League"),
    ("league_spain_id", "La Liga"),
    ("league_germany_id", "Bundesliga"),
    ("league_champions_id", "Champions League"),
    ("league_europa_id", "Europa League"),
    ("league_colombia_id", "Liga Colombiana"),
]


def resolve_league(value: str, settings: Settings) -> LeagueRef | None:
    """
    Resolve a numeric id or an alias like "colombia" to a league.

    Aliases resolve only when their LEAGUE_*_ID setting holds a positive id.
    """
    text = value.strip()
    if text.isdigit():
        return LeagueRef(id=int(text), name="League")

    conf = LEAGUE_ALIASES.get(text.lower())
    if conf is None:
        return None

    attr, name = conf
    league_id = getattr(settings, attr)
    if not league_id or league_id <= 0:
        return None
    return LeagueRef(id=league_id, name=name)


def sportsdb_league_name(alias: str) -> str | None:
    return TSDB_LEAGUE_NAMES.get(alias.strip().lower())


def configured_leagues(settings: Settings) -> list[LeagueRef]:
    """Leagues with a configured id, in summary order."""
    leagues = []
    for attr, name in SUMMARY_LEAGUES:
        league_id = getattr(settings, attr)
        if league_id and league_id > 0:
            leagues.append(LeagueRef(id=league_id, name=name))
    return leagues
