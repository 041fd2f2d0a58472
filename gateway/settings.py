import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()


class Settings(BaseModel):
    # HTTP / Retry Configuration
    http_timeout: float = Field(default=8.0, alias="GATEWAY_HTTP_TIMEOUT")
    retry_base_delay: float = Field(default=0.2, alias="GATEWAY_RETRY_BASE_DELAY")
    retry_jitter: float = Field(default=0.1, alias="GATEWAY_RETRY_JITTER")
    retry_max_delay: float = Field(default=2.0, alias="GATEWAY_RETRY_MAX_DELAY")
    weather_max_retries: int = Field(default=1, alias="WEATHER_MAX_RETRIES")
    football_max_retries: int = Field(default=2, alias="API_FOOTBALL_MAX_RETRIES")
    sportsdb_max_retries: int = Field(default=1, alias="THESPORTSDB_MAX_RETRIES")
    rates_max_retries: int = Field(default=2, alias="EXCHANGE_RATE_MAX_RETRIES")

    # Cache Configuration (TTLs in seconds)
    live_ttl_seconds: int = Field(default=10, alias="CACHE_LIVE_TTL")
    today_ttl_seconds: int = Field(default=60, alias="CACHE_TODAY_TTL")
    weather_ttl_seconds: int = Field(default=300, alias="CACHE_WEATHER_TTL")
    fixtures_ttl_seconds: int = Field(default=300, alias="CACHE_FIXTURES_TTL")
    standings_ttl_seconds: int = Field(default=600, alias="CACHE_STANDINGS_TTL")
    rates_ttl_seconds: int = Field(default=3600, alias="CACHE_RATES_TTL")
    teams_ttl_seconds: int = Field(default=3600, alias="CACHE_TEAMS_TTL")
    events_ttl_seconds: int = Field(default=300, alias="CACHE_EVENTS_TTL")
    cache_max_size: int = Field(default=1000, alias="CACHE_MAX_SIZE")
    cache_max_idle_hours: float = Field(default=24.0, alias="CACHE_MAX_IDLE_HOURS")
    single_flight: bool = Field(default=False, alias="GATEWAY_SINGLE_FLIGHT")
    cache_debug: bool = Field(default=False, alias="CACHE_DEBUG")

    # Weather (Open-Meteo)
    weather_base_url: str = Field(
        default="https://api.open-meteo.com/v1", alias="WEATHER_BASE_URL"
    )

    # Football provider A (API-Football)
    api_football_base_url: str = Field(
        default="https://v3.football.api-sports.io", alias="API_FOOTBALL_BASE_URL"
    )
    api_football_key: str = Field(default="", alias="API_FOOTBALL_KEY")
    sports_api_key: str = Field(default="", alias="SPORTS_API_KEY")
    api_football_use_rapidapi: bool = Field(
        default=False, alias="API_FOOTBALL_USE_RAPIDAPI"
    )
    api_football_host: str = Field(
        default="api-football-v1.p.rapidapi.com", alias="API_FOOTBALL_HOST"
    )
    sports_default_timezone: str = Field(
        default="America/Bogota", alias="SPORTS_DEFAULT_TIMEZONE"
    )
    sports_default_season: str | None = Field(
        default=None, alias="SPORTS_DEFAULT_SEASON"
    )

    # League ids used by the sports summary and league aliases
    league_england_id: int | None = Field(default=None, alias="LEAGUE_ENGLAND_ID")
    league_spain_id: int | None = Field(default=None, alias="LEAGUE_SPAIN_ID")
    league_germany_id: int | None = Field(default=None, alias="LEAGUE_GERMANY_ID")
    league_champions_id: int | None = Field(
        default=None, alias="LEAGUE_CHAMPIONS_ID"
    )
    league_europa_id: int | None = Field(default=None, alias="LEAGUE_EUROPA_ID")
    league_colombia_id: int | None = Field(default=None, alias="LEAGUE_COLOMBIA_ID")

    # Football provider B (TheSportsDB)
    sportsdb_base_url: str = Field(
        default="https://www.thesportsdb.com/api/v1/json", alias="THESPORTSDB_BASE_URL"
    )
    sportsdb_api_key: str = Field(default="123", alias="THESPORTSDB_API_KEY")

    # Exchange rates (ExchangeRate-API)
    exchange_rate_api_key: str = Field(default="", alias="EXCHANGE_RATE_API_KEY")
    exchange_rate_free_url: str = Field(
        default="https://open.exchangerate-api.com/v6", alias="EXCHANGE_RATE_FREE_URL"
    )
    exchange_rate_paid_url: str = Field(
        default="https://v6.exchangerate-api.com/v6", alias="EXCHANGE_RATE_PAID_URL"
    )
    default_base_currency: str = Field(default="COP", alias="DEFAULT_BASE_CURRENCY")

    # API server
    api_host: str = Field(default="0.0.0.0", alias="API_HOST")
    api_port: int = Field(default=8000, alias="API_PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @property
    def football_key(self) -> str:
        """API-Football key, accepting the legacy SPORTS_API_KEY name."""
        return self.api_football_key or self.sports_api_key


def load_settings() -> Settings:
    """Build settings from the process environment (and .env)."""
    return Settings.model_validate(
        {k: v for k, v in os.environ.items() if v != ""}
    )


global_settings = load_settings()
