"""
Open-Meteo data source for current conditions and the next 24 hours.

API Documentation: https://open-meteo.com/en/docs
Free, no API key required.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from loguru import logger
from pydantic import BaseModel, Field, field_validator, model_validator

from gateway.datasource.base import BaseDataSource
from gateway.datasource.models import DomainModel, GatewayQuery
from gateway.datasource.weather.cities import find_city
from gateway.services.client import ServiceClient
from gateway.services.errors import InvalidResponseError, UnknownCityError

HOURS_AHEAD = 24

CURRENT_FIELDS = [
    "temperature_2m",
    "relative_humidity_2m",
    "apparent_temperature",
    "precipitation",
    "pressure_msl",
    "wind_speed_10m",
    "wind_direction_10m",
    "weather_code",
]

HOURLY_FIELDS = [
    "temperature_2m",
    "apparent_temperature",
    "precipitation_probability",
    "precipitation",
    "wind_speed_10m",
    "wind_direction_10m",
    "weather_code",
]

# WMO weather interpretation codes (ES)
WMO_ES = {
    0: "Despejado",
    1: "Mayormente despejado",
    2: "Parcialmente nublado",
    3: "Nublado",
    45: "Niebla",
    48: "Niebla con escarcha",
    51: "Llovizna ligera",
    53: "Llovizna",
    55: "Llovizna intensa",
    56: "Llovizna gélida ligera",
    57: "Llovizna gélida intensa",
    61: "Lluvia ligera",
    63: "Lluvia",
    65: "Lluvia intensa",
    66: "Lluvia gélida ligera",
    67: "Lluvia gélida intensa",
    71: "Nieve ligera",
    73: "Nieve",
    75: "Nieve intensa",
    77: "Granos de nieve",
    80: "Chubascos ligeros",
    81: "Chubascos",
    82: "Chubascos intensos",
    85: "Chubascos de nieve ligeros",
    86: "Chubascos de nieve intensos",
    95: "Tormenta",
    96: "Tormenta con granizo ligero",
    99: "Tormenta con granizo intenso",
}

UNKNOWN_CONDITION_ES = "Condición desconocida"


def weather_text_es(code: int) -> str:
    return WMO_ES.get(code, UNKNOWN_CONDITION_ES)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class WeatherQuery(GatewayQuery):
    """Coordinates to fetch weather for."""

    latitude: float = Field(ge=-90, le=90, allow_inf_nan=False)
    longitude: float = Field(ge=-180, le=180, allow_inf_nan=False)

    @classmethod
    def for_city(cls, slug: str) -> "WeatherQuery":
        city = find_city(slug)
        if city is None:
            raise UnknownCityError(slug)
        return cls(latitude=city.latitude, longitude=city.longitude)

    def cache_params(self) -> dict[str, Any]:
        return {"lat": self.latitude, "lon": self.longitude}


class CurrentWeather(DomainModel):
    temperature_c: float
    feels_like_c: float
    humidity_percent: float
    pressure_hpa: float | None = None
    wind_speed_kmh: float
    wind_direction_deg: float
    weather_code: int
    weather_text_es: str


class HourlyPoint(DomainModel):
    time: datetime
    temperature_c: float
    feels_like_c: float
    precipitation_mm: float
    precipitation_prob_percent: float | None = None
    wind_speed_kmh: float
    wind_direction_deg: float
    weather_code: int


class WeatherBundle(DomainModel):
    current: CurrentWeather
    next_24h: tuple[HourlyPoint, ...] = Field(alias="next24h")


# Upstream payload schema


class _CurrentPayload(BaseModel):
    temperature_2m: float
    apparent_temperature: float | None = None
    relative_humidity_2m: float
    pressure_msl: float | None = None
    wind_speed_10m: float
    wind_direction_10m: float
    weather_code: int


class _HourlyPayload(BaseModel):
    time: list[str]
    temperature_2m: list[float]
    apparent_temperature: list[float]
    precipitation_probability: list[float | None] | None = None
    precipitation: list[float]
    wind_speed_10m: list[float]
    wind_direction_10m: list[float]
    weather_code: list[int]

    @model_validator(mode="after")
    def check_parallel_arrays(self) -> "_HourlyPayload":
        size = len(self.time)
        for name in HOURLY_FIELDS:
            values = getattr(self, name)
            if values is not None and len(values) != size:
                raise ValueError(
                    f"hourly.{name} has {len(values)} values, expected {size}"
                )
        return self


class _ForecastPayload(BaseModel):
    current: _CurrentPayload
    hourly: _HourlyPayload
    utc_offset_seconds: int = 0

    @field_validator("utc_offset_seconds", mode="before")
    @classmethod
    def default_offset(cls, value: Any) -> Any:
        return 0 if value is None else value


class OpenMeteoSource(BaseDataSource):
    """
    Open-Meteo forecast data source.

    One request returns current conditions and 48 hourly points; only the 24
    points at or after the moment of the fetch are kept.
    """

    BASE_URL = "https://api.open-meteo.com/v1"
    SERVICE_ID = "open-meteo"

    def __init__(
        self,
        client: ServiceClient | None = None,
        base_url: str | None = None,
        max_retries: int = 1,
        clock: Callable[[], datetime] = utc_now,
    ):
        super().__init__(client)
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.max_retries = max_retries
        self._clock = clock

    @property
    def service_id(self) -> str:
        return self.SERVICE_ID

    def is_configured(self) -> bool:
        """Open-Meteo doesn't require an API key."""
        return True

    async def fetch(self, query: WeatherQuery) -> WeatherBundle:
        """
        Fetch current weather and the next 24 hourly points.

        Raises:
            InvalidResponseError: payload failed validation
            ServiceError: upstream failure after retries
        """
        data = await self.client.get_json(
            service_id=self.SERVICE_ID,
            url=f"{self.base_url}/forecast",
            params={
                "latitude": str(query.latitude),
                "longitude": str(query.longitude),
                "current": ",".join(CURRENT_FIELDS),
                "hourly": ",".join(HOURLY_FIELDS),
                "timezone": "auto",
                "forecast_hours": "48",
            },
            retries=self.max_retries,
        )

        payload = self.parse(_ForecastPayload, data)
        bundle = WeatherBundle(
            current=self._transform_current(payload.current),
            next_24h=self._next_hours(payload, self._clock()),
        )
        logger.info(
            f"Fetched weather for ({query.latitude}, {query.longitude}): "
            f"{len(bundle.next_24h)} hourly points"
        )
        return bundle

    def _transform_current(self, c: _CurrentPayload) -> CurrentWeather:
        return CurrentWeather(
            temperature_c=c.temperature_2m,
            feels_like_c=(
                c.apparent_temperature
                if c.apparent_temperature is not None
                else c.temperature_2m
            ),
            humidity_percent=c.relative_humidity_2m,
            pressure_hpa=c.pressure_msl,
            wind_speed_kmh=c.wind_speed_10m,
            wind_direction_deg=c.wind_direction_10m,
            weather_code=c.weather_code,
            weather_text_es=weather_text_es(c.weather_code),
        )

    def _next_hours(self, payload: _ForecastPayload, now: datetime) -> list[HourlyPoint]:
        """Keep the first 24 points whose time is at or after now."""
        h = payload.hourly
        tz = timezone(timedelta(seconds=payload.utc_offset_seconds))
        probs = h.precipitation_probability or [None] * len(h.time)

        points: list[HourlyPoint] = []
        for i, raw_time in enumerate(h.time):
            at = self._parse_time(raw_time, tz)
            if at < now:
                continue

            points.append(
                HourlyPoint(
                    time=at,
                    temperature_c=h.temperature_2m[i],
                    feels_like_c=h.apparent_temperature[i],
                    precipitation_mm=h.precipitation[i],
                    precipitation_prob_percent=probs[i],
                    wind_speed_kmh=h.wind_speed_10m[i],
                    wind_direction_deg=h.wind_direction_10m[i],
                    weather_code=h.weather_code[i],
                )
            )
            if len(points) >= HOURS_AHEAD:
                break

        return points

    def _parse_time(self, raw: str, tz: timezone) -> datetime:
        # Open-Meteo local times carry no offset when timezone=auto
        try:
            at = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError as e:
            raise InvalidResponseError(
                f"Invalid hourly timestamp '{raw}'", service_id=self.SERVICE_ID
            ) from e
        if at.tzinfo is None:
            at = at.replace(tzinfo=tz)
        return at
