"""
Open-Meteo data source for current weather and hourly forecast.
"""

from gateway.datasource.weather.cities import ALL_CITIES, City, find_city
from gateway.datasource.weather.openmeteo import (
    CurrentWeather,
    HourlyPoint,
    OpenMeteoSource,
    WeatherBundle,
    WeatherQuery,
)

__all__ = [
    "ALL_CITIES",
    "City",
    "find_city",
    "CurrentWeather",
    "HourlyPoint",
    "OpenMeteoSource",
    "WeatherBundle",
    "WeatherQuery",
]
