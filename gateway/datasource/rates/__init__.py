"""
ExchangeRate-API data source and currency conversion.
"""

from gateway.datasource.rates.exchangerate import (
    POPULAR_CURRENCIES,
    Conversion,
    ExchangeRateSource,
    RateSheet,
    RatesQuery,
    convert_currency,
    popular_rates,
)

__all__ = [
    "POPULAR_CURRENCIES",
    "Conversion",
    "ExchangeRateSource",
    "RateSheet",
    "RatesQuery",
    "convert_currency",
    "popular_rates",
]
