"""
ExchangeRate-API data source for currency rates.

API Documentation: https://www.exchangerate-api.com/docs
Free tier: https://open.exchangerate-api.com/v6/latest/{BASE}
Paid tier: https://v6.exchangerate-api.com/v6/{API_KEY}/latest/{BASE}
"""

from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Mapping

from loguru import logger
from pydantic import BaseModel, Field, field_serializer, field_validator, model_validator

from gateway.datasource.base import BaseDataSource
from gateway.datasource.models import DomainModel, GatewayQuery
from gateway.services.client import ServiceClient
from gateway.services.errors import UnknownCurrencyError, UpstreamFatalError

# Popular currencies shown to Colombian users
POPULAR_CURRENCIES = [
    "USD",
    "EUR",
    "GBP",
    "CAD",
    "AUD",
    "MXN",
    "BRL",
    "ARS",
    "CLP",
    "JPY",
    "CNY",
]


class RatesQuery(GatewayQuery):
    """Base currency (ISO 4217) of the rate sheet."""

    base: str = Field(default="COP", pattern=r"^[A-Z]{3}$")

    @field_validator("base", mode="before")
    @classmethod
    def upper_code(cls, value: Any) -> Any:
        return value.strip().upper() if isinstance(value, str) else value


class RateSheet(DomainModel):
    """Rates expressed as units of target per 1 unit of base."""

    base_currency: str
    last_update: datetime
    rates: Mapping[str, float]

    @field_validator("rates")
    @classmethod
    def freeze_rates(cls, value: Mapping[str, float]) -> Mapping[str, float]:
        return MappingProxyType(dict(value))

    @field_serializer("rates")
    def dump_rates(self, value: Mapping[str, float]) -> dict[str, float]:
        return dict(value)


class Conversion(DomainModel):
    """Result of converting an amount with one rate sheet."""

    source_currency: str
    source_amount: float
    target_currency: str
    target_amount: float
    rate: float | None = None
    last_update: datetime


# Upstream payload schema


class _RatesPayload(BaseModel):
    result: str | None = None
    base_code: str
    time_last_update_unix: int
    rates: dict[str, float] | None = None
    conversion_rates: dict[str, float] | None = None

    @model_validator(mode="after")
    def check_rates(self) -> "_RatesPayload":
        # Paid tier uses 'conversion_rates', free tier 'rates'
        table = self.conversion_rates or self.rates
        if not table:
            raise ValueError("response has no rates")
        bad = [code for code, rate in table.items() if not rate > 0]
        if bad:
            raise ValueError(f"non-positive rates for {', '.join(sorted(bad))}")
        return self

    @property
    def table(self) -> dict[str, float]:
        return self.conversion_rates or self.rates or {}


def _rate(sheet: RateSheet, code: str) -> float:
    rate = sheet.rates.get(code)
    if not rate:
        raise UnknownCurrencyError(code)
    return rate


def convert_currency(amount: float, source: str, target: str, sheet: RateSheet) -> float:
    """
    Convert an amount between two currencies using one rate sheet.

    Direct lookup when either side is the base currency, otherwise through
    the base: amount / rate[source] * rate[target].

    Raises:
        UnknownCurrencyError: a code is missing from the sheet
    """
    source = source.strip().upper()
    target = target.strip().upper()
    base = sheet.base_currency.upper()

    if source == target:
        if source != base:
            _rate(sheet, source)
        return amount

    if source == base:
        return amount * _rate(sheet, target)

    if target == base:
        return amount / _rate(sheet, source)

    # Two divisions' worth of rounding error; accepted
    from_rate = _rate(sheet, source)
    to_rate = _rate(sheet, target)
    return amount / from_rate * to_rate


def popular_rates(sheet: RateSheet) -> dict[str, float]:
    """Subset of the sheet for POPULAR_CURRENCIES, in that order."""
    return {code: sheet.rates[code] for code in POPULAR_CURRENCIES if sheet.rates.get(code)}


class ExchangeRateSource(BaseDataSource):
    """
    ExchangeRate-API data source.

    Uses the paid endpoint when an API key is configured, otherwise the
    open (free) endpoint.
    """

    FREE_URL = "https://open.exchangerate-api.com/v6"
    PAID_URL = "https://v6.exchangerate-api.com/v6"
    SERVICE_ID = "exchangerate-api"

    def __init__(
        self,
        api_key: str = "",
        client: ServiceClient | None = None,
        free_url: str | None = None,
        paid_url: str | None = None,
        max_retries: int = 2,
    ):
        super().__init__(client)
        self.api_key = api_key
        self.free_url = (free_url or self.FREE_URL).rstrip("/")
        self.paid_url = (paid_url or self.PAID_URL).rstrip("/")
        self.max_retries = max_retries

    @property
    def service_id(self) -> str:
        return self.SERVICE_ID

    def is_configured(self) -> bool:
        """Free tier doesn't require an API key."""
        return True

    def _url(self, base: str) -> str:
        if self.api_key:
            return f"{self.paid_url}/{self.api_key}/latest/{base}"
        return f"{self.free_url}/latest/{base}"

    async def fetch(self, query: RatesQuery) -> RateSheet:
        """
        Fetch the full rate table for one base currency.

        Raises:
            UpstreamFatalError: the API answered with result "error"
            InvalidResponseError: payload failed validation
        """
        data = await self.client.get_json(
            service_id=self.SERVICE_ID,
            url=self._url(query.base),
            retries=self.max_retries,
        )

        if data.get("result") == "error":
            raise UpstreamFatalError(
                f"Exchange rate API error: {data.get('error-type') or 'API error'}",
                service_id=self.SERVICE_ID,
            )

        payload = self.parse(_RatesPayload, data)
        sheet = RateSheet(
            base_currency=payload.base_code.upper(),
            last_update=datetime.fromtimestamp(
                payload.time_last_update_unix, tz=timezone.utc
            ),
            rates=dict(payload.table),
        )
        logger.info(f"Fetched {len(sheet.rates)} exchange rates for {sheet.base_currency}")
        return sheet
