"""
Forex rate adapters backed by open.er-api.com.

``ErApiForexProvider`` asks the vendor for the requested base directly.
``ErApiCrossRateProvider`` only ever fetches the USD table and derives
cross rates from it, which keeps working when a base-specific table is
missing or stale upstream.

Payload:
    {"result": "success", "base_code": "PEN", "rates": {"USD": 0.27, ...}}
"""

from collections.abc import Mapping
from decimal import Decimal
from typing import Any

import httpx

from ticketfx.config import settings
from ticketfx.errors import ProviderSchemaError
from ticketfx.providers.base import ProviderResult, RateProvider
from ticketfx.schemas.quotes import ForexQuote, positive_decimal


class ForexProvider(RateProvider[ForexQuote]):
    """Adapter returning ``base → symbol`` rates."""

    def __init__(
        self,
        api_base: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ):
        super().__init__(client=client, timeout=timeout)
        self.api_base = (api_base or settings.exchange_api_base).rstrip("/")

    async def fetch(self, base: str, symbols: list[str]) -> ProviderResult[ForexQuote]:
        raise NotImplementedError

    async def fetch_quote(self, base: str, symbols: list[str]) -> ForexQuote | None:
        return (await self.fetch(base, symbols)).quote

    def _rate_table(self, payload: Any) -> Mapping[str, Any] | ProviderSchemaError:
        if not isinstance(payload, Mapping):
            return self.schema_error("Expected a JSON object")

        result = payload.get("result")
        if result is not None and result != "success":
            return self.schema_error(
                f"API error: {payload.get('error-type', 'unknown')}"
            )

        rates = payload.get("rates")
        if not isinstance(rates, Mapping):
            return self.schema_error("Missing rates object")
        return rates


class ErApiForexProvider(ForexProvider):
    """Direct ``/latest/{base}`` lookup."""

    name = "open.er-api.com"

    async def fetch(self, base: str, symbols: list[str]) -> ProviderResult[ForexQuote]:
        return await self._fetch(
            f"{self.api_base}/latest/{base}",
            lambda payload: self.normalize(payload, base, symbols),
        )

    def normalize(
        self, payload: Any, base: str, symbols: list[str]
    ) -> ForexQuote | ProviderSchemaError:
        table = self._rate_table(payload)
        if isinstance(table, ProviderSchemaError):
            return table

        base_code = payload.get("base_code")
        if base_code is not None and str(base_code).upper() != base:
            return self.schema_error(f"Expected base {base}, got {base_code}")

        rates: dict[str, Decimal] = {}
        for symbol in symbols:
            rate = Decimal("1") if symbol == base else positive_decimal(table.get(symbol))
            if rate is None:
                return self.schema_error(
                    f"Invalid or missing exchange rate for {symbol}: {table.get(symbol)}"
                )
            rates[symbol] = rate

        return ForexQuote(base=base, rates=rates, provider=self.name)


class ErApiCrossRateProvider(ForexProvider):
    """Cross rates derived from the USD table: ``rate = usd[sym] / usd[base]``."""

    name = "open.er-api.com/usd-cross"

    async def fetch(self, base: str, symbols: list[str]) -> ProviderResult[ForexQuote]:
        return await self._fetch(
            f"{self.api_base}/latest/USD",
            lambda payload: self.normalize(payload, base, symbols),
        )

    def normalize(
        self, payload: Any, base: str, symbols: list[str]
    ) -> ForexQuote | ProviderSchemaError:
        table = self._rate_table(payload)
        if isinstance(table, ProviderSchemaError):
            return table

        def usd_to(code: str) -> Decimal | None:
            if code == "USD":
                return Decimal("1")
            return positive_decimal(table.get(code))

        base_per_usd = usd_to(base)
        if base_per_usd is None:
            return self.schema_error(f"Invalid or missing exchange rate for {base}")

        rates: dict[str, Decimal] = {}
        for symbol in symbols:
            symbol_per_usd = usd_to(symbol)
            if symbol_per_usd is None:
                return self.schema_error(
                    f"Invalid or missing exchange rate for {symbol}: {table.get(symbol)}"
                )
            rates[symbol] = symbol_per_usd / base_per_usd

        return ForexQuote(base=base, rates=rates, provider=self.name)
