"""
Pytest configuration and fixtures for the ticketfx test suite.

Provides:
- A controllable clock and a rate cache driven by it
- Quote factories and stub provider adapters
- Aggregator and conversion service wired to the stubs
"""

import os
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

# Set test environment before importing ticketfx modules
os.environ["ENVIRONMENT"] = "development"
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("LOG_FORMAT", "console")

from ticketfx.providers.base import ProviderResult
from ticketfx.schemas.quotes import ArsQuote, ForexQuote
from ticketfx.services.conversion import ConversionService
from ticketfx.services.rate_aggregator import RateAggregator
from ticketfx.storage import TTLCache

FIXED_NOW = datetime(2026, 3, 14, 15, 9, 26, 535000, tzinfo=timezone.utc)


# ─────────────────────────────────────────────────────────────────────────────
# Clock & Cache
# ─────────────────────────────────────────────────────────────────────────────

class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock) -> TTLCache:
    """Rate cache with the default forex/ARS TTLs."""
    return TTLCache({"forex": 60, "ars": 45}, default_ttl=60, clock=clock)


# ─────────────────────────────────────────────────────────────────────────────
# Quotes
# ─────────────────────────────────────────────────────────────────────────────

@pytest.fixture
def make_forex_quote():
    """Factory for forex quotes."""

    def _make(
        base: str = "PEN",
        rates: dict[str, str] | None = None,
        provider: str = "open.er-api.com",
    ) -> ForexQuote:
        rates = rates if rates is not None else {"USD": "0.2688"}
        return ForexQuote(
            base=base,
            rates={code: Decimal(rate) for code, rate in rates.items()},
            provider=provider,
            updated_at=FIXED_NOW,
        )

    return _make


@pytest.fixture
def make_ars_quote():
    """Factory for ARS quotes."""

    def _make(
        tarjeta: str = "1200",
        cripto: str = "1300",
        provider: str = "criptoya",
        **optional: str,
    ) -> ArsQuote:
        return ArsQuote(
            tarjeta=Decimal(tarjeta),
            cripto=Decimal(cripto),
            provider=provider,
            updated_at=FIXED_NOW,
            **{name: Decimal(value) for name, value in optional.items()},
        )

    return _make


# ─────────────────────────────────────────────────────────────────────────────
# Stub Providers
# ─────────────────────────────────────────────────────────────────────────────

@pytest.fixture
def make_provider():
    """
    Factory for stub adapters.

    ``quote=None`` makes the stub fail the way a real adapter does: a
    ProviderResult carrying an error, never an exception.
    """

    def _make(name: str, quote=None, error=None) -> MagicMock:
        provider = MagicMock()
        provider.name = name
        provider.fetch = AsyncMock(
            return_value=ProviderResult(
                provider=name,
                quote=quote,
                error=error if quote is None else None,
            )
        )
        return provider

    return _make


@pytest.fixture
def forex_primary(make_provider, make_forex_quote):
    return make_provider("open.er-api.com", make_forex_quote())


@pytest.fixture
def forex_secondary(make_provider, make_forex_quote):
    return make_provider(
        "open.er-api.com/usd-cross",
        make_forex_quote(provider="open.er-api.com/usd-cross"),
    )


@pytest.fixture
def ars_primary(make_provider, make_ars_quote):
    return make_provider("criptoya", make_ars_quote())


@pytest.fixture
def ars_secondary(make_provider, make_ars_quote):
    return make_provider("dolarapi", make_ars_quote(provider="dolarapi"))


@pytest.fixture
def aggregator(cache, forex_primary, forex_secondary, ars_primary, ars_secondary):
    """Aggregator over stub adapters, primary first."""
    return RateAggregator(
        cache,
        forex_providers=[forex_primary, forex_secondary],
        ars_providers=[ars_primary, ars_secondary],
    )


@pytest.fixture
def conversion(aggregator) -> ConversionService:
    return ConversionService(aggregator)
