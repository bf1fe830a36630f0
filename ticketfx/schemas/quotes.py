"""
Canonical rate quotes.

Every provider adapter normalizes its vendor payload into one of these
shapes, so nothing above the adapters sees vendor-specific field names.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from types import MappingProxyType
from typing import Any


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def isoformat_z(moment: datetime) -> str:
    """ISO-8601 with millisecond precision and a ``Z`` suffix."""
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )


def positive_decimal(value: Any) -> Decimal | None:
    """
    Coerce a vendor value into a finite, strictly positive Decimal.

    Returns None for anything else (missing, non-numeric, NaN, infinite,
    zero, negative, booleans).
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite() or number <= 0:
        return None
    return number


@dataclass(frozen=True)
class ForexQuote:
    """Exchange rates from ``base`` into each symbol in ``rates``."""

    base: str
    rates: Mapping[str, Decimal]
    provider: str
    updated_at: datetime = field(default_factory=utc_now)

    def __post_init__(self):
        # Cached quotes are shared; the rate table is a read-only copy
        object.__setattr__(self, "rates", MappingProxyType(dict(self.rates)))

    def rate(self, symbol: str) -> Decimal | None:
        return positive_decimal(self.rates.get(symbol))

    def covers(self, symbols: list[str]) -> bool:
        """True when every requested symbol has a usable rate."""
        return all(self.rate(symbol) is not None for symbol in symbols)

    def to_dict(self) -> dict[str, Any]:
        return {
            "rates": {code: float(rate) for code, rate in self.rates.items()},
            "base": self.base,
            "provider": self.provider,
            "updatedAt": isoformat_z(self.updated_at),
        }


@dataclass(frozen=True)
class ArsQuote:
    """ARS per USD under the different Argentine exchange regimes."""

    tarjeta: Decimal
    cripto: Decimal
    provider: str
    blue: Decimal | None = None
    mep: Decimal | None = None
    ccl: Decimal | None = None
    updated_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        """Serialize, omitting optional rates the provider did not cover."""
        data: dict[str, Any] = {
            "tarjeta": float(self.tarjeta),
            "cripto": float(self.cripto),
        }
        for name in ("blue", "mep", "ccl"):
            value = getattr(self, name)
            if value is not None:
                data[name] = float(value)
        data["provider"] = self.provider
        data["updatedAt"] = isoformat_z(self.updated_at)
        return data
