"""
Conversion result contract.

Both variants share the same field names so callers (and the language
model reading a tool result) can branch on ``ok`` without probing types.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from ticketfx.schemas.quotes import isoformat_z, utc_now

CENTS = Decimal("0.01")


def round2(value: Decimal) -> Decimal:
    """Round to two decimal places, half away from zero."""
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class ConversionProviders:
    forex: str
    ars: str
    updated_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, str]:
        return {
            "forex": self.forex,
            "ars": self.ars,
            "updatedAt": isoformat_z(self.updated_at),
        }


@dataclass(frozen=True)
class ConversionResult:
    """
    Outcome of converting an amount into USD and ARS.

    ``ok`` is True for the success variant, in which case every amount is
    set and ``error`` is None. The failure variant has all amounts set to
    None, both providers set to ``"error"`` and a human-readable ``error``.
    """

    ok: bool
    usd: Decimal | None
    ars_tarjeta: Decimal | None
    ars_cripto: Decimal | None
    providers: ConversionProviders
    error: str | None = None

    @classmethod
    def success(
        cls,
        usd: Decimal,
        ars_tarjeta: Decimal,
        ars_cripto: Decimal,
        providers: ConversionProviders,
    ) -> "ConversionResult":
        return cls(
            ok=True,
            usd=usd,
            ars_tarjeta=ars_tarjeta,
            ars_cripto=ars_cripto,
            providers=providers,
        )

    @classmethod
    def failure(cls, error: str) -> "ConversionResult":
        return cls(
            ok=False,
            usd=None,
            ars_tarjeta=None,
            ars_cripto=None,
            providers=ConversionProviders(forex="error", ars="error"),
            error=error,
        )

    def to_dict(self) -> dict[str, Any]:
        """Wire format shared by the HTTP API and the convert_currency tool."""
        data: dict[str, Any] = {
            "ok": self.ok,
            "USD": _as_number(self.usd),
            "ARS_tarjeta": _as_number(self.ars_tarjeta),
            "ARS_cripto": _as_number(self.ars_cripto),
            "providers": self.providers.to_dict(),
        }
        if not self.ok:
            data["error"] = self.error
        return data


def _as_number(value: Decimal | None) -> float | None:
    return float(value) if value is not None else None
