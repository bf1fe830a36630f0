"""
Conversion Pipeline: amount in any currency → USD → ARS tarjeta / cripto.

``ConversionService.convert`` never raises. Every failure (bad input,
provider exhaustion, unusable rate) becomes the ``ok=False`` variant of
``ConversionResult``, which is what lets the tool loop hand conversions to
the model as ordinary tool results.

Usage:
    >>> service = ConversionService(aggregator)
    >>> result = await service.convert(Decimal("45.00"), "PEN")
    >>> result.to_dict()
    {"ok": True, "USD": 12.1, "ARS_tarjeta": 17545.0, ...}
"""

from decimal import Decimal, InvalidOperation
from typing import Any

from ticketfx.errors import ProviderExhaustionError, ValidationError
from ticketfx.logging_config import get_logger
from ticketfx.schemas.conversion import ConversionProviders, ConversionResult, round2
from ticketfx.schemas.quotes import positive_decimal
from ticketfx.services.rate_aggregator import RateAggregator, normalize_currency_code

logger = get_logger(__name__)

BRIDGE_CURRENCY = "USD"


def parse_amount(amount: Any) -> Decimal:
    """
    Validate an amount: numeric, finite and non-negative.

    Raises:
        ValidationError: If the amount is unusable
    """
    if amount is None or isinstance(amount, bool):
        raise ValidationError(f"Invalid amount: {amount}")
    try:
        value = Decimal(str(amount).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid amount: {amount}")
    if not value.is_finite() or value < 0:
        raise ValidationError(f"Invalid amount: {amount}")
    return value


def require_rate(value: Any, label: str) -> Decimal:
    """
    Raises:
        ValidationError: If ``value`` is not a finite rate greater than zero
    """
    rate = positive_decimal(value)
    if rate is None:
        raise ValidationError(f"Invalid or missing exchange rate for {label}: {value}")
    return rate


class ConversionService:
    """Bridges amounts through USD using the Rate Aggregator's quotes."""

    def __init__(self, aggregator: RateAggregator):
        self.aggregator = aggregator

    async def convert(self, amount: Any, from_currency: Any) -> ConversionResult:
        """
        Convert ``amount`` of ``from_currency`` into USD and ARS.

        Forex resolution always happens before the ARS quote is applied.

        Args:
            amount: Non-negative number (int, float, Decimal or numeric string)
            from_currency: Three-letter ISO 4217 code, case-insensitive

        Returns:
            ConversionResult, ``ok`` False with ``error`` set on any failure
        """
        try:
            result = await self._convert(amount, from_currency)
        except (ValidationError, ProviderExhaustionError) as e:
            result = ConversionResult.failure(str(e))
        except Exception as e:
            logger.error(
                "conversion_unexpected_error",
                amount=str(amount),
                from_currency=str(from_currency),
                error=str(e),
                exc_info=True,
            )
            result = ConversionResult.failure(f"Unexpected conversion error: {e}")

        if result.ok:
            logger.info(
                "conversion_completed",
                amount=str(amount),
                from_currency=str(from_currency).strip().upper(),
                usd=str(result.usd),
                forex_provider=result.providers.forex,
                ars_provider=result.providers.ars,
            )
        else:
            logger.warning(
                "conversion_failed",
                amount=str(amount),
                from_currency=str(from_currency),
                error=result.error,
            )
        return result

    async def _convert(self, amount: Any, from_currency: Any) -> ConversionResult:
        value = parse_amount(amount)
        currency = normalize_currency_code(from_currency)

        if currency == BRIDGE_CURRENCY:
            usd_amount = value
            forex_provider = "direct"
        else:
            forex = await self.aggregator.get_forex_quote(currency, [BRIDGE_CURRENCY])
            usd_rate = require_rate(forex.rates.get(BRIDGE_CURRENCY), BRIDGE_CURRENCY)
            usd_amount = value * usd_rate
            forex_provider = forex.provider

        usd = round2(usd_amount)

        ars = await self.aggregator.get_ars_quote()
        tarjeta = require_rate(ars.tarjeta, "ARS tarjeta")
        cripto = require_rate(ars.cripto, "ARS cripto")

        return ConversionResult.success(
            usd=usd,
            ars_tarjeta=round2(usd * tarjeta),
            ars_cripto=round2(usd * cripto),
            providers=ConversionProviders(
                forex=forex_provider,
                ars=ars.provider,
                updated_at=ars.updated_at,
            ),
        )
