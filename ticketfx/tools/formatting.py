"""
Currency formatting for the ``format_currency`` tool.

Two decimals, comma thousands separators, a symbol prefix for the
currencies the app deals with and ``"<CODE> 1,234.56"`` otherwise.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from ticketfx.errors import ValidationError
from ticketfx.services.rate_aggregator import normalize_currency_code

CURRENCY_SYMBOLS = {
    "USD": "$",
    "PEN": "S/ ",
    "ARS": "ARS $",
    "EUR": "€",
    "GBP": "£",
    "BRL": "R$",
    "MXN": "MX$",
}


def format_currency(value: Any, currency: Any) -> str:
    """
    Format ``value`` as an amount of ``currency``.

    Examples:
        >>> format_currency(1234.5, "usd")
        '$1,234.50'
        >>> format_currency(-3, "CLP")
        '-CLP 3.00'

    Raises:
        ValidationError: If the value is not numeric or the code is malformed
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"Invalid value: {value}")
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid value: {value}")
    if not amount.is_finite():
        raise ValidationError(f"Invalid value: {value}")

    code = normalize_currency_code(currency)
    quantized = amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if quantized < 0 else ""
    digits = f"{abs(quantized):,.2f}"

    symbol = CURRENCY_SYMBOLS.get(code)
    if symbol is None:
        return f"{sign}{code} {digits}"
    return f"{sign}{symbol}{digits}"
