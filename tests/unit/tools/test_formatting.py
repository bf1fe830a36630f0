"""
Unit tests for the format_currency tool.
"""

import pytest

from ticketfx.errors import ValidationError
from ticketfx.tools import format_currency


class TestFormatCurrency:
    """Tests for currency formatting."""

    @pytest.mark.parametrize(
        "value,currency,expected",
        [
            (1234.5, "USD", "$1,234.50"),
            (45, "pen", "S/ 45.00"),
            ("1450000", "ARS", "ARS $1,450,000.00"),
            (0.125, "EUR", "€0.13"),
            (-3, "CLP", "-CLP 3.00"),
            (1234567.891, "JPY", "JPY 1,234,567.89"),
        ],
    )
    def test_formats(self, value, currency, expected):
        assert format_currency(value, currency) == expected

    @pytest.mark.parametrize("value", [None, "abc", True, float("nan")])
    def test_rejects_non_numeric_value(self, value):
        with pytest.raises(ValidationError):
            format_currency(value, "USD")

    def test_rejects_bad_code(self):
        with pytest.raises(ValidationError, match="Invalid currency code"):
            format_currency(10, "DOLLARS")
