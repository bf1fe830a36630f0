"""
Unit tests for the ARS adapters (CriptoYa and DolarAPI).

Tests:
- Nested, flat and legacy CriptoYa payloads
- DolarAPI row mapping
- Required-field validation
"""

from decimal import Decimal

import httpx
import pytest

from ticketfx.errors import ProviderSchemaError
from ticketfx.providers import ARS_PROVIDERS, CriptoyaProvider, DolarApiProvider
from ticketfx.providers.ars import flat_price, nested_price

CRIPTOYA_PAYLOAD = {
    "tarjeta": {"price": 1450.5, "variation": 0.1},
    "blue": {"ask": 1230, "bid": 1210},
    "cripto": {
        "ccb": {"ask": 1310, "bid": 1280},
        "usdt": {"ask": 1305.2, "bid": 1290.1},
    },
    "mep": {"al30": {"24hs": {"price": 1191.0}, "ci": {"price": 1190.4}}},
    "ccl": {"al30": {"ci": {"price": 1220.7}}},
}

DOLARAPI_PAYLOAD = [
    {"moneda": "USD", "casa": "oficial", "compra": 1000, "venta": 1040},
    {"moneda": "USD", "casa": "blue", "compra": 1210, "venta": 1230},
    {"moneda": "USD", "casa": "bolsa", "compra": 1180, "venta": 1190.4},
    {"moneda": "USD", "casa": "contadoconliqui", "compra": 1200, "venta": 1220.7},
    {"moneda": "USD", "casa": "cripto", "compra": 1290, "venta": 1302.5},
    {"moneda": "USD", "casa": "tarjeta", "compra": 1300, "venta": 1352},
]


# ─────────────────────────────────────────────────────────────────────────────
# Price Helpers
# ─────────────────────────────────────────────────────────────────────────────


class TestPriceHelpers:
    """Tests for vendor price extraction."""

    @pytest.mark.parametrize(
        "node,expected",
        [
            ({"venta": 1450}, Decimal("1450")),
            ({"value": "1450.5"}, Decimal("1450.5")),
            ({"price": 1450.5}, Decimal("1450.5")),
            ({"ask": 1230, "bid": 1210}, Decimal("1230")),
            (1450, Decimal("1450")),
            ({"bid": 1210}, None),
            ({"venta": 0}, None),
            (None, None),
        ],
    )
    def test_flat_price(self, node, expected):
        assert flat_price(node) == expected

    def test_nested_price_uses_first_matching_path(self):
        node = {"al30": {"24hs": {"price": 1191.0}, "ci": {"price": 1190.4}}}
        assert nested_price(node, [("al30", "ci"), ("al30", "24hs")]) == Decimal("1190.4")

    def test_nested_price_skips_missing_paths(self):
        node = {"gd30": {"ci": {"price": 1188}}}
        assert nested_price(node, [("al30", "ci"), ("gd30", "ci")]) == Decimal("1188")


# ─────────────────────────────────────────────────────────────────────────────
# CriptoYa
# ─────────────────────────────────────────────────────────────────────────────


class TestCriptoyaProvider:
    """Tests for CriptoYa normalization."""

    def test_nested_payload(self):
        quote = CriptoyaProvider().normalize(CRIPTOYA_PAYLOAD)

        assert quote.tarjeta == Decimal("1450.5")
        assert quote.cripto == Decimal("1305.2")  # USDT ask
        assert quote.blue == Decimal("1230")
        assert quote.mep == Decimal("1190.4")
        assert quote.ccl == Decimal("1220.7")
        assert quote.provider == "criptoya"

    def test_legacy_flat_payload(self):
        quote = CriptoyaProvider().normalize(
            {"tarjeta": {"venta": 1400}, "cripto": {"value": 1299}, "mep": 1180}
        )

        assert quote.tarjeta == Decimal("1400")
        assert quote.cripto == Decimal("1299")
        assert quote.mep == Decimal("1180")
        assert quote.blue is None

    def test_usdc_used_when_usdt_missing(self):
        payload = {"tarjeta": {"price": 1450}, "cripto": {"usdc": {"ask": 1301}}}
        assert CriptoyaProvider().normalize(payload).cripto == Decimal("1301")

    @pytest.mark.parametrize(
        "payload",
        [
            {"tarjeta": {"price": 1450}},
            {"cripto": {"usdt": {"ask": 1300}}},
            {"tarjeta": {"price": -1}, "cripto": {"usdt": {"ask": 1300}}},
            [],
        ],
    )
    def test_missing_required_fields(self, payload):
        assert isinstance(CriptoyaProvider().normalize(payload), ProviderSchemaError)

    @pytest.mark.asyncio
    async def test_fetch_over_http(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json=CRIPTOYA_PAYLOAD))
        async with httpx.AsyncClient(transport=transport) as client:
            provider = CriptoyaProvider(url="https://criptoya.com/api/dolar", client=client)
            quote = await provider.fetch_quote()

        assert quote.tarjeta == Decimal("1450.5")

    def test_optional_rates_omitted_from_wire_format(self):
        quote = CriptoyaProvider().normalize(
            {"tarjeta": {"price": 1450}, "cripto": {"usdt": {"ask": 1300}}}
        )
        data = quote.to_dict()

        assert data["tarjeta"] == 1450.0
        assert data["cripto"] == 1300.0
        assert "blue" not in data
        assert "mep" not in data
        assert data["provider"] == "criptoya"
        assert data["updatedAt"].endswith("Z")


# ─────────────────────────────────────────────────────────────────────────────
# DolarAPI
# ─────────────────────────────────────────────────────────────────────────────


class TestDolarApiProvider:
    """Tests for DolarAPI normalization."""

    def test_maps_casa_rows(self):
        quote = DolarApiProvider().normalize(DOLARAPI_PAYLOAD)

        assert quote.tarjeta == Decimal("1352")
        assert quote.cripto == Decimal("1302.5")
        assert quote.blue == Decimal("1230")
        assert quote.mep == Decimal("1190.4")
        assert quote.ccl == Decimal("1220.7")
        assert quote.provider == "dolarapi"

    def test_missing_cripto_row(self):
        rows = [row for row in DOLARAPI_PAYLOAD if row["casa"] != "cripto"]
        assert isinstance(DolarApiProvider().normalize(rows), ProviderSchemaError)

    def test_object_payload_is_rejected(self):
        assert isinstance(DolarApiProvider().normalize({"casa": "tarjeta"}), ProviderSchemaError)

    def test_malformed_rows_are_skipped(self):
        rows = ["junk", {"casa": "tarjeta", "venta": "n/a"}, *DOLARAPI_PAYLOAD]
        assert DolarApiProvider().normalize(rows).tarjeta == Decimal("1352")

    @pytest.mark.asyncio
    async def test_http_failure_returns_error_value(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(502))
        async with httpx.AsyncClient(transport=transport) as client:
            result = await DolarApiProvider(client=client).fetch()

        assert result.quote is None
        assert result.error.status == 502


def test_provider_registry_is_keyed_by_name():
    assert ARS_PROVIDERS == {"criptoya": CriptoyaProvider, "dolarapi": DolarApiProvider}
