"""
ARS rate adapters.

The two vendors publish materially different shapes:

CriptoYa (``/api/dolar``), one object per regime, where each regime is either
flat or nested per instrument:
    {"tarjeta": {"price": 1450.5}, "blue": {"ask": 1230, "bid": 1210},
     "cripto": {"usdt": {"ask": 1305.2, "bid": 1290.1}},
     "mep": {"al30": {"ci": {"price": 1190.4}}}}
Older deployments answer ``{"tarjeta": {"venta": ...}}`` or
``{"value": ...}`` instead.

DolarAPI (``/v1/dolares``), one flat row per regime:
    [{"casa": "tarjeta", "venta": 1450.5, "fechaActualizacion": "..."}, ...]

"cripto" therefore means the USDT ask on CriptoYa and the vendor's own
``cripto`` row on DolarAPI; each mapping is kept as the vendor defines it.
"""

from collections.abc import Mapping, Sequence
from decimal import Decimal
from typing import Any

import httpx

from ticketfx.config import settings
from ticketfx.errors import ProviderSchemaError
from ticketfx.providers.base import ProviderResult, RateProvider
from ticketfx.schemas.quotes import ArsQuote, positive_decimal

# Keys that may carry the selling price of a flat regime, in preference order
PRICE_KEYS = ("venta", "value", "price", "ask")

# Instrument paths tried for nested MEP/CCL regimes
BOND_PATHS = (
    ("al30", "ci"),
    ("al30", "24hs"),
    ("gd30", "ci"),
    ("gd30", "24hs"),
)

# Stablecoins tried for the nested cripto regime
STABLECOIN_PATHS = (("usdt",), ("usdc",))


def flat_price(node: Any) -> Decimal | None:
    """Price of a regime given as a bare number or a ``{venta|value|price|ask}`` object."""
    if isinstance(node, Mapping):
        for key in PRICE_KEYS:
            price = positive_decimal(node.get(key))
            if price is not None:
                return price
        return None
    return positive_decimal(node)


def nested_price(node: Any, paths: Sequence[tuple[str, ...]]) -> Decimal | None:
    """First price found by walking ``paths`` into ``node``."""
    for path in paths:
        current = node
        for step in path:
            if not isinstance(current, Mapping):
                current = None
                break
            current = current.get(step)
        price = flat_price(current) if current is not None else None
        if price is not None:
            return price
    return None


class ArsProvider(RateProvider[ArsQuote]):
    """Adapter returning tarjeta/cripto (and optionally blue/MEP/CCL) rates."""

    default_url: str = ""

    def __init__(
        self,
        url: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ):
        super().__init__(client=client, timeout=timeout)
        self.url = url or self.default_url

    async def fetch(self) -> ProviderResult[ArsQuote]:
        return await self._fetch(self.url, self.normalize)

    async def fetch_quote(self) -> ArsQuote | None:
        return (await self.fetch()).quote

    def normalize(self, payload: Any) -> ArsQuote | ProviderSchemaError:
        raise NotImplementedError


class CriptoyaProvider(ArsProvider):
    name = "criptoya"
    default_url = settings.criptoya_url

    def normalize(self, payload: Any) -> ArsQuote | ProviderSchemaError:
        if not isinstance(payload, Mapping):
            return self.schema_error("Expected a JSON object")

        tarjeta = flat_price(payload.get("tarjeta"))
        cripto_node = payload.get("cripto")
        cripto = nested_price(cripto_node, STABLECOIN_PATHS) or flat_price(cripto_node)

        if tarjeta is None or cripto is None:
            return self.schema_error("Missing required fields (tarjeta, cripto)")

        return ArsQuote(
            tarjeta=tarjeta,
            cripto=cripto,
            blue=flat_price(payload.get("blue")),
            mep=self._bond_rate(payload.get("mep")),
            ccl=self._bond_rate(payload.get("ccl")),
            provider=self.name,
        )

    @staticmethod
    def _bond_rate(node: Any) -> Decimal | None:
        return flat_price(node) or nested_price(node, BOND_PATHS)


class DolarApiProvider(ArsProvider):
    name = "dolarapi"
    default_url = settings.dolarapi_url

    # DolarAPI "casa" → canonical field
    CASA_FIELDS = {
        "tarjeta": "tarjeta",
        "cripto": "cripto",
        "blue": "blue",
        "bolsa": "mep",
        "contadoconliqui": "ccl",
    }

    def normalize(self, payload: Any) -> ArsQuote | ProviderSchemaError:
        if not isinstance(payload, list):
            return self.schema_error("Expected a JSON array")

        values: dict[str, Decimal] = {}
        for row in payload:
            if not isinstance(row, Mapping):
                continue
            field_name = self.CASA_FIELDS.get(str(row.get("casa", "")).lower())
            venta = positive_decimal(row.get("venta"))
            if field_name and venta is not None:
                values[field_name] = venta

        if "tarjeta" not in values or "cripto" not in values:
            return self.schema_error("Missing required fields (tarjeta, cripto)")

        return ArsQuote(provider=self.name, **values)


ARS_PROVIDERS: dict[str, type[ArsProvider]] = {
    CriptoyaProvider.name: CriptoyaProvider,
    DolarApiProvider.name: DolarApiProvider,
}
