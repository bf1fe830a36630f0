"""
Rate endpoints.

Thin layer over the aggregator and the conversion pipeline:
- GET /api/forex: forex rates from a base currency
- GET /api/ars: ARS card and crypto dollar rates
- GET /api/convert: amount -> USD -> ARS
"""

from typing import Annotated

from fastapi import APIRouter, Query, status
from fastapi.responses import JSONResponse

from ticketfx.api.deps import Aggregator, Conversion
from ticketfx.errors import ProviderExhaustionError, ValidationError
from ticketfx.logging_config import get_logger
from ticketfx.schemas.conversion import ConversionResult
from ticketfx.services.conversion import parse_amount
from ticketfx.services.rate_aggregator import normalize_currency_code

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["rates"])


def error_response(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@router.get("/forex")
async def get_forex(
    aggregator: Aggregator,
    base: Annotated[str, Query()] = "USD",
    symbols: Annotated[str, Query(description="Comma-separated currency codes")] = "",
):
    """Rates from ``base`` into each of ``symbols``."""
    symbol_list = [s for s in symbols.split(",") if s.strip()]
    try:
        quote = await aggregator.get_forex_quote(base, symbol_list)
    except ValidationError as e:
        return error_response(str(e), status.HTTP_400_BAD_REQUEST)
    except ProviderExhaustionError as e:
        logger.error("forex_endpoint_unavailable", base=base, symbols=symbols, error=str(e))
        return error_response(str(e), status.HTTP_503_SERVICE_UNAVAILABLE)
    return quote.to_dict()


@router.get("/ars")
async def get_ars(aggregator: Aggregator):
    """Current ARS tarjeta and cripto rates (plus blue, MEP and CCL when known)."""
    try:
        quote = await aggregator.get_ars_quote()
    except ProviderExhaustionError as e:
        logger.error("ars_endpoint_unavailable", error=str(e))
        return error_response(str(e), status.HTTP_503_SERVICE_UNAVAILABLE)
    return quote.to_dict()


@router.get("/convert")
async def convert(
    conversion: Conversion,
    amount: Annotated[str, Query()],
    from_currency: Annotated[str, Query(alias="from")],
):
    """
    Convert ``amount`` of ``from`` into USD, ARS tarjeta and ARS cripto.

    Answers with the convert_currency tool's envelope: 400 for invalid
    input, 503 when no provider could quote.
    """
    try:
        parse_amount(amount)
        normalize_currency_code(from_currency)
    except ValidationError as e:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=ConversionResult.failure(str(e)).to_dict(),
        )

    result = await conversion.convert(amount, from_currency)
    if not result.ok:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=result.to_dict()
        )
    return result.to_dict()
