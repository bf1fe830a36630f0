"""
Receipt scan endpoint.

POST /api/scan with ``x-user-openai-key`` and ``{image, model?, confirmedCurrency?}``.
"""

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from ticketfx.api.deps import OpenAIKey, Scanner
from ticketfx.api.routes.openai_proxy import (
    missing_key_response,
    read_json_body,
    upstream_error_response,
)
from ticketfx.errors import UpstreamModelError, ValidationError
from ticketfx.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["scan"])


class ScanRequest(BaseModel):
    """Body of a receipt scan request."""

    model_config = ConfigDict(populate_by_name=True)

    image: str = Field(..., min_length=1)
    model: str | None = None
    confirmed_currency: str | None = Field(default=None, alias="confirmedCurrency")


@router.post("/scan")
async def scan_receipt(request: Request, api_key: OpenAIKey, scanner: Scanner):
    """Analyze a receipt image and convert its total to USD and ARS."""
    if not api_key:
        return missing_key_response()

    try:
        payload = ScanRequest.model_validate(await read_json_body(request))
        result = await scanner.scan(
            api_key,
            payload.image,
            model=payload.model,
            confirmed_currency=payload.confirmed_currency,
        )
    except PydanticValidationError as e:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": f"Invalid scan request: {e.errors()[0]['msg']}"},
        )
    except ValidationError as e:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": str(e)})
    except UpstreamModelError as e:
        logger.warning("receipt_scan_upstream_failed", status_code=e.status_code, error=str(e))
        return upstream_error_response(e)

    return result.to_dict()
