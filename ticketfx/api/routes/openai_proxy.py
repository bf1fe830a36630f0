"""
OpenAI proxy endpoint with local tool execution.

The caller supplies its own API key in ``x-user-openai-key`` and a
chat-completions body; the tool loop runs the local tools the model asks for
and the final completion is returned with ``estimatedCost`` and ``model``.
"""

import json
from typing import Any

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from ticketfx.api.deps import OpenAIKey, Orchestrator
from ticketfx.errors import UpstreamModelError, ValidationError
from ticketfx.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["openai"])

MISSING_KEY_ERROR = "OpenAI API key is required"


def missing_key_response() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"error": MISSING_KEY_ERROR},
    )


def upstream_error_response(error: UpstreamModelError) -> JSONResponse:
    """Pass the upstream status and body through when there is one."""
    content: Any = error.body if isinstance(error.body, dict) else {"error": str(error)}
    return JSONResponse(status_code=error.status_code, content=content)


async def read_json_body(request: Request) -> Any:
    """
    Raises:
        ValidationError: If the body is not valid JSON
    """
    try:
        return await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ValidationError("Request body must be valid JSON")


@router.post("/openai")
async def openai_proxy(request: Request, api_key: OpenAIKey, orchestrator: Orchestrator):
    """Forward a chat-completions request, executing tool calls locally."""
    if not api_key:
        return missing_key_response()

    try:
        body = await read_json_body(request)
        result = await orchestrator.run(api_key, body)
    except ValidationError as e:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": str(e)})
    except UpstreamModelError as e:
        logger.warning("openai_proxy_upstream_failed", status_code=e.status_code, error=str(e))
        return upstream_error_response(e)

    return result.to_dict()
