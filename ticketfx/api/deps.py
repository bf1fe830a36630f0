"""
FastAPI dependencies for dependency injection.

The rate cache, aggregator and services are created once by the application
lifespan and stored on ``app.state``; these getters hand them to routes.
Tests replace them through ``app.dependency_overrides``.
"""

from typing import Annotated

from fastapi import Depends, Header, Request

from ticketfx.agents.receipt_scan import ReceiptScanner
from ticketfx.agents.tool_loop import ToolOrchestrator
from ticketfx.services.conversion import ConversionService
from ticketfx.services.rate_aggregator import RateAggregator
from ticketfx.storage import TTLCache

OPENAI_KEY_HEADER = "x-user-openai-key"


# ─────────────────────────────────────────────────────────────────────────────
# Rates
# ─────────────────────────────────────────────────────────────────────────────

def get_rate_cache(request: Request) -> TTLCache:
    return request.app.state.rate_cache


def get_aggregator(request: Request) -> RateAggregator:
    return request.app.state.aggregator


def get_conversion_service(request: Request) -> ConversionService:
    return request.app.state.conversion


RateCache = Annotated[TTLCache, Depends(get_rate_cache)]
Aggregator = Annotated[RateAggregator, Depends(get_aggregator)]
Conversion = Annotated[ConversionService, Depends(get_conversion_service)]


# ─────────────────────────────────────────────────────────────────────────────
# Language Model
# ─────────────────────────────────────────────────────────────────────────────

def get_orchestrator(request: Request) -> ToolOrchestrator:
    return request.app.state.orchestrator


def get_receipt_scanner(request: Request) -> ReceiptScanner:
    return request.app.state.scanner


def get_openai_key(
    x_user_openai_key: Annotated[str | None, Header(alias=OPENAI_KEY_HEADER)] = None,
) -> str | None:
    """
    Caller-supplied OpenAI key.

    Missing keys are reported by the routes themselves so the 401 body keeps
    the ``{"error": ...}`` shape.
    """
    if x_user_openai_key is None:
        return None
    return x_user_openai_key.strip() or None


Orchestrator = Annotated[ToolOrchestrator, Depends(get_orchestrator)]
Scanner = Annotated[ReceiptScanner, Depends(get_receipt_scanner)]
OpenAIKey = Annotated[str | None, Depends(get_openai_key)]
