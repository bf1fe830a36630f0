"""
FastAPI application entry point.

This is the main FastAPI application that handles:
- Forex, ARS and conversion endpoints
- The OpenAI proxy with local tool execution
- Receipt scanning
- Health checks
"""

from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ticketfx import __version__
from ticketfx.agents.receipt_scan import ReceiptScanner
from ticketfx.agents.tool_loop import ToolOrchestrator
from ticketfx.api.routes import health_router, openai_router, rates_router, scan_router
from ticketfx.config import settings
from ticketfx.logging_config import configure_logging, get_logger
from ticketfx.services.conversion import ConversionService
from ticketfx.services.rate_aggregator import RateAggregator, build_rate_cache
from ticketfx.tools import ToolRegistry

configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Owns the process-wide rate cache and the shared HTTP client.
    """
    # Startup
    http_client = httpx.AsyncClient()
    cache = build_rate_cache(settings)
    aggregator = RateAggregator.from_settings(cache, client=http_client)
    conversion = ConversionService(aggregator)
    orchestrator = ToolOrchestrator(ToolRegistry(conversion, aggregator))

    app.state.rate_cache = cache
    app.state.aggregator = aggregator
    app.state.conversion = conversion
    app.state.orchestrator = orchestrator
    app.state.scanner = ReceiptScanner(orchestrator)

    logger.info(
        "application_starting",
        environment=settings.environment,
        ars_provider=settings.ars_provider,
        exchange_api_base=settings.exchange_api_base,
        max_tool_iterations=settings.max_tool_iterations,
    )

    yield

    # Shutdown
    await http_client.aclose()
    logger.info("application_shutting_down")


# Create FastAPI application
app = FastAPI(
    title="TicketFX",
    description="PEN/USD/ARS rates, conversion and receipt scanning",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs" if settings.environment != "production" else None,
    redoc_url="/redoc" if settings.environment != "production" else None,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.environment == "development" else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ─────────────────────────────────────────────────────────────────────────────
# Include Routers
# ─────────────────────────────────────────────────────────────────────────────

app.include_router(rates_router)
app.include_router(openai_router)
app.include_router(scan_router)
app.include_router(health_router)


# ─────────────────────────────────────────────────────────────────────────────
# Root Endpoint
# ─────────────────────────────────────────────────────────────────────────────

@app.get("/")
async def root():
    """Root endpoint with basic info."""
    return {
        "name": "TicketFX",
        "version": __version__,
        "status": "running",
        "docs": "/docs" if settings.environment != "production" else None,
        "health": "/health",
    }


# ─────────────────────────────────────────────────────────────────────────────
# Run with Uvicorn (for development)
# ─────────────────────────────────────────────────────────────────────────────

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "ticketfx.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.environment == "development",
        log_level="debug" if settings.environment == "development" else "info",
    )
