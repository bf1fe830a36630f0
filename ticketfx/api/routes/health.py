"""
Health check endpoints for monitoring and deployment.
"""

from datetime import datetime, timezone

from fastapi import APIRouter
from pydantic import BaseModel

from ticketfx import __version__
from ticketfx.api.deps import Aggregator, RateCache
from ticketfx.config import settings

router = APIRouter(prefix="/health", tags=["health"])


class HealthStatus(BaseModel):
    """Health check response model."""
    status: str
    timestamp: datetime
    version: str
    environment: str
    checks: dict[str, bool]


class ReadinessStatus(BaseModel):
    """Readiness check response model."""
    ready: bool
    checks: dict[str, dict]


@router.get("", response_model=HealthStatus)
@router.get("/", response_model=HealthStatus)
async def health_check() -> HealthStatus:
    """
    Basic health check endpoint.

    Returns basic application status without checking dependencies.
    """
    return HealthStatus(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        version=__version__,
        environment=settings.environment,
        checks={"app": True},
    )


@router.get("/ready", response_model=ReadinessStatus)
async def readiness_check(aggregator: Aggregator, cache: RateCache) -> ReadinessStatus:
    """
    Readiness check.

    Reports the configured provider chains and how many quotes are cached.
    Providers are not called; an outage is handled by failover at request time.
    """
    providers = aggregator.provider_names
    checks = {
        "forex": {"status": "ok", "providers": providers["forex"]},
        "ars": {"status": "ok", "providers": providers["ars"]},
        "cache": {"status": "ok", "entries": len(cache)},
    }
    return ReadinessStatus(ready=True, checks=checks)


@router.get("/live")
async def liveness_check() -> dict:
    """
    Simple liveness probe.

    Returns 200 if the application process is running.
    """
    return {"status": "alive", "timestamp": datetime.now(timezone.utc).isoformat()}
