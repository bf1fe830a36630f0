"""
API route modules.
"""

from ticketfx.api.routes.health import router as health_router
from ticketfx.api.routes.openai_proxy import router as openai_router
from ticketfx.api.routes.rates import router as rates_router
from ticketfx.api.routes.scan import router as scan_router

__all__ = ["health_router", "openai_router", "rates_router", "scan_router"]
