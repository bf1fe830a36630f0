"""
Tool loop - bounded model <-> tools orchestration.

Usage:
    from ticketfx.agents.tool_loop import ToolOrchestrator

    orchestrator = ToolOrchestrator(registry)
    result = await orchestrator.run(api_key, request_body)
"""

from ticketfx.agents.tool_loop.agent import (
    OrchestrationResult,
    ToolOrchestrator,
    default_client_factory,
)
from ticketfx.agents.tool_loop.pricing import MODEL_PRICING, estimate_cost
from ticketfx.agents.tool_loop.state import LoopRun, LoopState, TokenUsage

__all__ = [
    # Main entry points
    "ToolOrchestrator",
    "OrchestrationResult",
    "default_client_factory",
    # State
    "LoopRun",
    "LoopState",
    "TokenUsage",
    # Pricing
    "MODEL_PRICING",
    "estimate_cost",
]
