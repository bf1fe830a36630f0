"""
Static model price table for cost estimates.

Prices are USD per one million tokens.
"""

from ticketfx.agents.tool_loop.state import TokenUsage
from ticketfx.logging_config import get_logger

logger = get_logger(__name__)

MODEL_PRICING: dict[str, dict[str, float]] = {
    "gpt-4o-mini": {"input": 0.15, "output": 0.60},
    "gpt-4o-mini-2024-07-18": {"input": 0.15, "output": 0.60},
    "gpt-4o": {"input": 2.50, "output": 10.00},
    "gpt-4o-2024-08-06": {"input": 2.50, "output": 10.00},
    "gpt-4.1": {"input": 2.00, "output": 8.00},
    "gpt-4.1-mini": {"input": 0.40, "output": 1.60},
    "gpt-4.1-nano": {"input": 0.10, "output": 0.40},
}


def estimate_cost(usage: TokenUsage | None, model: str | None) -> float | None:
    """
    Estimated USD cost of ``usage`` on ``model``, rounded to 4 decimals.

    Returns None when there is no usage or the model is not priced.
    """
    if usage is None or usage.total_tokens == 0 or not model:
        return None

    pricing = MODEL_PRICING.get(model)
    if pricing is None:
        logger.warning("model_pricing_missing", model=model)
        return None

    cost = (
        usage.prompt_tokens * pricing["input"]
        + usage.completion_tokens * pricing["output"]
    ) / 1_000_000
    return round(cost, 4)
