"""
State for the tool-orchestration loop.

    AWAITING_MODEL ──(tool calls, turn < cap)──▶ EXECUTING_TOOLS ──▶ AWAITING_MODEL
          │
          ├──(no tool calls)──▶ TERMINAL
          └──(tool calls, turn == cap)──▶ FORCING_FINAL ──▶ TERMINAL
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class LoopState(str, Enum):
    AWAITING_MODEL = "awaiting_model"
    EXECUTING_TOOLS = "executing_tools"
    FORCING_FINAL = "forcing_final"
    TERMINAL = "terminal"


@dataclass
class TokenUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0

    def add(self, usage: Any) -> None:
        """Accumulate an OpenAI ``CompletionUsage`` (None is ignored)."""
        if usage is None:
            return
        self.prompt_tokens += getattr(usage, "prompt_tokens", 0) or 0
        self.completion_tokens += getattr(usage, "completion_tokens", 0) or 0

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


@dataclass
class LoopRun:
    """
    Mutable bookkeeping for one request.

    ``transcript`` is owned by this run and discarded with it.
    """

    transcript: list[dict[str, Any]]
    state: LoopState = LoopState.AWAITING_MODEL
    turn: int = 0
    round_trips: int = 0
    tool_calls_executed: int = 0
    forced_final: bool = False
    usage: TokenUsage = field(default_factory=TokenUsage)
