"""
Tool dispatch for the orchestration loop.

The set of tools is closed: ``ToolName`` enumerates it and ``ToolRegistry``
maps each name to a handler. Names outside the enum are rejected with
``UnknownToolError``. Every failure, including an unknown name, becomes an
``{"error": ...}`` tool result for the model to react to; ``execute`` never
raises.
"""

import json
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ticketfx.errors import TicketFXError, ToolExecutionError, UnknownToolError
from ticketfx.logging_config import get_logger
from ticketfx.services.conversion import ConversionService
from ticketfx.services.currency_detection import detect_currency
from ticketfx.services.rate_aggregator import RateAggregator
from ticketfx.tools.formatting import format_currency

logger = get_logger(__name__)


class ToolName(str, Enum):
    DETECT_CURRENCY = "detect_currency"
    GET_FOREX_RATES = "get_forex_rates"
    GET_ARS_RATES = "get_ars_rates"
    CONVERT_CURRENCY = "convert_currency"
    FORMAT_CURRENCY = "format_currency"


ToolHandler = Callable[[dict[str, Any]], Awaitable[Any]]


@dataclass(frozen=True)
class ToolCall:
    """A tool invocation requested by the model."""

    id: str
    name: str
    arguments: str | dict[str, Any]

    @classmethod
    def from_openai(cls, tool_call: Any) -> "ToolCall":
        """Build from an OpenAI ``ChatCompletionMessageToolCall``."""
        function = getattr(tool_call, "function", None)
        if function is None:
            # Non-function tool calls can only ever be unknown tools
            return cls(id=tool_call.id, name=str(getattr(tool_call, "type", "")), arguments="")
        return cls(id=tool_call.id, name=function.name, arguments=function.arguments)

    def to_openai(self) -> dict[str, Any]:
        """Echo form for the assistant message in the transcript."""
        arguments = self.arguments
        if isinstance(arguments, dict):
            arguments = json.dumps(arguments, ensure_ascii=False)
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": arguments},
        }

    def parsed_arguments(self) -> dict[str, Any]:
        """
        Raises:
            ToolExecutionError: If arguments are not a JSON object
        """
        if isinstance(self.arguments, dict):
            return self.arguments
        if not self.arguments or not self.arguments.strip():
            return {}
        try:
            parsed = json.loads(self.arguments)
        except json.JSONDecodeError as e:
            raise ToolExecutionError(self.name, f"Invalid tool arguments: {e}")
        if not isinstance(parsed, dict):
            raise ToolExecutionError(self.name, "Tool arguments must be a JSON object")
        return parsed


@dataclass(frozen=True)
class ToolResult:
    """A tool's JSON-serialized output, addressed to the originating call."""

    tool_call_id: str
    name: str
    content: str
    ok: bool = True

    def to_message(self) -> dict[str, Any]:
        return {
            "role": "tool",
            "tool_call_id": self.tool_call_id,
            "name": self.name,
            "content": self.content,
        }


class ToolRegistry:
    """
    Dispatch table from tool name to handler.

    Example:
        >>> registry = ToolRegistry(conversion_service, aggregator)
        >>> result = await registry.execute(
        ...     ToolCall(id="call_1", name="detect_currency", arguments='{"text": "S/ 10"}')
        ... )
        >>> result.content
        '{"code": "PEN", "confidence": 0.9, "cues": ["Symbol S/ detected"]}'
    """

    def __init__(self, conversion: ConversionService, aggregator: RateAggregator):
        self.conversion = conversion
        self.aggregator = aggregator
        self._handlers: dict[ToolName, ToolHandler] = {
            ToolName.DETECT_CURRENCY: self._detect_currency,
            ToolName.GET_FOREX_RATES: self._get_forex_rates,
            ToolName.GET_ARS_RATES: self._get_ars_rates,
            ToolName.CONVERT_CURRENCY: self._convert_currency,
            ToolName.FORMAT_CURRENCY: self._format_currency,
        }

    @property
    def names(self) -> list[str]:
        return [name.value for name in self._handlers]

    def resolve(self, name: str) -> ToolHandler:
        """
        Raises:
            UnknownToolError: If ``name`` is not a registered tool
        """
        try:
            return self._handlers[ToolName(name)]
        except (ValueError, KeyError):
            raise UnknownToolError(name)

    async def execute(self, call: ToolCall) -> ToolResult:
        """Run one tool call; failures are returned as ``{"error": ...}`` content."""
        ok = True
        try:
            handler = self.resolve(call.name)
            payload = await handler(call.parsed_arguments())
        except TicketFXError as e:
            ok = False
            payload = {"error": str(e)}
        except Exception as e:
            ok = False
            logger.error(
                "tool_call_crashed",
                tool=call.name,
                tool_call_id=call.id,
                error=str(e),
                exc_info=True,
            )
            payload = {"error": f"Tool execution failed: {e}"}

        logger.info("tool_call_executed", tool=call.name, tool_call_id=call.id, ok=ok)
        return ToolResult(
            tool_call_id=call.id,
            name=call.name,
            content=json.dumps(payload, ensure_ascii=False, default=str),
            ok=ok,
        )

    # ─────────────────────────────────────────────────────────────────────
    # Handlers
    # ─────────────────────────────────────────────────────────────────────

    async def _detect_currency(self, args: dict[str, Any]) -> dict[str, Any]:
        text = args.get("text") or ""
        if not isinstance(text, str):
            raise ToolExecutionError(ToolName.DETECT_CURRENCY.value, "text must be a string")
        return detect_currency(text).to_dict()

    async def _get_forex_rates(self, args: dict[str, Any]) -> dict[str, Any]:
        symbols = args.get("symbols") or []
        if isinstance(symbols, str):
            symbols = [s for s in symbols.split(",") if s.strip()]
        if not isinstance(symbols, list):
            raise ToolExecutionError(
                ToolName.GET_FOREX_RATES.value, "symbols must be a list of currency codes"
            )
        quote = await self.aggregator.get_forex_quote(args.get("base"), symbols)
        return quote.to_dict()

    async def _get_ars_rates(self, args: dict[str, Any]) -> dict[str, Any]:
        quote = await self.aggregator.get_ars_quote()
        return quote.to_dict()

    async def _convert_currency(self, args: dict[str, Any]) -> dict[str, Any]:
        from_currency = args.get("fromCurrency", args.get("from_currency"))
        result = await self.conversion.convert(args.get("amount"), from_currency)
        return result.to_dict()

    async def _format_currency(self, args: dict[str, Any]) -> str:
        return format_currency(args.get("value"), args.get("currency"))
