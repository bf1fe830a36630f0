"""
Tools package.

Local functions the language model can call during a receipt scan:
- detect_currency, get_forex_rates, get_ars_rates, convert_currency,
  format_currency
"""

from ticketfx.tools.definitions import (
    TICKET_ANALYSIS_RESPONSE_FORMAT,
    TICKET_ANALYSIS_SCHEMA,
    TOOL_DEFINITIONS,
)
from ticketfx.tools.formatting import format_currency
from ticketfx.tools.registry import ToolCall, ToolName, ToolRegistry, ToolResult

__all__ = [
    "TICKET_ANALYSIS_RESPONSE_FORMAT",
    "TICKET_ANALYSIS_SCHEMA",
    "TOOL_DEFINITIONS",
    "ToolCall",
    "ToolName",
    "ToolRegistry",
    "ToolResult",
    "format_currency",
]
