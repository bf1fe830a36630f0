"""
OpenAI function-tool definitions and the ticket-analysis response schema.

These are sent with every receipt-scan request; the names must match
``ticketfx.tools.registry.ToolName``.
"""

from typing import Any

DETECT_CURRENCY_TOOL: dict[str, Any] = {
    "type": "function",
    "function": {
        "name": "detect_currency",
        "description": "Detect the receipt currency from textual cues (symbols, tax terms, phone codes).",
        "parameters": {
            "type": "object",
            "properties": {
                "text": {
                    "type": "string",
                    "description": "Full text read from the receipt",
                },
            },
            "required": ["text"],
        },
    },
}

GET_FOREX_RATES_TOOL: dict[str, Any] = {
    "type": "function",
    "function": {
        "name": "get_forex_rates",
        "description": "Get current forex rates from a base currency.",
        "parameters": {
            "type": "object",
            "properties": {
                "base": {"type": "string", "description": "Base currency (e.g. PEN)"},
                "symbols": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": 'Target currencies (e.g. ["USD"])',
                },
            },
            "required": ["base", "symbols"],
        },
    },
}

GET_ARS_RATES_TOOL: dict[str, Any] = {
    "type": "function",
    "function": {
        "name": "get_ars_rates",
        "description": "Get current ARS per USD rates (tarjeta, cripto, blue, MEP, CCL).",
        "parameters": {"type": "object", "properties": {}, "required": []},
    },
}

CONVERT_CURRENCY_TOOL: dict[str, Any] = {
    "type": "function",
    "function": {
        "name": "convert_currency",
        "description": (
            "Convert an amount through USD into ARS tarjeta and ARS cripto "
            "(source currency -> USD -> ARS). Use this tool for every conversion."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "amount": {"type": "number", "description": "Amount to convert"},
                "fromCurrency": {
                    "type": "string",
                    "description": "Source currency (e.g. PEN, USD, EUR)",
                },
            },
            "required": ["amount", "fromCurrency"],
        },
    },
}

FORMAT_CURRENCY_TOOL: dict[str, Any] = {
    "type": "function",
    "function": {
        "name": "format_currency",
        "description": "Format a monetary value for display.",
        "parameters": {
            "type": "object",
            "properties": {
                "value": {"type": "number"},
                "currency": {"type": "string"},
            },
            "required": ["value", "currency"],
        },
    },
}

TOOL_DEFINITIONS: list[dict[str, Any]] = [
    DETECT_CURRENCY_TOOL,
    GET_FOREX_RATES_TOOL,
    GET_ARS_RATES_TOOL,
    CONVERT_CURRENCY_TOOL,
    FORMAT_CURRENCY_TOOL,
]

TICKET_ANALYSIS_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "currency_detected": {
            "type": "string",
            "description": "Currency detected on the receipt, ISO 4217",
        },
        "confidence": {
            "type": "number",
            "description": "Confidence of the detection (0-1)",
        },
        "cues": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Cues that supported the detection",
        },
        "needs_confirmation": {
            "type": "boolean",
            "description": "Whether the user must confirm the currency",
        },
        "currency": {"type": "string", "description": "Receipt currency, ISO 4217"},
        "items": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "quantity": {"type": "number"},
                    "unit_price": {"type": "number"},
                    "subtotal": {"type": "number"},
                },
                "required": ["name", "quantity", "unit_price", "subtotal"],
            },
        },
        "total": {"type": "number"},
        "converted": {
            "type": "object",
            "properties": {
                "USD": {"type": "number"},
                "ARS_tarjeta": {"type": "number"},
                "ARS_cripto": {"type": "number"},
            },
            "required": ["USD", "ARS_tarjeta", "ARS_cripto"],
        },
        "providers": {
            "type": "object",
            "properties": {
                "forex": {"type": "string"},
                "ars": {"type": "string"},
                "updatedAt": {"type": "string", "description": "Rate timestamp"},
            },
        },
    },
    "required": [
        "currency_detected",
        "confidence",
        "cues",
        "needs_confirmation",
        "currency",
        "items",
        "total",
        "converted",
    ],
}

TICKET_ANALYSIS_RESPONSE_FORMAT: dict[str, Any] = {
    "type": "json_schema",
    "json_schema": {"name": "ticket_analysis", "schema": TICKET_ANALYSIS_SCHEMA},
}
