"""
Receipt Scan - reads a receipt image and converts its total.

Usage:
    from ticketfx.agents.receipt_scan import ReceiptScanner

    scanner = ReceiptScanner(orchestrator)
    result = await scanner.scan(api_key, image_base64)
"""

from ticketfx.agents.receipt_scan.agent import (
    ReceiptScanner,
    apply_guardrails,
    build_scan_request,
    parse_analysis,
)

__all__ = [
    "ReceiptScanner",
    "apply_guardrails",
    "build_scan_request",
    "parse_analysis",
]
