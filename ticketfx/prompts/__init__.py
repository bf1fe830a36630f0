"""
Centralized prompts for ticketfx.

All LLM prompts are defined in this package for easy maintenance.
"""

from ticketfx.prompts.receipt_scan import (
    CONFIRMED_CURRENCY_SYSTEM_PROMPT,
    FORCE_FINAL_INSTRUCTION,
    RECEIPT_SCAN_SYSTEM_PROMPT,
    RECEIPT_SCAN_USER_PROMPT,
    build_system_prompt,
    force_final_instruction,
)

__all__ = [
    "CONFIRMED_CURRENCY_SYSTEM_PROMPT",
    "FORCE_FINAL_INSTRUCTION",
    "RECEIPT_SCAN_SYSTEM_PROMPT",
    "RECEIPT_SCAN_USER_PROMPT",
    "build_system_prompt",
    "force_final_instruction",
]
