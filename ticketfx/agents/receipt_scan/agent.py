"""
Receipt Scanner - image in, converted ticket analysis out.

Builds the ticket-analysis request, runs it through the tool loop, validates
the model's JSON answer and applies the confirmation guardrails:

- confidence below the threshold always sets ``needs_confirmation``
- when confirmation is needed and the answer mentions ``S/``, PEN is
  suggested as the detected currency
- a currency confirmed by the user fixes the currency, sets confidence to
  1.0 with a single confirmation cue and clears ``needs_confirmation``
"""

import json
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from ticketfx.agents.tool_loop import OrchestrationResult, ToolOrchestrator
from ticketfx.config import settings
from ticketfx.errors import ScanParseError, ValidationError
from ticketfx.logging_config import get_logger
from ticketfx.prompts.receipt_scan import RECEIPT_SCAN_USER_PROMPT, build_system_prompt
from ticketfx.schemas.scan import ScanResult, TicketAnalysis
from ticketfx.services.rate_aggregator import normalize_currency_code
from ticketfx.tools.definitions import TICKET_ANALYSIS_RESPONSE_FORMAT, TOOL_DEFINITIONS

logger = get_logger(__name__)

PEN_SYMBOL = "S/"


def image_url(image: str) -> str:
    """Accept an URL, a data URL or bare base64 (assumed JPEG)."""
    image = image.strip()
    if image.startswith(("data:", "http://", "https://")):
        return image
    return f"data:image/jpeg;base64,{image}"


def build_scan_request(
    image: str,
    model: str,
    threshold: float,
    confirmed_currency: str | None = None,
) -> dict[str, Any]:
    """Chat-completions body for one receipt scan."""
    return {
        "model": model,
        "messages": [
            {
                "role": "system",
                "content": build_system_prompt(threshold, confirmed_currency),
            },
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": RECEIPT_SCAN_USER_PROMPT},
                    {"type": "image_url", "image_url": {"url": image_url(image)}},
                ],
            },
        ],
        "tools": TOOL_DEFINITIONS,
        "tool_choice": "auto",
        "response_format": TICKET_ANALYSIS_RESPONSE_FORMAT,
    }


def parse_analysis(content: str | None) -> TicketAnalysis:
    """
    Raises:
        ScanParseError: If content is not valid ticket-analysis JSON
    """
    if not content or not content.strip():
        raise ScanParseError("Model returned an empty answer")

    text = content.strip()
    if text.startswith("```"):
        text = text.strip("`")
        if text.lower().startswith("json"):
            text = text[4:]

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ScanParseError(f"Model answer is not valid JSON: {e}")

    try:
        return TicketAnalysis.model_validate(data)
    except PydanticValidationError as e:
        raise ScanParseError(f"Model answer does not match ticket_analysis: {e}")


def apply_guardrails(
    analysis: TicketAnalysis,
    raw_content: str,
    threshold: float,
    confirmed_currency: str | None = None,
) -> TicketAnalysis:
    """Return a copy of ``analysis`` with the confirmation rules enforced."""
    if confirmed_currency:
        return analysis.model_copy(update={
            "currency_detected": confirmed_currency,
            "currency": confirmed_currency,
            "confidence": 1.0,
            "cues": [f"User confirmed {confirmed_currency}"],
            "needs_confirmation": False,
        })

    update: dict[str, Any] = {}
    needs_confirmation = analysis.needs_confirmation or analysis.confidence < threshold
    if needs_confirmation:
        update["needs_confirmation"] = True
        if PEN_SYMBOL in raw_content:
            update["currency_detected"] = "PEN"
    return analysis.model_copy(update=update) if update else analysis


class ReceiptScanner:
    """Scans receipt images through the tool loop."""

    def __init__(
        self,
        orchestrator: ToolOrchestrator,
        threshold: float | None = None,
        default_model: str | None = None,
    ):
        self.orchestrator = orchestrator
        self.threshold = settings.confirmation_threshold if threshold is None else threshold
        self.default_model = default_model or settings.default_scan_model

    async def scan(
        self,
        api_key: str,
        image: str,
        model: str | None = None,
        confirmed_currency: str | None = None,
    ) -> ScanResult:
        """
        Analyze a receipt image and convert its total to USD and ARS.

        Args:
            api_key: Caller's OpenAI API key
            image: Image URL, data URL or bare base64
            model: Model name (defaults to the configured scan model)
            confirmed_currency: Currency confirmed by the user on a re-run

        Raises:
            ValidationError: If the image or confirmed currency is invalid
            ScanParseError: If the model's answer cannot be parsed
            UpstreamModelError: If the model endpoint fails
        """
        if not isinstance(image, str) or not image.strip():
            raise ValidationError("image is required")
        if confirmed_currency is not None:
            confirmed_currency = normalize_currency_code(confirmed_currency)
        model = model or self.default_model

        request = build_scan_request(image, model, self.threshold, confirmed_currency)
        outcome: OrchestrationResult = await self.orchestrator.run(api_key, request)

        raw_content = outcome.content or ""
        try:
            analysis = parse_analysis(raw_content)
        except ScanParseError:
            logger.error(
                "receipt_scan_parse_failed",
                model=model,
                forced_final=outcome.forced_final,
                content_preview=raw_content[:200],
            )
            raise

        analysis = apply_guardrails(analysis, raw_content, self.threshold, confirmed_currency)

        logger.info(
            "receipt_scan_completed",
            model=model,
            currency_detected=analysis.currency_detected,
            confidence=analysis.confidence,
            needs_confirmation=analysis.needs_confirmation,
            confirmed=confirmed_currency is not None,
            items=len(analysis.items),
            estimated_cost=outcome.estimated_cost,
        )

        return ScanResult(
            **analysis.model_dump(),
            estimated_cost=outcome.estimated_cost,
            model=outcome.model,
        )
