"""
Rule-based currency detection for receipt text.

Rules run in a fixed order and their cues accumulate. Peruvian tax and
phone cues raise the confidence of an existing PEN claim, and a euro sign
never overrides an ``S/`` symbol.

Whether a result needs user confirmation is the caller's decision
(see ``DetectionResult.needs_confirmation``).
"""

from ticketfx.logging_config import get_logger
from ticketfx.schemas.detection import DetectionResult

logger = get_logger(__name__)

DEFAULT_CODE = "USD"
DEFAULT_CONFIDENCE = 0.5

CUE_SOL_SYMBOL = "Symbol S/ detected"
CUE_PERU_TAX_TERMS = "Peruvian tax terms (IGV/RUC) detected"
CUE_PERU_PHONE = "Peruvian phone code (+51) detected"
CUE_EURO_SYMBOL = "Symbol € detected"
CUE_EURO_OVERRIDDEN = "Symbol € detected but S/ takes precedence"


def _boost(confidence: float, amount: float) -> float:
    return round(min(confidence + amount, 1.0), 4)


def detect_currency(text: str | None) -> DetectionResult:
    """
    Score ``text`` against currency cues.

    Examples:
        >>> detect_currency("Total S/ 45.00 IGV incluido").code
        'PEN'
        >>> detect_currency("Total €45.00").confidence
        0.9
    """
    text = text or ""
    code = DEFAULT_CODE
    confidence = DEFAULT_CONFIDENCE
    cues: list[str] = []

    # "S/." contains "S/", one check covers both spellings
    if "S/" in text:
        code = "PEN"
        confidence = 0.9
        cues.append(CUE_SOL_SYMBOL)

    if "IGV" in text or "RUC" in text:
        if code == "PEN":
            confidence = _boost(confidence, 0.2)
        else:
            code = "PEN"
            confidence = 0.7
        cues.append(CUE_PERU_TAX_TERMS)

    if "+51" in text:
        if code == "PEN":
            confidence = _boost(confidence, 0.1)
        else:
            code = "PEN"
            confidence = 0.6
        cues.append(CUE_PERU_PHONE)

    if "€" in text:
        if CUE_SOL_SYMBOL not in cues:
            code = "EUR"
            confidence = 0.9
            cues.append(CUE_EURO_SYMBOL)
        else:
            cues.append(CUE_EURO_OVERRIDDEN)

    result = DetectionResult(code=code, confidence=confidence, cues=cues)
    logger.debug(
        "currency_detected",
        code=result.code,
        confidence=result.confidence,
        cues=len(result.cues),
        text_length=len(text),
    )
    return result
