"""Currency detection result."""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class DetectionResult:
    """Detected ISO 4217 code, confidence in [0, 1] and the cues that fired."""

    code: str
    confidence: float
    cues: list[str] = field(default_factory=list)

    def needs_confirmation(self, threshold: float) -> bool:
        """True when the detection is too weak to act on without the user."""
        return self.confidence < threshold

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "confidence": self.confidence,
            "cues": list(self.cues),
        }
