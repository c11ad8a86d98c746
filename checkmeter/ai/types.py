from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Mapping, Protocol

from .confidence import MIN_CONFIDENCE, normalize_confidence

STANDARD_TIER = "standard"
DETAILED_TIER = "detailed"
TIERS = (STANDARD_TIER, DETAILED_TIER)

POSITIVE_MATCH = "PositiveMatch"
NEGATIVE_MATCH = "NegativeMatch"
UNKNOWN = "Unknown"


class MeterClassifier(Protocol):
    def classify(
        self,
        image_bytes: bytes,
        *,
        tier: str = STANDARD_TIER,
        mime_type: str = "image/jpeg",
    ) -> dict[str, Any]: ...


class VisionClient(Protocol):
    def complete_json(
        self,
        *,
        system_prompt: str,
        image_bytes: bytes,
        model: str,
        mime_type: str = "image/jpeg",
        user_text: str | None = None,
        max_tokens: int = 800,
    ) -> dict[str, Any]: ...


@dataclass(frozen=True)
class ClassificationRequest:
    image_bytes: bytes
    mime_type: str = "image/jpeg"
    was_enhanced: bool = False
    tier: str = STANDARD_TIER

    @property
    def detailed(self) -> bool:
        return self.tier == DETAILED_TIER


@dataclass(frozen=True)
class Candidate:
    """Validated fields from an untrusted model reply."""

    label: str
    confidence: int = MIN_CONFIDENCE
    explanation: str | None = None
    reasoning: str | None = None
    meter_type: str | None = None
    additional_info: str | None = None
    detailed_report: str | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any] | None) -> "Candidate":
        if not isinstance(payload, Mapping):
            return cls(label=UNKNOWN)
        raw_label = _first_present(payload, "result", "classification", "label")
        raw_confidence = _first_present(
            payload, "certainty", "confidence", "confidence_score"
        )
        return cls(
            label=normalize_label(raw_label),
            confidence=normalize_confidence(raw_confidence),
            explanation=_clean_text(payload.get("explanation")),
            reasoning=_clean_text(payload.get("reasoning")),
            meter_type=_clean_text(payload.get("meterType", payload.get("meter_type"))),
            additional_info=_clean_text(
                payload.get("additionalInfo", payload.get("additional_info"))
            ),
            detailed_report=_clean_text(
                payload.get("detailedReport", payload.get("detailed_report"))
            ),
        )

    @property
    def text(self) -> str:
        return " ".join(part for part in (self.explanation, self.reasoning) if part)


@dataclass
class NormalizedResult:
    classification: str
    confidence: int
    explanation: str | None = None
    reasoning: str | None = None
    meter_type: str | None = None
    additional_info: str | None = None
    detailed_report: str | None = None
    needs_better_image: bool = False
    image_quality_issue: bool = False
    image_quality_feedback: str | None = None
    tier: str = STANDARD_TIER
    was_enhanced: bool = False
    model_used: str | None = None
    original_confidence: int | None = None
    enhanced_confidence: int | None = None
    suppressed: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def to_candidate(self) -> Candidate:
        return Candidate(
            label=self.classification,
            confidence=self.confidence,
            explanation=self.explanation,
            reasoning=self.reasoning,
            meter_type=self.meter_type,
            additional_info=self.additional_info,
            detailed_report=self.detailed_report,
        )


def normalize_label(value: Any) -> str:
    if not isinstance(value, str):
        return UNKNOWN
    label = value.strip().lower().replace("_", " ").replace("-", " ")
    if not label:
        return UNKNOWN
    compact = label.replace(" ", "")
    if compact in {"positivematch", "positive"}:
        return POSITIVE_MATCH
    if compact in {"negativematch", "negative"}:
        return NEGATIVE_MATCH
    if "rts" in label or "teleswitch" in label:
        words = set(label.split())
        if words & {"not", "non", "no"}:
            return NEGATIVE_MATCH
        return POSITIVE_MATCH
    return UNKNOWN


def _first_present(payload: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = payload.get(key)
        if value is not None:
            return value
    return None


def _clean_text(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    return value.strip() or None


__all__ = [
    "Candidate",
    "ClassificationRequest",
    "DETAILED_TIER",
    "MeterClassifier",
    "NEGATIVE_MATCH",
    "NormalizedResult",
    "POSITIVE_MATCH",
    "STANDARD_TIER",
    "TIERS",
    "UNKNOWN",
    "VisionClient",
    "normalize_label",
]
