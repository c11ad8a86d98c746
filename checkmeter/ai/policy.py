from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

from .quality import (
    CLEARER_PHOTO_WARNING,
    DEFAULT_QUALITY_FEEDBACK,
    DEFAULT_QUALITY_PHRASES,
    MORE_INFO_FEEDBACK,
    QualityPhrase,
    find_quality_issue,
)
from .types import (
    DETAILED_TIER,
    POSITIVE_MATCH,
    STANDARD_TIER,
    UNKNOWN,
    Candidate,
    NormalizedResult,
)

logger = logging.getLogger(__name__)

POSITIVE_HEDGE = (
    "There might be evidence of an RTS meter, but the confidence is too low to make "
    "a definitive determination. "
)
NEGATIVE_HEDGE = (
    "The image doesn't appear to show an RTS meter, but the confidence is too low to "
    "make a definitive determination. "
)


@dataclass(frozen=True)
class PolicyThresholds:
    """Percentages that drive the standard-tier decision policy."""

    unknown_below: int = 50
    boost_to: int = 70
    better_image_below: int = 70
    warn_below: int = 85
    retry_below: int = 89
    suppress_below: int = 30


@dataclass
class DecisionPolicy:
    thresholds: PolicyThresholds = field(default_factory=PolicyThresholds)
    quality_phrases: Sequence[QualityPhrase] = DEFAULT_QUALITY_PHRASES

    def apply(
        self,
        candidate: Candidate,
        *,
        tier: str = STANDARD_TIER,
        was_enhanced: bool = False,
        model_used: str | None = None,
    ) -> NormalizedResult:
        result = NormalizedResult(
            classification=candidate.label,
            confidence=candidate.confidence,
            explanation=candidate.explanation,
            reasoning=candidate.reasoning,
            meter_type=candidate.meter_type,
            additional_info=candidate.additional_info,
            detailed_report=candidate.detailed_report,
            tier=tier,
            was_enhanced=was_enhanced,
            model_used=model_used,
        )
        authoritative = tier == DETAILED_TIER

        if candidate.label == POSITIVE_MATCH or _is_hedged_positive(candidate):
            self._apply_positive(result, authoritative)
        elif not authoritative:
            self._apply_negative(result, candidate)

        logger.debug(
            "Decision policy tier=%s label=%s -> classification=%s confidence=%d needs_better_image=%s",
            tier,
            candidate.label,
            result.classification,
            result.confidence,
            result.needs_better_image,
        )
        return result

    def _apply_positive(self, result: NormalizedResult, authoritative: bool) -> None:
        # A plausible positive is never held back by image quality.
        result.image_quality_issue = False
        result.image_quality_feedback = None
        result.needs_better_image = False
        if authoritative or result.classification != POSITIVE_MATCH:
            return
        limits = self.thresholds
        if result.confidence < limits.unknown_below:
            result.classification = UNKNOWN
            result.explanation = _hedge(POSITIVE_HEDGE, result.explanation)
        elif result.confidence < limits.boost_to:
            result.confidence = max(result.confidence, limits.boost_to)

    def _apply_negative(self, result: NormalizedResult, candidate: Candidate) -> None:
        limits = self.thresholds
        if result.confidence < limits.unknown_below:
            result.classification = UNKNOWN
            if not (result.explanation or "").startswith(NEGATIVE_HEDGE.strip()):
                result.explanation = _hedge(NEGATIVE_HEDGE, result.explanation)

        issue = find_quality_issue(candidate.text, self.quality_phrases)
        if issue is not None:
            result.image_quality_issue = True
            result.image_quality_feedback = issue.feedback or DEFAULT_QUALITY_FEEDBACK

        if result.confidence < limits.better_image_below:
            result.needs_better_image = True
            result.image_quality_issue = True
            result.image_quality_feedback = MORE_INFO_FEEDBACK
        elif result.confidence < limits.warn_below:
            result.image_quality_issue = True
            result.image_quality_feedback = CLEARER_PHOTO_WARNING


def apply_decision_policy(
    candidate: Candidate,
    *,
    tier: str = STANDARD_TIER,
    was_enhanced: bool = False,
    model_used: str | None = None,
    thresholds: PolicyThresholds | None = None,
) -> NormalizedResult:
    policy = DecisionPolicy(thresholds=thresholds or PolicyThresholds())
    return policy.apply(
        candidate, tier=tier, was_enhanced=was_enhanced, model_used=model_used
    )


def _hedge(prefix: str, explanation: str | None) -> str:
    return (prefix + (explanation or "")).strip()


def _is_hedged_positive(candidate: Candidate) -> bool:
    # Positives already downgraded to Unknown keep their cleared quality flags.
    return candidate.label == UNKNOWN and (candidate.explanation or "").startswith(
        POSITIVE_HEDGE.strip()
    )


__all__ = [
    "DecisionPolicy",
    "NEGATIVE_HEDGE",
    "POSITIVE_HEDGE",
    "PolicyThresholds",
    "apply_decision_policy",
]
