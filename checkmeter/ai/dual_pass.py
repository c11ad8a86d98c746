from __future__ import annotations

from dataclasses import dataclass

from .confidence import to_fraction
from .policy import PolicyThresholds
from .quality import STRONG_QUALITY_PHRASES, has_strong_quality_complaint
from .types import UNKNOWN, Candidate


@dataclass(frozen=True)
class PassResult:
    """One analysis attempt against either the original or enhanced image."""

    candidate: Candidate
    enhanced: bool = False

    @property
    def confidence(self) -> int:
        return self.candidate.confidence

    @property
    def has_result(self) -> bool:
        return self.candidate.label != UNKNOWN


def needs_retry(first: PassResult | None, thresholds: PolicyThresholds) -> bool:
    if first is None or not first.has_result:
        return True
    return to_fraction(first.confidence) < to_fraction(thresholds.retry_below)


def select_best_pass(
    original: PassResult | None, enhanced: PassResult | None
) -> PassResult | None:
    """Pick the attempt with the highest confidence; ties go to the enhanced pass."""

    if original is None:
        return enhanced
    if enhanced is None:
        return original
    if enhanced.confidence >= original.confidence:
        return enhanced
    return original


def should_suppress(
    passes: list[PassResult],
    thresholds: PolicyThresholds,
    strong_phrases: tuple[str, ...] = STRONG_QUALITY_PHRASES,
) -> bool:
    if not passes:
        return True
    best = max(pass_.confidence for pass_ in passes)
    if to_fraction(best) < to_fraction(thresholds.suppress_below):
        return True
    return has_strong_quality_complaint(
        (pass_.candidate.text for pass_ in passes), strong_phrases
    )


__all__ = ["PassResult", "needs_retry", "select_best_pass", "should_suppress"]
