from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from .dual_pass import PassResult, needs_retry, select_best_pass, should_suppress
from .enhance import enhance_image
from .policy import DecisionPolicy
from .quality import MORE_INFO_FEEDBACK
from .types import (
    STANDARD_TIER,
    UNKNOWN,
    Candidate,
    ClassificationRequest,
    MeterClassifier,
    NormalizedResult,
)

logger = logging.getLogger(__name__)

SUPPRESSED_EXPLANATION = (
    "We couldn't get a reliable reading from this photo, so no verdict is shown."
)


@dataclass
class ClassificationPipeline:
    """Run the meter classifier and turn its reply into a user-facing verdict.

    Standard-tier requests whose first pass is missing or under-confident get
    a second pass against an enhanced copy of the image. The two passes run
    one after the other. Upstream errors on the first pass propagate to the
    caller untouched.
    """

    classifier: MeterClassifier
    policy: DecisionPolicy = field(default_factory=DecisionPolicy)
    enhancer: Callable[[bytes], bytes] = enhance_image
    dual_pass_enabled: bool = True

    def run(self, request: ClassificationRequest) -> NormalizedResult:
        model_used = _model_name(self.classifier, request.tier)
        first = self._attempt(request.image_bytes, request, enhanced=request.was_enhanced)
        passes = [first]

        second: PassResult | None = None
        if self._dual_pass_applies(request) and needs_retry(first, self.policy.thresholds):
            second = self._retry_enhanced(request)
            if second is not None:
                passes.append(second)

        best = select_best_pass(first, second) or first
        if second is not None and should_suppress(passes, self.policy.thresholds):
            logger.info(
                "Suppressing verdict after dual pass original=%d enhanced=%d",
                first.confidence,
                second.confidence,
            )
            return self._suppressed(request, best, first, second, model_used)

        result = self.policy.apply(
            best.candidate,
            tier=request.tier,
            was_enhanced=best.enhanced,
            model_used=model_used,
        )
        result.original_confidence = first.confidence
        result.enhanced_confidence = second.confidence if second is not None else None
        logger.info(
            "Analysis complete tier=%s classification=%s confidence=%d enhanced=%s",
            request.tier,
            result.classification,
            result.confidence,
            result.was_enhanced,
        )
        return result

    def _dual_pass_applies(self, request: ClassificationRequest) -> bool:
        return (
            self.dual_pass_enabled
            and request.tier == STANDARD_TIER
            and not request.was_enhanced
        )

    def _attempt(
        self, image_bytes: bytes, request: ClassificationRequest, *, enhanced: bool
    ) -> PassResult:
        reply = self.classifier.classify(
            image_bytes, tier=request.tier, mime_type=request.mime_type
        )
        candidate = Candidate.from_payload(reply)
        logger.debug(
            "Pass complete enhanced=%s label=%s confidence=%d",
            enhanced,
            candidate.label,
            candidate.confidence,
        )
        return PassResult(candidate=candidate, enhanced=enhanced)

    def _retry_enhanced(self, request: ClassificationRequest) -> PassResult | None:
        try:
            enhanced_bytes = self.enhancer(request.image_bytes)
        except Exception:
            logger.warning("Image enhancement failed; keeping first pass", exc_info=True)
            return None
        enhanced_request = ClassificationRequest(
            image_bytes=enhanced_bytes,
            mime_type="image/jpeg",
            was_enhanced=True,
            tier=request.tier,
        )
        try:
            return self._attempt(enhanced_bytes, enhanced_request, enhanced=True)
        except Exception:
            logger.exception("Enhanced analysis pass failed; keeping first pass")
            return None

    def _suppressed(
        self,
        request: ClassificationRequest,
        best: PassResult,
        first: PassResult,
        second: PassResult,
        model_used: str | None,
    ) -> NormalizedResult:
        return NormalizedResult(
            classification=UNKNOWN,
            confidence=best.confidence,
            explanation=SUPPRESSED_EXPLANATION,
            needs_better_image=True,
            image_quality_issue=True,
            image_quality_feedback=MORE_INFO_FEEDBACK,
            tier=request.tier,
            was_enhanced=best.enhanced,
            model_used=model_used,
            original_confidence=first.confidence,
            enhanced_confidence=second.confidence,
            suppressed=True,
        )


def _model_name(classifier: MeterClassifier, tier: str) -> str | None:
    model_for = getattr(classifier, "model_for", None)
    if model_for is None:
        return classifier.__class__.__name__
    return model_for(tier).model


__all__ = ["ClassificationPipeline", "SUPPRESSED_EXPLANATION"]
