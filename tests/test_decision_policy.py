import unittest

from checkmeter.ai.policy import (
    NEGATIVE_HEDGE,
    POSITIVE_HEDGE,
    DecisionPolicy,
    PolicyThresholds,
    apply_decision_policy,
)
from checkmeter.ai.quality import CLEARER_PHOTO_WARNING, MORE_INFO_FEEDBACK
from checkmeter.ai.types import (
    DETAILED_TIER,
    NEGATIVE_MATCH,
    POSITIVE_MATCH,
    STANDARD_TIER,
    UNKNOWN,
    Candidate,
)


class PositiveMatchTests(unittest.TestCase):
    def test_boosts_mid_confidence_positive(self) -> None:
        result = apply_decision_policy(Candidate(label=POSITIVE_MATCH, confidence=55))
        self.assertEqual(result.classification, POSITIVE_MATCH)
        self.assertEqual(result.confidence, 70)

    def test_does_not_lower_confident_positive(self) -> None:
        result = apply_decision_policy(Candidate(label=POSITIVE_MATCH, confidence=92))
        self.assertEqual(result.confidence, 92)

    def test_downgrades_low_confidence_positive_with_hedge(self) -> None:
        result = apply_decision_policy(
            Candidate(label=POSITIVE_MATCH, confidence=30, explanation="Red button partly hidden.")
        )
        self.assertEqual(result.classification, UNKNOWN)
        self.assertTrue(result.explanation.startswith(POSITIVE_HEDGE.strip()))
        self.assertTrue(result.explanation.endswith("Red button partly hidden."))
        self.assertFalse(result.needs_better_image)

    def test_positive_clears_quality_flags(self) -> None:
        result = apply_decision_policy(
            Candidate(
                label=POSITIVE_MATCH,
                confidence=60,
                explanation="The photo is blurry but a red button is visible.",
            )
        )
        self.assertFalse(result.image_quality_issue)
        self.assertFalse(result.needs_better_image)
        self.assertIsNone(result.image_quality_feedback)

    def test_raw_low_fraction_positive_becomes_unknown(self) -> None:
        candidate = Candidate.from_payload({"result": "RTS meter", "certainty": 0.08})
        result = apply_decision_policy(candidate)
        self.assertEqual(candidate.confidence, 10)
        self.assertEqual(result.classification, UNKNOWN)


class NegativeMatchTests(unittest.TestCase):
    def test_low_confidence_negative_becomes_unknown(self) -> None:
        result = apply_decision_policy(
            Candidate(label=NEGATIVE_MATCH, confidence=40, explanation="Standard digital meter.")
        )
        self.assertEqual(result.classification, UNKNOWN)
        self.assertTrue(result.explanation.startswith(NEGATIVE_HEDGE.strip()))
        self.assertTrue(result.needs_better_image)
        self.assertEqual(result.image_quality_feedback, MORE_INFO_FEEDBACK)

    def test_phrase_feedback_kept_when_confident(self) -> None:
        result = apply_decision_policy(
            Candidate(
                label=NEGATIVE_MATCH,
                confidence=90,
                reasoning="There is some glare on the display.",
            )
        )
        self.assertEqual(result.classification, NEGATIVE_MATCH)
        self.assertTrue(result.image_quality_issue)
        self.assertFalse(result.needs_better_image)
        self.assertIn("glare", result.image_quality_feedback)

    def test_mid_band_warns_without_blocking(self) -> None:
        result = apply_decision_policy(Candidate(label=NEGATIVE_MATCH, confidence=78))
        self.assertEqual(result.classification, NEGATIVE_MATCH)
        self.assertTrue(result.image_quality_issue)
        self.assertFalse(result.needs_better_image)
        self.assertEqual(result.image_quality_feedback, CLEARER_PHOTO_WARNING)

    def test_low_band_overrides_phrase_feedback(self) -> None:
        result = apply_decision_policy(
            Candidate(label=NEGATIVE_MATCH, confidence=60, explanation="Image is blurry.")
        )
        self.assertEqual(result.classification, NEGATIVE_MATCH)
        self.assertTrue(result.needs_better_image)
        self.assertEqual(result.image_quality_feedback, MORE_INFO_FEEDBACK)

    def test_low_confidence_unknown_label_is_hedged(self) -> None:
        candidate = Candidate.from_payload(
            {"result": "Possibly a meter", "certainty": 30, "explanation": "Dim photo."}
        )
        result = apply_decision_policy(candidate)
        self.assertEqual(result.classification, UNKNOWN)
        self.assertTrue(result.explanation.startswith(NEGATIVE_HEDGE.strip()))
        self.assertTrue(result.explanation.endswith("Dim photo."))
        self.assertTrue(result.needs_better_image)

    def test_confident_clean_negative_has_no_warning(self) -> None:
        result = apply_decision_policy(Candidate(label=NEGATIVE_MATCH, confidence=88))
        self.assertFalse(result.image_quality_issue)
        self.assertIsNone(result.image_quality_feedback)


class DetailedTierTests(unittest.TestCase):
    def test_detailed_tier_never_downgrades_or_flags(self) -> None:
        for label in (POSITIVE_MATCH, NEGATIVE_MATCH):
            for confidence in (10, 40, 55, 75, 95):
                result = apply_decision_policy(
                    Candidate(label=label, confidence=confidence, explanation="Too dark to read."),
                    tier=DETAILED_TIER,
                )
                self.assertEqual(result.classification, label)
                self.assertEqual(result.confidence, confidence)
                self.assertFalse(result.image_quality_issue)
                self.assertFalse(result.needs_better_image)
                self.assertEqual(result.tier, DETAILED_TIER)


class IdempotenceTests(unittest.TestCase):
    def _twice(self, candidate: Candidate):
        policy = DecisionPolicy()
        first = policy.apply(candidate, tier=STANDARD_TIER)
        second = policy.apply(first.to_candidate(), tier=STANDARD_TIER)
        return first, second

    def test_unknown_result_is_stable(self) -> None:
        first, second = self._twice(Candidate(label=NEGATIVE_MATCH, confidence=40))
        self.assertEqual(first, second)

    def test_hedged_unknown_label_is_stable(self) -> None:
        first, second = self._twice(
            Candidate(label=UNKNOWN, confidence=25, explanation="Meter face is cut off.")
        )
        self.assertEqual(first, second)
        self.assertEqual(first.explanation.count(NEGATIVE_HEDGE.strip()), 1)

    def test_hedged_positive_is_stable(self) -> None:
        first, second = self._twice(Candidate(label=POSITIVE_MATCH, confidence=20))
        self.assertEqual(first, second)

    def test_boosted_positive_is_stable(self) -> None:
        first, second = self._twice(Candidate(label=POSITIVE_MATCH, confidence=55))
        self.assertEqual(first, second)


class ProvenanceTests(unittest.TestCase):
    def test_provenance_is_attached(self) -> None:
        result = apply_decision_policy(
            Candidate(label=NEGATIVE_MATCH, confidence=95),
            was_enhanced=True,
            model_used="o4-mini",
        )
        self.assertTrue(result.was_enhanced)
        self.assertEqual(result.model_used, "o4-mini")
        self.assertEqual(result.tier, STANDARD_TIER)

    def test_thresholds_are_configurable(self) -> None:
        thresholds = PolicyThresholds(unknown_below=60, boost_to=80)
        result = apply_decision_policy(
            Candidate(label=POSITIVE_MATCH, confidence=65), thresholds=thresholds
        )
        self.assertEqual(result.confidence, 80)


if __name__ == "__main__":
    unittest.main()
