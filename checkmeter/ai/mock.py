from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List

from .types import DETAILED_TIER, STANDARD_TIER, MeterClassifier

MOCK_DETAILED_REPORT = """# Detailed Mock Analysis Report

## Meter Identification
This appears to be an RTS meter with a separate black control box and red button.

## Technical Specifications
- **Meter Type**: Radio Teleswitch Service (RTS)
- **Configuration**: Economy 7
- **Tariff Support**: Dual rate (day/night)

## Recommended Actions
1. Contact your energy supplier to arrange a replacement meter.
2. Consider smart meter options that support time-of-use tariffs.

*Note: This is a mock detailed report for testing purposes only.*"""


@dataclass
class MockMeterClassifier(MeterClassifier):
    """Canned replies used when no vision backend credentials are configured."""

    calls: List[str] = field(default_factory=list)

    def classify(
        self,
        image_bytes: bytes,
        *,
        tier: str = STANDARD_TIER,
        mime_type: str = "image/jpeg",
    ) -> dict[str, Any]:
        self.calls.append(tier)
        if tier == DETAILED_TIER:
            return {
                "result": "RTS meter",
                "certainty": 95,
                "explanation": (
                    "This is a mock detailed analysis. The meter appears to have RTS "
                    "characteristics including a black housing with a red button."
                ),
                "reasoning": "A separate black box with a red button is a strong RTS indicator.",
                "meterType": "RTS Economy 7",
                "additionalInfo": "This mock RTS meter controls Economy 7 heating and hot water timing.",
                "detailedReport": MOCK_DETAILED_REPORT,
            }
        return {
            "result": "Not an RTS meter",
            "certainty": 80,
            "explanation": "This is a mock response. No vision API key is configured.",
            "reasoning": "No actual analysis was performed as this is a mock response.",
            "meterType": "Mock Meter",
            "additionalInfo": "Set the OPENAI_API_KEY environment variable to enable real analysis.",
        }


__all__ = ["MockMeterClassifier", "MOCK_DETAILED_REPORT"]
