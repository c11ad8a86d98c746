from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from .types import DETAILED_TIER, STANDARD_TIER, MeterClassifier, VisionClient

logger = logging.getLogger(__name__)

METER_PROMPT = """You are an energy specialist who identifies UK electricity meters from photos.
Decide whether the photo shows an RTS (Radio Teleswitch Service) meter.

Typical RTS features (not exhaustive, use judgement):
- a black box next to the main meter, often with white lettering and a red button
- the text "RTS", "Radio Teleswitch" or any mention of radio signals
- two-rate (Economy 7 style) readings and older, metal-cased housings
- a separate unit wired to the meter that switches heating or hot water

Rules:
- A red button on a black box near the meter is very strong evidence.
- Visible "RTS" or "Radio Teleswitch" text is definitive.
- If only part of an RTS unit is visible, still classify it as an RTS meter.
- When in doubt, prefer "RTS meter" over "Not an RTS meter".
- Look at the surroundings as well as the meter face.
- If the photo is blurry, dark, partially visible or you cannot read the writing, say so in the explanation.

Reply with a JSON object containing:
"result": "RTS meter" or "Not an RTS meter",
"certainty": a number from 10 to 100 (never 0),
"explanation": a short explanation naming the features you saw,
"reasoning": your step by step reasoning,
"meterType": the meter type if identifiable (for example "Economy 7"),
"additionalInfo": anything else relevant."""

DETAILED_PROMPT_SUFFIX = """

This is a detailed analysis request. Also examine every visible component, any
manufacturer markings, model numbers or supplier details, explain how the meter
works and what the owner should do next (tariffs, replacement, the RTS switch-off).
Add a "detailedReport" field containing a well formatted markdown report."""


@dataclass(frozen=True)
class TierModel:
    model: str
    max_tokens: int


@dataclass
class VisionMeterClassifier(MeterClassifier):
    """Ask a vision backend whether a meter photo shows an RTS meter."""

    client: VisionClient
    standard: TierModel = TierModel(model="o4-mini", max_tokens=800)
    detailed: TierModel = TierModel(model="o3", max_tokens=2000)

    def classify(
        self,
        image_bytes: bytes,
        *,
        tier: str = STANDARD_TIER,
        mime_type: str = "image/jpeg",
    ) -> dict[str, Any]:
        selected = self.model_for(tier)
        prompt = METER_PROMPT + (DETAILED_PROMPT_SUFFIX if tier == DETAILED_TIER else "")
        logger.info(
            "Requesting meter analysis tier=%s model=%s image_bytes=%d",
            tier,
            selected.model,
            len(image_bytes),
        )
        return self.client.complete_json(
            system_prompt=prompt,
            image_bytes=image_bytes,
            model=selected.model,
            mime_type=mime_type,
            max_tokens=selected.max_tokens,
        )

    def model_for(self, tier: str) -> TierModel:
        return self.detailed if tier == DETAILED_TIER else self.standard


__all__ = ["DETAILED_PROMPT_SUFFIX", "METER_PROMPT", "TierModel", "VisionMeterClassifier"]
