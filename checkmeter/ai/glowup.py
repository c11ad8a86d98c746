from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List
from urllib.parse import quote

from .confidence import normalize_confidence
from .types import VisionClient

logger = logging.getLogger(__name__)

LOW_QUALITY_FEEDBACK = (
    "We need a clearer selfie to create your glow-up. Please ensure your face is "
    "clearly visible, properly lit, and in focus."
)
SELFIE_QUALITY_TERMS = (
    "blurry",
    "unclear",
    "poor quality",
    "poor lighting",
    "too dark",
    "not visible",
    "hard to see",
    "difficult to determine",
)
PLACEHOLDER_IMAGE_URL = "https://placehold.co/1024x1024/FF7CFD/FFFFFF?text={name}"

FACE_ANALYSIS_PROMPT = """You are a professional stylist. Analyze the selfie and describe the person's
key features for styling advice.

Reply with a JSON object containing:
"faceShape": oval, round, square, heart, oblong, diamond, ...
"skinUndertone": warm, cool or neutral
"hairAttributes": an object with "length", "texture", "color" and "style"
"distinctiveFeatures": an array of features that influence styling
"currentStyle": a short description of the current look
"confidenceScore": a number from 10 to 100

If the image is blurry, dark or the face is not visible, say so."""

STYLE_PROMPT = """Using the face analysis provided, create three distinct looks for this person:
"Soft Glow" (natural, subtle), "Bold Pop" (dramatic, vibrant) and "Wild Vibe" (adventurous).

Reply with a JSON object:
{"looks": [{"name", "description", "hairStyling", "makeup", "accessories",
            "styleNotes", "imagePrompt"}, ...],
 "shoppingList": [{"productName", "purpose", "benefit"}, ...]}
Keep the style notes upbeat and include 3 to 5 shopping list products."""


@dataclass
class GlowUpResult:
    success: bool
    face_analysis: Dict[str, Any] | None = None
    style_recommendations: Dict[str, Any] | None = None
    transformed_images: List[Dict[str, str]] = field(default_factory=list)
    image_quality_issue: bool = False
    feedback: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def detect_selfie_quality_issue(face_analysis: Dict[str, Any]) -> str | None:
    raw_score = face_analysis.get("confidenceScore")
    if raw_score is not None and normalize_confidence(raw_score) < 70:
        return LOW_QUALITY_FEEDBACK
    text = json.dumps(face_analysis).lower()
    if any(term in text for term in SELFIE_QUALITY_TERMS):
        return LOW_QUALITY_FEEDBACK
    return None


@dataclass
class GlowUpAdvisor:
    """Two-step selfie styling: face analysis, then look recommendations."""

    client: VisionClient
    model: str = "gpt-4o"
    analysis_max_tokens: int = 1000
    style_max_tokens: int = 1500

    def create(self, image_bytes: bytes, mime_type: str = "image/jpeg") -> GlowUpResult:
        face_analysis = self.client.complete_json(
            system_prompt=FACE_ANALYSIS_PROMPT,
            image_bytes=image_bytes,
            model=self.model,
            mime_type=mime_type,
            max_tokens=self.analysis_max_tokens,
        )
        feedback = detect_selfie_quality_issue(face_analysis)
        if feedback is not None:
            logger.info("Glow-up rejected selfie due to image quality")
            return GlowUpResult(success=False, image_quality_issue=True, feedback=feedback)

        recommendations = self.client.complete_json(
            system_prompt=STYLE_PROMPT,
            image_bytes=image_bytes,
            model=self.model,
            mime_type=mime_type,
            user_text=f"Here is the face analysis result: {json.dumps(face_analysis)}",
            max_tokens=self.style_max_tokens,
        )
        looks = recommendations.get("looks")
        if not isinstance(looks, list):
            raise RuntimeError("Style recommendations did not include any looks")

        images = []
        for look in looks:
            name = look.get("name") if isinstance(look, dict) else None
            if not isinstance(name, str) or not name.strip():
                continue
            images.append(
                {
                    "look_name": name,
                    "image_url": PLACEHOLDER_IMAGE_URL.format(name=quote(name)),
                }
            )
        logger.info("Glow-up complete looks=%d", len(images))
        return GlowUpResult(
            success=True,
            face_analysis=face_analysis,
            style_recommendations=recommendations,
            transformed_images=images,
        )


__all__ = [
    "GlowUpAdvisor",
    "GlowUpResult",
    "LOW_QUALITY_FEEDBACK",
    "detect_selfie_quality_issue",
]
