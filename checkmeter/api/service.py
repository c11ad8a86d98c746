from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass, field
from typing import Sequence

from ..ai.glowup import GlowUpAdvisor, GlowUpResult
from ..ai.pipeline import ClassificationPipeline
from ..ai.types import DETAILED_TIER, STANDARD_TIER, ClassificationRequest, NormalizedResult
from .config_loader import DEFAULT_ALLOWED_TYPES

logger = logging.getLogger(__name__)

ANALYSIS_FAILED_MESSAGE = "Image analysis failed. Please try again with a clearer photo."
GLOW_UP_FAILED_MESSAGE = "Failed to process the image. Please try again."


class ImageValidationError(ValueError):
    """Upload rejected before any upstream call."""

    def __init__(self, message: str, status_code: int = 400) -> None:
        super().__init__(message)
        self.status_code = status_code


class AnalysisFailedError(RuntimeError):
    """Upstream analysis failed; the message is safe to show to users."""


class GlowUpUnavailableError(RuntimeError):
    """No vision backend is configured for selfie styling."""


@dataclass
class AnalysisService:
    pipeline: ClassificationPipeline
    glow_up: GlowUpAdvisor | None = None
    max_image_bytes: int = 5 * 1024 * 1024
    allowed_types: Sequence[str] = field(default_factory=lambda: DEFAULT_ALLOWED_TYPES)

    def validate_image(self, image_bytes: bytes | None, content_type: str | None) -> str:
        if not image_bytes:
            raise ImageValidationError("No image provided")
        if len(image_bytes) > self.max_image_bytes:
            limit_mb = self.max_image_bytes / (1024 * 1024)
            raise ImageValidationError(
                f"File size exceeds {limit_mb:.0f}MB. Please upload a smaller image.",
                status_code=413,
            )
        mime_type = (content_type or "").split(";")[0].strip().lower()
        if mime_type == "image/jpg":
            mime_type = "image/jpeg"
        if mime_type not in self.allowed_types:
            raise ImageValidationError(
                "Invalid file type. Please upload a JPG, PNG, WEBP, or GIF image.",
                status_code=415,
            )
        return mime_type

    def analyze(
        self,
        image_bytes: bytes | None,
        content_type: str | None,
        *,
        detailed: bool = False,
        was_enhanced: bool = False,
    ) -> NormalizedResult:
        mime_type = self.validate_image(image_bytes, content_type)
        request = ClassificationRequest(
            image_bytes=image_bytes or b"",
            mime_type=mime_type,
            was_enhanced=was_enhanced,
            tier=DETAILED_TIER if detailed else STANDARD_TIER,
        )
        logger.info(
            "Running meter analysis tier=%s image_bytes=%d was_enhanced=%s",
            request.tier,
            len(request.image_bytes),
            was_enhanced,
        )
        try:
            return self.pipeline.run(request)
        except Exception as exc:
            logger.exception("Meter analysis failed tier=%s error=%s", request.tier, exc)
            raise AnalysisFailedError(ANALYSIS_FAILED_MESSAGE) from exc

    def create_glow_up(self, image: str | None) -> GlowUpResult:
        if self.glow_up is None:
            raise GlowUpUnavailableError("Selfie styling is not configured")
        image_bytes, mime_type = decode_data_uri(image)
        self.validate_image(image_bytes, mime_type)
        try:
            return self.glow_up.create(image_bytes, mime_type)
        except Exception as exc:
            logger.exception("Glow-up generation failed error=%s", exc)
            raise AnalysisFailedError(GLOW_UP_FAILED_MESSAGE) from exc


def decode_data_uri(value: str | None) -> tuple[bytes, str]:
    """Decode ``data:<mime>;base64,<payload>`` or a bare base64 string."""

    if not value or not value.strip():
        raise ImageValidationError("No image provided")
    text = value.strip()
    mime_type = "image/jpeg"
    if text.startswith("data:") and "," in text:
        header, text = text.split(",", 1)
        declared = header[5:].split(";")[0].strip()
        if declared:
            mime_type = declared
    try:
        return base64.b64decode(text, validate=True), mime_type
    except (binascii.Error, ValueError) as exc:
        raise ImageValidationError("Image payload is not valid base64") from exc


__all__ = [
    "ANALYSIS_FAILED_MESSAGE",
    "AnalysisFailedError",
    "AnalysisService",
    "GlowUpUnavailableError",
    "ImageValidationError",
    "decode_data_uri",
]
