from __future__ import annotations

import io
import logging
from dataclasses import dataclass

from PIL import Image, ImageFilter, ImageStat

try:
    _RESAMPLE = Image.Resampling.LANCZOS  # type: ignore[attr-defined]
except AttributeError:  # pragma: no cover - Pillow < 9 fallback
    _RESAMPLE = Image.LANCZOS  # type: ignore[attr-defined]


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EnhancementSettings:
    """Parameters for the retry-pass image transform."""

    contrast_factor: float = 1.2
    max_dimension: int = 3000
    jpeg_quality: int = 92
    fallback_quality: int = 75
    max_bytes: int = 4 * 1024 * 1024


def scale_factor_for(width: int, height: int) -> float:
    longest = max(width, height)
    if longest < 800:
        return 2.0
    if longest < 1600:
        return 1.5
    return 1.0


def enhance_image(
    image_bytes: bytes, settings: EnhancementSettings | None = None
) -> bytes:
    """Upscale, smooth and contrast-stretch an image for a second analysis pass.

    The stretch is linear around the mean luminance of the resized image, so
    mid-tones stay put while highlights and shadows spread apart. The result
    is re-encoded as JPEG, falling back to a lower quality when the first
    encoding exceeds ``settings.max_bytes``.
    """

    settings = settings or EnhancementSettings()
    try:
        with Image.open(io.BytesIO(image_bytes)) as source:
            image = source.convert("RGB")
    except Exception as exc:
        raise ValueError("Image could not be decoded for enhancement") from exc

    width, height = image.size
    factor = scale_factor_for(width, height)
    target_w = max(1, int(round(width * factor)))
    target_h = max(1, int(round(height * factor)))
    longest = max(target_w, target_h)
    if longest > settings.max_dimension:
        shrink = settings.max_dimension / float(longest)
        target_w = max(1, int(target_w * shrink))
        target_h = max(1, int(target_h * shrink))
    if (target_w, target_h) != (width, height):
        image = image.resize((target_w, target_h), _RESAMPLE)

    image = image.filter(ImageFilter.SMOOTH)
    image = stretch_contrast(image, settings.contrast_factor)

    encoded = _encode_jpeg(image, settings.jpeg_quality)
    if len(encoded) > settings.max_bytes:
        logger.info(
            "Enhanced image too large bytes=%d limit=%d; re-encoding quality=%d",
            len(encoded),
            settings.max_bytes,
            settings.fallback_quality,
        )
        encoded = _encode_jpeg(image, settings.fallback_quality)

    logger.debug(
        "Enhanced image source=%dx%d target=%dx%d factor=%.1f bytes=%d",
        width,
        height,
        target_w,
        target_h,
        factor,
        len(encoded),
    )
    return encoded


def stretch_contrast(image: Image.Image, factor: float) -> Image.Image:
    mean_luma = ImageStat.Stat(image.convert("L")).mean[0]

    def _adjust(value: int) -> int:
        stretched = mean_luma + (value - mean_luma) * factor
        return int(max(0, min(255, round(stretched))))

    return image.point(_adjust)


def _encode_jpeg(image: Image.Image, quality: int) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=quality, optimize=True)
    return buffer.getvalue()


__all__ = [
    "EnhancementSettings",
    "enhance_image",
    "scale_factor_for",
    "stretch_contrast",
]
