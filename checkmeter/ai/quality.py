from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

MORE_INFO_FEEDBACK = (
    "We need a clearer image of your meter. Please ensure the entire meter and its "
    "surroundings are clearly visible, properly lit, and in focus."
)
CLEARER_PHOTO_WARNING = "A clearer photo would provide more accurate results."
DEFAULT_QUALITY_FEEDBACK = "Please take a clearer photo of the meter."


@dataclass(frozen=True)
class QualityPhrase:
    phrase: str
    feedback: str


DEFAULT_QUALITY_PHRASES: tuple[QualityPhrase, ...] = (
    QualityPhrase("blurry", "The image appears to be blurry. Please take a clearer photo."),
    QualityPhrase("unclear", "The image is unclear. Please take a better photo with good lighting."),
    QualityPhrase("poor quality", "The image quality is poor. Please take a clearer photo."),
    QualityPhrase(
        "poor lighting",
        "The lighting in the image is poor. Please take a photo with better lighting.",
    ),
    QualityPhrase("too dark", "The image is too dark. Please take a photo with better lighting."),
    QualityPhrase(
        "partially visible",
        "The meter is only partially visible. Please capture the entire meter in the frame.",
    ),
    QualityPhrase(
        "not visible",
        "Parts of the meter are not visible. Please capture the entire meter clearly.",
    ),
    QualityPhrase(
        "low resolution",
        "The image resolution is too low. Please take a higher quality photo.",
    ),
    QualityPhrase(
        "glare",
        "There is glare on the meter. Please take a photo without reflections or glare.",
    ),
    QualityPhrase(
        "hard to see",
        "The meter details are hard to see. Please take a clearer photo with good lighting.",
    ),
    QualityPhrase("difficult to read", "The meter is difficult to read. Please take a clearer photo."),
    QualityPhrase(
        "cannot determine",
        "We cannot determine the meter type from this image. Please take a clearer photo "
        "showing the entire meter.",
    ),
    QualityPhrase("out of focus", "The image is out of focus. Please take a clearer photo."),
)

# Phrases that mean the photo itself ruled out any verdict.
STRONG_QUALITY_PHRASES: tuple[str, ...] = (
    "too blurry",
    "out of focus",
    "cannot determine",
    "can't determine",
    "can't read the writing",
    "cannot read the writing",
    "unreadable",
    "not visible",
)


def find_quality_issue(
    text: str | None,
    phrases: Sequence[QualityPhrase] = DEFAULT_QUALITY_PHRASES,
) -> QualityPhrase | None:
    """Return the first phrase whose wording appears in ``text``."""

    haystack = (text or "").lower()
    if not haystack:
        return None
    for entry in phrases:
        if entry.phrase.lower() in haystack:
            return entry
    return None


def has_strong_quality_complaint(
    texts: Iterable[str | None],
    phrases: Sequence[str] = STRONG_QUALITY_PHRASES,
) -> bool:
    haystack = " ".join(text for text in texts if text).lower()
    return any(phrase in haystack for phrase in phrases)


__all__ = [
    "CLEARER_PHOTO_WARNING",
    "DEFAULT_QUALITY_FEEDBACK",
    "DEFAULT_QUALITY_PHRASES",
    "MORE_INFO_FEEDBACK",
    "QualityPhrase",
    "STRONG_QUALITY_PHRASES",
    "find_quality_issue",
    "has_strong_quality_complaint",
]
