from __future__ import annotations

from .types import (
    Candidate,
    ClassificationRequest,
    MeterClassifier,
    NormalizedResult,
    VisionClient,
)

__all__ = [
    "Candidate",
    "ClassificationRequest",
    "MeterClassifier",
    "NormalizedResult",
    "VisionClient",
    "ClassificationPipeline",
    "GeminiVisionClient",
    "GlowUpAdvisor",
    "MockMeterClassifier",
    "OpenAIVisionClient",
    "VisionMeterClassifier",
]


def __getattr__(name: str):
    if name == "ClassificationPipeline":
        from .pipeline import ClassificationPipeline

        return ClassificationPipeline
    if name == "OpenAIVisionClient":
        from .openai_client import OpenAIVisionClient

        return OpenAIVisionClient
    if name == "GeminiVisionClient":
        from .gemini_client import GeminiVisionClient

        return GeminiVisionClient
    if name == "VisionMeterClassifier":
        from .meter import VisionMeterClassifier

        return VisionMeterClassifier
    if name == "MockMeterClassifier":
        from .mock import MockMeterClassifier

        return MockMeterClassifier
    if name == "GlowUpAdvisor":
        from .glowup import GlowUpAdvisor

        return GlowUpAdvisor
    raise AttributeError(f"module 'checkmeter.ai' has no attribute {name!r}")
