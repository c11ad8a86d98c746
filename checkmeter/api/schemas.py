from __future__ import annotations

from typing import Any, Dict, List, Literal

from pydantic import AliasChoices, BaseModel, Field, field_validator


class AnalysisResponse(BaseModel):
    classification: Literal["PositiveMatch", "NegativeMatch", "Unknown"]
    confidence: int = Field(..., ge=10, le=100)
    explanation: str | None = None
    reasoning: str | None = None
    meter_type: str | None = None
    additional_info: str | None = None
    detailed_report: str | None = None
    needs_better_image: bool = False
    image_quality_issue: bool = False
    image_quality_feedback: str | None = None
    tier: Literal["standard", "detailed"] = "standard"
    was_enhanced: bool = False
    model_used: str | None = None
    original_confidence: int | None = None
    enhanced_confidence: int | None = None
    suppressed: bool = False


class CounterModel(BaseModel):
    used: int
    limit: int
    remaining: int


class UsageResponse(BaseModel):
    success: bool = True
    error: str | None = None
    standard: CounterModel
    detailed: CounterModel


class UsageIncrementRequest(BaseModel):
    check_type: Literal["standard", "detailed"] = Field(
        ...,
        validation_alias=AliasChoices("check_type", "checkType"),
        description="Which daily counter to increment",
    )

    @field_validator("check_type", mode="before")
    @classmethod
    def _accept_legacy_names(cls, value: Any) -> Any:
        if isinstance(value, str):
            lowered = value.strip().lower()
            return "standard" if lowered == "regular" else lowered
        return value


class GlowUpRequest(BaseModel):
    image: str = Field(..., description="Selfie as a data URI or bare base64 string")


class GlowUpResponse(BaseModel):
    success: bool
    face_analysis: Dict[str, Any] | None = None
    style_recommendations: Dict[str, Any] | None = None
    transformed_images: List[Dict[str, str]] = Field(default_factory=list)
    image_quality_issue: bool = False
    feedback: str | None = None


__all__ = [
    "AnalysisResponse",
    "CounterModel",
    "GlowUpRequest",
    "GlowUpResponse",
    "UsageIncrementRequest",
    "UsageResponse",
]
