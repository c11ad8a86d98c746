from __future__ import annotations

import logging
from dataclasses import asdict
from functools import partial
from typing import Callable, Optional

from fastapi import FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from ..ai.enhance import enhance_image
from ..ai.glowup import GlowUpAdvisor
from ..ai.mock import MockMeterClassifier
from ..ai.pipeline import ClassificationPipeline
from ..ai.policy import DecisionPolicy
from ..ai.types import DETAILED_TIER, STANDARD_TIER, MeterClassifier
from .client_id import resolve_client_id
from .config_loader import AppConfig
from .schemas import (
    AnalysisResponse,
    CounterModel,
    GlowUpRequest,
    GlowUpResponse,
    UsageIncrementRequest,
    UsageResponse,
)
from .service import (
    AnalysisFailedError,
    AnalysisService,
    GlowUpUnavailableError,
    ImageValidationError,
)
from .usage import UsageDecision, UsageSnapshot, UsageTracker


logger = logging.getLogger(__name__)


def create_app(
    classifier: MeterClassifier | None = None,
    config: AppConfig | None = None,
    glow_up_advisor: GlowUpAdvisor | None = None,
    usage_tracker: UsageTracker | None = None,
    enhancer: Callable[[bytes], bytes] | None = None,
) -> FastAPI:
    cfg = config or AppConfig()
    selected_classifier = classifier or MockMeterClassifier()
    enhancement = cfg.enhancement.settings()
    pipeline = ClassificationPipeline(
        classifier=selected_classifier,
        policy=DecisionPolicy(thresholds=cfg.policy.thresholds()),
        enhancer=enhancer or partial(enhance_image, settings=enhancement),
        dual_pass_enabled=cfg.policy.dual_pass_enabled,
    )
    service = AnalysisService(
        pipeline=pipeline,
        glow_up=glow_up_advisor,
        max_image_bytes=cfg.uploads.max_image_bytes,
        allowed_types=tuple(cfg.uploads.allowed_types),
    )
    tracker = usage_tracker or UsageTracker(
        standard_limit=cfg.quota.standard_limit,
        detailed_limit=cfg.quota.detailed_limit,
    )

    app = FastAPI(title="Check Your Meter API", version="0.1.0")
    app.state.config = cfg
    app.state.classifier = selected_classifier
    app.state.service = service
    app.state.usage_tracker = tracker

    logger.info(
        "API server initialised classifier=%s dual_pass=%s standard_limit=%d detailed_limit=%d enforce_quota=%s glow_up=%s",
        selected_classifier.__class__.__name__,
        cfg.policy.dual_pass_enabled,
        tracker.standard_limit,
        tracker.detailed_limit,
        cfg.quota.enforce_on_analysis,
        glow_up_advisor is not None,
    )

    @app.get("/health", response_model=dict[str, str])
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/check-meter", response_model=AnalysisResponse)
    async def check_meter(
        request: Request,
        image: Optional[UploadFile] = File(default=None),
        detailed_analysis: Optional[bool] = Form(default=None),
        was_image_upscaled: Optional[bool] = Form(default=None),
        detailed_analysis_camel: Optional[bool] = Form(default=None, alias="detailedAnalysis"),
        was_image_upscaled_camel: Optional[bool] = Form(default=None, alias="wasImageUpscaled"),
    ):
        if image is None:
            raise HTTPException(status_code=400, detail="No image provided")
        detailed = bool(detailed_analysis or detailed_analysis_camel)
        upscaled = bool(was_image_upscaled or was_image_upscaled_camel)
        # One byte past the limit is enough for the size check to reject it.
        image_bytes = await image.read(cfg.uploads.max_image_bytes + 1)
        tier = DETAILED_TIER if detailed else STANDARD_TIER
        try:
            service.validate_image(image_bytes, image.content_type)
        except ImageValidationError as exc:
            logger.info("Rejected upload status=%d reason=%s", exc.status_code, exc)
            raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc

        client_id = resolve_client_id(request)
        if cfg.quota.enforce_on_analysis:
            decision = tracker.consume(client_id, tier)
            if not decision.accepted:
                return JSONResponse(status_code=429, content=_decision_payload(decision))

        try:
            result = await run_in_threadpool(
                service.analyze,
                image_bytes,
                image.content_type,
                detailed=detailed,
                was_enhanced=upscaled,
            )
        except AnalysisFailedError as exc:
            if cfg.quota.enforce_on_analysis:
                tracker.release(client_id, tier)
            raise HTTPException(status_code=502, detail=str(exc)) from exc
        return AnalysisResponse(**result.to_dict())

    @app.get("/api/usage-limit", response_model=UsageResponse)
    def usage_status(request: Request) -> UsageResponse:
        snapshot = tracker.snapshot(resolve_client_id(request))
        return _usage_response(snapshot)

    @app.post("/api/usage-limit", response_model=UsageResponse)
    def usage_increment(payload: UsageIncrementRequest, request: Request):
        decision = tracker.consume(resolve_client_id(request), payload.check_type)
        if not decision.accepted:
            return JSONResponse(status_code=429, content=_decision_payload(decision))
        return _usage_response(decision.snapshot)

    @app.post("/api/glow-up", response_model=GlowUpResponse)
    async def glow_up(payload: GlowUpRequest) -> GlowUpResponse:
        try:
            result = await run_in_threadpool(service.create_glow_up, payload.image)
        except GlowUpUnavailableError as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc
        except ImageValidationError as exc:
            raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc
        except AnalysisFailedError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        return GlowUpResponse(**result.to_dict())

    return app


def _usage_response(
    snapshot: UsageSnapshot, *, success: bool = True, error: str | None = None
) -> UsageResponse:
    return UsageResponse(
        success=success,
        error=error,
        standard=CounterModel(**asdict(snapshot.standard)),
        detailed=CounterModel(**asdict(snapshot.detailed)),
    )


def _decision_payload(decision: UsageDecision) -> dict[str, object]:
    return _usage_response(
        decision.snapshot, success=decision.accepted, error=decision.error
    ).model_dump()


__all__ = ["create_app"]
