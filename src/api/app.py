"""
src/api/app.py
===============
HTTP API — Voicemail Pipeline

Responsibility:
    - POST /api/v1/voicemails/process   run the pipeline for one voicemail
    - POST /api/v1/translate            translate one text
    - POST /api/v1/translate/batch      translate up to max_batch_size texts
    - GET  /api/v1/translation/stats    provider usage + memory statistics
    - GET  /health                      liveness
    - POST each processed voicemail to WEBHOOK_URL when configured

The pipeline is blocking (threads + provider SDKs); handlers offload it
with asyncio.to_thread so the event loop stays free.

Error mapping:
    BatchSizeExceededError      -> 400
    InsufficientInputError      -> 422
    AllProvidersExhaustedError  -> 502
    any other pipeline error    -> 500
"""

import asyncio
import logging
import threading
from typing import Any

import aiohttp
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from src.bootstrap import build_pipeline
from src.config import Settings, load_settings
from src.exceptions import (
    AllProvidersExhaustedError,
    BatchSizeExceededError,
    InsufficientInputError,
    VoicemailProcessingError,
)
from src.pipeline import VoicemailPipeline
from src.schemas.voicemail import QualityTier, SubscriptionTier, VoicemailInput

logger = logging.getLogger("voicemail.api")

WEBHOOK_TIMEOUT_SECONDS = 30


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------


class VoicemailRequest(BaseModel):
    audio_ref: str = Field(..., min_length=1)
    caller_number: str = Field(..., min_length=1)
    caller_name: str | None = None
    duration_seconds: float = Field(0.0, ge=0.0)
    preferred_language: str = "en"
    subscription_tier: SubscriptionTier = SubscriptionTier.FREE


class TranslateRequest(BaseModel):
    text: str
    target_language: str = Field(..., min_length=2)
    source_language: str = "auto"
    quality_tier: QualityTier = QualityTier.PREMIUM
    preferred_provider: str | None = None


class BatchTranslateRequest(BaseModel):
    texts: list[str]
    target_language: str = Field(..., min_length=2)
    source_language: str = "auto"
    quality_tier: QualityTier = QualityTier.PREMIUM
    preferred_provider: str | None = None


# ---------------------------------------------------------------------------
# Webhook
# ---------------------------------------------------------------------------


async def post_to_webhook(url: str, payload: dict[str, Any]) -> int | None:
    """POST a processed voicemail; returns the HTTP status, None on failure."""
    try:
        async with aiohttp.ClientSession() as session:
            async with session.post(
                url,
                json=payload,
                headers={"Content-Type": "application/json"},
                timeout=aiohttp.ClientTimeout(total=WEBHOOK_TIMEOUT_SECONDS),
            ) as resp:
                logger.info("Webhook POST to %s — status %d", url, resp.status)
                return resp.status
    except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
        logger.error("Webhook POST failed: %s", exc)
        return None


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------


def create_app(
    pipeline: VoicemailPipeline | None = None,
    settings: Settings | None = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    When ``pipeline`` is omitted it is built from ``settings`` on first use,
    so importing this module never requires provider credentials.
    """
    app = FastAPI(
        title="Voicemail Pipeline",
        description="Voicemail transcription, spam scoring, classification and translation.",
        version="1.0.0",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    state: dict[str, Any] = {"pipeline": pipeline, "settings": settings}
    build_lock = threading.Lock()

    def get_settings() -> Settings:
        if state["settings"] is None:
            state["settings"] = load_settings()
        return state["settings"]

    def get_pipeline() -> VoicemailPipeline:
        with build_lock:
            if state["pipeline"] is None:
                state["pipeline"] = build_pipeline(get_settings())
            return state["pipeline"]

    # -----------------------------------------------------------------
    # Error mapping
    # -----------------------------------------------------------------

    @app.exception_handler(BatchSizeExceededError)
    async def _batch_too_large(request: Request, exc: BatchSizeExceededError):
        return JSONResponse(
            status_code=400,
            content={"detail": str(exc), "size": exc.size, "limit": exc.limit},
        )

    @app.exception_handler(InsufficientInputError)
    async def _insufficient_input(request: Request, exc: InsufficientInputError):
        return JSONResponse(status_code=422, content={"detail": str(exc), "stage": exc.stage})

    @app.exception_handler(AllProvidersExhaustedError)
    async def _providers_exhausted(request: Request, exc: AllProvidersExhaustedError):
        logger.error("Translation providers exhausted: %s", exc)
        return JSONResponse(
            status_code=502,
            content={
                "detail": str(exc),
                "failures": [{"provider": f.provider, "reason": f.reason} for f in exc.failures],
            },
        )

    @app.exception_handler(VoicemailProcessingError)
    async def _processing_error(request: Request, exc: VoicemailProcessingError):
        logger.error("Pipeline error: %s", exc)
        return JSONResponse(status_code=500, content={"detail": str(exc)})

    # -----------------------------------------------------------------
    # Endpoints
    # -----------------------------------------------------------------

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.post("/api/v1/voicemails/process")
    async def process_voicemail(body: VoicemailRequest):
        """Run the full pipeline; the record's own status reports failures."""
        logger.info("Voicemail received: %s from %s", body.audio_ref, body.caller_number)
        voicemail = VoicemailInput(
            audio_ref=body.audio_ref,
            caller_number=body.caller_number,
            caller_name=body.caller_name,
            duration_seconds=body.duration_seconds,
            preferred_language=body.preferred_language,
            subscription_tier=body.subscription_tier,
        )
        pipeline = await asyncio.to_thread(get_pipeline)
        record = await asyncio.to_thread(pipeline.process, voicemail)
        payload = record.to_dict()

        webhook_url = get_settings().webhook_url
        if webhook_url:
            await post_to_webhook(webhook_url, payload)
        else:
            logger.debug("WEBHOOK_URL not configured — skipping POST.")

        return JSONResponse(status_code=200, content=payload)

    @app.post("/api/v1/translate")
    async def translate(body: TranslateRequest):
        pipeline = await asyncio.to_thread(get_pipeline)
        result = await asyncio.to_thread(
            pipeline.translator.translate,
            body.text,
            body.source_language,
            body.target_language,
            body.quality_tier,
            preferred_provider=body.preferred_provider,
        )
        return result.to_dict()

    @app.post("/api/v1/translate/batch")
    async def translate_batch(body: BatchTranslateRequest):
        pipeline = await asyncio.to_thread(get_pipeline)
        result = await asyncio.to_thread(
            pipeline.translator.translate_batch,
            body.texts,
            body.target_language,
            body.source_language,
            body.quality_tier,
            preferred_provider=body.preferred_provider,
        )
        return result.to_dict()

    @app.get("/api/v1/translation/stats")
    async def translation_stats():
        pipeline = await asyncio.to_thread(get_pipeline)
        return pipeline.translator.statistics()

    return app


app = create_app()
