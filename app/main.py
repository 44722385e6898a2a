"""FastAPI application entry point for the meal analysis service."""

import json
import logging
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.datastructures import UploadFile

from app import __version__
from app.config import Settings, get_settings
from app.schemas import ErrorDetail, ErrorResponse
from app.security import MaxBodySizeMiddleware, RequestIDMiddleware, get_identity_resolver, resolve_caller
from meal_analyzer import (
    AnalysisPipeline,
    AnalysisResponse,
    AnalyzerError,
    InvalidRequestError,
    Modality,
    validate_request,
)
from meal_analyzer.core.auth import bearer_token
from meal_analyzer.core.logging import setup_logging
from meal_analyzer.core.persistence import SupabaseRecordStore

logger = logging.getLogger(__name__)


def _load_settings_safe() -> Settings | None:
    """Load settings, returning None when config is unavailable (e.g. tests)."""
    try:
        return get_settings()
    except ValueError:
        return None


def create_app() -> FastAPI:
    """Build and return the FastAPI application with all middleware configured."""
    settings = _load_settings_safe()

    if settings is not None:
        setup_logging(settings.log_level)

    application = FastAPI(
        title="Meal Analyzer",
        description="Analyze meal photos, voice notes and text into canonical nutrition records",
        version=__version__,
    )

    # Middleware stack (order matters: outermost is listed first, executes first)
    application.add_middleware(RequestIDMiddleware)

    application.add_middleware(
        MaxBodySizeMiddleware,
        max_bytes=settings.audio_max_upload_bytes if settings else 25_000_000,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allow_origins_list if settings else [],
        allow_credentials=False,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    return application


app = create_app()


def build_pipeline(settings: Settings, access_token: str | None) -> AnalysisPipeline:
    """Create the per-request pipeline; results are stored on behalf of the caller."""
    record_store = None
    if settings.supabase_url and settings.supabase_anon_key and access_token:
        record_store = SupabaseRecordStore(
            settings.supabase_url,
            settings.supabase_anon_key,
            access_token,
            settings.to_analyzer_config(),
        )
    return AnalysisPipeline(settings.to_analyzer_config(), record_store=record_store)


async def _read_form_payload(request: Request) -> dict[str, Any]:
    form = await request.form()
    payload: dict[str, Any] = {
        key: form.get(key)
        for key in ("userId", "date", "audioUrl")
        if isinstance(form.get(key), str)
    }
    audio = form.get("audio")
    if isinstance(audio, UploadFile):
        payload["audioBytes"] = await audio.read()
        payload["audioFilename"] = audio.filename
    return payload


async def _read_payload(request: Request, modality: Modality) -> Any:
    """Decode the request body: JSON for every modality, multipart also for audio."""
    content_type = request.headers.get("content-type", "")
    if modality == Modality.AUDIO and content_type.startswith("multipart/form-data"):
        return await _read_form_payload(request)

    body_bytes = await request.body()
    try:
        return json.loads(body_bytes)
    except json.JSONDecodeError as e:
        raise InvalidRequestError(f"Invalid JSON in request body: {str(e)}") from e


async def _analyze(modality: Modality, request: Request) -> AnalysisResponse:
    try:
        settings = get_settings()
        payload = await _read_payload(request, modality)
        analysis_request = validate_request(modality, payload)

        resolver = get_identity_resolver(settings)
        caller_id = await resolve_caller(request, resolver)

        pipeline = build_pipeline(settings, bearer_token(request.headers.get("authorization")))
        return await pipeline.run(analysis_request, caller_id)

    except AnalyzerError as e:
        if e.status_code >= 500:
            logger.error("%s analysis failed: %s (%s)", modality.value, e.message, e.error_type)
        else:
            logger.info("%s analysis rejected: %s (%s)", modality.value, e.message, e.error_type)
        raise HTTPException(status_code=e.status_code, detail=ErrorResponse.from_exception(e).model_dump())
    except Exception as e:
        logger.exception(f"Unexpected error in {modality.value} analysis: {e}")
        error_response = ErrorResponse(
            error=ErrorDetail(type="internal_error", message="An unexpected error occurred")
        )
        raise HTTPException(status_code=500, detail=error_response.model_dump())


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"ok": True, "version": __version__}


@app.post("/v1/analyze/image", response_model=AnalysisResponse, response_model_exclude_none=True)
async def analyze_image(request: Request) -> AnalysisResponse:
    """
    Analyze a meal photo.

    Body: ``{"imageUrl", "userId", "date", "meal"}``.
    """
    return await _analyze(Modality.IMAGE, request)


@app.post("/v1/analyze/audio", response_model=AnalysisResponse, response_model_exclude_none=True)
async def analyze_audio(request: Request) -> AnalysisResponse:
    """
    Transcribe a voice note and analyze the described meal.

    Accepts a multipart upload (``audio`` file, ``userId``, optional ``date``)
    or a JSON body ``{"audioUrl", "userId", "date"?}``.
    """
    return await _analyze(Modality.AUDIO, request)


@app.post("/v1/analyze/text", response_model=AnalysisResponse, response_model_exclude_none=True)
async def analyze_text(request: Request) -> AnalysisResponse:
    """
    Analyze a free-form meal description.

    Body: ``{"text", "userId", "date"?, "meal"?}``.
    """
    return await _analyze(Modality.TEXT, request)
