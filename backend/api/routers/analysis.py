"""Telemetry analysis endpoints: upload-and-analyse and report lookup."""

from __future__ import annotations

import logging
from pathlib import PurePath
from typing import Annotated, Any

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from racespace.report import AnalysisParams

from backend.api.config import Settings
from backend.api.dependencies import get_ai_client, get_analysis_params, get_settings, get_store
from backend.api.schemas.analysis import AnalysisResponse
from backend.api.services.kv_store import KeyValueStore
from backend.api.services.pipeline import run_analysis
from backend.api.services.rate_limit import allow_request, client_ip
from backend.api.services.report_store import get_report, store_report
from backend.api.services.serializers import report_to_response

logger = logging.getLogger(__name__)

router = APIRouter()

ALLOWED_EXTENSIONS = frozenset({".csv", ".json", ".motec", ".rdp"})


@router.post("/analyze", response_model=AnalysisResponse)
async def analyze(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
    store: Annotated[KeyValueStore, Depends(get_store)],
    params: Annotated[AnalysisParams, Depends(get_analysis_params)],
    ai_client: Annotated[Any, Depends(get_ai_client)],
    telemetry: Annotated[UploadFile | None, File()] = None,
    track: Annotated[str | None, Form()] = None,
    car_class: Annotated[str | None, Form(alias="carClass")] = None,
    game: Annotated[str | None, Form()] = None,
) -> AnalysisResponse:
    """Analyse an uploaded telemetry file for a track, car class and game."""
    ip = client_ip(request)
    if not allow_request(
        store,
        ip,
        window_s=settings.rate_limit_window_s,
        max_requests=settings.rate_limit_max_requests,
    ):
        raise HTTPException(
            status_code=429,
            detail="Too many analysis requests. Please wait before trying again.",
        )

    if telemetry is None or not telemetry.filename:
        raise HTTPException(status_code=400, detail="No telemetry file uploaded")

    ext = PurePath(telemetry.filename).suffix.lower()
    if ext not in ALLOWED_EXTENSIONS:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid file type '{ext or telemetry.filename}'. "
            f"Accepted: {', '.join(sorted(ALLOWED_EXTENSIONS))}",
        )

    content = await telemetry.read()
    if len(content) > settings.max_upload_size_bytes:
        raise HTTPException(
            status_code=400,
            detail=f"File {telemetry.filename} exceeds {settings.max_upload_size_mb} MB limit",
        )

    if not track or not car_class or not game:
        raise HTTPException(status_code=400, detail="Missing required fields")

    try:
        outcome = await run_analysis(
            content,
            telemetry.filename,
            track=track,
            car_class=car_class,
            game=game,
            params=params,
            ai_client=ai_client,
        )
    except UnicodeDecodeError:
        raise HTTPException(
            status_code=400, detail="Telemetry file is not valid UTF-8 text"
        ) from None

    if outcome.internal_error:
        raise HTTPException(status_code=500, detail=outcome.reason)
    if not outcome.valid or outcome.report is None:
        raise HTTPException(status_code=400, detail=outcome.reason)

    store_report(store, outcome.report, max_reports=settings.max_stored_reports)
    logger.info(
        "Analysis %s completed for %s (%s narrative)",
        outcome.report.id,
        ip,
        outcome.report.narrative_source,
    )
    return report_to_response(outcome.report)


@router.get("/analyses/{analysis_id}", response_model=AnalysisResponse)
async def get_analysis(
    analysis_id: str,
    store: Annotated[KeyValueStore, Depends(get_store)],
) -> AnalysisResponse:
    """Return a previously computed analysis report."""
    report = get_report(store, analysis_id)
    if report is None:
        raise HTTPException(status_code=404, detail=f"Analysis {analysis_id} not found")
    return report_to_response(report)
