"""
FastAPI routes – the main API surface.

Handlers are plain ``def`` functions: parsing and analysis are CPU-bound and
synchronous, so FastAPI runs them in its worker threadpool instead of
blocking the event loop.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy import text
from sqlalchemy.orm import Session

from app.config import settings
from app.etl.ndjson import get_preview, looks_like_ndjson, parse_ndjson
from app.etl.pipeline import build_analysis_pipeline
from app.models.database import get_db
from app.schemas.api import (
    AnalyzeRequest,
    AnalyzeResponse,
    ExportRequest,
    ExportSummary,
    HealthResponse,
    ParseSummary,
    PreviewRequest,
    PreviewResponse,
    StoredInputResponse,
    TaskSummary,
)
from app.services.encryption import EncryptionService
from app.services.export import build_export_summary, export_file_name
from app.services.input_store import InputStore

logger = logging.getLogger(__name__)

router = APIRouter()

LAST_INPUT_KEY = "fhir-visualizer-last-input"

_encryption: EncryptionService | None = None


def get_encryption() -> EncryptionService:
    global _encryption
    if _encryption is None:
        _encryption = EncryptionService()
    return _encryption


def get_input_store(
    db: Session = Depends(get_db),
    encryption: EncryptionService = Depends(get_encryption),
) -> InputStore:
    return InputStore(db, encryption)


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

@router.get("/health", response_model=HealthResponse)
def health_check(db: Session = Depends(get_db)):
    """Basic health endpoint – verifies DB connectivity."""
    try:
        db.execute(text("SELECT 1"))
        db_status = "connected"
    except Exception:
        logger.exception("Database health check failed")
        db_status = "disconnected"
    return HealthResponse(environment=settings.ENVIRONMENT, database=db_status)


# ---------------------------------------------------------------------------
# Analysis
# ---------------------------------------------------------------------------

@router.post("/analyze", response_model=AnalyzeResponse)
def analyze_ndjson(request: AnalyzeRequest, store: InputStore = Depends(get_input_store)):
    """
    Parse the NDJSON, route it to the analyzer for the detected resource
    type and return the parse header together with the analytics.
    """
    pipeline = build_analysis_pipeline()
    summary = pipeline.run({"ndjson": request.ndjson})

    if summary["status"] != "completed":
        raise HTTPException(status_code=500, detail={"pipeline": summary["pipeline"], "tasks": summary["tasks"]})

    if request.remember:
        store.set(LAST_INPUT_KEY, request.ndjson, ttl_seconds=settings.INPUT_STORE_TTL_SECONDS)

    result = pipeline.context["parse_result"]
    return AnalyzeResponse(
        parse=ParseSummary(**result.model_dump(exclude={"resources"})),
        analyzer=pipeline.context["analyzer"],
        analytics=pipeline.context["analytics"],
        tasks={name: TaskSummary(**info) for name, info in summary["tasks"].items()},
    )


@router.post("/preview", response_model=PreviewResponse)
def preview_ndjson(request: PreviewRequest):
    """Fast feedback on the first few resources before a full analysis."""
    max_records = request.max_records or settings.PREVIEW_MAX_RECORDS
    preview = get_preview(request.ndjson, max_records)
    return PreviewResponse(
        looks_like_ndjson=looks_like_ndjson(request.ndjson),
        resources=preview.resources,
        has_more=preview.has_more,
    )


@router.post("/export", response_model=ExportSummary)
def export_summary(request: ExportRequest, response: Response):
    """Snapshot of the parse for download: counts plus a few sample records."""
    result = parse_ndjson(request.ndjson)
    response.headers["Content-Disposition"] = f'attachment; filename="{export_file_name(result)}"'
    return build_export_summary(result, sample_size=settings.EXPORT_SAMPLE_SIZE)


# ---------------------------------------------------------------------------
# Remembered input
# ---------------------------------------------------------------------------

@router.get("/input", response_model=StoredInputResponse)
def get_stored_input(store: InputStore = Depends(get_input_store)):
    ndjson = store.get(LAST_INPUT_KEY)
    if not ndjson:
        raise HTTPException(status_code=404, detail="No stored input")
    return StoredInputResponse(ndjson=ndjson)


@router.delete("/input", status_code=204)
def clear_stored_input(store: InputStore = Depends(get_input_store)):
    store.clear(LAST_INPUT_KEY)
