"""Pydantic models for API request/response serialization."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Union

from pydantic import BaseModel, Field

from app.schemas.analytics import (
    EncounterAnalytics,
    GenericAnalytics,
    ParseDiagnostic,
    PatientAnalytics,
)


# ---------------------------------------------------------------------------
# Analysis
# ---------------------------------------------------------------------------

class AnalyzeRequest(BaseModel):
    """Raw NDJSON text, one FHIR resource per line."""
    ndjson: str = ""
    remember: bool = False


class ParseSummary(BaseModel):
    """Parse result header – everything except the resources themselves."""
    resource_type: str
    pseudo_file_name: str
    total_lines: int
    valid_lines: int
    invalid_lines: int
    diagnostics: list[ParseDiagnostic]
    parse_time_ms: float


class TaskSummary(BaseModel):
    status: str
    duration_ms: float | None = None
    error: str | None = None


class AnalyzeResponse(BaseModel):
    parse: ParseSummary
    analyzer: str
    analytics: Union[PatientAnalytics, EncounterAnalytics, GenericAnalytics]
    tasks: dict[str, TaskSummary]


# ---------------------------------------------------------------------------
# Preview
# ---------------------------------------------------------------------------

class PreviewRequest(BaseModel):
    ndjson: str = ""
    max_records: int | None = Field(default=None, ge=1, le=100)


class PreviewResponse(BaseModel):
    looks_like_ndjson: bool
    resources: list[dict[str, Any]]
    has_more: bool


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------

class ExportRequest(BaseModel):
    ndjson: str = ""


class ExportSummary(BaseModel):
    resource_type: str
    pseudo_file_name: str
    total_records: int
    invalid_lines: int
    parse_time_ms: float
    exported_at: datetime
    sample_records: list[dict[str, Any]]


# ---------------------------------------------------------------------------
# Stored input
# ---------------------------------------------------------------------------

class StoredInputResponse(BaseModel):
    ndjson: str


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

class HealthResponse(BaseModel):
    status: str = "healthy"
    environment: str
    database: str = "connected"
