"""
Result models for NDJSON parsing and per-resource analytics.

Every model is frozen: once an analyzer returns a result it is read-only,
and a new input produces a brand new result rather than an update.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

class ParseDiagnostic(_Frozen):
    """A line-level parse failure, or the line-0 resource type warning."""
    line_number: int
    message: str
    raw_line: str | None = None


class ParseResult(_Frozen):
    resources: list[dict[str, Any]] = Field(default_factory=list)
    resource_type: str = "Unknown"
    pseudo_file_name: str = "unknown.ndjson"
    total_lines: int = 0
    valid_lines: int = 0
    invalid_lines: int = 0
    diagnostics: list[ParseDiagnostic] = Field(default_factory=list)
    parse_time_ms: float = 0.0


class PreviewResult(_Frozen):
    resources: list[dict[str, Any]] = Field(default_factory=list)
    has_more: bool = False


# ---------------------------------------------------------------------------
# Shared building blocks
# ---------------------------------------------------------------------------

class DistributionItem(_Frozen):
    label: str
    count: int
    percentage: float


class HistogramBucket(_Frozen):
    """A fixed numeric range. ``max`` is None for an open-ended bucket."""
    min: float
    max: float | None
    label: str
    count: int = 0


class TimeSeriesPoint(_Frozen):
    date: str
    count: int
    label: str


class DateRange(_Frozen):
    earliest: datetime | None = None
    latest: datetime | None = None
    earliest_display: str = "N/A"
    latest_display: str = "N/A"


class AgeStats(_Frozen):
    mean: float = 0
    median: float = 0
    min: float = 0
    max: float = 0
    std_dev: float = 0


class LengthOfStayStats(_Frozen):
    """Length of stay in days."""
    mean: float = 0
    median: float = 0
    min: float = 0
    max: float = 0
    encounters_with_los: int = 0


class EncountersPerPatientStats(_Frozen):
    mean: float = 0
    median: float = 0
    max: float = 0


# ---------------------------------------------------------------------------
# Patient analytics
# ---------------------------------------------------------------------------

class PatientAnalytics(_Frozen):
    total_patients: int = 0
    unique_ids: int = 0

    gender_distribution: list[DistributionItem] = Field(default_factory=list)
    age_distribution: list[HistogramBucket] = Field(default_factory=list)
    age_stats: AgeStats = Field(default_factory=AgeStats)

    race_distribution: list[DistributionItem] = Field(default_factory=list)
    ethnicity_distribution: list[DistributionItem] = Field(default_factory=list)

    state_distribution: list[DistributionItem] = Field(default_factory=list)
    city_distribution: list[DistributionItem] = Field(default_factory=list)

    living_count: int = 0
    deceased_count: int = 0
    mortality_rate: float = 0

    birth_date_range: DateRange = Field(default_factory=DateRange)

    missing_birth_date: int = 0
    missing_gender: int = 0
    missing_address: int = 0


# ---------------------------------------------------------------------------
# Encounter analytics
# ---------------------------------------------------------------------------

class EncounterAnalytics(_Frozen):
    total_encounters: int = 0
    unique_encounter_ids: int = 0
    unique_patient_refs: int = 0

    class_distribution: list[DistributionItem] = Field(default_factory=list)
    type_distribution: list[DistributionItem] = Field(default_factory=list)
    status_distribution: list[DistributionItem] = Field(default_factory=list)

    encounters_by_month: list[TimeSeriesPoint] = Field(default_factory=list)
    period_coverage: DateRange = Field(default_factory=DateRange)

    los_distribution: list[HistogramBucket] = Field(default_factory=list)
    los_stats: LengthOfStayStats = Field(default_factory=LengthOfStayStats)

    encounters_per_patient: list[HistogramBucket] = Field(default_factory=list)
    encounters_per_patient_stats: EncountersPerPatientStats = Field(
        default_factory=EncountersPerPatientStats
    )

    missing_period_start: int = 0
    missing_period_end: int = 0
    missing_class: int = 0
    missing_subject: int = 0


# ---------------------------------------------------------------------------
# Generic analytics (unsupported resource types)
# ---------------------------------------------------------------------------

class GenericFieldAnalysis(_Frozen):
    field_path: str
    present_count: int
    missing_count: int
    unique_values: int
    sample_values: list[str] = Field(default_factory=list)


class GenericAnalytics(_Frozen):
    total_resources: int = 0
    unique_ids: int = 0
    sample_size: int = 0
    field_analysis: list[GenericFieldAnalysis] = Field(default_factory=list)
    sample_fields: list[str] = Field(default_factory=list)
