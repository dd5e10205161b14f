"""
Encounter analytics.

Computes classification, temporal and length-of-stay metrics from FHIR
Encounter resources. Encounters with missing periods, classes or subjects
still count toward totals; they are excluded only from the metric that
needs the missing field.
"""

from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime
from typing import Any, Sequence

from app.analytics.dates import month_key, month_label, parse_fhir_datetime
from app.analytics.stats import (
    BucketSpec,
    build_date_range,
    build_distribution,
    build_histogram,
    count_unique_ids,
    summarize,
    text_or_none,
)
from app.schemas.analytics import (
    EncounterAnalytics,
    EncountersPerPatientStats,
    LengthOfStayStats,
    TimeSeriesPoint,
)

logger = logging.getLogger(__name__)

TOP_TYPES = 15

MS_PER_HOUR = 1000 * 60 * 60

# v3 ActCode values plus the lowercase codes Synthea emits
CLASS_CODE_NAMES: dict[str, str] = {
    "AMB": "Ambulatory",
    "EMER": "Emergency",
    "IMP": "Inpatient",
    "ACUTE": "Acute",
    "NONAC": "Non-Acute",
    "OBSENC": "Observation",
    "PRENC": "Pre-Admission",
    "SS": "Short Stay",
    "HH": "Home Health",
    "VR": "Virtual",
    "outpatient": "Outpatient",
    "inpatient": "Inpatient",
    "ambulatory": "Ambulatory",
    "emergency": "Emergency",
    "wellness": "Wellness",
    "urgentcare": "Urgent Care",
}

LOS_BUCKETS: tuple[BucketSpec, ...] = (
    (0, 1, "<1 hour"),
    (1, 4, "1-4 hours"),
    (4, 8, "4-8 hours"),
    (8, 24, "8-24 hours"),
    (24, 48, "1-2 days"),
    (48, 72, "2-3 days"),
    (72, 168, "3-7 days"),
    (168, 336, "1-2 weeks"),
    (336, 720, "2-4 weeks"),
    (720, None, ">4 weeks"),
)

ENCOUNTERS_PER_PATIENT_BUCKETS: tuple[BucketSpec, ...] = (
    (1, 1, "1"),
    (2, 5, "2-5"),
    (6, 10, "6-10"),
    (11, 20, "11-20"),
    (21, 50, "21-50"),
    (51, 100, "51-100"),
    (101, None, ">100"),
)

PATIENT_REFERENCE_PREFIXES = ("Patient/", "urn:uuid:")


def calculate_length_of_stay(start: Any, end: Any) -> float | None:
    """Hours between period start and end; None if either is invalid or end < start."""
    start_at = parse_fhir_datetime(start)
    end_at = parse_fhir_datetime(end)
    if start_at is None or end_at is None:
        return None

    diff_ms = (end_at - start_at).total_seconds() * 1000
    if diff_ms < 0:
        return None
    return diff_ms / MS_PER_HOUR


def extract_patient_id(reference: Any) -> str | None:
    """'Patient/123' and 'urn:uuid:123' both resolve to '123'."""
    reference = text_or_none(reference)
    if reference is None:
        return None
    for prefix in PATIENT_REFERENCE_PREFIXES:
        if reference.startswith(prefix):
            return reference[len(prefix):] or None
    return reference


def _class_coding(value: Any) -> dict[str, Any]:
    # R4 uses a bare Coding; tolerate a CodeableConcept or a list of them
    if isinstance(value, list):
        value = value[0] if value else None
    if not isinstance(value, dict):
        return {}
    if "code" not in value and "display" not in value:
        codings = value.get("coding")
        if isinstance(codings, list) and codings and isinstance(codings[0], dict):
            return codings[0]
    return value


def get_class_display(encounter: dict[str, Any]) -> str:
    coding = _class_coding(encounter.get("class"))
    display = text_or_none(coding.get("display"))
    if display:
        return display
    code = text_or_none(coding.get("code"))
    if code:
        return CLASS_CODE_NAMES.get(code, code)
    return "Unknown"


def get_type_display(encounter: dict[str, Any]) -> str:
    types = encounter.get("type")
    if not isinstance(types, list) or not types:
        return "Unspecified"

    first = types[0] if isinstance(types[0], dict) else {}
    text = text_or_none(first.get("text"))
    if text:
        return text

    codings = first.get("coding")
    if isinstance(codings, list) and codings and isinstance(codings[0], dict):
        coding = codings[0]
        return text_or_none(coding.get("display")) or text_or_none(coding.get("code")) or "Unknown"
    return "Unknown"


def _time_series(month_counts: Counter) -> list[TimeSeriesPoint]:
    return [
        TimeSeriesPoint(date=key, count=count, label=month_label(key))
        for key, count in sorted(month_counts.items())
    ]


def analyze_encounters(encounters: Sequence[dict[str, Any]]) -> EncounterAnalytics:
    """Analyze Encounter resources and compute aggregate analytics."""
    patient_counts: Counter = Counter()
    class_counts: Counter = Counter()
    type_counts: Counter = Counter()
    status_counts: Counter = Counter()
    month_counts: Counter = Counter()

    los_hours: list[float] = []
    period_starts: list[datetime] = []

    missing_period_start = 0
    missing_period_end = 0
    missing_class = 0
    missing_subject = 0

    for encounter in encounters:
        if encounter.get("class"):
            class_counts[get_class_display(encounter)] += 1
        else:
            missing_class += 1

        type_counts[get_type_display(encounter)] += 1

        status = text_or_none(encounter.get("status"))
        if status:
            status_counts[status] += 1

        period = encounter.get("period")
        if not isinstance(period, dict):
            period = {}
        period_start = period.get("start")
        period_end = period.get("end")

        if not period_start:
            missing_period_start += 1
        else:
            started_at = parse_fhir_datetime(period_start)
            if started_at is not None:
                period_starts.append(started_at)
                month_counts[month_key(started_at)] += 1

        if not period_end:
            missing_period_end += 1

        los = calculate_length_of_stay(period_start, period_end)
        if los is not None:
            los_hours.append(los)

        subject = encounter.get("subject")
        reference = subject.get("reference") if isinstance(subject, dict) else None
        patient_id = extract_patient_id(reference)
        if patient_id:
            patient_counts[patient_id] += 1
        else:
            missing_subject += 1

    los_summary = summarize([hours / 24 for hours in los_hours])
    per_patient = list(patient_counts.values())
    per_patient_summary = summarize(per_patient)

    logger.info(
        "Analyzed %d encounters (%d with length of stay, %d patients)",
        len(encounters),
        len(los_hours),
        len(patient_counts),
    )

    return EncounterAnalytics(
        total_encounters=len(encounters),
        unique_encounter_ids=count_unique_ids(encounters),
        unique_patient_refs=len(patient_counts),
        class_distribution=build_distribution(class_counts),
        type_distribution=build_distribution(type_counts)[:TOP_TYPES],
        status_distribution=build_distribution(status_counts),
        encounters_by_month=_time_series(month_counts),
        period_coverage=build_date_range(period_starts),
        los_distribution=build_histogram(los_hours, LOS_BUCKETS, half_open=True, drop_empty=True),
        los_stats=LengthOfStayStats(
            mean=los_summary["mean"],
            median=los_summary["median"],
            min=los_summary["min"],
            max=los_summary["max"],
            encounters_with_los=len(los_hours),
        ),
        encounters_per_patient=build_histogram(
            per_patient, ENCOUNTERS_PER_PATIENT_BUCKETS, drop_empty=True
        ),
        encounters_per_patient_stats=EncountersPerPatientStats(
            mean=per_patient_summary["mean"],
            median=per_patient_summary["median"],
            max=per_patient_summary["max"],
        ),
        missing_period_start=missing_period_start,
        missing_period_end=missing_period_end,
        missing_class=missing_class,
        missing_subject=missing_subject,
    )
