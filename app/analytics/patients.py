"""
Patient analytics.

Computes demographic, geographic and mortality metrics from FHIR Patient
resources (US Core profile). Missing or malformed fields are skipped and,
where a data-quality counter exists, tallied.
"""

from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Callable, Sequence

from app.analytics.dates import full_years_between, parse_fhir_datetime
from app.analytics.stats import (
    BucketSpec,
    build_date_range,
    build_distribution,
    build_histogram,
    count_unique_ids,
    summarize,
    text_or_none,
)
from app.schemas.analytics import AgeStats, PatientAnalytics
from app.schemas.fhir import US_CORE_ETHNICITY_URL, US_CORE_RACE_URL

logger = logging.getLogger(__name__)

TOP_STATES = 15
TOP_CITIES = 20

AGE_BUCKETS: tuple[BucketSpec, ...] = (
    (0, 9, "0-9"),
    (10, 19, "10-19"),
    (20, 29, "20-29"),
    (30, 39, "30-39"),
    (40, 49, "40-49"),
    (50, 59, "50-59"),
    (60, 69, "60-69"),
    (70, 79, "70-79"),
    (80, 89, "80-89"),
    (90, 120, "90+"),
)


def calculate_age(
    birth_date: Any,
    deceased_date_time: Any = None,
    *,
    now: datetime | None = None,
) -> int | None:
    """
    Age in full years at death, or at ``now`` for living patients.
    Returns None when the birth date (or a given death date) is invalid or
    the result would be negative.
    """
    birth = parse_fhir_datetime(birth_date)
    if birth is None:
        return None

    if deceased_date_time:
        end = parse_fhir_datetime(deceased_date_time)
        if end is None:
            return None
    else:
        end = now or datetime.now(timezone.utc)

    age = full_years_between(birth, end)
    return age if age >= 0 else None


# ---------------------------------------------------------------------------
# US Core race / ethnicity extraction
# ---------------------------------------------------------------------------

SubExtractor = Callable[[list], str | None]


def _find_extension(extensions: Any, url: str) -> dict[str, Any] | None:
    if not isinstance(extensions, list):
        return None
    for ext in extensions:
        if isinstance(ext, dict) and ext.get("url") == url:
            return ext
    return None


def _coding_display(url: str) -> SubExtractor:
    def extract(sub_extensions: list) -> str | None:
        ext = _find_extension(sub_extensions, url)
        coding = ext.get("valueCoding") if ext else None
        if not isinstance(coding, dict):
            return None
        return text_or_none(coding.get("display"))

    return extract


def _value_string(url: str) -> SubExtractor:
    def extract(sub_extensions: list) -> str | None:
        ext = _find_extension(sub_extensions, url)
        return text_or_none(ext.get("valueString")) if ext else None

    return extract


# OMB category first, then detailed, then free text
CATEGORY_EXTRACTORS: tuple[SubExtractor, ...] = (
    _coding_display("ombCategory"),
    _coding_display("detailed"),
    _value_string("text"),
)


def extract_category(extensions: Any, url: str) -> str | None:
    """Resolve a US Core race/ethnicity extension to a single label."""
    ext = _find_extension(extensions, url)
    if ext is None or not isinstance(ext.get("extension"), list):
        return None
    for extractor in CATEGORY_EXTRACTORS:
        value = extractor(ext["extension"])
        if value:
            return value
    return None


def extract_race(extensions: Any) -> str | None:
    return extract_category(extensions, US_CORE_RACE_URL)


def extract_ethnicity(extensions: Any) -> str | None:
    return extract_category(extensions, US_CORE_ETHNICITY_URL)


# ---------------------------------------------------------------------------
# Analyzer
# ---------------------------------------------------------------------------

def analyze_patients(
    patients: Sequence[dict[str, Any]],
    *,
    now: datetime | None = None,
) -> PatientAnalytics:
    """Analyze Patient resources and compute aggregate analytics."""
    now = now or datetime.now(timezone.utc)

    gender_counts: Counter = Counter()
    race_counts: Counter = Counter()
    ethnicity_counts: Counter = Counter()
    state_counts: Counter = Counter()
    city_counts: Counter = Counter()

    ages: list[int] = []
    birth_dates: list[datetime] = []

    living_count = 0
    deceased_count = 0
    missing_birth_date = 0
    missing_gender = 0
    missing_address = 0

    for patient in patients:
        gender = patient.get("gender")
        if gender:
            gender_counts[str(gender)] += 1
        else:
            missing_gender += 1

        birth_date = patient.get("birthDate")
        deceased_at = patient.get("deceasedDateTime")

        age = calculate_age(birth_date, deceased_at, now=now)
        if age is not None:
            ages.append(age)

        if birth_date:
            parsed = parse_fhir_datetime(birth_date)
            if parsed is not None:
                birth_dates.append(parsed)
        else:
            missing_birth_date += 1

        if patient.get("deceasedBoolean") or deceased_at:
            deceased_count += 1
        else:
            living_count += 1

        extensions = patient.get("extension")
        race = extract_race(extensions)
        if race:
            race_counts[race] += 1
        ethnicity = extract_ethnicity(extensions)
        if ethnicity:
            ethnicity_counts[ethnicity] += 1

        addresses = patient.get("address")
        if isinstance(addresses, list) and addresses:
            primary = addresses[0] if isinstance(addresses[0], dict) else {}
            state = text_or_none(primary.get("state"))
            if state:
                state_counts[state] += 1
            city = text_or_none(primary.get("city"))
            if city:
                city_counts[city] += 1
        else:
            missing_address += 1

    total = len(patients)
    logger.info("Analyzed %d patients (%d with a valid age)", total, len(ages))

    return PatientAnalytics(
        total_patients=total,
        unique_ids=count_unique_ids(patients),
        gender_distribution=build_distribution(gender_counts),
        age_distribution=build_histogram(ages, AGE_BUCKETS),
        age_stats=AgeStats(**summarize(ages)),
        race_distribution=build_distribution(race_counts),
        ethnicity_distribution=build_distribution(ethnicity_counts),
        state_distribution=build_distribution(state_counts)[:TOP_STATES],
        city_distribution=build_distribution(city_counts)[:TOP_CITIES],
        living_count=living_count,
        deceased_count=deceased_count,
        mortality_rate=(deceased_count / total) * 100 if total > 0 else 0,
        birth_date_range=build_date_range(birth_dates),
        missing_birth_date=missing_birth_date,
        missing_gender=missing_gender,
        missing_address=missing_address,
    )
