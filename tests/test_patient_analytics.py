"""Tests for Patient analytics."""

from datetime import datetime, timezone

import pytest

from app.analytics.patients import (
    analyze_patients,
    calculate_age,
    extract_ethnicity,
    extract_race,
)
from app.schemas.fhir import US_CORE_ETHNICITY_URL, US_CORE_RACE_URL

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


def _make_patient(
    pid="p1",
    birth_date="1990-01-15",
    gender="female",
    state="Massachusetts",
    city="Boston",
    **extra,
):
    patient = {"resourceType": "Patient", "id": pid}
    if birth_date is not None:
        patient["birthDate"] = birth_date
    if gender is not None:
        patient["gender"] = gender
    if state or city:
        patient["address"] = [{"state": state, "city": city}]
    patient.update(extra)
    return patient


def _race_extension(omb=None, detailed=None, text=None, url=US_CORE_RACE_URL):
    sub = []
    if omb:
        sub.append({"url": "ombCategory", "valueCoding": {"display": omb}})
    if detailed:
        sub.append({"url": "detailed", "valueCoding": {"display": detailed}})
    if text:
        sub.append({"url": "text", "valueString": text})
    return [{"url": url, "extension": sub}]


# ---------------------------------------------------------------------------
# Age
# ---------------------------------------------------------------------------

def test_age_full_years():
    assert calculate_age("1990-06-02", now=NOW) == 33
    assert calculate_age("1990-06-01", now=NOW) == 34


def test_age_at_death():
    assert calculate_age("1950-03-10", "2000-03-09T12:00:00Z", now=NOW) == 49


def test_age_invalid_or_negative():
    assert calculate_age(None, now=NOW) is None
    assert calculate_age("not-a-date", now=NOW) is None
    assert calculate_age("2030-01-01", now=NOW) is None
    assert calculate_age("1990-01-01", "garbage", now=NOW) is None


# ---------------------------------------------------------------------------
# Race / ethnicity
# ---------------------------------------------------------------------------

def test_race_prefers_omb_then_detailed_then_text():
    assert extract_race(_race_extension(omb="White", detailed="Irish", text="w")) == "White"
    assert extract_race(_race_extension(detailed="Irish", text="w")) == "Irish"
    assert extract_race(_race_extension(text="Other race")) == "Other race"


def test_race_absent():
    assert extract_race(None) is None
    assert extract_race([]) is None
    assert extract_race(_race_extension()) is None
    assert extract_race(_race_extension(omb="White", url=US_CORE_ETHNICITY_URL)) is None


def test_ethnicity():
    ext = _race_extension(omb="Not Hispanic or Latino", url=US_CORE_ETHNICITY_URL)
    assert extract_ethnicity(ext) == "Not Hispanic or Latino"


# ---------------------------------------------------------------------------
# Analyzer
# ---------------------------------------------------------------------------

def test_unparsable_birth_date_is_not_missing():
    patients = [
        _make_patient("p1", birth_date="2000-01-01"),
        _make_patient("p2", birth_date="bad-date"),
    ]
    result = analyze_patients(patients, now=NOW)

    assert sum(b.count for b in result.age_distribution) == 1
    assert result.missing_birth_date == 0
    assert result.birth_date_range.earliest_display == "1/1/2000"


def test_gender_distribution_and_missing_gender():
    patients = [
        _make_patient("1", gender="female"),
        _make_patient("2", gender="male"),
        _make_patient("3", gender="female"),
        _make_patient("4", gender=None),
    ]
    result = analyze_patients(patients, now=NOW)

    assert [(d.label, d.count) for d in result.gender_distribution] == [("female", 2), ("male", 1)]
    assert result.missing_gender == 1
    assert sum(d.percentage for d in result.gender_distribution) == pytest.approx(100.0, abs=0.01)


def test_age_histogram_keeps_empty_buckets():
    patients = [
        _make_patient("1", birth_date="2020-01-01"),
        _make_patient("2", birth_date="1930-01-01"),
    ]
    result = analyze_patients(patients, now=NOW)

    assert len(result.age_distribution) == 10
    counts = {b.label: b.count for b in result.age_distribution}
    assert counts["0-9"] == 1
    assert counts["90+"] == 1
    assert counts["40-49"] == 0


def test_age_stats():
    patients = [
        _make_patient("1", birth_date="2004-01-01"),  # 20
        _make_patient("2", birth_date="1994-01-01"),  # 30
        _make_patient("3", birth_date="1984-01-01"),  # 40
    ]
    stats = analyze_patients(patients, now=NOW).age_stats

    assert stats.mean == 30
    assert stats.median == 30
    assert stats.min == 20
    assert stats.max == 40
    assert stats.std_dev == 8.2


def test_mortality():
    patients = [
        _make_patient("1"),
        _make_patient("2", deceasedBoolean=True),
        _make_patient("3", deceasedDateTime="2020-05-05T00:00:00Z"),
        _make_patient("4", deceasedBoolean=False),
    ]
    result = analyze_patients(patients, now=NOW)

    assert result.deceased_count == 2
    assert result.living_count == 2
    assert result.mortality_rate == 50


def test_geography_truncated():
    patients = [
        _make_patient(str(i), state=f"State {i}", city=f"City {i}") for i in range(25)
    ]
    result = analyze_patients(patients, now=NOW)

    assert len(result.state_distribution) == 15
    assert len(result.city_distribution) == 20
    # all ties, so first-seen order wins
    assert result.state_distribution[0].label == "State 0"


def test_missing_address():
    patients = [
        _make_patient("1", state=None, city=None),
        _make_patient("2", state=None, city=None, address=[]),
        _make_patient("3"),
    ]
    result = analyze_patients(patients, now=NOW)
    assert result.missing_address == 2


def test_unique_ids():
    patients = [_make_patient("a"), _make_patient("a"), _make_patient("b"), _make_patient(None)]
    assert analyze_patients(patients, now=NOW).unique_ids == 2


def test_empty_input():
    result = analyze_patients([], now=NOW)

    assert result.total_patients == 0
    assert result.mortality_rate == 0
    assert result.gender_distribution == []
    assert result.age_stats.mean == 0
    assert result.birth_date_range.earliest is None
    assert result.birth_date_range.latest_display == "N/A"


def test_malformed_fields_do_not_raise():
    patients = [
        {"resourceType": "Patient", "address": "nowhere", "extension": {"url": 1}},
        {"resourceType": "Patient", "address": [None], "extension": [None, 5]},
        {"resourceType": "Patient", "birthDate": 19900101, "gender": ["x"]},
    ]
    result = analyze_patients(patients, now=NOW)
    assert result.total_patients == 3
    assert result.missing_address == 2


def test_idempotent():
    patients = [_make_patient(str(i), birth_date=f"19{50 + i}-02-03") for i in range(10)]
    assert analyze_patients(patients, now=NOW) == analyze_patients(patients, now=NOW)
