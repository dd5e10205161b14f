"""
FHIR date/dateTime handling for the analyzers.

FHIR allows partial dates ("2000", "2000-04") as well as full dates and
instants. Everything is normalized to an aware UTC datetime; values without
an offset are taken as UTC so results do not depend on the host timezone.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any

_PARTIAL_DATE = re.compile(r"^\d{4}(-\d{2})?$")
# fromisoformat on 3.10 only takes 3 or 6 fraction digits
_FRACTION = re.compile(r"(\d{2}:\d{2}:\d{2})\.(\d+)")


def _pad_fraction(match: re.Match) -> str:
    digits = (match.group(2) + "000000")[:6]
    return f"{match.group(1)}.{digits}"


def parse_fhir_datetime(value: Any) -> datetime | None:
    """Return an aware UTC datetime, or None if the value is not a valid date."""
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None

    if _PARTIAL_DATE.match(text):
        text += "-01-01" if len(text) == 4 else "-01"
    if text[-1] in "Zz":
        text = text[:-1] + "+00:00"
    text = _FRACTION.sub(_pad_fraction, text)

    try:
        parsed = datetime.fromisoformat(text)
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)
    except (ValueError, OverflowError):
        return None


def full_years_between(start: datetime, end: datetime) -> int:
    """Completed years from ``start`` to ``end`` (birthday semantics)."""
    years = end.year - start.year
    if (end.month, end.day) < (start.month, start.day):
        years -= 1
    return years


def month_key(moment: datetime) -> str:
    return f"{moment.year:04d}-{moment.month:02d}"


def month_label(key: str) -> str:
    """'2024-01' -> 'Jan 2024'."""
    year, month = key.split("-")
    return datetime(int(year), int(month), 1).strftime("%b %Y")


def short_date(moment: datetime) -> str:
    """US short date, e.g. 1/15/2024."""
    return f"{moment.month}/{moment.day}/{moment.year}"
