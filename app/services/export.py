"""Export summary: a serializable snapshot of a parse for download."""

from __future__ import annotations

import re
from datetime import datetime, timezone

from app.schemas.analytics import ParseResult
from app.schemas.api import ExportSummary

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def build_export_summary(result: ParseResult, sample_size: int = 5) -> ExportSummary:
    return ExportSummary(
        resource_type=result.resource_type,
        pseudo_file_name=result.pseudo_file_name,
        total_records=result.valid_lines,
        invalid_lines=result.invalid_lines,
        parse_time_ms=result.parse_time_ms,
        exported_at=datetime.now(timezone.utc),
        sample_records=result.resources[:sample_size],
    )


def export_file_name(result: ParseResult) -> str:
    # resourceType comes from user input and ends up in a response header
    return _UNSAFE_FILENAME_CHARS.sub("_", f"{result.resource_type}-summary.json")
