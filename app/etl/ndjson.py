"""
NDJSON parser for FHIR bulk data exports.

Each non-blank line is an independent JSON object representing one FHIR
resource. Parsing is permissive:
- blank and whitespace-only lines are skipped
- malformed lines are reported with their 1-based line number and never
  stop the parse
- the resource type of the first valid line becomes the detected type;
  later resources of another type are kept and only counted
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any

from app.schemas.analytics import ParseDiagnostic, ParseResult, PreviewResult
from app.schemas.fhir import FHIR_RESOURCE_ENVELOPE_SCHEMA
from app.services.validation import compile_schema, schema_errors

logger = logging.getLogger(__name__)

MAX_ERROR_LINE_LENGTH = 100
MAX_ERRORS_STORED = 50

UNKNOWN_RESOURCE_TYPE = "Unknown"

_ENVELOPE_VALIDATOR = compile_schema(FHIR_RESOURCE_ENVELOPE_SCHEMA)


class MalformedLineError(ValueError):
    """A line that is not a JSON object with a resourceType."""


def _split_lines(text: str) -> list[str]:
    return text.split("\n") if text else []


def _truncate(line: str) -> str:
    if len(line) > MAX_ERROR_LINE_LENGTH:
        return line[:MAX_ERROR_LINE_LENGTH] + "..."
    return line


def decode_resource(line: str) -> dict[str, Any]:
    """
    Decode one trimmed NDJSON line into a FHIR resource dict.
    Raises MalformedLineError when the line is not a resource.
    """
    try:
        parsed = json.loads(line)
    except (ValueError, RecursionError) as exc:
        raise MalformedLineError(f"Invalid JSON: {exc}") from exc

    if not isinstance(parsed, dict):
        raise MalformedLineError("Parsed value is not an object")

    errors = schema_errors(_ENVELOPE_VALIDATOR, parsed)
    if errors:
        raise MalformedLineError(f"Missing or invalid resourceType field: {errors[0]}")
    return parsed


def parse_ndjson(text: str) -> ParseResult:
    """Parse an NDJSON string into FHIR resources plus per-line diagnostics."""
    start = time.perf_counter()

    lines = _split_lines(text)
    resources: list[dict[str, Any]] = []
    diagnostics: list[ParseDiagnostic] = []
    detected_type: str | None = None
    mismatch_count = 0
    valid_lines = 0
    invalid_lines = 0

    for index, raw in enumerate(lines):
        line = raw.strip()
        if not line:
            continue

        try:
            resource = decode_resource(line)
        except MalformedLineError as exc:
            invalid_lines += 1
            if len(diagnostics) < MAX_ERRORS_STORED:
                diagnostics.append(
                    ParseDiagnostic(
                        line_number=index + 1,
                        message=str(exc),
                        raw_line=_truncate(line),
                    )
                )
            continue

        resource_type = resource["resourceType"]
        if detected_type is None:
            detected_type = resource_type
        elif resource_type != detected_type:
            mismatch_count += 1

        resources.append(resource)
        valid_lines += 1

    if mismatch_count > 0 and len(diagnostics) < MAX_ERRORS_STORED:
        diagnostics.insert(
            0,
            ParseDiagnostic(
                line_number=0,
                message=(
                    f"Warning: Found {mismatch_count} resources with different "
                    f'resourceType than "{detected_type}". '
                    "Analysis focuses on the predominant type."
                ),
            ),
        )

    parse_time_ms = (time.perf_counter() - start) * 1000
    logger.info(
        "Parsed %d lines: %d valid, %d invalid, type=%s",
        len(lines),
        valid_lines,
        invalid_lines,
        detected_type or UNKNOWN_RESOURCE_TYPE,
    )

    return ParseResult(
        resources=resources,
        resource_type=detected_type or UNKNOWN_RESOURCE_TYPE,
        pseudo_file_name=f"{detected_type}.ndjson" if detected_type else "unknown.ndjson",
        total_lines=len(lines),
        valid_lines=valid_lines,
        invalid_lines=invalid_lines,
        diagnostics=diagnostics,
        parse_time_ms=parse_time_ms,
    )


def looks_like_ndjson(text: str) -> bool:
    """
    Quick check before a full parse: the first non-blank line must be a
    JSON object with a string resourceType.
    """
    for raw in _split_lines(text):
        line = raw.strip()
        if not line:
            continue
        if not line.startswith("{"):
            return False
        try:
            parsed = json.loads(line)
        except (ValueError, RecursionError):
            return False
        return isinstance(parsed, dict) and isinstance(parsed.get("resourceType"), str)
    return False


def get_preview(text: str, max_records: int = 5) -> PreviewResult:
    """Decode up to ``max_records`` resources, silently skipping bad lines."""
    resources: list[dict[str, Any]] = []
    non_blank = 0

    for raw in _split_lines(text):
        line = raw.strip()
        if not line:
            continue
        non_blank += 1
        if len(resources) >= max_records:
            continue
        try:
            resources.append(decode_resource(line))
        except MalformedLineError:
            continue

    return PreviewResult(resources=resources, has_more=non_blank > max_records)
