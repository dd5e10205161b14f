"""
Generic field analysis for resource types without a dedicated analyzer.

Looks only at top-level fields of the first ``sample_size`` resources and
reports how often each one is present, how many distinct values it takes,
and a few sample values.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Sequence

from app.analytics.stats import count_unique_ids
from app.schemas.analytics import GenericAnalytics, GenericFieldAnalysis

logger = logging.getLogger(__name__)

MAX_SAMPLE_VALUES = 3
MAX_SAMPLE_LENGTH = 50


@dataclass
class _FieldTally:
    present: int = 0
    values: set[str] = field(default_factory=set)
    samples: list[str] = field(default_factory=list)


def _describe(value: Any) -> str | None:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (str, int, float)):
        return str(value)
    if isinstance(value, list):
        return f"[Array: {len(value)} items]"
    if isinstance(value, dict):
        return "[Object]"
    return None


def analyze_generic(
    resources: Sequence[dict[str, Any]], sample_size: int = 1000
) -> GenericAnalytics:
    sample = resources[:sample_size]
    tallies: dict[str, _FieldTally] = {}

    for resource in sample:
        for key, value in resource.items():
            if key == "resourceType":
                continue
            tally = tallies.setdefault(key, _FieldTally())
            if value is None:
                continue
            tally.present += 1

            described = _describe(value)
            if described is None:
                continue
            tally.values.add(described)
            if isinstance(value, (str, int, float, bool)):
                shown = (
                    described[:MAX_SAMPLE_LENGTH] + "..."
                    if len(described) > MAX_SAMPLE_LENGTH
                    else described
                )
                if len(tally.samples) < MAX_SAMPLE_VALUES and shown not in tally.samples:
                    tally.samples.append(shown)

    fields = sorted(
        (
            GenericFieldAnalysis(
                field_path=path,
                present_count=tally.present,
                missing_count=len(sample) - tally.present,
                unique_values=len(tally.values),
                sample_values=tally.samples,
            )
            for path, tally in tallies.items()
        ),
        key=lambda item: -item.present_count,
    )

    logger.info("Generic analysis of %d resources, %d fields", len(sample), len(fields))
    return GenericAnalytics(
        total_resources=len(resources),
        unique_ids=count_unique_ids(resources),
        sample_size=len(sample),
        field_analysis=fields,
        sample_fields=[item.field_path for item in fields],
    )
