"""
Aggregation helpers shared by the Patient and Encounter analyzers.

Counting uses ``collections.Counter``, which keeps keys in first-seen order;
distributions are sorted with a stable sort so ties keep that order.
"""

from __future__ import annotations

import math
from collections import Counter
from datetime import datetime
from typing import Any, Iterable, Sequence

from app.analytics.dates import short_date
from app.schemas.analytics import DateRange, DistributionItem, HistogramBucket

# (min, max, label); max None means unbounded
BucketSpec = tuple[float, float | None, str]


def round1(value: float) -> float:
    """Round half up to one decimal place."""
    return math.floor(value * 10 + 0.5) / 10


def build_distribution(counts: Counter) -> list[DistributionItem]:
    total = sum(counts.values())
    items = [
        DistributionItem(
            label=label,
            count=count,
            percentage=(count / total) * 100 if total > 0 else 0.0,
        )
        for label, count in counts.items()
    ]
    return sorted(items, key=lambda item: -item.count)


def build_histogram(
    values: Iterable[float],
    specs: Sequence[BucketSpec],
    *,
    half_open: bool = False,
    drop_empty: bool = False,
) -> list[HistogramBucket]:
    """
    Assign each value to the first bucket whose range contains it.

    Ranges are closed ``[min, max]`` unless ``half_open`` is set, in which
    case they are ``[min, max)``.
    """
    counts = [0] * len(specs)
    for value in values:
        for index, (low, high, _) in enumerate(specs):
            if value < low:
                continue
            if high is None or value < high or (not half_open and value == high):
                counts[index] += 1
                break

    buckets = [
        HistogramBucket(min=low, max=high, label=label, count=count)
        for (low, high, label), count in zip(specs, counts)
    ]
    if drop_empty:
        return [bucket for bucket in buckets if bucket.count > 0]
    return buckets


def summarize(values: Sequence[float]) -> dict[str, float]:
    """
    Mean, median, min, max and population standard deviation.
    Mean, median and std_dev are rounded to one decimal; empty input is all zeros.
    """
    if not values:
        return {"mean": 0, "median": 0, "min": 0, "max": 0, "std_dev": 0}

    ordered = sorted(values)
    n = len(ordered)
    mean = sum(ordered) / n
    mid = n // 2
    median = ordered[mid] if n % 2 else (ordered[mid - 1] + ordered[mid]) / 2
    variance = sum((v - mean) ** 2 for v in ordered) / n

    return {
        "mean": round1(mean),
        "median": round1(median),
        "min": ordered[0],
        "max": ordered[-1],
        "std_dev": round1(math.sqrt(variance)),
    }


def build_date_range(dates: Iterable[datetime]) -> DateRange:
    ordered = sorted(dates)
    if not ordered:
        return DateRange()
    return DateRange(
        earliest=ordered[0],
        latest=ordered[-1],
        earliest_display=short_date(ordered[0]),
        latest_display=short_date(ordered[-1]),
    )


def count_unique_ids(resources: Iterable[dict[str, Any]]) -> int:
    ids = set()
    for resource in resources:
        resource_id = resource.get("id")
        if resource_id not in (None, "", False) and isinstance(resource_id, (str, int, float)):
            ids.add(resource_id)
    return len(ids)


def text_or_none(value: Any) -> str | None:
    """Non-empty string values pass through; anything else is None."""
    if isinstance(value, str) and value:
        return value
    return None
