"""Order statistics and bucketing used by the response-time aggregations."""

from __future__ import annotations

import math
from typing import Sequence

P90 = 0.9

# (label, lower bound inclusive, upper bound exclusive); the last bin is closed.
DISTRIBUTION_BUCKETS: tuple[tuple[str, float, float], ...] = (
    ("0-5", 0, 5),
    ("5-10", 5, 10),
    ("10-15", 10, 15),
    ("15-20", 15, 20),
    ("20-30", 20, 30),
    ("30-45", 30, 45),
    ("45-60", 45, 60),
    ("60-120", 60, 120),
    ("120+", 120, 180),
)


def median(values: Sequence[float]) -> float | None:
    if not values:
        return None
    ordered = sorted(values)
    middle = len(ordered) // 2
    if len(ordered) % 2:
        return float(ordered[middle])
    return (ordered[middle - 1] + ordered[middle]) / 2


def mean(values: Sequence[float]) -> float | None:
    if not values:
        return None
    return math.fsum(values) / len(values)


def percentile(values: Sequence[float], q: float = P90) -> float | None:
    """Select the value at index ``floor(q * n)`` of the sorted sample.

    No interpolation; the index is clamped to ``n - 1``.
    """

    if not values:
        return None
    ordered = sorted(values)
    index = min(math.floor(q * len(ordered)), len(ordered) - 1)
    return float(ordered[index])


def weighted_mean(values: Sequence[float], weights: Sequence[float]) -> float | None:
    if len(values) != len(weights):
        raise ValueError("values and weights must have the same length")
    total_weight = math.fsum(weights)
    if not total_weight:
        return None
    return math.fsum(v * w for v, w in zip(values, weights)) / total_weight


def summarize(values: Sequence[float]) -> dict[str, float | int | None]:
    return {
        "median": median(values),
        "mean": mean(values),
        "p90": percentile(values),
        "count": len(values),
    }


def bucket_for(minutes: float) -> str | None:
    last_label, _, last_upper = DISTRIBUTION_BUCKETS[-1]
    if minutes == last_upper:
        return last_label
    for label, lower, upper in DISTRIBUTION_BUCKETS:
        if lower <= minutes < upper:
            return label
    return None


def bucket_counts(values: Sequence[float]) -> list[tuple[str, int]]:
    """Count values per bucket; every bucket is reported, empty ones as zero."""

    counts = {label: 0 for label, _, _ in DISTRIBUTION_BUCKETS}
    for value in values:
        label = bucket_for(value)
        if label is not None:
            counts[label] += 1
    return list(counts.items())


__all__ = [
    "DISTRIBUTION_BUCKETS",
    "P90",
    "bucket_counts",
    "bucket_for",
    "mean",
    "median",
    "percentile",
    "summarize",
    "weighted_mean",
]
