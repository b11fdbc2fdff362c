"""Response-time aggregation over individual calls for service.

Input is one row per call with creation, dispatch and arrival timestamps.
Output is a :class:`ResponseTimeBundle`: monthly statistics (overall and split
by emergency class), district / call-type / priority breakdowns, a fixed
histogram and a headline summary. Only calls whose dispatch-to-arrival time
falls in ``(0, 180]`` minutes count toward any statistic.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable

import pandas as pd

from pipelines.common import coerce_float
from pipelines.model import (
    CallTypeResponse,
    DistributionBucket,
    DistrictResponse,
    MonthlyResponse,
    PriorityResponse,
    ResponseSummary,
    ResponseTimeBundle,
)
from pipelines.periods import FLOOR_PERIOD, on_or_after_floor, parse_timestamp, period_from_date
from pipelines.stats import bucket_counts, mean, median, percentile, summarize

logger = logging.getLogger(__name__)

MAX_RESPONSE_MINUTES = 180.0
TOP_CALL_TYPES = 15
TOP_PRIORITIES = 10
EMERGENCY_PREFIXES = ("0", "1")

EVENT_COLUMNS = (
    "period",
    "response_minutes",
    "total_minutes",
    "is_emergency",
    "district",
    "call_type",
    "priority",
)


@dataclass(frozen=True)
class CallRecordColumns:
    """Column names in the raw call-for-service extract."""

    created: str = "TimeCreate"
    dispatched: str = "TimeDispatch"
    arrived: str = "TimeArrive"
    priority: str = "Priority"
    district: str = "District"
    call_type: str = "TypeText"

    def as_tuple(self) -> tuple[str, ...]:
        return (
            self.created,
            self.dispatched,
            self.arrived,
            self.priority,
            self.district,
            self.call_type,
        )


def placeholder_bundle() -> ResponseTimeBundle:
    """Empty collections and a zeroed summary."""

    return ResponseTimeBundle()


def minutes_between(start: datetime | None, end: datetime | None) -> float | None:
    if start is None or end is None:
        return None
    return (end - start).total_seconds() / 60


def is_valid_response(minutes: float | None) -> bool:
    return minutes is not None and 0 < minutes <= MAX_RESPONSE_MINUTES


def is_emergency_priority(code: Any) -> bool:
    label = clean_label(code)
    return label is not None and label.startswith(EMERGENCY_PREFIXES)


def clean_label(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, float):
        if value != value:
            return None
        if value.is_integer():
            value = int(value)
    text = str(value).strip()
    return text or None


def coerce_district(value: Any) -> int | None:
    numeric = coerce_float(value)
    if numeric is None or not numeric.is_integer():
        return None
    return int(numeric)


def prepare_events(
    frame: pd.DataFrame,
    columns: CallRecordColumns = CallRecordColumns(),
    *,
    floor: str = FLOOR_PERIOD,
) -> pd.DataFrame:
    """Derive per-call durations and labels, keeping only valid calls."""

    missing = [name for name in columns.as_tuple() if name not in frame.columns]
    if missing:
        raise ValueError(f"Call records are missing columns: {', '.join(missing)}")

    records: list[dict[str, Any]] = []
    rows: Iterable[tuple[Any, ...]] = zip(*(frame[name].tolist() for name in columns.as_tuple()))
    for created_raw, dispatched_raw, arrived_raw, priority, district, call_type in rows:
        created = parse_timestamp(created_raw)
        if created is None:
            continue
        period = period_from_date(created)
        if not on_or_after_floor(period, floor):
            continue
        arrived = parse_timestamp(arrived_raw)
        response = minutes_between(parse_timestamp(dispatched_raw), arrived)
        if not is_valid_response(response):
            continue
        records.append(
            {
                "period": period,
                "response_minutes": response,
                "total_minutes": minutes_between(created, arrived),
                "is_emergency": is_emergency_priority(priority),
                "district": coerce_district(district),
                "call_type": clean_label(call_type),
                "priority": clean_label(priority),
            }
        )

    logger.debug("Kept %s of %s call records.", len(records), len(frame))
    return pd.DataFrame.from_records(records, columns=list(EVENT_COLUMNS))


def _values(series: pd.Series) -> list[float]:
    return [float(value) for value in series.dropna().tolist()]


def _monthly(events: pd.DataFrame) -> list[MonthlyResponse]:
    monthly: list[MonthlyResponse] = []
    for period, group in events.groupby("period", sort=True):
        overall = summarize(_values(group["response_minutes"]))
        emergency = _values(group.loc[group["is_emergency"], "response_minutes"])
        non_emergency = _values(group.loc[~group["is_emergency"], "response_minutes"])
        monthly.append(
            MonthlyResponse(
                period=period,
                median=overall["median"],
                mean=overall["mean"],
                p90=overall["p90"],
                count=overall["count"],
                median_total=median(_values(group["total_minutes"])),
                emergency_median=median(emergency),
                emergency_mean=mean(emergency),
                emergency_p90=percentile(emergency),
                emergency_count=len(emergency),
                non_emergency_median=median(non_emergency),
                non_emergency_mean=mean(non_emergency),
                non_emergency_p90=percentile(non_emergency),
                non_emergency_count=len(non_emergency),
            )
        )
    return monthly


def _median_and_count(events: pd.DataFrame, key: str) -> list[tuple[Any, float | None, int]]:
    grouped = []
    for label, group in events.groupby(key, sort=True):
        values = _values(group["response_minutes"])
        grouped.append((label, median(values), len(values)))
    return grouped


def _top_by_count(grouped: list[tuple[Any, float | None, int]], limit: int) -> list[tuple[Any, float | None, int]]:
    return sorted(grouped, key=lambda item: (-item[2], str(item[0])))[:limit]


def _by_district(events: pd.DataFrame) -> list[DistrictResponse]:
    with_district = events[events["district"].notna()].copy()
    with_district["district"] = with_district["district"].astype(int)
    with_district = with_district[with_district["district"] > 0]
    return [
        DistrictResponse(district=int(district), median=value, count=count)
        for district, value, count in _median_and_count(with_district, "district")
    ]


def _by_type(events: pd.DataFrame) -> list[CallTypeResponse]:
    return [
        CallTypeResponse(call_type=label, median=value, count=count)
        for label, value, count in _top_by_count(_median_and_count(events, "call_type"), TOP_CALL_TYPES)
    ]


def _by_priority(events: pd.DataFrame) -> list[PriorityResponse]:
    return [
        PriorityResponse(priority=label, median=value, count=count)
        for label, value, count in _top_by_count(_median_and_count(events, "priority"), TOP_PRIORITIES)
    ]


def _distribution(events: pd.DataFrame) -> list[DistributionBucket]:
    return [
        DistributionBucket(bucket=label, count=count)
        for label, count in bucket_counts(_values(events["response_minutes"]))
    ]


def summarize_bundle(
    monthly: list[MonthlyResponse],
    all_values: list[float],
    emergency_values: list[float] | None,
    total_calls: int,
) -> ResponseSummary:
    if not monthly:
        return ResponseSummary()
    latest = monthly[-1]
    return ResponseSummary(
        total_calls=total_calls,
        overall_median=median(all_values),
        emergency_median=median(emergency_values) if emergency_values is not None else None,
        latest_month=latest.period,
        latest_median=latest.median,
    )


def aggregate_events(events: pd.DataFrame) -> ResponseTimeBundle:
    """Build the bundle from a frame produced by :func:`prepare_events`."""

    if events.empty:
        return placeholder_bundle()

    events = events.astype({"is_emergency": bool})
    monthly = _monthly(events)
    all_values = _values(events["response_minutes"])
    emergency_values = _values(events.loc[events["is_emergency"], "response_minutes"])

    return ResponseTimeBundle(
        monthly=monthly,
        by_district=_by_district(events),
        by_type=_by_type(events),
        by_priority=_by_priority(events),
        distribution=_distribution(events),
        summary=summarize_bundle(monthly, all_values, emergency_values, len(all_values)),
    )


def aggregate_call_records(
    frame: pd.DataFrame,
    columns: CallRecordColumns = CallRecordColumns(),
    *,
    floor: str = FLOOR_PERIOD,
) -> ResponseTimeBundle:
    """Aggregate raw call records into the response-time bundle."""

    events = prepare_events(frame, columns, floor=floor)
    logger.info("%s calls with valid response times.", len(events))
    return aggregate_events(events)


__all__ = [
    "CallRecordColumns",
    "EMERGENCY_PREFIXES",
    "MAX_RESPONSE_MINUTES",
    "TOP_CALL_TYPES",
    "TOP_PRIORITIES",
    "aggregate_call_records",
    "aggregate_events",
    "clean_label",
    "coerce_district",
    "is_emergency_priority",
    "is_valid_response",
    "minutes_between",
    "placeholder_bundle",
    "prepare_events",
    "summarize_bundle",
]
