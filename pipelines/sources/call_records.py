"""Police calls-for-service inputs.

The preferred input is the full parquet extract of individual calls, read
through DuckDB and aggregated by :mod:`pipelines.aggregate`. Older drops only
ship a pre-aggregated daily CSV (one row per day with an average response time
and the number of incidents); that file is rolled up to months here and emitted
with the same bundle schema, leaving the emergency split and the categorical
breakdowns empty.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping

import duckdb
import pandas as pd

from pipelines.aggregate import CallRecordColumns, aggregate_call_records, summarize_bundle
from pipelines.common import coerce_float
from pipelines.model import MonthlyResponse, ResponseTimeBundle
from pipelines.periods import FLOOR_PERIOD, on_or_after_floor, to_period
from pipelines.sources.delimited import Source, read_delimited
from pipelines.stats import median, percentile, weighted_mean

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallRecordFormat:
    """Parquet call-record extract."""

    columns: CallRecordColumns = field(default_factory=CallRecordColumns)


@dataclass(frozen=True)
class DailyResponseFormat:
    """Header names in the pre-aggregated daily response-time CSV."""

    date_column: str = "date"
    minutes_column: str = "avg_response_minutes"
    weight_column: str = "incidents"
    delimiter: str = ","


def _quote(identifier: str) -> str:
    return '"' + identifier.replace('"', '""') + '"'


def read_call_records(path: str | Path, columns: CallRecordColumns = CallRecordColumns()) -> pd.DataFrame:
    """Load only the needed call-record columns from a parquet file."""

    select_list = ", ".join(_quote(name) for name in columns.as_tuple())
    conn = duckdb.connect()
    try:
        return conn.execute(
            f"SELECT {select_list} FROM read_parquet(?)",
            [str(path)],
        ).df()
    finally:
        conn.close()


def extract_call_records(
    path: str | Path,
    fmt: CallRecordFormat,
    *,
    floor: str = FLOOR_PERIOD,
) -> ResponseTimeBundle:
    frame = read_call_records(path, fmt.columns)
    logger.info("Loaded %s call records.", len(frame))
    return aggregate_call_records(frame, fmt.columns, floor=floor)


def rollup_daily_response(
    rows: Iterable[Mapping[str, Any]],
    fmt: DailyResponseFormat,
    *,
    floor: str = FLOOR_PERIOD,
) -> ResponseTimeBundle:
    """Roll daily averages up to months.

    Each month gets an incident-weighted mean, the median and 90th percentile
    of its per-day averages, and the incident total as its count.
    """

    days: dict[str, list[tuple[float, float]]] = {}
    for row in rows:
        period = to_period(row.get(fmt.date_column))
        minutes = coerce_float(row.get(fmt.minutes_column))
        weight = coerce_float(row.get(fmt.weight_column))
        if minutes is None or weight is None or weight < 0:
            continue
        if not on_or_after_floor(period, floor):
            continue
        days.setdefault(period, []).append((minutes, weight))

    monthly: list[MonthlyResponse] = []
    all_values: list[float] = []
    total_calls = 0
    for period in sorted(days):
        values = [minutes for minutes, _ in days[period]]
        weights = [weight for _, weight in days[period]]
        count = int(round(sum(weights)))
        monthly.append(
            MonthlyResponse(
                period=period,
                median=median(values),
                mean=weighted_mean(values, weights),
                p90=percentile(values),
                count=count,
            )
        )
        all_values.extend(values)
        total_calls += count

    return ResponseTimeBundle(
        monthly=monthly,
        summary=summarize_bundle(monthly, all_values, None, total_calls),
    )


def extract_daily_response(
    source: Source,
    fmt: DailyResponseFormat,
    *,
    floor: str = FLOOR_PERIOD,
) -> ResponseTimeBundle:
    frame = read_delimited(source, delimiter=fmt.delimiter)
    return rollup_daily_response(frame.to_dict("records"), fmt, floor=floor)


__all__ = [
    "CallRecordFormat",
    "DailyResponseFormat",
    "extract_call_records",
    "extract_daily_response",
    "read_call_records",
    "rollup_daily_response",
]
