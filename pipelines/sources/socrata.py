"""Live 311 pothole statistics from the city's Socrata open-data portal.

These figures are fetched on demand for the dashboard and never written to an
artifact.
"""

from __future__ import annotations

import asyncio
import logging
import os
from datetime import date
from typing import Any, Mapping

from pipelines.common import coerce_float, fetch_json
from pipelines.model import (
    CouncilDistrictCount,
    MonthlyCount,
    PotholeSummary,
    RequestTypeSummary,
    StatusCount,
)
from pipelines.periods import to_period

SOCRATA_311_URL = "https://data.nola.gov/resource/2jgv-pqrq.json"
POTHOLE_REQUEST_TYPE = "Roads and Streets"
POTHOLE_FILTER = f"request_type='{POTHOLE_REQUEST_TYPE}' AND request_reason='Pothole'"
OPEN_STATUS = "Pending"
DEFAULT_SINCE = date(2024, 1, 1)
TOP_REQUEST_TYPES = 15
REQUEST_TYPE_ROW_LIMIT = 100

QUERY_NAMES = ("open", "total", "closed", "trend", "status", "district", "types")

logger = logging.getLogger(__name__)


def _resolve_app_token(app_token: str | None) -> str | None:
    return app_token or os.getenv("SOCRATA_APP_TOKEN")


def _as_date(since: date | str) -> date:
    if isinstance(since, date):
        return since
    return date.fromisoformat(since)


def build_pothole_queries(since: date | str = DEFAULT_SINCE) -> dict[str, dict[str, str]]:
    """SoQL parameter sets for each figure on the pothole panel.

    ``since`` must be a date (or an ISO date string); it is re-serialized
    before being placed in a ``$where`` clause.
    """

    cutoff = _as_date(since).isoformat()
    return {
        "open": {
            "$select": "count(*) as total",
            "$where": f"{POTHOLE_FILTER} AND request_status='{OPEN_STATUS}'",
        },
        "total": {
            "$select": "count(*) as total",
            "$where": f"{POTHOLE_FILTER} AND date_created>='{cutoff}'",
        },
        "closed": {
            "$select": "avg(date_diff_d(case_close_date,date_created)) as avg_days",
            "$where": (
                f"{POTHOLE_FILTER} AND request_status='Closed' "
                f"AND case_close_date>='{cutoff}'"
            ),
        },
        "trend": {
            "$select": "date_trunc_ym(date_created) as month,count(*) as total",
            "$where": f"{POTHOLE_FILTER} AND date_created>='{cutoff}'",
            "$group": "month",
            "$order": "month",
        },
        "status": {
            "$select": "request_status,count(*) as total",
            "$where": f"{POTHOLE_FILTER} AND date_created>='{cutoff}'",
            "$group": "request_status",
        },
        "district": {
            "$select": "address_councildis,count(*) as total",
            "$where": (
                f"{POTHOLE_FILTER} AND date_created>='{cutoff}' "
                "AND address_councildis IS NOT NULL"
            ),
            "$group": "address_councildis",
            "$order": "total DESC",
        },
        "types": {
            "$select": "request_type,request_status,count(*) as total",
            "$where": f"date_created>='{cutoff}'",
            "$group": "request_type,request_status",
            "$order": "total DESC",
            "$limit": str(REQUEST_TYPE_ROW_LIMIT),
        },
    }


def _rows(payload: Any) -> list[Mapping[str, Any]]:
    if not isinstance(payload, list):
        return []
    return [row for row in payload if isinstance(row, Mapping)]


def _first(payload: Any, key: str) -> Any:
    rows = _rows(payload)
    return rows[0].get(key) if rows else None


def _as_int(value: Any) -> int:
    numeric = coerce_float(value)
    return int(numeric) if numeric is not None else 0


def parse_monthly_trend(payload: Any) -> list[MonthlyCount]:
    trend: list[MonthlyCount] = []
    for row in _rows(payload):
        period = to_period(row.get("month"))
        if period is None:
            continue
        trend.append(MonthlyCount(period=period, count=_as_int(row.get("total"))))
    return trend


def parse_status_breakdown(payload: Any) -> list[StatusCount]:
    return [
        StatusCount(status=str(row["request_status"]), count=_as_int(row.get("total")))
        for row in _rows(payload)
        if row.get("request_status")
    ]


def parse_council_districts(payload: Any) -> list[CouncilDistrictCount]:
    return [
        CouncilDistrictCount(district=f"District {row['address_councildis']}", count=_as_int(row.get("total")))
        for row in _rows(payload)
        if row.get("address_councildis")
    ]


def parse_request_types(payload: Any, limit: int = TOP_REQUEST_TYPES) -> list[RequestTypeSummary]:
    """Fold (type, status) rows into per-type totals and open counts."""

    totals: dict[str, list[int]] = {}
    for row in _rows(payload):
        request_type = row.get("request_type")
        if not request_type:
            continue
        count = _as_int(row.get("total"))
        entry = totals.setdefault(request_type, [0, 0])
        entry[0] += count
        if row.get("request_status") == OPEN_STATUS:
            entry[1] += count

    ranked = sorted(totals.items(), key=lambda item: (-item[1][0], item[0]))[:limit]
    return [
        RequestTypeSummary(
            request_type=request_type,
            total=total,
            open=open_count,
            open_percent=round(open_count / total * 100, 1) if total else 0.0,
            is_pothole=request_type == POTHOLE_REQUEST_TYPE,
        )
        for request_type, (total, open_count) in ranked
    ]


async def fetch_pothole_summary(
    *,
    since: date | str = DEFAULT_SINCE,
    app_token: str | None = None,
    url: str = SOCRATA_311_URL,
) -> PotholeSummary:
    """Query the 311 dataset and assemble the pothole panel figures."""

    cutoff = _as_date(since)
    token = _resolve_app_token(app_token)
    headers = {"X-App-Token": token} if token else None
    queries = build_pothole_queries(cutoff)

    payloads = await asyncio.gather(
        *(fetch_json(url, headers=headers, params=queries[name]) for name in QUERY_NAMES)
    )
    results = dict(zip(QUERY_NAMES, payloads))

    open_count = _as_int(_first(results["open"], "total"))
    total_since = _as_int(_first(results["total"], "total"))
    open_percent = (open_count / total_since * 100) if total_since else 0.0
    logger.debug("311 potholes: open=%s total_since=%s", open_count, total_since)

    return PotholeSummary(
        open_count=open_count,
        total_since=total_since,
        since=cutoff.isoformat(),
        avg_days_to_close=coerce_float(_first(results["closed"], "avg_days")),
        open_percent=round(open_percent, 1),
        monthly_trend=parse_monthly_trend(results["trend"]),
        status_breakdown=parse_status_breakdown(results["status"]),
        by_district=parse_council_districts(results["district"]),
        top_request_types=parse_request_types(results["types"]),
    )


__all__ = [
    "DEFAULT_SINCE",
    "SOCRATA_311_URL",
    "build_pothole_queries",
    "fetch_pothole_summary",
    "parse_council_districts",
    "parse_monthly_trend",
    "parse_request_types",
    "parse_status_breakdown",
]
