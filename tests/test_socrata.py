import asyncio
from datetime import date

import pytest

import pipelines.sources.socrata as socrata
from pipelines.sources.socrata import (
    build_pothole_queries,
    fetch_pothole_summary,
    parse_council_districts,
    parse_monthly_trend,
    parse_request_types,
    parse_status_breakdown,
)


def test_queries_filter_by_since_date():
    queries = build_pothole_queries(date(2023, 6, 1))

    assert "date_created>='2023-06-01'" in queries["total"]["$where"]
    assert "request_status='Pending'" in queries["open"]["$where"]
    assert queries["trend"]["$group"] == "month"
    assert queries["types"]["$where"] == "date_created>='2023-06-01'"
    assert "Pothole" not in queries["types"]["$where"]


def test_queries_reject_non_date_since():
    with pytest.raises(ValueError):
        build_pothole_queries("2024-01-01' OR '1'='1")


def test_parse_monthly_trend_skips_bad_rows():
    payload = [
        {"month": "2024-01-01T00:00:00.000", "total": "31"},
        {"month": None, "total": "4"},
        "garbage",
        {"month": "2024-02-01T00:00:00.000", "total": "7"},
    ]

    assert [(row.period, row.count) for row in parse_monthly_trend(payload)] == [("2024-01", 31), ("2024-02", 7)]
    assert parse_monthly_trend({"error": "bad query"}) == []


def test_status_and_district_breakdowns():
    statuses = parse_status_breakdown([{"request_status": "Pending", "total": "40"}, {"total": "3"}])
    districts = parse_council_districts(
        [{"address_councildis": "B", "total": "12"}, {"address_councildis": None, "total": "2"}]
    )

    assert [(row.status, row.count) for row in statuses] == [("Pending", 40)]
    assert [row.to_json_dict() for row in districts] == [{"district": "District B", "count": 12}]


def test_request_types_fold_status_rows():
    payload = [
        {"request_type": "Roads and Streets", "request_status": "Closed", "total": "150"},
        {"request_type": "Roads and Streets", "request_status": "Pending", "total": "50"},
        {"request_type": "Trash", "request_status": "Closed", "total": "120"},
        {"request_type": "Abandoned Vehicle", "request_status": "Pending", "total": "120"},
    ]

    types = parse_request_types(payload, limit=2)

    assert [row.request_type for row in types] == ["Roads and Streets", "Abandoned Vehicle"]
    assert types[0].to_json_dict() == {
        "type": "Roads and Streets",
        "total": 200,
        "open": 50,
        "openPercent": 25.0,
        "isPothole": True,
    }
    assert types[1].open_percent == pytest.approx(100.0)


def test_fetch_pothole_summary(monkeypatch):
    seen = []

    async def _fake_fetch_json(url, *, headers=None, params=None, **_kwargs):
        seen.append((headers, params))
        select = params["$select"]
        if select.startswith("count"):
            return [{"total": "40"}] if "Pending" in params["$where"] else [{"total": "200"}]
        if select.startswith("avg"):
            return [{"avg_days": "12.25"}]
        if select.startswith("date_trunc"):
            return [{"month": "2024-01-01T00:00:00.000", "total": "80"}]
        if select.startswith("request_status"):
            return [{"request_status": "Closed", "total": "160"}]
        if select.startswith("address_councildis"):
            return [{"address_councildis": "A", "total": "55"}]
        return [{"request_type": "Roads and Streets", "request_status": "Pending", "total": "40"}]

    monkeypatch.setattr(socrata, "fetch_json", _fake_fetch_json)
    monkeypatch.setenv("SOCRATA_APP_TOKEN", "token-123")

    summary = asyncio.run(fetch_pothole_summary(since=date(2024, 1, 1)))

    assert len(seen) == 7
    assert all(headers == {"X-App-Token": "token-123"} for headers, _ in seen)
    assert summary.since == "2024-01-01"
    assert summary.open_count == 40
    assert summary.total_since == 200
    assert summary.open_percent == pytest.approx(20.0)
    assert summary.avg_days_to_close == pytest.approx(12.25)
    assert summary.monthly_trend[0].period == "2024-01"
    assert summary.status_breakdown[0].status == "Closed"
    assert summary.by_district[0].district == "District A"
    assert summary.top_request_types[0].open == 40
