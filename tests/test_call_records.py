import duckdb
import pytest

from pipelines.sources.call_records import (
    CallRecordFormat,
    DailyResponseFormat,
    extract_call_records,
    extract_daily_response,
    rollup_daily_response,
)


def test_daily_rollup_uses_weighted_mean_and_per_day_order_statistics():
    rows = [
        {"date": "03/01/2022", "avg_response_minutes": "10", "incidents": "2"},
        {"date": "03/02/2022", "avg_response_minutes": "20", "incidents": "1"},
        {"date": "03/03/2022", "avg_response_minutes": "40", "incidents": "1"},
        {"date": "04/01/2022", "avg_response_minutes": "12.5", "incidents": "8"},
        {"date": "12/31/2014", "avg_response_minutes": "9", "incidents": "3"},
        {"date": "04/02/2022", "avg_response_minutes": "", "incidents": "4"},
    ]

    bundle = rollup_daily_response(rows, DailyResponseFormat())
    march, april = bundle.monthly

    assert march.period == "2022-03"
    assert march.mean == pytest.approx(20.0)  # (10*2 + 20 + 40) / 4
    assert march.median == 20.0
    assert march.p90 == 40.0
    assert march.count == 4
    assert march.emergency_median is None

    assert april.count == 8
    assert april.mean == pytest.approx(12.5)

    assert bundle.by_district == [] and bundle.distribution == []
    assert bundle.summary.total_calls == 12
    assert bundle.summary.latest_month == "2022-04"
    assert bundle.summary.emergency_median is None


def test_daily_rollup_from_csv(tmp_path):
    path = tmp_path / "police_response_daily.csv"
    path.write_text("date,avg_response_minutes,incidents\n2023-01-05,8,10\n2023-01-06,10,30\n")

    bundle = extract_daily_response(path, DailyResponseFormat())

    assert len(bundle.monthly) == 1
    assert bundle.monthly[0].mean == pytest.approx(9.5)


def test_daily_rollup_header_only(tmp_path):
    path = tmp_path / "police_response_daily.csv"
    path.write_text("date,avg_response_minutes,incidents\n")

    bundle = extract_daily_response(path, DailyResponseFormat())

    assert bundle.monthly == []
    assert bundle.summary.total_calls == 0


def test_parquet_call_records_are_read_through_duckdb(tmp_path):
    path = tmp_path / "calls.parquet"
    conn = duckdb.connect()
    try:
        conn.execute(
            f"""
            COPY (
                SELECT * FROM (VALUES
                    ('01/10/2020 08:00:00 AM', '01/10/2020 08:01:00 AM', '01/10/2020 08:09:00 AM', '1A', 7, 'THEFT', 'extra'),
                    ('01/11/2020 08:00:00 AM', '01/11/2020 08:01:00 AM', '01/11/2020 08:21:00 AM', '2B', 7, 'THEFT', 'extra')
                ) AS t("TimeCreate", "TimeDispatch", "TimeArrive", "Priority", "District", "TypeText", "Ignored")
            ) TO '{path}' (FORMAT PARQUET)
            """
        )
    finally:
        conn.close()

    bundle = extract_call_records(path, CallRecordFormat())

    assert bundle.summary.total_calls == 2
    assert bundle.monthly[0].median == 14.0
    assert bundle.by_district[0].district == 7
    assert bundle.by_type[0].call_type == "THEFT"
