from datetime import datetime

import pytest
from openpyxl import Workbook

from pipelines.sources.spreadsheet import (
    DatedSheetFormat,
    PivotSheetFormat,
    extract_dated_sheet,
    extract_pivot_sheet,
    pivot_to_monthly_counts,
    rows_to_monthly_counts,
)


def _as_dicts(records):
    return [record.to_json_dict() for record in records]


def test_pivot_forward_fills_year_across_columns():
    year_row = [None, 2015, None, None, 2016]
    month_row = [None, "Jan", "Feb", "Mar", "Jan"]
    data_row = [None, 100, 110, 120, 200]

    records = pivot_to_monthly_counts(year_row, month_row, data_row)

    assert _as_dicts(records) == [
        {"period": "2015-01", "count": 100},
        {"period": "2015-02", "count": 110},
        {"period": "2015-03", "count": 120},
        {"period": "2016-01", "count": 200},
    ]


def test_pivot_december_keeps_its_own_year():
    year_row = [None, 2015, None, 2016, None]
    month_row = [None, "Nov", "Dec", "Jan", "Feb"]
    data_row = [None, 10, 11, 12, 13]

    records = pivot_to_monthly_counts(year_row, month_row, data_row)

    assert [record.period for record in records] == ["2015-11", "2015-12", "2016-01", "2016-02"]


def test_pivot_skips_non_numeric_cells_and_unknown_months():
    year_row = ["Parish", 2014, None, 2015, None, None, None]
    month_row = ["", "Dec", "Jan", "Jun", "June", "Total", "Jul"]
    data_row = ["Orleans", 90, "n/a", 105, 106, 9999, None]

    records = pivot_to_monthly_counts(year_row, month_row, data_row)

    # 2014-12 is before the floor, "Jun" and "June" collide (later column wins)
    assert _as_dicts(records) == [{"period": "2015-06", "count": 106}]


def test_pivot_output_is_sorted_by_period():
    year_row = [None, 2017, None, 2016]
    month_row = [None, "Feb", "Jan", "Dec"]
    data_row = [None, 2.0, 1.0, 3.0]

    records = pivot_to_monthly_counts(year_row, month_row, data_row)

    assert [record.period for record in records] == ["2016-12", "2017-01", "2017-02"]
    assert [record.count for record in records] == [3, 1, 2]


def test_dated_rows_require_date_and_numeric_count():
    fmt = DatedSheetFormat(date_column="Month", value_column="Murders")
    rows = [
        {"Month": "2014-12-01", "Murders": 15},
        {"Month": datetime(2015, 1, 1), "Murders": 12.0},
        {"Month": "2015-02-01T00:00:00", "Murders": "9"},
        {"Month": None, "Murders": 11},
        {"Month": "2015-03-01", "Murders": None},
        {"Month": "2015-04-01", "Murders": -1},
        {"Month": "garbage", "Murders": 5},
    ]

    records = rows_to_monthly_counts(rows, fmt)

    assert _as_dicts(records) == [
        {"period": "2015-01", "count": 12},
        {"period": "2015-02", "count": 9},
    ]


def test_extract_dated_sheet_from_workbook(tmp_path):
    path = tmp_path / "murders.xlsx"
    workbook = Workbook()
    sheet = workbook.active
    sheet.append(["Month", "Murders"])
    sheet.append([datetime(2014, 11, 1), 14])
    sheet.append([datetime(2015, 2, 1), 8])
    sheet.append([datetime(2015, 1, 1), 10])
    sheet.append([None, None])
    workbook.save(path)

    records = extract_dated_sheet(path, DatedSheetFormat())

    assert _as_dicts(records) == [
        {"period": "2015-01", "count": 10},
        {"period": "2015-02", "count": 8},
    ]


def test_extract_pivot_sheet_uses_fixed_row_offsets(tmp_path):
    path = tmp_path / "addresses.xlsx"
    workbook = Workbook()
    sheet = workbook.active
    sheet.append(["Active Residential Addresses"])
    sheet.append([])
    sheet.append(["Source: USPS"])
    sheet.append([])
    sheet.append([None, 2015, None, None, 2016])
    sheet.append([None, "Jan", "Feb", "Mar", "Jan"])
    sheet.append(["Parish"])
    sheet.append(["Orleans", 150000, 150100, 150250, 151000])
    workbook.save(path)

    records = extract_pivot_sheet(path, PivotSheetFormat())

    assert [(record.period, record.count) for record in records] == [
        ("2015-01", 150000),
        ("2015-02", 150100),
        ("2015-03", 150250),
        ("2016-01", 151000),
    ]


@pytest.mark.parametrize("rows", [0, 3])
def test_pivot_sheet_without_data_row_is_empty(tmp_path, rows):
    path = tmp_path / "short.xlsx"
    workbook = Workbook()
    sheet = workbook.active
    for _ in range(rows):
        sheet.append(["x"])
    workbook.save(path)

    assert extract_pivot_sheet(path, PivotSheetFormat()) == []
