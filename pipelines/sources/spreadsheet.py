"""Spreadsheet extractors.

Two layouts are supported:

* dated sheets, one row per month with a date column and a metric column
  (murders, crime);
* pivoted sheets, where months run across columns under a sparse year header
  row and a dense month-name row (active residential addresses).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Any, Iterable, Mapping, Sequence

import pandas as pd
from openpyxl import load_workbook

from pipelines.common import as_number, coerce_float
from pipelines.model import MonthlyCount
from pipelines.periods import (
    FLOOR_PERIOD,
    forward_fill,
    on_or_after_floor,
    period_from_parts,
    to_period,
)

logger = logging.getLogger(__name__)

Source = str | Path | IO[bytes]


@dataclass(frozen=True)
class DatedSheetFormat:
    """Column names for a sheet with one dated row per month."""

    date_column: str = "Month"
    value_column: str = "Murders"
    sheet: int | str = 0


@dataclass(frozen=True)
class PivotSheetFormat:
    """Zero-based row offsets for a sheet whose months run across columns."""

    year_row: int = 4
    month_row: int = 5
    data_row: int = 7
    first_column: int = 1
    sheet: int | str = 0


def _finalize(by_period: Mapping[str, MonthlyCount]) -> list[MonthlyCount]:
    return [by_period[period] for period in sorted(by_period)]


def rows_to_monthly_counts(
    rows: Iterable[Mapping[str, Any]],
    fmt: DatedSheetFormat,
    *,
    floor: str = FLOOR_PERIOD,
) -> list[MonthlyCount]:
    """Normalize dated rows into monthly counts at or after ``floor``."""

    by_period: dict[str, MonthlyCount] = {}
    dropped = 0
    for row in rows:
        period = to_period(row.get(fmt.date_column))
        count = coerce_float(row.get(fmt.value_column))
        if period is None or count is None or count < 0:
            dropped += 1
            continue
        if not on_or_after_floor(period, floor):
            continue
        by_period[period] = MonthlyCount(period=period, count=as_number(count))

    if dropped:
        logger.debug("Dropped %s unparseable rows (%s).", dropped, fmt.value_column)
    return _finalize(by_period)


def pivot_to_monthly_counts(
    year_row: Sequence[Any],
    month_row: Sequence[Any],
    data_row: Sequence[Any],
    *,
    first_column: int = 1,
    floor: str = FLOOR_PERIOD,
) -> list[MonthlyCount]:
    """Rebuild a monthly series from stacked year/month header rows.

    The year row is only populated where the year changes, so it is
    forward-filled across columns before being paired with the month names.
    """

    width = len(data_row)
    years = forward_fill(_cell(year_row, i) for i in range(width))

    by_period: dict[str, MonthlyCount] = {}
    for column in range(first_column, width):
        count = data_row[column]
        if isinstance(count, bool) or not isinstance(count, (int, float)):
            continue
        numeric = coerce_float(count)
        if numeric is None or numeric < 0:
            continue
        period = period_from_parts(years[column], _cell(month_row, column))
        if not on_or_after_floor(period, floor):
            continue
        by_period[period] = MonthlyCount(period=period, count=as_number(numeric))

    return _finalize(by_period)


def _cell(row: Sequence[Any], index: int) -> Any:
    return row[index] if index < len(row) else None


def read_sheet_rows(source: Source, sheet: int | str = 0) -> list[tuple[Any, ...]]:
    """Return every row of a worksheet as positional tuples, starting at row 1."""

    workbook = load_workbook(source, read_only=True, data_only=True)
    try:
        worksheet = workbook.worksheets[sheet] if isinstance(sheet, int) else workbook[sheet]
        return [tuple(row) for row in worksheet.iter_rows(min_row=1, values_only=True)]
    finally:
        workbook.close()


def extract_dated_sheet(
    source: Source,
    fmt: DatedSheetFormat,
    *,
    floor: str = FLOOR_PERIOD,
) -> list[MonthlyCount]:
    frame = pd.read_excel(source, sheet_name=fmt.sheet)
    if frame.empty:
        return []
    missing = {fmt.date_column, fmt.value_column} - set(frame.columns)
    if missing:
        logger.warning("Sheet is missing expected columns: %s", ", ".join(sorted(missing)))
        return []
    frame = frame.astype(object).where(frame.notna(), None)
    return rows_to_monthly_counts(frame.to_dict("records"), fmt, floor=floor)


def extract_pivot_sheet(
    source: Source,
    fmt: PivotSheetFormat,
    *,
    floor: str = FLOOR_PERIOD,
) -> list[MonthlyCount]:
    rows = read_sheet_rows(source, fmt.sheet)
    if len(rows) <= fmt.data_row:
        return []
    return pivot_to_monthly_counts(
        _row_at(rows, fmt.year_row),
        _row_at(rows, fmt.month_row),
        rows[fmt.data_row],
        first_column=fmt.first_column,
        floor=floor,
    )


def _row_at(rows: Sequence[Sequence[Any]], index: int) -> Sequence[Any]:
    return rows[index] if index < len(rows) else ()


__all__ = [
    "DatedSheetFormat",
    "PivotSheetFormat",
    "extract_dated_sheet",
    "extract_pivot_sheet",
    "pivot_to_monthly_counts",
    "read_sheet_rows",
    "rows_to_monthly_counts",
]
