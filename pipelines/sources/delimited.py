"""Delimited-text extractors for the economic indicator exports.

Two addressing styles exist in the raw files: the listing-price export is
read by header name (its column order shifts between releases), while the
FRED-style exports are split line by line and read by field position.
"""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Any, Iterable, Mapping, Sequence

import pandas as pd

from pipelines.common import as_number, coerce_float
from pipelines.model import AnnualValue, MonthlyPrice, MonthlyRate
from pipelines.periods import (
    FLOOR_PERIOD,
    floor_year,
    on_or_after_floor,
    period_from_yyyymm,
    to_period,
    to_year,
)

logger = logging.getLogger(__name__)

Source = str | Path | IO[bytes] | IO[str]


@dataclass(frozen=True)
class NamedColumnFormat:
    """Header names for the monthly listing-price export."""

    period_column: str = "month_date_yyyymm"
    median_column: str = "median_listing_price"
    average_column: str = "average_listing_price"
    delimiter: str = ","


@dataclass(frozen=True)
class PositionalFormat:
    """Field positions for a date/value export.

    ``granularity`` is ``"month"`` for rate series and ``"year"`` for annual
    values. ``scale`` multiplies every parsed value (population is published
    in thousands).
    """

    granularity: str = "month"
    date_index: int = 0
    value_index: int = 1
    scale: float = 1.0
    delimiter: str = ","


def read_delimited(source: Source, *, delimiter: str = ",") -> pd.DataFrame:
    """Load a delimited file as strings; empty files give an empty frame."""

    try:
        return pd.read_csv(
            source,
            sep=delimiter,
            dtype=str,
            keep_default_na=False,
            skipinitialspace=True,
        )
    except pd.errors.EmptyDataError:
        return pd.DataFrame()


def _field(row: Sequence[Any], index: int) -> Any:
    return row[index] if index < len(row) else None


def _scaled(value: float, scale: float) -> int | float:
    if scale == 1:
        return as_number(value)
    return as_number(round(value * scale, 6))


def rows_to_monthly_prices(
    rows: Iterable[Mapping[str, Any]],
    fmt: NamedColumnFormat,
    *,
    floor: str = FLOOR_PERIOD,
) -> list[MonthlyPrice]:
    by_period: dict[str, MonthlyPrice] = {}
    for row in rows:
        period = period_from_yyyymm(row.get(fmt.period_column))
        if not on_or_after_floor(period, floor):
            continue
        median_price = coerce_float(row.get(fmt.median_column))
        avg_price = coerce_float(row.get(fmt.average_column))
        if median_price is None and avg_price is None:
            continue
        by_period[period] = MonthlyPrice(
            period=period,
            median_price=as_number(median_price) if median_price is not None else None,
            avg_price=as_number(avg_price) if avg_price is not None else None,
        )
    return [by_period[period] for period in sorted(by_period)]


def rows_to_monthly_rates(
    rows: Iterable[Sequence[Any]],
    fmt: PositionalFormat,
    *,
    floor: str = FLOOR_PERIOD,
) -> list[MonthlyRate]:
    by_period: dict[str, MonthlyRate] = {}
    for row in rows:
        period = to_period(_field(row, fmt.date_index))
        rate = coerce_float(_field(row, fmt.value_index))
        if rate is None or not on_or_after_floor(period, floor):
            continue
        by_period[period] = MonthlyRate(period=period, rate=_scaled(rate, fmt.scale))
    return [by_period[period] for period in sorted(by_period)]


def rows_to_annual_values(
    rows: Iterable[Sequence[Any]],
    fmt: PositionalFormat,
    *,
    floor: str = FLOOR_PERIOD,
) -> list[AnnualValue]:
    first_year = floor_year(floor)
    by_year: dict[int, AnnualValue] = {}
    for row in rows:
        year = to_year(_field(row, fmt.date_index))
        value = coerce_float(_field(row, fmt.value_index))
        if year is None or value is None or year < first_year:
            continue
        by_year[year] = AnnualValue(year=year, value=_scaled(value, fmt.scale))
    return [by_year[year] for year in sorted(by_year)]


def extract_monthly_prices(
    source: Source,
    fmt: NamedColumnFormat,
    *,
    floor: str = FLOOR_PERIOD,
) -> list[MonthlyPrice]:
    frame = read_delimited(source, delimiter=fmt.delimiter)
    if frame.empty:
        return []
    if fmt.period_column not in frame.columns:
        logger.warning("Column %r not found in listing-price export.", fmt.period_column)
        return []
    return rows_to_monthly_prices(frame.to_dict("records"), fmt, floor=floor)


def _split_lines(handle: IO[str], delimiter: str) -> list[list[str]]:
    reader = csv.reader(handle, delimiter=delimiter, skipinitialspace=True)
    next(reader, None)  # header
    return [row for row in reader if any(cell.strip() for cell in row)]


def read_positional_rows(source: Source, *, delimiter: str = ",") -> list[list[str]]:
    """Split every line after the header on ``delimiter``.

    Rows keep however many fields they have, so trailing delimiters or extra
    columns never shift the fixed indices the extractors read.
    """

    if isinstance(source, (str, Path)):
        with Path(source).open("r", encoding="utf-8-sig", newline="") as handle:
            return _split_lines(handle, delimiter)
    if isinstance(source, io.TextIOBase):
        return _split_lines(source, delimiter)
    return _split_lines(io.TextIOWrapper(source, encoding="utf-8-sig", newline=""), delimiter)


def _positional_rows(source: Source, fmt: PositionalFormat) -> list[list[str]]:
    return read_positional_rows(source, delimiter=fmt.delimiter)


def extract_monthly_rates(
    source: Source,
    fmt: PositionalFormat,
    *,
    floor: str = FLOOR_PERIOD,
) -> list[MonthlyRate]:
    return rows_to_monthly_rates(_positional_rows(source, fmt), fmt, floor=floor)


def extract_annual_values(
    source: Source,
    fmt: PositionalFormat,
    *,
    floor: str = FLOOR_PERIOD,
) -> list[AnnualValue]:
    return rows_to_annual_values(_positional_rows(source, fmt), fmt, floor=floor)


__all__ = [
    "NamedColumnFormat",
    "PositionalFormat",
    "extract_annual_values",
    "extract_monthly_prices",
    "extract_monthly_rates",
    "read_delimited",
    "read_positional_rows",
    "rows_to_annual_values",
    "rows_to_monthly_prices",
    "rows_to_monthly_rates",
]
