"""Date and period normalization shared by every extractor.

Raw sources describe months in several shapes (Excel serial numbers, ISO
strings, ``MM/DD/YYYY`` timestamps, ``YYYYMM`` integers and year/month-name
header pairs). Everything is reduced to a ``YYYY-MM`` period key or an integer
year here so downstream code never deals with the raw shapes.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime, timedelta
from typing import Any, Iterable, Mapping

FLOOR_PERIOD = "2015-01"

PERIOD_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"

# Excel's day zero (accounts for the 1900 leap-year bug).
_EXCEL_EPOCH = datetime(1899, 12, 30)
_EXCEL_MAX_SERIAL = 2958465  # 9999-12-31

MONTH_NAMES: Mapping[str, int] = {
    "jan": 1,
    "january": 1,
    "feb": 2,
    "february": 2,
    "mar": 3,
    "march": 3,
    "apr": 4,
    "april": 4,
    "may": 5,
    "jun": 6,
    "june": 6,
    "jul": 7,
    "july": 7,
    "aug": 8,
    "august": 8,
    "sep": 9,
    "sept": 9,
    "september": 9,
    "oct": 10,
    "october": 10,
    "nov": 11,
    "november": 11,
    "dec": 12,
    "december": 12,
}

_TIMESTAMP_FORMATS = (
    "%m/%d/%Y %I:%M:%S %p",
    "%m/%d/%Y %I:%M %p",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y",
)

_YYYYMM = re.compile(r"^(\d{4})(\d{2})$")
_YEAR = re.compile(r"^\d{4}$")


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str) and not value.strip():
        return True
    # pandas.NaT and friends compare unequal to themselves
    try:
        return bool(value != value)
    except (TypeError, ValueError):
        return False


def _is_plain_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _from_excel_serial(serial: float) -> date | None:
    if not 1 <= serial <= _EXCEL_MAX_SERIAL:
        return None
    return (_EXCEL_EPOCH + timedelta(days=float(serial))).date()


def parse_timestamp(value: Any) -> datetime | None:
    """Parse a raw timestamp cell into a naive ``datetime``.

    Returns ``None`` for anything that cannot be interpreted.
    """

    if _is_missing(value):
        return None
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if _is_plain_number(value):
        serial_date = _from_excel_serial(value)
        if serial_date is None:
            return None
        return datetime(serial_date.year, serial_date.month, serial_date.day)
    if not isinstance(value, str):
        return None

    text = value.strip()
    if "/" in text:
        for fmt in _TIMESTAMP_FORMATS:
            try:
                return datetime.strptime(text, fmt)
            except ValueError:
                continue
        return None
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).replace(tzinfo=None)
    except ValueError:
        pass
    try:
        return datetime.strptime(text[:10], "%Y-%m-%d")
    except ValueError:
        return None


def parse_date(value: Any) -> date | None:
    """Parse a raw date cell into a ``date``.

    ISO-like strings are truncated to ten characters before parsing, so
    ``"2019-03-01T00:00:00.000"`` and ``"2019-03-01 12:00"`` both work.
    Slash-delimited strings may carry a trailing time component.
    """

    if _is_missing(value):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if _is_plain_number(value):
        return _from_excel_serial(value)
    if not isinstance(value, str):
        return None

    text = value.strip()
    if "/" in text:
        stamp = parse_timestamp(text.split(" ", 1)[0])
        return stamp.date() if stamp else None
    try:
        return datetime.strptime(text[:10], "%Y-%m-%d").date()
    except ValueError:
        pass
    try:
        return datetime.strptime(text[:7], "%Y-%m").date()
    except ValueError:
        return None


def format_period(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def period_from_date(value: date | datetime) -> str:
    return format_period(value.year, value.month)


def period_from_yyyymm(value: Any) -> str | None:
    """``202503`` (int or str) -> ``"2025-03"``."""

    if _is_missing(value):
        return None
    if _is_plain_number(value):
        if isinstance(value, float):
            if not value.is_integer():
                return None
            value = int(value)
        text = str(value)
    elif isinstance(value, str):
        text = value.strip()
    else:
        return None

    match = _YYYYMM.match(text)
    if not match:
        return None
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        return None
    return format_period(year, month)


def month_number(name: Any) -> int | None:
    if not isinstance(name, str):
        return None
    return MONTH_NAMES.get(name.strip().lower().rstrip("."))


def period_from_parts(year: Any, month_name: Any) -> str | None:
    """Combine a year header cell and a month-name header cell."""

    resolved_year = to_year(year)
    month = month_number(month_name)
    if resolved_year is None or month is None:
        return None
    return format_period(resolved_year, month)


def to_period(value: Any) -> str | None:
    """Normalize any supported date shape to ``YYYY-MM``."""

    yyyymm = period_from_yyyymm(value)
    if yyyymm:
        return yyyymm
    parsed = parse_date(value)
    if parsed is None:
        return None
    return period_from_date(parsed)


def to_year(value: Any) -> int | None:
    if _is_missing(value):
        return None
    if _is_plain_number(value):
        if isinstance(value, float) and not value.is_integer():
            return None
        if 1000 <= value <= 9999:
            return int(value)
        parsed = parse_date(value)
        return parsed.year if parsed else None
    if isinstance(value, str) and _YEAR.match(value.strip()):
        return int(value.strip())
    parsed = parse_date(value)
    return parsed.year if parsed else None


def forward_fill(cells: Iterable[Any]) -> list[Any]:
    """Carry the last non-empty cell forward across empty positions.

    Leading empty cells stay ``None``.
    """

    filled: list[Any] = []
    last: Any = None
    for cell in cells:
        if not _is_missing(cell):
            last = cell
        filled.append(last)
    return filled


def on_or_after_floor(period: str | None, floor: str = FLOOR_PERIOD) -> bool:
    return period is not None and period >= floor


def floor_year(floor: str = FLOOR_PERIOD) -> int:
    return int(floor[:4])


__all__ = [
    "FLOOR_PERIOD",
    "MONTH_NAMES",
    "PERIOD_PATTERN",
    "floor_year",
    "format_period",
    "forward_fill",
    "month_number",
    "on_or_after_floor",
    "parse_date",
    "parse_timestamp",
    "period_from_date",
    "period_from_parts",
    "period_from_yyyymm",
    "to_period",
    "to_year",
]
