"""Static configuration for the raw sources and the artifacts they produce."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from pipelines.periods import FLOOR_PERIOD
from pipelines.sources.call_records import CallRecordFormat, DailyResponseFormat
from pipelines.sources.delimited import NamedColumnFormat, PositionalFormat
from pipelines.sources.spreadsheet import DatedSheetFormat, PivotSheetFormat

load_dotenv()

RAW_DATA_DIR_ENV_VAR = "RAW_DATA_DIR"
DEFAULT_RAW_DATA_DIR = Path(".")


@dataclass(frozen=True)
class SourceConfig:
    """Where a raw file lives, how to read it, and which artifact it feeds.

    ``fallback_filename``/``fallback_fmt`` name an alternative input used only
    when the primary file is absent.
    """

    key: str
    filename: str
    artifact: str
    description: str
    fmt: Any
    fallback_filename: str | None = None
    fallback_fmt: Any = None


SOURCES: tuple[SourceConfig, ...] = (
    SourceConfig(
        key="murders",
        filename="NOLA Murders by Month.xlsx",
        artifact="murders.json",
        description="Monthly homicide counts",
        fmt=DatedSheetFormat(date_column="Month", value_column="Murders"),
    ),
    SourceConfig(
        key="crimes",
        filename="NOLA Crimes by Month.xlsx",
        artifact="crimes.json",
        description="Monthly violent crime counts",
        fmt=DatedSheetFormat(date_column="Month", value_column="Crimes"),
    ),
    SourceConfig(
        key="unemployment",
        filename="unemployment rate.csv",
        artifact="unemployment.json",
        description="Monthly unemployment rate (%)",
        fmt=PositionalFormat(date_index=0, value_index=1),
    ),
    SourceConfig(
        key="addresses",
        filename="TheDataCenter_ActiveResidentialAddresses.xlsx",
        artifact="addresses.json",
        description="Active residential addresses receiving mail, Orleans Parish",
        fmt=PivotSheetFormat(year_row=4, month_row=5, data_row=7),
    ),
    SourceConfig(
        key="home_prices",
        filename="home_prices.csv",
        artifact="home-prices.json",
        description="Median and average listing prices",
        fmt=NamedColumnFormat(),
    ),
    SourceConfig(
        key="household_income",
        filename="median_household_income.csv",
        artifact="household-income.json",
        description="Median household income by year",
        fmt=PositionalFormat(granularity="year", date_index=0, value_index=1),
    ),
    SourceConfig(
        key="population",
        filename="population.csv",
        artifact="population.json",
        description="Resident population by year (source in thousands)",
        fmt=PositionalFormat(granularity="year", date_index=0, value_index=1, scale=1000),
    ),
    SourceConfig(
        key="response_times",
        filename="Call_For_Service_Response_Time.parquet",
        artifact="response-times.json",
        description="Police response times from calls for service",
        fmt=CallRecordFormat(),
        fallback_filename="police_response_daily.csv",
        fallback_fmt=DailyResponseFormat(),
    ),
)


def get_source_by_key(key: str) -> SourceConfig | None:
    for source in SOURCES:
        if source.key == key:
            return source
    return None


def get_raw_data_dir(override: str | os.PathLike[str] | None = None) -> Path:
    """Resolve the raw input directory from an explicit override or environment variable."""

    if override is not None:
        return Path(override)
    env_value = os.getenv(RAW_DATA_DIR_ENV_VAR)
    if env_value:
        return Path(env_value)
    return DEFAULT_RAW_DATA_DIR


__all__ = [
    "FLOOR_PERIOD",
    "SOURCES",
    "SourceConfig",
    "get_raw_data_dir",
    "get_source_by_key",
]
