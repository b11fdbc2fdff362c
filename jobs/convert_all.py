"""End-to-end job that converts every configured raw source into a JSON artifact."""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Any, Callable, Iterable

from jobs.config import SOURCES, SourceConfig, get_raw_data_dir
from jobs.response_times import (
    FAILED,
    MISSING,
    WRITTEN,
    JobResult,
    run_daily_response_job,
    run_response_time_job,
)
from pipelines.periods import FLOOR_PERIOD
from pipelines.sources.call_records import CallRecordFormat
from pipelines.sources.delimited import (
    NamedColumnFormat,
    PositionalFormat,
    extract_annual_values,
    extract_monthly_prices,
    extract_monthly_rates,
)
from pipelines.sources.spreadsheet import (
    DatedSheetFormat,
    PivotSheetFormat,
    extract_dated_sheet,
    extract_pivot_sheet,
)
from storage.artifacts import get_artifact_dir, write_artifact

logger = logging.getLogger(__name__)

Extractor = Callable[..., list[Any]]


def _resolve_extractor(source: SourceConfig) -> Extractor:
    fmt = source.fmt
    if isinstance(fmt, DatedSheetFormat):
        return extract_dated_sheet
    if isinstance(fmt, PivotSheetFormat):
        return extract_pivot_sheet
    if isinstance(fmt, NamedColumnFormat):
        return extract_monthly_prices
    if isinstance(fmt, PositionalFormat):
        return extract_annual_values if fmt.granularity == "year" else extract_monthly_rates
    raise ValueError(f"No extractor registered for {type(fmt).__name__} (source '{source.key}').")


def run_source(
    source: SourceConfig,
    raw_dir: Path,
    artifact_dir: Path,
    *,
    floor: str = FLOOR_PERIOD,
) -> JobResult:
    """Run a single source job; a missing input file is a skip, not an error."""

    input_path = raw_dir / source.filename
    output_path = artifact_dir / source.artifact

    if isinstance(source.fmt, CallRecordFormat):
        if not input_path.is_file() and source.fallback_filename:
            fallback_path = raw_dir / source.fallback_filename
            if fallback_path.is_file():
                return run_daily_response_job(
                    fallback_path, output_path, fmt=source.fallback_fmt, key=source.key, floor=floor
                )
        return run_response_time_job(
            input_path, output_path, fmt=source.fmt, key=source.key, floor=floor
        )

    if not input_path.is_file():
        logger.info("   %s file not found (%s)", source.description, source.filename)
        return JobResult(key=source.key, status=MISSING)

    extractor = _resolve_extractor(source)
    try:
        records = extractor(input_path, source.fmt, floor=floor)
        write_artifact(output_path, records)
    except Exception as exc:
        logger.exception("   Error processing %s (%s)", source.description.lower(), source.filename)
        return JobResult(key=source.key, status=FAILED, error=str(exc))
    logger.info("   Processed %s records of %s", len(records), source.description.lower())
    return JobResult(key=source.key, status=WRITTEN, output_path=output_path, records=len(records))


def convert_all(
    sources: Iterable[SourceConfig] | None = None,
    *,
    raw_dir: str | os.PathLike[str] | None = None,
    artifact_dir: str | os.PathLike[str] | None = None,
    floor: str = FLOOR_PERIOD,
) -> list[JobResult]:
    """Run every source job in order and return their outcomes."""

    sources = tuple(sources) if sources is not None else SOURCES
    resolved_raw = get_raw_data_dir(raw_dir)
    resolved_artifacts = get_artifact_dir(artifact_dir)

    logger.info("Converting data files from %s into %s...", resolved_raw, resolved_artifacts)
    results: list[JobResult] = []
    for source in sources:
        logger.info("Processing %s data...", source.key.replace("_", " "))
        results.append(run_source(source, resolved_raw, resolved_artifacts, floor=floor))
    return results


def main(sources: Iterable[SourceConfig] | None = None) -> int:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO"),
        stream=sys.stdout,
        format="%(message)s",
    )
    results = convert_all(sources)
    written = sum(1 for result in results if result.status == WRITTEN)
    failed = [result.key for result in results if not result.ok]
    if failed:
        logger.warning("Jobs fell back to placeholder output: %s", ", ".join(failed))
    logger.info("Data conversion complete (artifacts written=%s).", written)
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
