"""Job boundary for the response-time artifact.

Aggregating the full call-record extract is the slowest step of a run, so the
artifact is computed at most once: if it already exists the job reports
``skipped`` and leaves it untouched (delete the file to force a rebuild). A
failure while reading or aggregating is logged and replaced by a placeholder
artifact so the dashboard always finds a file to load.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path

from pipelines.aggregate import placeholder_bundle
from pipelines.periods import FLOOR_PERIOD
from pipelines.sources.call_records import (
    CallRecordFormat,
    DailyResponseFormat,
    extract_call_records,
    extract_daily_response,
)
from storage.artifacts import artifact_exists, read_artifact, write_artifact

logger = logging.getLogger(__name__)

WRITTEN = "written"
SKIPPED = "skipped"
MISSING = "missing"
FAILED = "failed"


@dataclass(frozen=True)
class JobResult:
    """Structured outcome of one conversion job."""

    key: str
    status: str
    output_path: Path | None = None
    records: int = 0
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status != FAILED


def has_call_record_breakdowns(path: Path) -> bool:
    """True when ``path`` holds a bundle with per-district or per-type rows."""

    if not artifact_exists(path):
        return False
    try:
        payload = read_artifact(path)
    except json.JSONDecodeError:
        return False
    if not isinstance(payload, dict):
        return False
    return bool(payload.get("byDistrict") or payload.get("byType"))


def run_response_time_job(
    input_path: Path,
    output_path: Path,
    *,
    fmt: CallRecordFormat = CallRecordFormat(),
    key: str = "response_times",
    floor: str = FLOOR_PERIOD,
) -> JobResult:
    """Aggregate call records into ``output_path`` unless it already exists."""

    if not input_path.is_file():
        logger.info("   Call-record file not found (%s)", input_path.name)
        return JobResult(key=key, status=MISSING)
    if artifact_exists(output_path):
        logger.info("   Response time data already exists, skipping")
        return JobResult(key=key, status=SKIPPED, output_path=output_path)

    try:
        bundle = extract_call_records(input_path, fmt, floor=floor)
    except Exception as exc:
        logger.exception("   Error processing call records from %s", input_path)
        write_artifact(output_path, placeholder_bundle())
        return JobResult(key=key, status=FAILED, output_path=output_path, error=str(exc))

    write_artifact(output_path, bundle)
    logger.info("   Processed %s months of response time data", len(bundle.monthly))
    return JobResult(key=key, status=WRITTEN, output_path=output_path, records=len(bundle.monthly))


def run_daily_response_job(
    input_path: Path,
    output_path: Path,
    *,
    fmt: DailyResponseFormat = DailyResponseFormat(),
    key: str = "response_times",
    floor: str = FLOOR_PERIOD,
) -> JobResult:
    """Roll the daily CSV up to months into ``output_path``.

    An existing artifact with call-record breakdowns is left untouched.
    """

    if not input_path.is_file():
        logger.info("   Daily response file not found (%s)", input_path.name)
        return JobResult(key=key, status=MISSING)
    if has_call_record_breakdowns(output_path):
        logger.info("   Response time data from call records already exists, skipping daily rollup")
        return JobResult(key=key, status=SKIPPED, output_path=output_path)

    try:
        bundle = extract_daily_response(input_path, fmt, floor=floor)
    except Exception as exc:
        logger.exception("   Error processing daily response times from %s", input_path)
        return JobResult(key=key, status=FAILED, error=str(exc))
    write_artifact(output_path, bundle)
    logger.info("   Processed %s months of daily response time data", len(bundle.monthly))
    return JobResult(key=key, status=WRITTEN, output_path=output_path, records=len(bundle.monthly))


__all__ = [
    "FAILED",
    "JobResult",
    "MISSING",
    "SKIPPED",
    "WRITTEN",
    "has_call_record_breakdowns",
    "run_daily_response_job",
    "run_response_time_job",
]
