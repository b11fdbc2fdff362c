"""Canonical record models emitted by the conversion jobs."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from pipelines.periods import PERIOD_PATTERN

Number = int | float


class Record(BaseModel):
    """Base for every emitted record: immutable, camelCase on the wire."""

    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class MonthlyCount(Record):
    period: str = Field(..., pattern=PERIOD_PATTERN, description="Calendar month as YYYY-MM.")
    count: Number = Field(..., description="Number of incidents (or addresses) in the month.")

    @field_validator("count")
    @classmethod
    def _non_negative(cls, value: Number) -> Number:
        if value < 0:
            raise ValueError("count must be non-negative")
        return value


class MonthlyRate(Record):
    period: str = Field(..., pattern=PERIOD_PATTERN)
    rate: Number | None = Field(default=None, description="Percentage rate for the month.")


class MonthlyPrice(Record):
    period: str = Field(..., pattern=PERIOD_PATTERN)
    median_price: Number | None = None
    avg_price: Number | None = None

    @model_validator(mode="after")
    def _require_a_price(self) -> "MonthlyPrice":
        if self.median_price is None and self.avg_price is None:
            raise ValueError("at least one of median_price/avg_price is required")
        return self


class AnnualValue(Record):
    year: int = Field(..., ge=1000, le=9999)
    value: Number | None = None


class MonthlyResponse(Record):
    """Response-time statistics (minutes) for one month."""

    period: str = Field(..., pattern=PERIOD_PATTERN)
    median: float | None = None
    mean: float | None = None
    p90: float | None = None
    count: int = Field(0, ge=0)
    median_total: float | None = None
    emergency_median: float | None = None
    emergency_mean: float | None = None
    emergency_p90: float | None = None
    emergency_count: int | None = None
    non_emergency_median: float | None = None
    non_emergency_mean: float | None = None
    non_emergency_p90: float | None = None
    non_emergency_count: int | None = None


class DistrictResponse(Record):
    district: int = Field(..., gt=0)
    median: float | None = None
    count: int = Field(0, ge=0)


class CallTypeResponse(Record):
    call_type: str = Field(..., alias="type")
    median: float | None = None
    count: int = Field(0, ge=0)


class PriorityResponse(Record):
    priority: str
    median: float | None = None
    count: int = Field(0, ge=0)


class DistributionBucket(Record):
    bucket: str
    count: int = Field(0, ge=0)


class ResponseSummary(Record):
    total_calls: int = Field(0, ge=0)
    overall_median: float | None = 0.0
    emergency_median: float | None = 0.0
    latest_month: str = ""
    latest_median: float | None = 0.0


class ResponseTimeBundle(Record):
    """Everything the police response page reads, in one artifact."""

    monthly: list[MonthlyResponse] = Field(default_factory=list)
    by_district: list[DistrictResponse] = Field(default_factory=list)
    by_type: list[CallTypeResponse] = Field(default_factory=list)
    by_priority: list[PriorityResponse] = Field(default_factory=list)
    distribution: list[DistributionBucket] = Field(default_factory=list)
    summary: ResponseSummary = Field(default_factory=ResponseSummary)


class StatusCount(Record):
    status: str
    count: int = Field(0, ge=0)


class CouncilDistrictCount(Record):
    district: str
    count: int = Field(0, ge=0)


class RequestTypeSummary(Record):
    request_type: str = Field(..., alias="type")
    total: int = Field(0, ge=0)
    open: int = Field(0, ge=0)
    open_percent: float = 0.0
    is_pothole: bool = False


class PotholeSummary(Record):
    """Live snapshot of 311 pothole requests (not persisted)."""

    open_count: int = 0
    total_since: int = 0
    since: str
    avg_days_to_close: float | None = None
    open_percent: float = 0.0
    monthly_trend: list[MonthlyCount] = Field(default_factory=list)
    status_breakdown: list[StatusCount] = Field(default_factory=list)
    by_district: list[CouncilDistrictCount] = Field(default_factory=list)
    top_request_types: list[RequestTypeSummary] = Field(default_factory=list)


__all__ = [
    "AnnualValue",
    "CallTypeResponse",
    "CouncilDistrictCount",
    "DistributionBucket",
    "DistrictResponse",
    "MonthlyCount",
    "MonthlyPrice",
    "MonthlyRate",
    "MonthlyResponse",
    "PotholeSummary",
    "PriorityResponse",
    "Record",
    "RequestTypeSummary",
    "ResponseSummary",
    "ResponseTimeBundle",
    "StatusCount",
]
