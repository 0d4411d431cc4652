"""
Capture-level models: the target being measured, its monitoring endpoint,
the requested time window and the assembled result.
"""

from datetime import datetime, timedelta
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from perfcapture.utils.timestamps import to_utc


class TimeWindow(BaseModel):
    """
    Closed UTC time range ``[start, end]``.

    Naive datetimes are interpreted as UTC; aware ones are converted.
    """

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @field_validator("start", "end")
    @classmethod
    def normalize_utc(cls, v: datetime) -> datetime:
        return to_utc(v)

    @model_validator(mode="after")
    def validate_ordering(self) -> "TimeWindow":
        """Ensure end is not before start."""
        if self.end < self.start:
            raise ValueError("end must not be before start")
        return self

    @property
    def duration(self) -> timedelta:
        return self.end - self.start


class MonitoringEndpoint(BaseModel):
    """Connection details for the monitoring API a target reports to."""

    model_config = ConfigDict(frozen=True)

    base_url: str = Field(description="Monitoring API gateway base URL")
    api_token: Optional[str] = Field(default=None, description="Optional bearer token")

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Require an http(s) URL and drop any trailing slash."""
        v = v.strip().rstrip("/")
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"base_url must be an http(s) URL, got {v!r}")
        return v


class CaptureTarget(BaseModel):
    """
    A monitored resource.

    Attributes:
        target_id: Identity of the resource in the monitoring API's namespace
        name: Human-readable name used in log lines
        target_type: Kind of resource (e.g. "instance")
        endpoint: Monitoring endpoint bound to the resource, if any
    """

    target_id: str = Field(description="Resource identity in the monitoring API", min_length=1)
    name: Optional[str] = Field(default=None, description="Human-readable name")
    target_type: str = Field(default="instance", description="Kind of resource")
    endpoint: Optional[MonitoringEndpoint] = Field(
        default=None, description="Monitoring endpoint bound to the resource"
    )


class CaptureResult(BaseModel):
    """Capture output for a single target, as returned over HTTP."""

    target_id: str
    counters: dict[str, dict[str, Any]]
    values: dict[str, dict[str, float]]

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "target_id": "i-0abc123def4567890",
                "counters": {
                    "cpu_usage_rate_average": {
                        "counter_key": "cpu_usage_rate_average",
                        "instance": "",
                        "capture_interval": "20",
                        "precision": 1,
                        "rollup": "average",
                        "unit_key": "percent",
                        "capture_interval_name": "realtime",
                    }
                },
                "values": {
                    "2026-02-10T15:00:20Z": {"cpu_usage_rate_average": 12.5},
                },
            }
        }
    )
