"""
Counter models: derived metric definitions, raw samples and resampled points.

A derived metric is the unit of output: one key in the downstream
performance-history schema, computed from one or more raw metrics reported
by the monitoring API.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from perfcapture.models.enums import AggregationRule, Rollup, UnitKey
from perfcapture.utils.timestamps import to_utc

# Metadata constants shared by every realtime counter.
CAPTURE_INTERVAL = "20"
CAPTURE_INTERVAL_NAME = "realtime"


class DerivedMetricSpec(BaseModel):
    """
    Static definition of one derived metric.

    Attributes:
        derived_key: Counter key in the performance-history schema
        source_names: Raw metric names combined into this metric, in order
        rule: Aggregation rule applied to the present source values
        unit_key: Unit of the derived value
        precision: Decimal precision advertised to the consumer
        rollup: Rollup kind advertised to the consumer
        capture_interval: Fine-grid interval label, in seconds
        capture_interval_name: Interval classification label
    """

    model_config = ConfigDict(frozen=True)

    derived_key: str = Field(description="Counter key in the performance-history schema")
    source_names: tuple[str, ...] = Field(
        description="Raw metric names combined into this metric", min_length=1
    )
    rule: AggregationRule = Field(description="Aggregation rule")
    unit_key: UnitKey = Field(description="Unit of the derived value")
    precision: int = Field(description="Advertised decimal precision", ge=0)
    rollup: Rollup = Field(default=Rollup.AVERAGE, description="Advertised rollup kind")
    capture_interval: str = Field(default=CAPTURE_INTERVAL, description="Fine-grid interval label")
    capture_interval_name: str = Field(
        default=CAPTURE_INTERVAL_NAME, description="Interval classification label"
    )

    @field_validator("derived_key")
    @classmethod
    def validate_key_not_empty(cls, v: str) -> str:
        """Ensure the derived key is not blank."""
        if not v or not v.strip():
            raise ValueError("derived_key cannot be empty")
        return v.strip()

    @field_validator("source_names")
    @classmethod
    def validate_unique_sources(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        """A raw metric may only feed a derived metric once."""
        if len(set(v)) != len(v):
            raise ValueError("source_names must be unique")
        return v

    def metadata(self) -> dict[str, Any]:
        """Metadata row in the shape the performance-history consumer expects."""
        return {
            "counter_key": self.derived_key,
            "instance": "",
            "capture_interval": self.capture_interval,
            "precision": self.precision,
            "rollup": self.rollup.value,
            "unit_key": self.unit_key.value,
            "capture_interval_name": self.capture_interval_name,
        }


class MetricDescriptor(BaseModel):
    """One entry of the monitoring API's metric listing."""

    model_config = ConfigDict(frozen=True)

    metric_name: str
    namespace: Optional[str] = None
    dimensions: tuple[tuple[str, str], ...] = ()

    def dimension_filters(self) -> list[dict[str, str]]:
        """Dimensions in the request form ``[{"name": ..., "value": ...}]``."""
        return [{"name": name, "value": value} for name, value in self.dimensions]


class RawSample(BaseModel):
    """A single per-minute average datapoint returned by the monitoring API."""

    model_config = ConfigDict(frozen=True)

    metric_name: str
    timestamp: datetime
    average: float

    @field_validator("timestamp")
    @classmethod
    def normalize_timestamp(cls, v: datetime) -> datetime:
        return to_utc(v)


class ResampledPoint(BaseModel):
    """One derived value on the 20-second grid."""

    model_config = ConfigDict(frozen=True)

    timestamp: str = Field(description="ISO-8601 UTC timestamp")
    derived_key: str
    value: float
