"""
Pydantic v2 data models for the performance capture pipeline.

Model Organization:
    - enums: Aggregation rules, units and rollup kinds
    - counters: Derived metric definitions, raw samples, resampled points
    - capture: Targets, endpoints, time windows and capture results
"""

from .enums import AggregationRule, Rollup, UnitKey

from .counters import (
    CAPTURE_INTERVAL,
    CAPTURE_INTERVAL_NAME,
    DerivedMetricSpec,
    MetricDescriptor,
    RawSample,
    ResampledPoint,
)

from .capture import CaptureResult, CaptureTarget, MonitoringEndpoint, TimeWindow

__all__ = [
    # Enumerations
    "AggregationRule",
    "Rollup",
    "UnitKey",
    # Counter models
    "CAPTURE_INTERVAL",
    "CAPTURE_INTERVAL_NAME",
    "DerivedMetricSpec",
    "MetricDescriptor",
    "RawSample",
    "ResampledPoint",
    # Capture models
    "CaptureResult",
    "CaptureTarget",
    "MonitoringEndpoint",
    "TimeWindow",
]
