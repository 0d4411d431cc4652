"""
Pytest configuration and shared fixtures for the perfcapture test suite.

Provides factories for derived metric specs and raw series, an in-memory
monitoring API double, and environment isolation for settings.
"""

import asyncio
import os
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Optional, Sequence, Union

import pytest

# Keep settings deterministic regardless of the developer's environment.
os.environ["MONITORING_ENDPOINT_URL"] = ""
os.environ["LOG_LEVEL"] = "warning"

from perfcapture.connectors.monitoring_client import MonitoringAPI, TransportError
from perfcapture.engine.catalog import CounterCatalog, default_catalog
from perfcapture.models.counters import DerivedMetricSpec, MetricDescriptor
from perfcapture.models.enums import AggregationRule, UnitKey

T0 = datetime(2026, 2, 10, 0, 0, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def ts(minutes: float = 0, seconds: float = 0, base: datetime = T0) -> datetime:
    """Timestamp ``minutes``/``seconds`` after the base instant."""
    return base + timedelta(minutes=minutes, seconds=seconds)


def make_series(*points: tuple[float, Optional[float]], base: datetime = T0) -> dict:
    """Raw series from ``(minute_offset, value)`` pairs."""
    return {ts(minutes, base=base): value for minutes, value in points}


def make_spec(
    derived_key: str = "net_usage_rate_average",
    source_names: Sequence[str] = ("NetworkIn", "NetworkOut"),
    rule: AggregationRule = AggregationRule.SCALED_SUM_RATE,
    unit_key: UnitKey = UnitKey.KILOBYTES_PER_SECOND,
    precision: int = 2,
    **overrides,
) -> DerivedMetricSpec:
    """Factory function for creating test DerivedMetricSpec objects."""
    defaults = dict(
        derived_key=derived_key,
        source_names=tuple(source_names),
        rule=rule,
        unit_key=unit_key,
        precision=precision,
    )
    defaults.update(overrides)
    return DerivedMetricSpec(**defaults)


def make_catalog(*specs: DerivedMetricSpec) -> CounterCatalog:
    return CounterCatalog(specs)


def run(coro):
    """Drive a coroutine to completion from a synchronous test."""
    return asyncio.run(coro)


# ---------------------------------------------------------------------------
# Monitoring API double
# ---------------------------------------------------------------------------


class FakeMonitoringAPI(MonitoringAPI):
    """
    In-memory monitoring API.

    Lists ``metrics`` (names, scoped to the requested dimensions, or
    ready-made descriptors) and serves datapoints from ``datapoints``
    (metric name -> {datetime: value}) whose timestamps fall inside the
    requested range, both ends inclusive. Every call is recorded.
    """

    def __init__(
        self,
        metrics: Iterable[Union[str, MetricDescriptor]] = (),
        datapoints: Optional[dict[str, dict[datetime, float]]] = None,
        fail_on: Iterable[str] = (),
        delay: float = 0.0,
    ):
        self.metrics = list(metrics)
        self.datapoints = datapoints or {}
        self.fail_on = set(fail_on)
        self.delay = delay
        self.list_calls: list[list[dict[str, str]]] = []
        self.statistics_calls: list[dict[str, Any]] = []
        self.cancelled = 0
        self.closed = False
        self.error: Optional[TransportError] = None

    async def list_metrics(self, dimensions):
        self.list_calls.append(list(dimensions))
        dims = tuple((d["name"], d["value"]) for d in dimensions)
        return [
            metric if isinstance(metric, MetricDescriptor)
            else MetricDescriptor(metric_name=metric, dimensions=dims)
            for metric in self.metrics
        ]

    async def get_metric_statistics(
        self,
        metric_name,
        dimensions,
        start_time,
        end_time,
        period=60,
        statistics=("Average",),
        namespace=None,
    ):
        self.statistics_calls.append(
            {
                "metric_name": metric_name,
                "namespace": namespace,
                "dimensions": list(dimensions),
                "start_time": start_time,
                "end_time": end_time,
                "period": period,
                "statistics": tuple(statistics),
            }
        )
        if self.delay:
            try:
                await asyncio.sleep(self.delay)
            except asyncio.CancelledError:
                self.cancelled += 1
                raise
        if metric_name in self.fail_on:
            self.error = TransportError(f"throttled: {metric_name}", status_code=400)
            raise self.error

        series = self.datapoints.get(metric_name, {})
        return [
            {"timestamp": stamp.isoformat(), "average": value}
            for stamp, value in series.items()
            if start_time <= stamp <= end_time
        ]

    async def aclose(self):
        self.closed = True


# ---------------------------------------------------------------------------
# Pytest fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def catalog():
    """Default five-counter catalog."""
    return default_catalog()


@pytest.fixture
def net_spec():
    """Two-source scaled-sum-rate spec."""
    return make_spec()


@pytest.fixture
def fake_api():
    """Empty monitoring API double."""
    return FakeMonitoringAPI()


@pytest.fixture
def target_id():
    """Sample monitored instance id."""
    return "i-0abc123def4567890"
