"""
Metrics fetcher: raw per-minute averages for one target.

The monitoring API caps how many datapoints one statistics request may
return, so a window is split into contiguous sub-windows of at most one day
and every (listed metric, sub-window) pair is requested separately, carrying
the namespace and dimensions the listing reported for that metric. Requests run
concurrently under a semaphore; results are merged per counter into one
ascending series only after every request has succeeded.
"""

import asyncio
from datetime import datetime, timedelta
from typing import Any, Iterable, Optional, Sequence, Union

import structlog

from perfcapture.connectors.monitoring_client import MonitoringAPI, TransportError
from perfcapture.engine.catalog import CounterCatalog
from perfcapture.models.capture import TimeWindow
from perfcapture.models.counters import MetricDescriptor, RawSample
from perfcapture.utils.timestamps import parse_timestamp

logger = structlog.get_logger()

MAX_QUERY_SPAN = timedelta(days=1)

# The first datapoint of a window can never be classified, so one extra
# basic-monitoring interval is requested and later thrown away.
LEADING_SACRIFICE = timedelta(minutes=5)

STATISTICS_PERIOD_SECONDS = 60
STATISTICS = ("Average",)

SeriesMap = dict[str, dict[datetime, float]]


def split_window(window: TimeWindow, max_span: timedelta = MAX_QUERY_SPAN) -> list[TimeWindow]:
    """
    Partition ``window`` into contiguous sub-windows no longer than ``max_span``.

    Boundaries are ``start, start + max_span, ...`` followed by ``end``.
    A zero-length window has no sub-windows.
    """
    if max_span <= timedelta(0):
        raise ValueError("max_span must be positive")

    boundaries = []
    cursor = window.start
    while cursor < window.end:
        boundaries.append(cursor)
        cursor += max_span
    if boundaries:
        boundaries.append(window.end)

    return [TimeWindow(start=st, end=et) for st, et in zip(boundaries, boundaries[1:])]


def widen_window(window: TimeWindow) -> TimeWindow:
    """Move the start back by one basic-monitoring interval."""
    return TimeWindow(start=window.start - LEADING_SACRIFICE, end=window.end)


class MetricsFetcher:
    """
    Retrieves raw metric series for a target from the monitoring API.

    Attributes:
        client: Monitoring API implementation
        dimension_name: Dimension identifying the target (e.g. "InstanceId")
        max_concurrent_requests: Upper bound on in-flight statistics requests
    """

    def __init__(
        self,
        client: MonitoringAPI,
        dimension_name: str = "InstanceId",
        max_concurrent_requests: int = 8,
    ):
        self.client = client
        self.dimension_name = dimension_name
        self.max_concurrent_requests = max(1, max_concurrent_requests)

    def _dimensions(self, target_id: str) -> list[dict[str, str]]:
        return [{"name": self.dimension_name, "value": target_id}]

    def _as_descriptors(
        self, target_id: str, counters: Iterable[Union[str, MetricDescriptor]]
    ) -> list[MetricDescriptor]:
        """
        Normalize counters to unique descriptors in a stable order.

        Bare names and descriptors without dimensions are scoped to the target.
        """
        target_dimensions = ((self.dimension_name, target_id),)
        resolved = set()
        for counter in counters:
            if isinstance(counter, str):
                counter = MetricDescriptor(metric_name=counter)
            if not counter.dimensions:
                counter = counter.model_copy(update={"dimensions": target_dimensions})
            resolved.add(counter)
        return sorted(resolved, key=_descriptor_sort_key)

    async def list_available_metrics(
        self, target_id: str, catalog_names: Iterable[str]
    ) -> list[MetricDescriptor]:
        """
        Listed metrics of the target whose name the catalog needs.

        One name may appear under several descriptors (e.g. one per paging
        file or per agent namespace); each is kept.

        Raises:
            TransportError: If the listing request fails
        """
        wanted = set(catalog_names)
        descriptors = await self.client.list_metrics(self._dimensions(target_id))
        matched = sorted(
            {d for d in descriptors if d.metric_name in wanted}, key=_descriptor_sort_key
        )

        logger.info(
            "counters_listed",
            target_id=target_id,
            listed=len(descriptors),
            matched=len(matched),
            available=sorted({d.metric_name for d in matched}),
        )
        return matched

    async def list_available_counters(
        self, target_id: str, catalog_names: Iterable[str]
    ) -> set[str]:
        """
        Raw metric names reported for the target that the catalog needs.

        Raises:
            TransportError: If the listing request fails
        """
        metrics = await self.list_available_metrics(target_id, catalog_names)
        return {d.metric_name for d in metrics}

    async def fetch_series(
        self,
        target_id: str,
        counters: Iterable[Union[str, MetricDescriptor]],
        window: TimeWindow,
    ) -> SeriesMap:
        """
        Fetch and merge per-minute averages for every counter over ``window``.

        Args:
            target_id: Target identity in the monitoring API
            counters: Listed metric descriptors, or bare raw metric names
                (requested with the target dimension and no namespace)
            window: Window to fetch, used as given

        Returns:
            Raw metric name -> {UTC timestamp: average}, each series ascending.
            Every requested counter has an entry, possibly empty. Descriptors
            sharing a name are merged into that name's series.

        Raises:
            TransportError: If any request fails; no partial series is returned
        """
        metrics = self._as_descriptors(target_id, counters)
        names = sorted({metric.metric_name for metric in metrics})
        sub_windows = split_window(window)
        jobs = [(metric, sub) for metric in metrics for sub in sub_windows]
        semaphore = asyncio.Semaphore(self.max_concurrent_requests)

        async def _fetch(metric: MetricDescriptor, sub: TimeWindow) -> list[RawSample]:
            async with semaphore:
                datapoints = await self.client.get_metric_statistics(
                    metric_name=metric.metric_name,
                    dimensions=metric.dimension_filters(),
                    start_time=sub.start,
                    end_time=sub.end,
                    period=STATISTICS_PERIOD_SECONDS,
                    statistics=STATISTICS,
                    namespace=metric.namespace,
                )
            return _parse_datapoints(metric.metric_name, datapoints)

        logger.info(
            "series_fetch_started",
            target_id=target_id,
            counters=len(names),
            metrics=len(metrics),
            sub_windows=len(sub_windows),
            start=window.start,
            end=window.end,
        )

        tasks = [asyncio.create_task(_fetch(metric, sub)) for metric, sub in jobs]
        try:
            results = await asyncio.gather(*tasks)
        except BaseException:
            # Covers both request failures and cancellation of this invocation.
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        merged: dict[str, dict[datetime, float]] = {name: {} for name in names}
        for samples in results:
            for sample in samples:
                merged[sample.metric_name][sample.timestamp] = sample.average

        series = {name: dict(sorted(points.items())) for name, points in merged.items()}

        logger.info(
            "series_fetch_completed",
            target_id=target_id,
            datapoints=sum(len(points) for points in series.values()),
        )
        return series

    async def collect(
        self, target_id: str, window: TimeWindow, catalog: CounterCatalog
    ) -> SeriesMap:
        """Widen the window, list available metrics and fetch their series."""
        widened = widen_window(window)
        metrics = await self.list_available_metrics(target_id, catalog.all_raw_names())
        if not metrics:
            logger.warning("no_counters_available", target_id=target_id)
        return await self.fetch_series(target_id, metrics, widened)


def _parse_datapoints(metric_name: str, datapoints: Sequence[dict[str, Any]]) -> list[RawSample]:
    samples = []
    for point in datapoints:
        average: Optional[Any] = point.get("average")
        if average is None:
            continue
        try:
            samples.append(
                RawSample(
                    metric_name=metric_name,
                    timestamp=parse_timestamp(point["timestamp"]),
                    average=float(average),
                )
            )
        except (KeyError, TypeError, ValueError) as e:
            raise TransportError(f"Malformed datapoint for {metric_name}: {point!r}") from e
    return samples


def _descriptor_sort_key(descriptor: MetricDescriptor) -> tuple:
    return (descriptor.metric_name, descriptor.namespace or "", descriptor.dimensions)
