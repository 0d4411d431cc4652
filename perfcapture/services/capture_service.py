"""
Capture service: one performance capture invocation for one target.

Workflow:
1. Check the target has a monitoring endpoint bound
2. Normalize the requested window to UTC (default: the 4 hours before now)
3. Open a monitoring client and fetch raw series (window widened by 5 minutes)
4. Resample onto the 20 s grid and assemble the per-target mappings

Nothing is cached between invocations. Failures are logged once and
re-raised unchanged; the caller owns retry and backoff.
"""

from datetime import datetime, timedelta
from typing import Callable, Optional

import structlog

from perfcapture.config import Settings, get_settings
from perfcapture.connectors.fetcher import MetricsFetcher
from perfcapture.connectors.monitoring_client import HTTPMonitoringClient, MonitoringAPI
from perfcapture.engine.assembler import MetadataByTarget, OutputAssembler, PointsByTarget
from perfcapture.engine.catalog import CounterCatalog, default_catalog
from perfcapture.engine.resampler import IntervalResampler
from perfcapture.models.capture import CaptureTarget, MonitoringEndpoint, TimeWindow
from perfcapture.models.counters import CAPTURE_INTERVAL_NAME
from perfcapture.utils.timestamps import to_utc, utcnow

logger = structlog.get_logger()

# Matches the default realtime range of the performance-history collector.
DEFAULT_CAPTURE_WINDOW = timedelta(hours=4)

ClientFactory = Callable[[MonitoringEndpoint], MonitoringAPI]


class ConfigurationError(Exception):
    """Raised when a target has no monitoring endpoint bound."""

    pass


def resolve_window(
    start_time: Optional[datetime] = None,
    end_time: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> TimeWindow:
    """
    Normalize an optional start/end pair into a UTC window.

    Raises:
        ValueError: If the resulting end is before its start
    """
    end = to_utc(end_time) if end_time is not None else to_utc(now or utcnow())
    start = to_utc(start_time) if start_time is not None else end - DEFAULT_CAPTURE_WINDOW
    return TimeWindow(start=start, end=end)


def target_from_settings(target_id: str, settings: Optional[Settings] = None) -> CaptureTarget:
    """Build a target bound to the default endpoint from settings, if one is configured."""
    settings = settings or get_settings()
    endpoint = None
    if settings.has_default_endpoint:
        endpoint = MonitoringEndpoint(
            base_url=settings.monitoring_endpoint_url,
            api_token=settings.monitoring_api_token or None,
        )
    return CaptureTarget(target_id=target_id, endpoint=endpoint)


class MetricsCaptureService:
    """
    Runs fetch -> resample -> assemble for a target.

    Attributes:
        catalog: Derived metrics to compute
        client_factory: Builds a monitoring client for an endpoint
        settings: Application settings
    """

    def __init__(
        self,
        catalog: Optional[CounterCatalog] = None,
        client_factory: Optional[ClientFactory] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.catalog = catalog or default_catalog()
        self.client_factory = client_factory or self._default_client_factory
        self.resampler = IntervalResampler(self.catalog)
        self.assembler = OutputAssembler()

    def _default_client_factory(self, endpoint: MonitoringEndpoint) -> MonitoringAPI:
        return HTTPMonitoringClient(
            base_url=endpoint.base_url,
            api_token=endpoint.api_token,
            timeout=self.settings.request_timeout_seconds,
        )

    async def perf_collect_metrics(
        self,
        target: CaptureTarget,
        interval_name: str = CAPTURE_INTERVAL_NAME,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
    ) -> tuple[MetadataByTarget, PointsByTarget]:
        """
        Capture realtime metrics for ``target``.

        Args:
            target: Target to capture
            interval_name: Interval label used in log lines
            start_time: Window start (defaults to 4 hours before end)
            end_time: Window end (defaults to now)

        Returns:
            ``(metadata_by_target, points_by_target)`` keyed by ``target.target_id``

        Raises:
            ConfigurationError: If the target has no monitoring endpoint
            ValueError: If end_time is before start_time
            TransportError: If any monitoring API request fails
        """
        if target.endpoint is None:
            raise ConfigurationError(
                f"No monitoring endpoint defined for target {target.target_id}"
            )

        window = resolve_window(start_time, end_time)
        log = logger.bind(
            interval_name=interval_name,
            target_type=target.target_type,
            target_id=target.target_id,
            target_name=target.name,
        )
        log.info(
            "perf_capture_started",
            start=window.start,
            end=window.end,
        )

        try:
            async with self.client_factory(target.endpoint) as client:
                fetcher = MetricsFetcher(
                    client,
                    dimension_name=self.settings.target_dimension_name,
                    max_concurrent_requests=self.settings.max_concurrent_requests,
                )
                series = await fetcher.collect(target.target_id, window, self.catalog)
        except Exception as err:
            log.error(
                "perf_capture_failed",
                error=str(err),
                error_class=type(err).__name__,
                exc_info=True,
            )
            raise

        points = self.resampler.resample(series)
        result = self.assembler.assemble(target.target_id, self.catalog, points)

        log.info("perf_capture_completed", timestamps=len(points))
        return result
