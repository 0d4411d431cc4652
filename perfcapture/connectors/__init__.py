"""
Monitoring API connector for the performance capture pipeline.

Main Components:
    MonitoringAPI: Request/response contract of the monitoring service
    HTTPMonitoringClient: httpx implementation of that contract
    MetricsFetcher: Day-chunked, concurrent retrieval of raw series

Usage:
    >>> from perfcapture.connectors import HTTPMonitoringClient, MetricsFetcher
    >>> from perfcapture.engine import default_catalog
    >>>
    >>> async with HTTPMonitoringClient(base_url="https://monitoring.example.com") as client:
    ...     fetcher = MetricsFetcher(client)
    ...     series = await fetcher.collect("i-0abc123", window, default_catalog())
"""

from perfcapture.connectors.fetcher import (
    MAX_QUERY_SPAN,
    MetricsFetcher,
    split_window,
    widen_window,
)
from perfcapture.connectors.monitoring_client import (
    HTTPMonitoringClient,
    MonitoringAPI,
    TransportError,
)

__all__ = [
    # Transport
    "MonitoringAPI",
    "HTTPMonitoringClient",
    "TransportError",
    # Fetching
    "MetricsFetcher",
    "MAX_QUERY_SPAN",
    "split_window",
    "widen_window",
]
