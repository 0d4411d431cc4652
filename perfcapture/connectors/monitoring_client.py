"""
Monitoring API client.

The capture pipeline needs exactly two calls from the monitoring service:

- list_metrics: which metrics exist for a set of dimension filters
- get_metric_statistics: per-period statistics for one metric over a window

``MonitoringAPI`` is the contract the fetcher depends on. ``HTTPMonitoringClient``
implements it against a JSON gateway with ``httpx.AsyncClient``. Failed
requests are not retried here; every failure surfaces as ``TransportError``
so the caller decides on retry and backoff.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Optional, Sequence

import httpx
import structlog

from perfcapture.models.counters import MetricDescriptor
from perfcapture.utils.timestamps import format_iso8601

logger = structlog.get_logger()


class TransportError(Exception):
    """Raised when a monitoring API request fails."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


Dimension = dict[str, str]


class MonitoringAPI(ABC):
    """Request/response contract of the external monitoring service."""

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self) -> None:
        """Release any held connections."""

    @abstractmethod
    async def list_metrics(self, dimensions: Sequence[Dimension]) -> list[MetricDescriptor]:
        """
        List the metrics reported with all of the given dimensions.

        Args:
            dimensions: Filters such as ``[{"name": "InstanceId", "value": "i-123"}]``

        Returns:
            Descriptors of matching metrics, across every result page

        Raises:
            TransportError: If the request fails
        """

    @abstractmethod
    async def get_metric_statistics(
        self,
        metric_name: str,
        dimensions: Sequence[Dimension],
        start_time: datetime,
        end_time: datetime,
        period: int = 60,
        statistics: Sequence[str] = ("Average",),
        namespace: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        """
        Fetch datapoints for one metric.

        ``namespace`` and ``dimensions`` identify the metric as listed; a
        metric listed under several dimension sets is fetched once per set.

        Returns:
            Datapoints of the form ``{"timestamp": ..., "average": float}``

        Raises:
            TransportError: If the request fails
        """


class HTTPMonitoringClient(MonitoringAPI):
    """
    Monitoring API client over HTTP/JSON.

    Attributes:
        base_url: Gateway base URL
        api_token: Optional bearer token
        timeout: Per-request timeout in seconds
    """

    LIST_METRICS_PATH = "/metrics/list"
    STATISTICS_PATH = "/metrics/statistics"

    def __init__(
        self,
        base_url: str,
        api_token: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_token = api_token
        self.timeout = timeout
        self._transport = transport
        self._http_client: Optional[httpx.AsyncClient] = None

        logger.info(
            "monitoring_client_initialized",
            base_url=self.base_url,
            has_token=bool(api_token),
        )

    async def __aenter__(self):
        """Async context manager entry."""
        self._http_client = self._build_http_client()
        return self

    async def aclose(self) -> None:
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    def _build_http_client(self) -> httpx.AsyncClient:
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if self.api_token:
            headers["Authorization"] = f"Bearer {self.api_token}"
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=self.timeout,
            transport=self._transport,
        )

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        """
        POST a JSON payload and decode the JSON response.

        Raises:
            TransportError: On HTTP status errors, network errors or bad JSON
        """
        if not self._http_client:
            self._http_client = self._build_http_client()

        try:
            response = await self._http_client.post(path, json=payload)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                "monitoring_api_request_failed",
                path=path,
                status_code=e.response.status_code,
                error=e.response.text,
            )
            raise TransportError(
                f"Monitoring API request to {path} failed: {e.response.text}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            logger.error("monitoring_api_request_error", path=path, error=str(e))
            raise TransportError(f"Monitoring API request to {path} failed: {e}") from e
        except ValueError as e:
            logger.error("monitoring_api_invalid_response", path=path, error=str(e))
            raise TransportError(f"Monitoring API returned invalid JSON for {path}") from e

        if not isinstance(body, dict):
            raise TransportError(f"Monitoring API returned unexpected payload for {path}")

        logger.debug("monitoring_api_request_success", path=path, status_code=response.status_code)
        return body

    async def list_metrics(self, dimensions: Sequence[Dimension]) -> list[MetricDescriptor]:
        payload: dict[str, Any] = {"dimensions": list(dimensions)}
        descriptors: list[MetricDescriptor] = []
        pages = 0

        while True:
            body = await self._post(self.LIST_METRICS_PATH, payload)
            descriptors.extend(_parse_listing(body))
            pages += 1

            next_token = body.get("next_token")
            if not next_token:
                break
            if next_token == payload.get("next_token"):
                raise TransportError(f"Metric listing repeated page token {next_token!r}")
            payload = {**payload, "next_token": next_token}

        logger.debug("metrics_listed", pages=pages, metrics=len(descriptors))
        return descriptors

    async def get_metric_statistics(
        self,
        metric_name: str,
        dimensions: Sequence[Dimension],
        start_time: datetime,
        end_time: datetime,
        period: int = 60,
        statistics: Sequence[str] = ("Average",),
        namespace: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        payload = {
            "metric_name": metric_name,
            "dimensions": list(dimensions),
            "period": period,
            "statistics": list(statistics),
            "start_time": format_iso8601(start_time),
            "end_time": format_iso8601(end_time),
        }
        if namespace:
            payload["namespace"] = namespace
        body = await self._post(self.STATISTICS_PATH, payload)
        return list(body.get("datapoints", []))


def _parse_listing(body: dict[str, Any]) -> list[MetricDescriptor]:
    descriptors = []
    try:
        for entry in body.get("metrics", []):
            dims = tuple((d["name"], d["value"]) for d in entry.get("dimensions", []))
            descriptors.append(
                MetricDescriptor(
                    metric_name=entry["metric_name"],
                    namespace=entry.get("namespace"),
                    dimensions=dims,
                )
            )
    except (KeyError, TypeError) as e:
        raise TransportError(f"Malformed metric listing: {e}") from e
    return descriptors
