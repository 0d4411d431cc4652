"""
Unit tests for the capture service: window resolution, endpoint checks and
the end-to-end fetch -> resample -> assemble flow against a fake API.
"""

from datetime import datetime, timedelta, timezone

import pytest

from perfcapture.config import Settings
from perfcapture.connectors.monitoring_client import TransportError
from perfcapture.models.capture import CaptureTarget, MonitoringEndpoint
from perfcapture.services.capture_service import (
    DEFAULT_CAPTURE_WINDOW,
    ConfigurationError,
    MetricsCaptureService,
    resolve_window,
    target_from_settings,
)
from tests.conftest import FakeMonitoringAPI, run, ts

ENDPOINT = MonitoringEndpoint(base_url="https://monitoring.example.test")


def _service(api: FakeMonitoringAPI, **settings_overrides) -> MetricsCaptureService:
    factory_calls = []

    def factory(endpoint):
        factory_calls.append(endpoint)
        return api

    service = MetricsCaptureService(
        client_factory=factory,
        settings=Settings(**settings_overrides),
    )
    service.factory_calls = factory_calls
    return service


class TestResolveWindow:
    def test_defaults_to_four_hours_before_now(self):
        now = ts(600)
        window = resolve_window(now=now)
        assert window.end == now
        assert window.start == now - timedelta(hours=4)
        assert DEFAULT_CAPTURE_WINDOW == timedelta(hours=4)

    def test_start_defaults_relative_to_given_end(self):
        window = resolve_window(end_time=ts(300))
        assert window.start == ts(60)

    def test_naive_datetimes_are_utc(self):
        window = resolve_window(datetime(2026, 2, 10, 1, 0), datetime(2026, 2, 10, 2, 0))
        assert window.start == datetime(2026, 2, 10, 1, 0, tzinfo=timezone.utc)
        assert window.end.tzinfo is not None

    def test_aware_datetimes_are_converted_to_utc(self):
        plus_two = timezone(timedelta(hours=2))
        window = resolve_window(end_time=datetime(2026, 2, 10, 2, 0, tzinfo=plus_two))
        assert window.end == ts(0)
        assert window.end.utcoffset() == timedelta(0)

    def test_end_before_start_raises(self):
        with pytest.raises(ValueError):
            resolve_window(start_time=ts(10), end_time=ts(0))


class TestTargetFromSettings:
    def test_unbound_when_no_default_endpoint(self):
        target = target_from_settings("i-1", Settings(monitoring_endpoint_url=""))
        assert target.endpoint is None

    def test_bound_to_default_endpoint(self):
        settings = Settings(
            monitoring_endpoint_url="https://monitoring.example.test/",
            monitoring_api_token="tok",
        )
        target = target_from_settings("i-1", settings)
        assert target.endpoint == MonitoringEndpoint(
            base_url="https://monitoring.example.test", api_token="tok"
        )


class TestPerfCollectMetrics:
    def test_missing_endpoint_raises_before_any_fetch(self, target_id):
        api = FakeMonitoringAPI(metrics=["CPUUtilization"])
        service = _service(api)

        with pytest.raises(ConfigurationError, match=target_id):
            run(service.perf_collect_metrics(CaptureTarget(target_id=target_id)))

        assert service.factory_calls == []
        assert api.list_calls == []

    def test_result_is_keyed_by_target(self, target_id):
        api = FakeMonitoringAPI(
            metrics=["CPUUtilization"],
            datapoints={"CPUUtilization": {ts(-5): 99.0, ts(0): 10.0, ts(5): 20.0}},
        )
        service = _service(api)
        target = CaptureTarget(target_id=target_id, name="web-1", endpoint=ENDPOINT)

        counters, values = run(
            service.perf_collect_metrics(target, start_time=ts(0), end_time=ts(5))
        )

        assert list(counters) == [target_id]
        assert set(counters[target_id]) == {
            "cpu_usage_rate_average",
            "disk_usage_rate_average",
            "net_usage_rate_average",
            "mem_usage_absolute_average",
            "mem_swapped_absolute_average",
        }
        assert list(values) == [target_id]
        # ts(-5) is the sacrificial sample fetched by the widened window.
        assert len(values[target_id]) == 30
        assert values[target_id]["2026-02-10T00:00:00Z"] == {"cpu_usage_rate_average": 10.0}
        assert values[target_id]["2026-02-10T00:05:00Z"] == {"cpu_usage_rate_average": 20.0}
        assert 99.0 not in {row["cpu_usage_rate_average"] for row in values[target_id].values()}

    def test_sacrificial_sample_never_surfaces(self, target_id):
        api = FakeMonitoringAPI(
            metrics=["CPUUtilization"],
            datapoints={"CPUUtilization": {ts(-5): 99.0, ts(0): 10.0}},
        )
        target = CaptureTarget(target_id=target_id, endpoint=ENDPOINT)

        _, values = run(
            _service(api).perf_collect_metrics(target, start_time=ts(0), end_time=ts(0))
        )

        assert all(row["cpu_usage_rate_average"] != 99.0 for row in values[target_id].values())
        assert "2026-02-09T23:55:00Z" not in values[target_id]

    def test_uses_configured_dimension_name(self, target_id):
        api = FakeMonitoringAPI()
        service = _service(api, target_dimension_name="VolumeId")
        target = CaptureTarget(target_id=target_id, endpoint=ENDPOINT)

        run(service.perf_collect_metrics(target, start_time=ts(0), end_time=ts(5)))

        assert api.list_calls == [[{"name": "VolumeId", "value": target_id}]]

    def test_client_built_from_target_endpoint_and_closed(self, target_id):
        api = FakeMonitoringAPI()
        service = _service(api)
        target = CaptureTarget(target_id=target_id, endpoint=ENDPOINT)

        run(service.perf_collect_metrics(target, start_time=ts(0), end_time=ts(5)))

        assert service.factory_calls == [ENDPOINT]
        assert api.closed

    def test_transport_error_is_reraised_unchanged(self, target_id):
        api = FakeMonitoringAPI(metrics=["NetworkIn"], fail_on=["NetworkIn"])
        target = CaptureTarget(target_id=target_id, endpoint=ENDPOINT)

        with pytest.raises(TransportError) as exc_info:
            run(_service(api).perf_collect_metrics(target, start_time=ts(0), end_time=ts(5)))

        assert exc_info.value is api.error
        assert api.closed

    def test_invocations_do_not_share_results(self, target_id):
        api = FakeMonitoringAPI(
            metrics=["CPUUtilization"],
            datapoints={"CPUUtilization": {ts(0): 10.0, ts(5): 20.0}},
        )
        service = _service(api)
        target = CaptureTarget(target_id=target_id, endpoint=ENDPOINT)

        _, first = run(service.perf_collect_metrics(target, start_time=ts(5), end_time=ts(5)))
        api.datapoints = {}
        _, second = run(service.perf_collect_metrics(target, start_time=ts(5), end_time=ts(5)))

        assert len(first[target_id]) == 15
        assert second[target_id] == {}
