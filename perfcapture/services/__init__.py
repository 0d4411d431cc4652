"""Service layer orchestrating capture invocations."""

from perfcapture.services.capture_service import (
    DEFAULT_CAPTURE_WINDOW,
    ConfigurationError,
    MetricsCaptureService,
    resolve_window,
    target_from_settings,
)

__all__ = [
    "ConfigurationError",
    "DEFAULT_CAPTURE_WINDOW",
    "MetricsCaptureService",
    "resolve_window",
    "target_from_settings",
]
