"""Utility modules for logging and timestamp helpers."""

from perfcapture.utils.logging import configure_logging, get_logger
from perfcapture.utils.timestamps import format_iso8601, parse_timestamp, to_utc, utcnow

__all__ = [
    "configure_logging",
    "get_logger",
    "format_iso8601",
    "parse_timestamp",
    "to_utc",
    "utcnow",
]
