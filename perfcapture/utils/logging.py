"""
structlog setup for capture runs.

Capture code logs window bounds and sample timestamps as datetimes and
client code may log credentials; the processors here render the former in
the same ``Z``-suffixed form used for point-table keys and mask the latter.
"""

import logging
import sys
from datetime import datetime
from typing import Any, Optional

import structlog
from structlog.types import EventDict, Processor

from perfcapture.config import get_settings
from perfcapture.utils.timestamps import format_iso8601

SECRET_KEYS = frozenset({"api_token", "monitoring_api_token", "authorization"})
REDACTED = "***"

# Chatty per-request loggers of the HTTP stack.
TRANSPORT_LOGGERS = ("httpx", "httpcore")


def render_datetimes(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Render datetime values as UTC ISO-8601 with a ``Z`` suffix."""
    for key, value in event_dict.items():
        if isinstance(value, datetime):
            event_dict[key] = format_iso8601(value)
    return event_dict


def redact_secrets(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    for key in event_dict:
        if key.lower() in SECRET_KEYS and event_dict[key]:
            event_dict[key] = REDACTED
    return event_dict


def add_severity(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict["severity"] = method_name.upper()
    return event_dict


def configure_logging(level: Optional[str] = None) -> None:
    """
    Configure structlog over stdlib logging.

    JSON output unless ``log_format`` is ``console`` or dev mode is on.
    Transport loggers are held at WARNING unless running at DEBUG.

    Args:
        level: Overrides the ``log_level`` setting
    """
    settings = get_settings()
    log_level = getattr(logging, (level or settings.log_level).upper(), logging.INFO)

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)
    transport_level = log_level if log_level <= logging.DEBUG else max(log_level, logging.WARNING)
    for name in TRANSPORT_LOGGERS:
        logging.getLogger(name).setLevel(transport_level)

    if settings.log_format == "json" and not settings.dev_mode:
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            render_datetimes,
            redact_secrets,
            add_severity,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = __name__) -> structlog.BoundLogger:
    return structlog.get_logger(name)
