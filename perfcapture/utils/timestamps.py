"""UTC normalization and ISO-8601 rendering shared by fetch and resample."""

from datetime import datetime, timezone

ISO8601_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def to_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime. Naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: str | datetime) -> datetime:
    """Parse an API timestamp (ISO-8601 string or datetime) into aware UTC."""
    if isinstance(value, datetime):
        return to_utc(value)
    return to_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))


def format_iso8601(value: datetime) -> str:
    """Render a timestamp the way the performance-history schema keys samples."""
    return to_utc(value).strftime(ISO8601_FORMAT)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
