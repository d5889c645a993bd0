"""UTC timestamp helpers.

Timestamps are stored as naive UTC datetimes (SQLite has no timezone type)
and made aware again when read back.
"""

from __future__ import annotations

from datetime import datetime, timezone

# "Never" sentinel for a counter that has not been aggregated yet.
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def utcnow() -> datetime:
    """Current time as a naive UTC datetime, ready for storage."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_rfc3339(value: datetime) -> str:
    """Second-precision RFC 3339 in UTC, e.g. ``1970-01-01T00:00:00Z``."""
    return as_utc(value).strftime("%Y-%m-%dT%H:%M:%SZ")


__all__ = ["EPOCH", "as_utc", "format_rfc3339", "utcnow"]
