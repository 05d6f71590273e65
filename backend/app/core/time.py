"""Clock helpers shared by models and lifecycle services."""

from __future__ import annotations

from datetime import UTC, date, datetime
from zoneinfo import ZoneInfo


def utcnow() -> datetime:
    """Return the current UTC time as a naive datetime for DB storage."""
    return datetime.now(UTC).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Normalize aware datetimes to naive UTC; naive values are assumed UTC already."""
    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


def calendar_date(value: datetime, tz_name: str = "UTC") -> date:
    """Return the calendar day `value` falls on in `tz_name`.

    Naive inputs are interpreted as UTC, matching how timestamps are stored.
    """
    aware = value if value.tzinfo is not None else value.replace(tzinfo=UTC)
    return aware.astimezone(ZoneInfo(tz_name)).date()
