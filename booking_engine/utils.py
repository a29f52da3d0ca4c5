"""Shared utilities for working with timezone-aware instants."""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo


def ensure_aware(value: datetime) -> datetime:
    """Reject naive datetimes; bookings are always compared as absolute instants.

    Examples:
        >>> ensure_aware(datetime(2025, 10, 1, 10, tzinfo=timezone.utc)).hour
        10
    """
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        raise ValueError(f"Expected a timezone-aware datetime, got naive {value.isoformat()}")
    return value


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def local_day_bounds(instant: datetime, time_zone: str) -> tuple[datetime, datetime]:
    """Return the [start, end) of the calendar day containing ``instant`` in ``time_zone``.

    Examples:
        >>> start, end = local_day_bounds(
        ...     datetime(2025, 10, 1, 2, tzinfo=timezone.utc), "America/New_York"
        ... )
        >>> start.isoformat()
        '2025-09-30T00:00:00-04:00'
    """
    tz = ZoneInfo(time_zone)
    local = ensure_aware(instant).astimezone(tz)
    start = datetime(local.year, local.month, local.day, tzinfo=tz)
    next_day = datetime.fromordinal(start.toordinal() + 1)
    end = datetime(next_day.year, next_day.month, next_day.day, tzinfo=tz)
    return start, end
