"""
Datetime utilities for consistent timezone handling across the application.
All instants are timezone-aware; wall-clock times are interpreted in the
clinic timezone from settings.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple

import pytz

from config import settings


def utc_now() -> datetime:
    """
    Get current UTC time as timezone-aware datetime.

    Returns:
        Current UTC datetime with timezone info
    """
    return datetime.now(timezone.utc)


def clinic_timezone(tz_name: Optional[str] = None) -> pytz.BaseTzInfo:
    """Return the clinic timezone, falling back to UTC for unknown names."""
    try:
        return pytz.timezone(tz_name or settings.timezone)
    except pytz.UnknownTimeZoneError:
        return pytz.UTC


def localize(day: date, wall_time: time, tz_name: Optional[str] = None) -> datetime:
    """Combine a date and a wall-clock time into an aware datetime in the clinic timezone."""
    tz = clinic_timezone(tz_name)
    return tz.localize(datetime.combine(day, wall_time))


def to_clinic_time(dt: datetime, tz_name: Optional[str] = None) -> datetime:
    """
    Convert an instant to the clinic timezone.
    Naive datetimes are taken as clinic wall-clock time.
    """
    tz = clinic_timezone(tz_name)
    if dt.tzinfo is None:
        return tz.localize(dt)
    return dt.astimezone(tz)


def clinic_date(dt: datetime) -> date:
    """Calendar date of an instant as seen from the clinic."""
    return to_clinic_time(dt).date()


def day_bounds(day: date) -> Tuple[datetime, datetime]:
    """Start of the given day and start of the next day, in the clinic timezone."""
    start = localize(day, time(0, 0))
    end = localize(day + timedelta(days=1), time(0, 0))
    return start, end


def parse_iso_datetime(iso_string: str) -> datetime:
    """
    Parse ISO format datetime string to timezone-aware datetime.
    Handles both 'Z' suffix and '+00:00' timezone formats.

    Args:
        iso_string: ISO format datetime string

    Returns:
        Timezone-aware datetime object

    Raises:
        ValueError: If datetime string cannot be parsed
    """
    # Normalize 'Z' suffix to '+00:00'
    normalized = iso_string.replace("Z", "+00:00")

    try:
        dt = datetime.fromisoformat(normalized)
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt
    except ValueError as e:
        raise ValueError(f"Invalid datetime string: {iso_string}") from e


def to_iso_string(dt: datetime) -> str:
    """
    Convert datetime to ISO format string.
    Naive datetimes are taken as clinic wall-clock time.

    Args:
        dt: Datetime object (timezone-aware or naive)

    Returns:
        ISO format string
    """
    if dt.tzinfo is None:
        dt = to_clinic_time(dt)

    return dt.isoformat()
