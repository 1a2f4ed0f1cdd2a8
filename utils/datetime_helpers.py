"""
Timezone-aware date/time helpers.

Every local-time helper takes the timezone explicitly: bookings belong to a
captain, and the captain's timezone decides weekdays and calendar dates.
Instants are stored as UTC strings in TIMESTAMP_FORMAT.
"""

import logging
from datetime import date, datetime, time, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from flask import current_app

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = '%Y-%m-%dT%H:%M:%SZ'

# Index matches day_of_week (0 = Sunday)
DAY_NAMES = ['Sunday', 'Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday']


# =============================================================================
# TIMEZONES
# =============================================================================

def get_timezone(tz_name: str = None) -> ZoneInfo:
    """
    Resolve an IANA timezone name.

    Args:
        tz_name: IANA id (e.g. 'America/New_York'). Falls back to the
            configured TIMEZONE when empty or unknown.

    Returns:
        ZoneInfo instance
    """
    fallback = current_app.config.get('TIMEZONE', 'America/New_York')
    if not tz_name:
        return ZoneInfo(fallback)
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone '{tz_name}', using {fallback}")
        return ZoneInfo(fallback)


def is_valid_timezone(tz_name: str) -> bool:
    """Check that a string names a known IANA timezone."""
    if not tz_name:
        return False
    try:
        ZoneInfo(tz_name)
        return True
    except (ZoneInfoNotFoundError, ValueError):
        return False


# =============================================================================
# INSTANTS
# =============================================================================

def utc_now() -> datetime:
    """Current instant in UTC, truncated to whole seconds."""
    return datetime.now(timezone.utc).replace(microsecond=0)


def parse_timestamp(value) -> datetime:
    """
    Parse an ISO-8601 instant into an aware UTC datetime.

    Naive values are taken as UTC.

    Args:
        value: ISO string ('2026-06-01T14:00:00Z', offsets allowed) or datetime

    Returns:
        Aware datetime in UTC

    Raises:
        ValueError: If the value cannot be parsed
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith('Z') or text.endswith('z'):
            text = text[:-1] + '+00:00'
        dt = datetime.fromisoformat(text)
    else:
        raise ValueError(f"Invalid timestamp: {value!r}")

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).replace(microsecond=0)


def format_timestamp(dt: datetime) -> str:
    """Format an instant as a UTC storage string."""
    return parse_timestamp(dt).strftime(TIMESTAMP_FORMAT)


# =============================================================================
# LOCAL WALL CLOCK
# =============================================================================

def to_local(dt: datetime, tz: ZoneInfo) -> datetime:
    """Convert an instant to the given timezone."""
    return parse_timestamp(dt).astimezone(tz)


def local_weekday(dt: datetime, tz: ZoneInfo) -> int:
    """
    Weekday of an instant in the given timezone.

    Returns:
        int: 0 = Sunday .. 6 = Saturday
    """
    # isoweekday: Monday=1 .. Sunday=7
    return to_local(dt, tz).isoweekday() % 7


def local_date(dt: datetime, tz: ZoneInfo) -> date:
    """Calendar date of an instant in the given timezone."""
    return to_local(dt, tz).date()


def local_midnight_utc(day: date, tz: ZoneInfo) -> datetime:
    """UTC instant of local midnight at the start of a calendar date."""
    return datetime.combine(day, time(0, 0), tzinfo=tz).astimezone(timezone.utc)


def local_datetime_utc(day: date, wall_time: time, tz: ZoneInfo) -> datetime:
    """UTC instant for a local wall-clock time on a calendar date."""
    return datetime.combine(day, wall_time, tzinfo=tz).astimezone(timezone.utc)


def parse_date(value: str) -> date:
    """
    Parse a YYYY-MM-DD string.

    Raises:
        ValueError: If the format is invalid
    """
    return datetime.strptime(value, '%Y-%m-%d').date()


def parse_wall_time(value: str) -> time:
    """
    Parse an 'HH:MM' (or 'HH:MM:SS') wall-clock time.

    Raises:
        ValueError: If the format is invalid
    """
    if not isinstance(value, str):
        raise ValueError(f"Invalid time: {value!r}")
    fmt = '%H:%M:%S' if value.count(':') == 2 else '%H:%M'
    return datetime.strptime(value, fmt).time()


def seconds_of_day(value: time) -> int:
    """Seconds since local midnight."""
    return value.hour * 3600 + value.minute * 60 + value.second


# =============================================================================
# HUMAN-READABLE FORMATTING
# =============================================================================

def format_time_12h(value) -> str:
    """
    Render a wall-clock time as '6 AM' or '5:30 PM'.

    Args:
        value: time object or 'HH:MM' string
    """
    if isinstance(value, str):
        value = parse_wall_time(value)
    suffix = 'AM' if value.hour < 12 else 'PM'
    hour = value.hour % 12 or 12
    if value.minute:
        return f"{hour}:{value.minute:02d} {suffix}"
    return f"{hour} {suffix}"


def describe_time_difference(minutes: int) -> str:
    """
    Render a duration in minutes as '1h', '30m' or '1h 30m'.
    """
    minutes = abs(int(minutes))
    hours, mins = divmod(minutes, 60)
    if hours and mins:
        return f"{hours}h {mins}m"
    if hours:
        return f"{hours}h"
    return f"{mins}m"