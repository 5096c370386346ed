"""
Date utility functions for the application.
"""
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

DEFAULT_DISPLAY_TIMEZONE = "America/Sao_Paulo"

DateLike = Union[date, datetime, str, None]


def parse_iso_date(value: DateLike, default: Optional[date] = None) -> Optional[date]:
    """
    Parse a calendar date from a date, datetime or ISO string.

    Accepts 'YYYY-MM-DD' as well as full ISO timestamps ('2025-03-10T00:00:00Z'),
    keeping only the calendar date.

    Args:
        value: date, datetime, ISO string, or None
        default: Value returned when parsing fails

    Returns:
        date: Parsed date, or default if value is missing or unparseable
    """
    if value is None or value == '':
        return default

    if isinstance(value, datetime):
        return value.date()

    if isinstance(value, date):
        return value

    if not isinstance(value, str):
        return default

    text = value.strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        pass

    try:
        return datetime.fromisoformat(text.replace('Z', '+00:00')).date()
    except ValueError:
        return default


def to_iso(value: date) -> str:
    """Format a date as 'YYYY-MM-DD'."""
    return value.isoformat()


def is_working_day(check_date: date) -> bool:
    """Return True for Monday through Friday."""
    return check_date.weekday() < 5


def add_business_days(start_date, business_days):
    """
    Calculate the date that is a specified number of business days after the start date.

    Args:
        start_date: The start date (date or datetime object)
        business_days: Number of business days to add

    Returns:
        date: The calculated date that is business_days after start_date

    Raises:
        OverflowError: If the result falls outside the supported date range
    """
    if isinstance(start_date, datetime):
        current_date = start_date.date()
    else:
        current_date = start_date

    if business_days <= 0:
        return current_date

    # Any 7 consecutive days hold exactly 5 business days; step through the last 1-5
    weeks, remaining = divmod(business_days - 1, 5)
    current_date += timedelta(days=7 * weeks)
    remaining += 1

    while remaining:
        current_date += timedelta(days=1)
        if is_working_day(current_date):
            remaining -= 1

    return current_date


def get_display_timezone(tz_name: Optional[str] = None) -> ZoneInfo:
    """
    Get the timezone used when rendering timestamps.

    Falls back to DEFAULT_DISPLAY_TIMEZONE if the name is unknown.
    """
    try:
        return ZoneInfo(tz_name or DEFAULT_DISPLAY_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo(DEFAULT_DISPLAY_TIMEZONE)


def format_datetime_local(dt, tz_name: Optional[str] = None):
    """
    Format a datetime object in the display timezone with readable format.
    Returns format like: "March 10, 2025 02:30:45 PM"

    Args:
        dt: datetime object, ISO string, or None
        tz_name: IANA timezone name (defaults to DEFAULT_DISPLAY_TIMEZONE)

    Returns:
        str: Formatted datetime string, or None if dt is None
    """
    if not dt:
        return None

    if isinstance(dt, str):
        try:
            dt = datetime.fromisoformat(dt.replace('Z', '+00:00'))
        except ValueError:
            return str(dt)  # Return as-is if parsing fails

    # Naive timestamps are stored in UTC
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)

    local_dt = dt.astimezone(get_display_timezone(tz_name))
    return local_dt.strftime("%B %d, %Y %I:%M:%S %p")


def utcnow() -> datetime:
    """Current UTC time as a naive datetime (the form stored in the database)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
