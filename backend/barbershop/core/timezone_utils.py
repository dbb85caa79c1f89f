"""
Timezone utilities for the barbershop backend.

Bookings are stored as UTC instants; business rules (opening hours,
calendar days, emails) are evaluated in the shop's local timezone.
"""

from datetime import date, datetime, time, timedelta
from typing import Optional, Tuple

import pytz

from .config import settings


def get_shop_timezone(name: Optional[str] = None):
    """Return the shop timezone as a pytz timezone object."""
    return pytz.timezone(name or settings.shop_timezone)


def utc_now() -> datetime:
    return datetime.now(pytz.UTC)


def ensure_utc(dt: datetime) -> datetime:
    """
    Return an aware UTC datetime.

    Naive datetimes are assumed to already be UTC (SQLite drops tzinfo).
    """
    if dt.tzinfo is None:
        return pytz.UTC.localize(dt)
    return dt.astimezone(pytz.UTC)


def to_shop_time(dt: datetime, tz_name: Optional[str] = None) -> datetime:
    """Convert a datetime to the shop timezone."""
    return ensure_utc(dt).astimezone(get_shop_timezone(tz_name))


def localize(day: date, clock: time, tz_name: Optional[str] = None) -> datetime:
    """Attach the shop timezone to a wall-clock date and time."""
    tz = get_shop_timezone(tz_name)
    return tz.localize(datetime.combine(day, clock))


def local_day_bounds(day: date, tz_name: Optional[str] = None) -> Tuple[datetime, datetime]:
    """
    UTC bounds of a shop-local calendar day as a half-open range.

    Returns:
        (start, end) where end is the next local midnight
    """
    start = localize(day, time.min, tz_name)
    end = localize(day + timedelta(days=1), time.min, tz_name)
    return start.astimezone(pytz.UTC), end.astimezone(pytz.UTC)


def format_shop_datetime(dt: datetime, tz_name: Optional[str] = None) -> str:
    """Human readable local date and time, e.g. 'Monday, 02 June 2025 10:30'."""
    return to_shop_time(dt, tz_name).strftime("%A, %d %B %Y %H:%M")
