"""
Booking slot parsing and validation.

All functions are pure: callers pass ``now`` explicitly and may pass a
``SlotPolicy``; when omitted the policy is built from settings.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import Enum
import re
from typing import List, Optional, Tuple

from ..core.config import settings
from ..core.exceptions import InvalidFormatException
from ..core.timezone_utils import get_shop_timezone, to_shop_time

DATE_PATTERN = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")
TIME_PATTERN = re.compile(r"[0-9]{2}:[0-9]{2}")


class SlotRejection(str, Enum):
    """Why an instant cannot be booked."""

    CLOSED_DAY = "CLOSED_DAY"
    OUTSIDE_HOURS = "OUTSIDE_HOURS"
    IN_THE_PAST = "IN_THE_PAST"
    TOO_SOON_TODAY = "TOO_SOON_TODAY"

    def describe(self, policy: "SlotPolicy") -> str:
        if self is SlotRejection.CLOSED_DAY:
            return "The barbershop is closed on this day"
        if self is SlotRejection.OUTSIDE_HOURS:
            return (
                f"Bookings are only available between {policy.opening_hour:02d}:00 "
                f"and {policy.closing_hour:02d}:00"
            )
        if self is SlotRejection.IN_THE_PAST:
            return "The selected time is in the past"
        return (
            f"Same-day bookings must be made at least {policy.min_lead_minutes} minutes in advance"
        )


@dataclass(frozen=True)
class SlotPolicy:
    """Operating rules a slot is validated against."""

    timezone: str
    open_weekdays: Tuple[int, ...]
    opening_hour: int
    closing_hour: int
    min_lead_minutes: int
    slot_interval_minutes: int = 30

    @classmethod
    def from_settings(cls) -> "SlotPolicy":
        return cls(
            timezone=settings.shop_timezone,
            open_weekdays=settings.operating_weekdays,
            opening_hour=settings.opening_hour,
            closing_hour=settings.closing_hour,
            min_lead_minutes=settings.min_lead_minutes,
            slot_interval_minutes=settings.slot_interval_minutes,
        )


def parse_slot(date_str: str, time_str: str, policy: Optional[SlotPolicy] = None) -> datetime:
    """
    Combine ``YYYY-MM-DD`` and ``HH:MM`` into an aware instant in the shop timezone.

    Raises:
        InvalidFormatException: If either string fails its pattern or is not a
            real calendar date or clock time
    """
    policy = policy or SlotPolicy.from_settings()
    if not isinstance(date_str, str) or not DATE_PATTERN.fullmatch(date_str):
        raise InvalidFormatException("date", date_str, "YYYY-MM-DD")
    if not isinstance(time_str, str) or not TIME_PATTERN.fullmatch(time_str):
        raise InvalidFormatException("time", time_str, "HH:MM")
    try:
        day = date.fromisoformat(date_str)
    except ValueError:
        raise InvalidFormatException("date", date_str, "YYYY-MM-DD")
    hours, minutes = (int(part) for part in time_str.split(":"))
    if hours > 23 or minutes > 59:
        raise InvalidFormatException("time", time_str, "HH:MM")
    tz = get_shop_timezone(policy.timezone)
    return tz.localize(datetime.combine(day, time(hours, minutes)))


def compute_end_time(start: datetime, duration_minutes: int) -> datetime:
    return start + timedelta(minutes=duration_minutes)


def check_bookable_slot(
    instant: datetime, now: datetime, policy: Optional[SlotPolicy] = None
) -> Optional[SlotRejection]:
    """
    Return the first rule ``instant`` breaks, or None when it is bookable.

    Rules are checked in order: operating day, operating hours, past,
    minimum lead time for same-day bookings.
    """
    policy = policy or SlotPolicy.from_settings()
    local = to_shop_time(instant, policy.timezone)
    local_now = to_shop_time(now, policy.timezone)

    if local.weekday() not in policy.open_weekdays:
        return SlotRejection.CLOSED_DAY
    if local.hour < policy.opening_hour or local.hour >= policy.closing_hour:
        return SlotRejection.OUTSIDE_HOURS
    if instant < now:
        return SlotRejection.IN_THE_PAST
    if local.date() == local_now.date() and instant < now + timedelta(
        minutes=policy.min_lead_minutes
    ):
        return SlotRejection.TOO_SOON_TODAY
    return None


def is_bookable_slot(
    instant: datetime, now: datetime, policy: Optional[SlotPolicy] = None
) -> bool:
    return check_bookable_slot(instant, now, policy) is None


def generate_time_slots(policy: Optional[SlotPolicy] = None) -> List[str]:
    """Start times offered to customers, ``HH:MM`` from opening until before closing."""
    policy = policy or SlotPolicy.from_settings()
    slots: List[str] = []
    minutes = policy.opening_hour * 60
    end = policy.closing_hour * 60
    while minutes < end:
        slots.append(f"{minutes // 60:02d}:{minutes % 60:02d}")
        minutes += policy.slot_interval_minutes
    return slots


def is_within_booking_window(day: date, today: date, window_days: Optional[int] = None) -> bool:
    """True when ``day`` is between today and ``window_days`` ahead, inclusive."""
    window = settings.booking_window_days if window_days is None else window_days
    return today <= day <= today + timedelta(days=window)
