from datetime import datetime, timedelta, timezone

import pytest
import pytz

from barbershop.core.exceptions import InvalidFormatException
from barbershop.domain.time_slots import (
    SlotPolicy,
    SlotRejection,
    check_bookable_slot,
    compute_end_time,
    generate_time_slots,
    is_bookable_slot,
    is_within_booking_window,
    parse_slot,
)

JAKARTA = pytz.timezone("Asia/Jakarta")

POLICY = SlotPolicy(
    timezone="Asia/Jakarta",
    open_weekdays=(0, 1, 2, 3, 4, 5),
    opening_hour=9,
    closing_hour=19,
    min_lead_minutes=60,
    slot_interval_minutes=30,
)

# Monday 2025-01-06 08:00 local
NOW = JAKARTA.localize(datetime(2025, 1, 6, 8, 0))


class TestParseSlot:
    def test_returns_aware_local_instant(self) -> None:
        start = parse_slot("2025-01-07", "10:30", POLICY)
        assert start.tzinfo is not None
        assert start.astimezone(timezone.utc) == datetime(2025, 1, 7, 3, 30, tzinfo=timezone.utc)

    @pytest.mark.parametrize(
        "date_str,time_str,field",
        [
            ("2025/01/07", "10:00", "date"),
            ("2025-1-7", "10:00", "date"),
            ("2025-02-30", "10:00", "date"),
            ("2025-01-07", "10:0", "time"),
            ("2025-01-07", "24:00", "time"),
            ("2025-01-07", "10:60", "time"),
            ("2025-01-07\n", "10:00", "date"),
            ("2025-01-07", "10:00\n", "time"),
            ("2025-01-07", "١٠:٠٠", "time"),
            ("٢٠٢٥-01-07", "10:00", "date"),
        ],
    )
    def test_rejects_malformed_values(self, date_str: str, time_str: str, field: str) -> None:
        with pytest.raises(InvalidFormatException) as exc_info:
            parse_slot(date_str, time_str, POLICY)
        assert exc_info.value.details["field"] == field
        assert exc_info.value.status_code == 400


class TestCheckBookableSlot:
    def test_closing_hour_is_exclusive(self) -> None:
        assert is_bookable_slot(parse_slot("2025-01-07", "18:30", POLICY), NOW, POLICY)
        assert (
            check_bookable_slot(parse_slot("2025-01-07", "19:00", POLICY), NOW, POLICY)
            == SlotRejection.OUTSIDE_HOURS
        )

    def test_before_opening(self) -> None:
        assert (
            check_bookable_slot(parse_slot("2025-01-07", "08:30", POLICY), NOW, POLICY)
            == SlotRejection.OUTSIDE_HOURS
        )

    def test_sunday_is_closed(self) -> None:
        assert (
            check_bookable_slot(parse_slot("2025-01-12", "10:00", POLICY), NOW, POLICY)
            == SlotRejection.CLOSED_DAY
        )

    def test_closed_day_is_reported_before_hours(self) -> None:
        assert (
            check_bookable_slot(parse_slot("2025-01-12", "20:00", POLICY), NOW, POLICY)
            == SlotRejection.CLOSED_DAY
        )

    def test_past_instant(self) -> None:
        later_today = JAKARTA.localize(datetime(2025, 1, 6, 12, 0))
        assert (
            check_bookable_slot(parse_slot("2025-01-06", "10:00", POLICY), later_today, POLICY)
            == SlotRejection.IN_THE_PAST
        )

    def test_same_day_needs_lead_time(self) -> None:
        now = JAKARTA.localize(datetime(2025, 1, 6, 9, 15))
        assert (
            check_bookable_slot(parse_slot("2025-01-06", "10:00", POLICY), now, POLICY)
            == SlotRejection.TOO_SOON_TODAY
        )
        assert is_bookable_slot(parse_slot("2025-01-06", "10:30", POLICY), now, POLICY)

    def test_lead_time_does_not_apply_to_other_days(self) -> None:
        late_evening = JAKARTA.localize(datetime(2025, 1, 6, 18, 45))
        assert is_bookable_slot(parse_slot("2025-01-07", "09:00", POLICY), late_evening, POLICY)


class TestEndTimeAndWindow:
    @pytest.mark.parametrize("duration", [5, 30, 45, 90, 480])
    def test_end_minus_start_is_duration(self, duration: int) -> None:
        start = parse_slot("2025-01-07", "10:00", POLICY)
        assert compute_end_time(start, duration) - start == timedelta(minutes=duration)

    def test_booking_window_is_inclusive(self) -> None:
        today = NOW.date()
        assert is_within_booking_window(today, today, window_days=30)
        assert is_within_booking_window(today + timedelta(days=30), today, window_days=30)
        assert not is_within_booking_window(today + timedelta(days=31), today, window_days=30)
        assert not is_within_booking_window(today - timedelta(days=1), today, window_days=30)


def test_generate_time_slots_covers_opening_hours() -> None:
    slots = generate_time_slots(POLICY)
    assert slots[0] == "09:00"
    assert slots[-1] == "18:30"
    assert len(slots) == 20
