# backend/barbershop/services/conflict_checker.py
"""
Conflict Checker Service for the barbershop.

Bookings occupy half-open intervals [start, end): a booking ending at 10:30
does not conflict with one starting at 10:30. The interval functions are
resource agnostic; ConflictChecker supplies the intervals of one barber on
one shop-local day.
"""

from datetime import date, datetime
import logging
from typing import Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.timezone_utils import local_day_bounds, to_shop_time
from ..models.booking import Booking
from ..repositories.booking_repository import BookingRepository
from .base import BaseService

logger = logging.getLogger(__name__)

Interval = Tuple[datetime, datetime]


def intervals_overlap(
    a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime
) -> bool:
    return a_start < b_end and a_end > b_start


def find_conflicts(
    candidate_start: datetime, candidate_end: datetime, existing: Iterable[Interval]
) -> List[Interval]:
    """Existing intervals that overlap the candidate, in input order."""
    return [
        (start, end)
        for start, end in existing
        if intervals_overlap(candidate_start, candidate_end, start, end)
    ]


def has_conflict(
    candidate_start: datetime, candidate_end: datetime, existing: Iterable[Interval]
) -> bool:
    return any(
        intervals_overlap(candidate_start, candidate_end, start, end) for start, end in existing
    )


class ConflictChecker(BaseService):
    """Loads a barber's occupied intervals and checks candidates against them."""

    def __init__(self, db: Session, repository: Optional[BookingRepository] = None):
        super().__init__(db)
        self.repository = repository or BookingRepository(db)

    def get_day_bookings(
        self, barber_id: str, day: date, exclude_booking_id: Optional[str] = None
    ) -> List[Booking]:
        """PENDING_PAYMENT and CONFIRMED bookings of a barber on a shop-local day."""
        day_start, day_end = local_day_bounds(day)
        return self.repository.get_for_barber_between(
            barber_id, day_start, day_end, exclude_booking_id=exclude_booking_id
        )

    @BaseService.measure_operation("check_booking_conflicts")
    def check_booking_conflicts(
        self,
        barber_id: str,
        start: datetime,
        end: datetime,
        exclude_booking_id: Optional[str] = None,
    ) -> List[Booking]:
        """
        Bookings of ``barber_id`` that overlap ``[start, end)``.

        The lookup covers the shop-local day ``start`` falls on.
        """
        day = to_shop_time(start).date()
        day_bookings = self.get_day_bookings(barber_id, day, exclude_booking_id)
        conflicts = [
            booking
            for booking in day_bookings
            if intervals_overlap(start, end, booking.start_time, booking.end_time)
        ]
        if conflicts:
            self.logger.info(
                "Slot conflict for barber %s at %s: %d existing booking(s)",
                barber_id,
                start.isoformat(),
                len(conflicts),
            )
        return conflicts
