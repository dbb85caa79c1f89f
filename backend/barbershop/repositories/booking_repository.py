# backend/barbershop/repositories/booking_repository.py
"""
Booking Repository for the barbershop backend.

Holds the queries the lifecycle depends on: the per-barber interval
lookup used by conflict detection, the compare-and-set status update, and
the stale-booking sweep.
"""

from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import and_, exists, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session, joinedload, selectinload

from ..core.enums import (
    ACTIVE_BOOKING_STATUSES,
    BookingStatus,
    PaymentMethod,
    PaymentProofStatus,
    PaymentStatus,
)
from ..core.exceptions import RepositoryException
from ..models.booking import Booking
from ..models.payment import Payment, PaymentProof
from .base_repository import BaseRepository


class BookingRepository(BaseRepository[Booking]):
    def __init__(self, db: Session):
        super().__init__(db, Booking)

    def _apply_eager_loading(self, query: Query) -> Query:
        return query.options(
            joinedload(Booking.barber),
            joinedload(Booking.service),
            selectinload(Booking.payments),
        )

    def get_for_barber_between(
        self,
        barber_id: str,
        range_start: datetime,
        range_end: datetime,
        statuses: Iterable[BookingStatus] = ACTIVE_BOOKING_STATUSES,
        exclude_booking_id: Optional[str] = None,
    ) -> List[Booking]:
        """
        Bookings of one barber that overlap ``[range_start, range_end)``.

        Only bookings in ``statuses`` are returned; by default those that
        still occupy their slot.
        """
        try:
            query = self.db.query(Booking).filter(
                Booking.barber_id == barber_id,
                Booking.status.in_(list(statuses)),
                Booking.start_time < range_end,
                Booking.end_time > range_start,
            )
            if exclude_booking_id:
                query = query.filter(Booking.id != exclude_booking_id)
            return query.order_by(Booking.start_time.asc()).all()
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading bookings for barber {barber_id}: {str(e)}")
            raise RepositoryException(f"Failed to load barber bookings: {str(e)}")

    def _filtered(
        self,
        query: Query,
        status: Optional[BookingStatus],
        barber_id: Optional[str],
        start_from: Optional[datetime],
        start_before: Optional[datetime],
    ) -> Query:
        if status is not None:
            query = query.filter(Booking.status == status)
        if barber_id:
            query = query.filter(Booking.barber_id == barber_id)
        if start_from is not None:
            query = query.filter(Booking.start_time >= start_from)
        if start_before is not None:
            query = query.filter(Booking.start_time < start_before)
        return query

    def list_bookings(
        self,
        *,
        status: Optional[BookingStatus] = None,
        barber_id: Optional[str] = None,
        start_from: Optional[datetime] = None,
        start_before: Optional[datetime] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Booking]:
        try:
            query = self._filtered(
                self._apply_eager_loading(self.db.query(Booking)),
                status,
                barber_id,
                start_from,
                start_before,
            )
            return (
                query.order_by(Booking.start_time.desc(), Booking.id.desc())
                .offset(skip)
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing bookings: {str(e)}")
            raise RepositoryException(f"Failed to list bookings: {str(e)}")

    def count_bookings(
        self,
        *,
        status: Optional[BookingStatus] = None,
        barber_id: Optional[str] = None,
        start_from: Optional[datetime] = None,
        start_before: Optional[datetime] = None,
    ) -> int:
        """Number of bookings matching the filters, ignoring pagination."""
        try:
            query = self._filtered(
                self.db.query(func.count(Booking.id)),
                status,
                barber_id,
                start_from,
                start_before,
            )
            return int(query.scalar() or 0)
        except SQLAlchemyError as e:
            self.logger.error(f"Error counting bookings: {str(e)}")
            raise RepositoryException(f"Failed to count bookings: {str(e)}")

    def compare_and_set_status(
        self, booking_id: str, expected: BookingStatus, target: BookingStatus
    ) -> bool:
        """
        Move a booking to ``target`` only if it still holds ``expected``.

        Returns True when this call performed the update.
        """
        try:
            result = self.db.execute(
                update(Booking)
                .where(Booking.id == booking_id, Booking.status == expected)
                .values(status=target)
            )
            self.db.flush()
            return bool(result.rowcount)
        except SQLAlchemyError as e:
            self.logger.error(f"Error updating booking {booking_id} status: {str(e)}")
            raise RepositoryException(f"Failed to update booking status: {str(e)}")

    def set_calendar_event_if_absent(self, booking_id: str, event_id: str) -> bool:
        """Store the external calendar event id unless one is already recorded."""
        try:
            result = self.db.execute(
                update(Booking)
                .where(Booking.id == booking_id, Booking.calendar_event_id.is_(None))
                .values(calendar_event_id=event_id)
            )
            self.db.flush()
            return bool(result.rowcount)
        except SQLAlchemyError as e:
            self.logger.error(f"Error storing calendar event for {booking_id}: {str(e)}")
            raise RepositoryException(f"Failed to store calendar event: {str(e)}")

    def find_stale_pending(self, now: datetime, limit: int = 100) -> List[Booking]:
        """
        PENDING_PAYMENT bookings whose QRIS payment has expired unpaid.

        Bookings with a proof still awaiting review are left alone.
        """
        pending_proof = (
            select(PaymentProof.id)
            .join(Payment, Payment.id == PaymentProof.payment_id)
            .where(
                Payment.booking_id == Booking.id,
                PaymentProof.status == PaymentProofStatus.PENDING,
            )
        )
        expired_payment = select(Payment.id).where(
            and_(
                Payment.booking_id == Booking.id,
                Payment.method == PaymentMethod.QRIS,
                Payment.status.in_([PaymentStatus.PENDING, PaymentStatus.EXPIRED]),
                Payment.expired_at.is_not(None),
                Payment.expired_at <= now,
            )
        )
        paid_payment = select(Payment.id).where(
            Payment.booking_id == Booking.id, Payment.status == PaymentStatus.PAID
        )
        live_payment = select(Payment.id).where(
            Payment.booking_id == Booking.id,
            Payment.status == PaymentStatus.PENDING,
            Payment.expired_at > now,
        )
        try:
            return (
                self._apply_eager_loading(self.db.query(Booking))
                .filter(
                    Booking.status == BookingStatus.PENDING_PAYMENT,
                    exists(expired_payment),
                    ~exists(paid_payment),
                    ~exists(live_payment),
                    ~exists(pending_proof),
                )
                .order_by(Booking.created_at.asc())
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error finding stale bookings: {str(e)}")
            raise RepositoryException(f"Failed to find stale bookings: {str(e)}")
