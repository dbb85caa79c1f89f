# backend/barbershop/services/booking_service.py
"""
Booking Service for the barbershop.

Owns the booking lifecycle:

    PENDING_PAYMENT -> CONFIRMED | CANCELLED
    CONFIRMED       -> COMPLETED | CANCELLED

Creation validates the slot, re-checks conflicts under a barber/day lock and
inserts the booking with its payment in one transaction. Every operation
returns a TransitionResult listing the side effects it queued in the outbox.
"""

from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
import logging
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.booking_lock import booking_slot_lock
from ..core.config import settings
from ..core.enums import BookingStatus, PaymentMethod, PaymentStatus
from ..core.exceptions import (
    AlreadyInStateException,
    BookingBusyException,
    HasSettledPaymentException,
    InvalidSlotException,
    NotFoundException,
    SlotTakenException,
)
from ..core.timezone_utils import local_day_bounds, to_shop_time, utc_now
from ..domain.status_transitions import ensure_booking_transition
from ..domain.time_slots import (
    SlotPolicy,
    SlotRejection,
    check_bookable_slot,
    compute_end_time,
    generate_time_slots,
    is_within_booking_window,
    parse_slot,
)
from ..models.booking import Booking
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.barber_repository import BarberRepository
from ..repositories.booking_repository import BookingRepository
from ..repositories.event_outbox_repository import EventOutboxRepository
from ..repositories.payment_repository import PaymentRepository
from ..repositories.service_repository import ServiceRepository
from .base import BaseService
from .conflict_checker import ConflictChecker
from .side_effects import (
    SideEffect,
    TransitionResult,
    cancellation_effects,
    completion_effects,
    confirmation_effects,
    creation_effects,
    record_effects,
)

logger = logging.getLogger(__name__)

SlotLockFactory = Callable[[str, date], AbstractContextManager]

OUTSIDE_BOOKING_WINDOW = "OUTSIDE_BOOKING_WINDOW"


@dataclass
class AvailabilityResult:
    available: bool
    message: str
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration: Optional[int] = None
    reason: Optional[str] = None
    conflicts: List[Dict[str, Any]] = field(default_factory=list)


class BookingService(BaseService):
    """
    Service layer for booking operations.

    Collaborators are injected so tests can swap the clock, the slot policy
    and the barber/day lock.
    """

    def __init__(
        self,
        db: Session,
        *,
        clock: Callable[[], datetime] = utc_now,
        slot_policy: Optional[SlotPolicy] = None,
        slot_lock: SlotLockFactory = booking_slot_lock,
        conflict_checker: Optional[ConflictChecker] = None,
    ):
        super().__init__(db)
        self.clock = clock
        self.slot_policy = slot_policy or SlotPolicy.from_settings()
        self.slot_lock = slot_lock
        self.booking_repository = BookingRepository(db)
        self.payment_repository = PaymentRepository(db)
        self.barber_repository = BarberRepository(db)
        self.service_repository = ServiceRepository(db)
        self.outbox_repository = EventOutboxRepository(db)
        self.conflict_checker = conflict_checker or ConflictChecker(db, self.booking_repository)

    # ------------------------------------------------------------------ reads

    def get_booking(self, booking_id: str) -> Booking:
        booking = self.booking_repository.get_by_id(booking_id)
        if booking is None:
            raise NotFoundException(f"Booking {booking_id} not found", code="BOOKING_NOT_FOUND")
        return booking

    def list_bookings(
        self,
        *,
        status: Optional[BookingStatus] = None,
        barber_id: Optional[str] = None,
        day: Optional[date] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Booking]:
        start_from = start_before = None
        if day is not None:
            start_from, start_before = local_day_bounds(day, self.slot_policy.timezone)
        return self.booking_repository.list_bookings(
            status=status,
            barber_id=barber_id,
            start_from=start_from,
            start_before=start_before,
            skip=skip,
            limit=limit,
        )

    def count_bookings(
        self,
        *,
        status: Optional[BookingStatus] = None,
        barber_id: Optional[str] = None,
        day: Optional[date] = None,
    ) -> int:
        start_from = start_before = None
        if day is not None:
            start_from, start_before = local_day_bounds(day, self.slot_policy.timezone)
        return self.booking_repository.count_bookings(
            status=status,
            barber_id=barber_id,
            start_from=start_from,
            start_before=start_before,
        )

    # ----------------------------------------------------------- availability

    def offered_start_times(self) -> List[str]:
        return generate_time_slots(self.slot_policy)

    def _slot_rejection(self, start: datetime, now: datetime) -> Optional[InvalidSlotException]:
        rejection = check_bookable_slot(start, now, self.slot_policy)
        if rejection is not None:
            return InvalidSlotException(rejection.value, rejection.describe(self.slot_policy))
        local_today = to_shop_time(now, self.slot_policy.timezone).date()
        local_day = to_shop_time(start, self.slot_policy.timezone).date()
        if not is_within_booking_window(local_day, local_today):
            return InvalidSlotException(
                OUTSIDE_BOOKING_WINDOW,
                f"Bookings can be made at most {settings.booking_window_days} days ahead",
            )
        return None

    @BaseService.measure_operation("check_availability")
    def check_availability(
        self, *, barber_id: str, service_id: str, date: str, time: str
    ) -> AvailabilityResult:
        """
        Tell a customer whether a slot can be booked.

        Slot-rule violations and conflicts are reported in the result rather
        than raised; a missing barber or service raises NotFoundException.
        """
        start = parse_slot(date, time, self.slot_policy)
        service = self.service_repository.get_active(service_id)
        if service is None:
            raise NotFoundException("Service not found", code="SERVICE_NOT_FOUND")
        if self.barber_repository.get_active(barber_id) is None:
            raise NotFoundException("Barber not found", code="BARBER_NOT_FOUND")

        rejection = self._slot_rejection(start, self.clock())
        if rejection is not None:
            return AvailabilityResult(
                available=False,
                message=rejection.message,
                reason=rejection.details["reason"],
            )

        end = compute_end_time(start, service.duration)
        conflicts = self.conflict_checker.check_booking_conflicts(barber_id, start, end)
        details = dict(start_time=start, end_time=end, duration=service.duration)
        if conflicts:
            return AvailabilityResult(
                available=False,
                message="This time slot is already booked",
                conflicts=[
                    {"start_time": b.start_time, "end_time": b.end_time} for b in conflicts
                ],
                **details,
            )
        return AvailabilityResult(available=True, message="This time slot is available", **details)

    # --------------------------------------------------------------- creation

    @BaseService.measure_operation("create_booking")
    def create_booking(
        self,
        *,
        customer_name: str,
        email: str,
        phone: str,
        barber_id: str,
        service_id: str,
        date: str,
        time: str,
        payment_method: PaymentMethod,
        notes: Optional[str] = None,
    ) -> TransitionResult:
        """
        Create a booking and its payment atomically.

        Raises:
            InvalidFormatException: Malformed date or time
            InvalidSlotException: The slot breaks an operating rule
            NotFoundException: Barber or service missing or inactive
            SlotTakenException: The slot overlaps an active booking
            BookingBusyException: The barber/day lock could not be obtained
        """
        start = parse_slot(date, time, self.slot_policy)
        now = self.clock()
        rejection = self._slot_rejection(start, now)
        if rejection is not None:
            raise rejection

        day = to_shop_time(start, self.slot_policy.timezone).date()
        with self.slot_lock(barber_id, day) as acquired:
            if not acquired:
                raise BookingBusyException(barber_id, day.isoformat())
            with self.transaction():
                barber = self.barber_repository.lock_for_booking(barber_id)
                if barber is None:
                    raise NotFoundException("Barber not found", code="BARBER_NOT_FOUND")
                service = self.service_repository.get_active(service_id)
                if service is None:
                    raise NotFoundException("Service not found", code="SERVICE_NOT_FOUND")

                end = compute_end_time(start, service.duration)
                conflicts = self.conflict_checker.check_booking_conflicts(barber_id, start, end)
                if conflicts:
                    raise SlotTakenException(
                        details={
                            "barber_id": barber_id,
                            "start_time": start.isoformat(),
                            "end_time": end.isoformat(),
                        }
                    )

                status = (
                    BookingStatus.CONFIRMED
                    if payment_method == PaymentMethod.CASH
                    else BookingStatus.PENDING_PAYMENT
                )
                booking = self.booking_repository.create(
                    customer_name=customer_name,
                    email=email,
                    phone=phone,
                    barber_id=barber.id,
                    service_id=service.id,
                    start_time=start,
                    end_time=end,
                    duration=service.duration,
                    status=status,
                    notes=notes,
                )
                self.payment_repository.create(
                    booking_id=booking.id,
                    amount=service.price,
                    method=payment_method,
                    status=PaymentStatus.PENDING,
                    expired_at=(
                        now + timedelta(minutes=settings.booking_expiry_minutes)
                        if payment_method == PaymentMethod.QRIS
                        else None
                    ),
                )
                self.db.refresh(booking)
                effects = creation_effects(booking)
                event_ids = record_effects(self.outbox_repository, effects)

        self.log_operation(
            "booking_created",
            booking_id=booking.id,
            barber_id=barber_id,
            booking_status=status.value,
        )
        prometheus_metrics.record_booking_created(PaymentMethod(payment_method).value)
        return TransitionResult(booking=booking, effects=effects, outbox_event_ids=event_ids)

    # ------------------------------------------------------------ transitions

    def _move(self, booking: Booking, target: BookingStatus) -> None:
        """Compare-and-set the booking status, failing if it changed underneath us."""
        current = BookingStatus(booking.status)
        ensure_booking_transition(booking.id, current, target)
        if not self.booking_repository.compare_and_set_status(booking.id, current, target):
            self.db.refresh(booking)
            raise AlreadyInStateException(
                "Booking", booking.id, BookingStatus(booking.status).value
            )

    def _settle_pending_payments(self, booking: Booking, target: PaymentStatus) -> None:
        paid_at = self.clock() if target == PaymentStatus.PAID else None
        for payment in self.payment_repository.list_pending_for_booking(booking.id):
            self.payment_repository.compare_and_set_status(
                payment.id, PaymentStatus.PENDING, target, paid_at=paid_at
            )

    @BaseService.measure_operation("confirm_booking")
    def confirm_booking(self, booking_id: str) -> TransitionResult:
        """Confirm a pending booking and mark its pending payments paid."""
        return self._run_admin_transition(booking_id, BookingStatus.CONFIRMED)

    @BaseService.measure_operation("cancel_booking")
    def cancel_booking(self, booking_id: str) -> TransitionResult:
        return self._run_admin_transition(booking_id, BookingStatus.CANCELLED)

    @BaseService.measure_operation("complete_booking")
    def complete_booking(self, booking_id: str) -> TransitionResult:
        return self._run_admin_transition(booking_id, BookingStatus.COMPLETED)

    def _apply_admin_transition(self, booking: Booking, target: BookingStatus) -> List[SideEffect]:
        """Move ``booking`` to ``target`` inside the caller's transaction."""
        self._move(booking, target)
        if target == BookingStatus.CONFIRMED:
            self._settle_pending_payments(booking, PaymentStatus.PAID)
            return confirmation_effects(booking)
        if target == BookingStatus.CANCELLED:
            self._settle_pending_payments(booking, PaymentStatus.CANCELLED)
            return cancellation_effects(booking)
        return completion_effects(booking)

    def _run_admin_transition(self, booking_id: str, target: BookingStatus) -> TransitionResult:
        with self.transaction():
            booking = self.get_booking(booking_id)
            effects = self._apply_admin_transition(booking, target)
            event_ids = record_effects(self.outbox_repository, effects)
        self.log_operation(f"booking_{target.value.lower()}", booking_id=booking_id)
        prometheus_metrics.record_booking_transition(target.value, "admin")
        return TransitionResult(booking=booking, effects=effects, outbox_event_ids=event_ids)

    def confirm_paid_booking(self, booking: Booking) -> TransitionResult:
        """
        Apply a payment's first transition into PAID to its booking.

        Runs inside the caller's transaction. Only a booking still awaiting
        payment is confirmed; otherwise nothing is emitted.
        """
        if BookingStatus(booking.status) != BookingStatus.PENDING_PAYMENT:
            self.logger.warning(
                "Payment settled for booking %s in status %s; booking left unchanged",
                booking.id,
                BookingStatus(booking.status).value,
            )
            return TransitionResult(booking=booking, changed=False)
        if not self.booking_repository.compare_and_set_status(
            booking.id, BookingStatus.PENDING_PAYMENT, BookingStatus.CONFIRMED
        ):
            return TransitionResult(booking=booking, changed=False)
        effects = confirmation_effects(booking)
        event_ids = record_effects(self.outbox_repository, effects)
        self.log_operation("booking_confirmed_by_payment", booking_id=booking.id)
        prometheus_metrics.record_booking_transition(BookingStatus.CONFIRMED.value, "payment")
        return TransitionResult(booking=booking, effects=effects, outbox_event_ids=event_ids)

    # ------------------------------------------------------------ admin edits

    @BaseService.measure_operation("update_booking")
    def update_booking(
        self,
        booking_id: str,
        *,
        status: Optional[BookingStatus] = None,
        customer_name: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> TransitionResult:
        """
        Apply an admin edit of details and status as one unit.

        A rejected status change leaves the customer details untouched.

        Raises:
            InvalidTransitionException: The status change is not allowed
            AlreadyInStateException: The booking already has that status
        """
        effects: List[SideEffect] = []
        event_ids: List[str] = []
        with self.transaction():
            booking = self.get_booking(booking_id)
            if customer_name is not None:
                booking.customer_name = customer_name
            if notes is not None:
                booking.notes = notes
            self.db.flush()
            if status is not None:
                effects = self._apply_admin_transition(booking, status)
                event_ids = record_effects(self.outbox_repository, effects)
        self.log_operation(
            "booking_updated",
            booking_id=booking_id,
            booking_status=BookingStatus(booking.status).value,
        )
        if status is not None:
            prometheus_metrics.record_booking_transition(status.value, "admin")
        return TransitionResult(
            booking=booking,
            effects=effects,
            outbox_event_ids=event_ids,
            changed=status is not None,
        )

    @BaseService.measure_operation("delete_booking")
    def delete_booking(self, booking_id: str) -> TransitionResult:
        """
        Permanently delete a booking and its payments.

        Raises:
            HasSettledPaymentException: If any payment of the booking is PAID
        """
        with self.transaction():
            booking = self.get_booking(booking_id)
            if booking.has_settled_payment:
                raise HasSettledPaymentException(booking_id)
            effects: List[SideEffect] = [
                effect
                for effect in cancellation_effects(booking)
                if not effect.kind.is_email
            ]
            event_ids = record_effects(self.outbox_repository, effects)
            self.db.delete(booking)
            self.db.flush()
        self.log_operation("booking_deleted", booking_id=booking_id)
        return TransitionResult(booking=booking, effects=effects, outbox_event_ids=event_ids)

    # ------------------------------------------------------------------ sweep

    @BaseService.measure_operation("expire_stale_bookings")
    def expire_stale_bookings(self, now: Optional[datetime] = None, limit: int = 100) -> List[str]:
        """
        Cancel PENDING_PAYMENT bookings whose QRIS payment expired unpaid.

        Bookings with a proof awaiting review are skipped. Returns the ids of
        the bookings cancelled.
        """
        now = now or self.clock()
        cancelled: List[str] = []
        with self.transaction():
            for booking in self.booking_repository.find_stale_pending(now, limit=limit):
                if not self.booking_repository.compare_and_set_status(
                    booking.id, BookingStatus.PENDING_PAYMENT, BookingStatus.CANCELLED
                ):
                    continue
                for payment in self.payment_repository.list_pending_for_booking(booking.id):
                    target = (
                        PaymentStatus.EXPIRED
                        if payment.is_expired(now)
                        else PaymentStatus.CANCELLED
                    )
                    self.payment_repository.compare_and_set_status(
                        payment.id, PaymentStatus.PENDING, target
                    )
                record_effects(self.outbox_repository, cancellation_effects(booking))
                cancelled.append(booking.id)
                prometheus_metrics.record_booking_transition(
                    BookingStatus.CANCELLED.value, "expiry"
                )
        if cancelled:
            self.logger.info("Expired %d stale booking(s)", len(cancelled))
        return cancelled


def slot_rejection_reasons() -> List[str]:
    """Every reason code an availability check or creation can report."""
    return [reason.value for reason in SlotRejection] + [OUTSIDE_BOOKING_WINDOW]
