"""
Status transition tables for bookings and payments.

Each table is keyed by every member of its enum so an unhandled status
fails at import time instead of at runtime.
"""

from __future__ import annotations

from typing import Dict, FrozenSet

from ..core.enums import BookingStatus, PaymentStatus
from ..core.exceptions import AlreadyInStateException, InvalidTransitionException

BOOKING_TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.PENDING_PAYMENT: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED}),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
}

# A paid or cancelled payment is final; a late settlement may still
# overwrite a failed or expired reading.
PAYMENT_TRANSITIONS: Dict[PaymentStatus, FrozenSet[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset(
        {
            PaymentStatus.PAID,
            PaymentStatus.FAILED,
            PaymentStatus.EXPIRED,
            PaymentStatus.CANCELLED,
        }
    ),
    PaymentStatus.FAILED: frozenset({PaymentStatus.PAID}),
    PaymentStatus.EXPIRED: frozenset({PaymentStatus.PAID}),
    PaymentStatus.PAID: frozenset(),
    PaymentStatus.CANCELLED: frozenset(),
}

assert set(BOOKING_TRANSITIONS) == set(BookingStatus)
assert set(PAYMENT_TRANSITIONS) == set(PaymentStatus)


def can_transition_booking(current: BookingStatus, target: BookingStatus) -> bool:
    return target in BOOKING_TRANSITIONS[current]


def is_terminal_booking(status: BookingStatus) -> bool:
    return not BOOKING_TRANSITIONS[status]


def ensure_booking_transition(
    booking_id: str, current: BookingStatus, target: BookingStatus
) -> None:
    """
    Validate a booking status change.

    Raises:
        AlreadyInStateException: If the booking already holds ``target``
        InvalidTransitionException: If ``target`` is not reachable from ``current``
    """
    if current == target:
        raise AlreadyInStateException("Booking", booking_id, current.value)
    if not can_transition_booking(current, target):
        raise InvalidTransitionException("booking", booking_id, current.value, target.value)


def can_transition_payment(current: PaymentStatus, target: PaymentStatus) -> bool:
    return target in PAYMENT_TRANSITIONS[current]
