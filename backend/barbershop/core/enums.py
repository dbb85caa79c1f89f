# backend/barbershop/core/enums.py
"""
Core enums for the barbershop backend.

Every status that reaches business logic is one of these closed enums;
raw strings from requests or the gateway are converted at the edges.
"""

from enum import Enum


class BookingStatus(str, Enum):
    """Booking lifecycle states."""

    PENDING_PAYMENT = "PENDING_PAYMENT"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


# Bookings in these states occupy their slot
ACTIVE_BOOKING_STATUSES = (BookingStatus.PENDING_PAYMENT, BookingStatus.CONFIRMED)


class PaymentMethod(str, Enum):
    QRIS = "QRIS"
    CASH = "CASH"


class PaymentStatus(str, Enum):
    """Local payment states."""

    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"


class PaymentProofStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class SideEffectKind(str, Enum):
    """Work a transition asks the dispatcher to perform after commit."""

    EMAIL_ADMIN_NEW_BOOKING = "email.admin_new_booking"
    EMAIL_BOOKING_RECEIVED = "email.booking_received"
    EMAIL_BOOKING_CONFIRMED = "email.booking_confirmed"
    EMAIL_BOOKING_CANCELLED = "email.booking_cancelled"
    EMAIL_BOOKING_COMPLETED = "email.booking_completed"
    CALENDAR_CREATE_EVENT = "calendar.create_event"
    CALENDAR_DELETE_EVENT = "calendar.delete_event"

    @property
    def is_email(self) -> bool:
        return self.value.startswith("email.")
