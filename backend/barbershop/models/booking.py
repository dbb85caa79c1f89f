# backend/barbershop/models/booking.py
"""
Booking model for the barbershop.

A booking reserves one barber for one service over the half-open interval
[start_time, end_time). Times are stored in UTC; end_time is always
start_time plus the service duration captured in ``duration``.
"""

from datetime import datetime, timezone
import logging
from typing import Any, Optional

from sqlalchemy import CheckConstraint, Column, Enum, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship
import ulid

from ..core.enums import BookingStatus, PaymentStatus
from ..database import Base
from .types import UTCDateTime

logger = logging.getLogger(__name__)


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    customer_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(30), nullable=False)
    barber_id = Column(String(26), ForeignKey("barbers.id"), nullable=False)
    service_id = Column(String(26), ForeignKey("services.id"), nullable=False)
    start_time = Column(UTCDateTime, nullable=False)
    end_time = Column(UTCDateTime, nullable=False)
    duration = Column(Integer, nullable=False)  # minutes
    status = Column(
        Enum(BookingStatus, native_enum=False, length=20, name="booking_status"),
        nullable=False,
        default=BookingStatus.PENDING_PAYMENT,
        index=True,
    )
    notes = Column(Text, nullable=True)
    calendar_event_id = Column(String(255), nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=_now_utc)
    updated_at = Column(UTCDateTime, nullable=False, default=_now_utc, onupdate=_now_utc)

    barber = relationship("Barber", back_populates="bookings")
    service = relationship("Service", back_populates="bookings")
    payments = relationship(
        "Payment",
        back_populates="booking",
        cascade="all, delete-orphan",
        order_by="Payment.created_at",
    )

    __table_args__ = (
        Index("ix_bookings_barber_start", "barber_id", "start_time"),
        CheckConstraint("end_time > start_time", name="check_booking_time_order"),
        CheckConstraint("duration > 0", name="check_booking_duration_positive"),
    )

    def __repr__(self) -> str:
        return (
            f"<Booking {self.id}: barber={self.barber_id}, service={self.service_id}, "
            f"time={self.start_time}-{self.end_time}, status={self.status}>"
        )

    @property
    def has_settled_payment(self) -> bool:
        """True when any payment for this booking has been paid."""
        return any(payment.status == PaymentStatus.PAID for payment in self.payments)

    @property
    def latest_payment(self) -> Optional["Payment"]:  # noqa: F821
        return self.payments[-1] if self.payments else None

    def notification_fields(self) -> dict[str, Any]:
        """Snapshot of the fields emails and calendar events are rendered from."""
        payment = self.latest_payment
        return {
            "booking_id": self.id,
            "customer_name": self.customer_name,
            "email": self.email,
            "phone": self.phone,
            "barber_name": self.barber.name if self.barber else None,
            "service_name": self.service.name if self.service else None,
            "price": self.service.price if self.service else None,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "duration": self.duration,
            "status": self.status.value if self.status else None,
            "notes": self.notes,
            "payment_method": payment.method.value if payment else None,
        }

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "id": self.id,
            "customer_name": self.customer_name,
            "email": self.email,
            "phone": self.phone,
            "barber_id": self.barber_id,
            "service_id": self.service_id,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "duration": self.duration,
            "status": self.status,
            "notes": self.notes,
            "calendar_event_id": self.calendar_event_id,
            "created_at": self.created_at,
        }
