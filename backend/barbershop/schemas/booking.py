# backend/barbershop/schemas/booking.py
"""
Booking DTOs.

Dates and times arrive as shop-local ``YYYY-MM-DD`` and ``HH:MM`` strings and
are validated by the booking service, which reports malformed values as 400
errors rather than schema errors.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import EmailStr, Field, field_validator

from ..core.constants import MAX_NOTES_LENGTH, MIN_CUSTOMER_NAME_LENGTH, MIN_PHONE_LENGTH
from ..core.enums import BookingStatus, PaymentMethod, PaymentStatus
from ..models.booking import Booking
from ._strict_base import StrictModel, StrictRequestModel
from .payment import PaymentResponse


class BookingCreate(StrictRequestModel):
    customer_name: str = Field(..., min_length=MIN_CUSTOMER_NAME_LENGTH, max_length=100)
    email: EmailStr
    phone: str = Field(..., min_length=MIN_PHONE_LENGTH, max_length=30)
    barber_id: str = Field(..., min_length=1)
    service_id: str = Field(..., min_length=1)
    date: str = Field(..., description="Shop-local date, YYYY-MM-DD")
    time: str = Field(..., description="Shop-local time, HH:MM")
    payment_method: PaymentMethod
    notes: Optional[str] = Field(None, max_length=MAX_NOTES_LENGTH)

    @field_validator("notes")
    @classmethod
    def clean_notes(cls, v: Optional[str]) -> Optional[str]:
        return v or None


class AdminBookingUpdate(StrictRequestModel):
    """Admin edit: a status change, customer details, or both."""

    status: Optional[BookingStatus] = None
    customer_name: Optional[str] = Field(None, min_length=MIN_CUSTOMER_NAME_LENGTH, max_length=100)
    notes: Optional[str] = Field(None, max_length=MAX_NOTES_LENGTH)


class BookingResponse(StrictModel):
    id: str
    customer_name: str
    email: str
    phone: str
    barber_id: str
    barber_name: Optional[str] = None
    service_id: str
    service_name: Optional[str] = None
    price: Optional[int] = None
    start_time: datetime
    end_time: datetime
    duration: int
    status: BookingStatus
    notes: Optional[str] = None
    calendar_event_id: Optional[str] = None
    payment: Optional[PaymentResponse] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_booking(cls, booking: Booking) -> "BookingResponse":
        payment = booking.latest_payment
        return cls(
            **booking.to_dict(),
            barber_name=booking.barber.name if booking.barber else None,
            service_name=booking.service.name if booking.service else None,
            price=booking.service.price if booking.service else None,
            payment=PaymentResponse(**payment.to_dict()) if payment else None,
        )


class BookingStatusResponse(StrictModel):
    id: str
    status: BookingStatus
    payment_status: Optional[PaymentStatus] = None
    payment_method: Optional[PaymentMethod] = None
    order_id: Optional[str] = None

    @classmethod
    def from_booking(cls, booking: Booking) -> "BookingStatusResponse":
        payment = booking.latest_payment
        return cls(
            id=booking.id,
            status=booking.status,
            payment_status=payment.status if payment else None,
            payment_method=payment.method if payment else None,
            order_id=payment.order_id_gateway if payment else None,
        )


class BookingListResponse(StrictModel):
    items: List[BookingResponse]
    total: int
