# backend/barbershop/schemas/payment.py
"""Payment, QRIS and payment proof DTOs."""

from datetime import datetime
from typing import Optional

from pydantic import Field

from ..core.enums import BookingStatus, PaymentMethod, PaymentProofStatus, PaymentStatus
from ._strict_base import StrictModel, StrictRequestModel


class PaymentResponse(StrictModel):
    id: str
    booking_id: str
    amount: int
    method: PaymentMethod
    status: PaymentStatus
    order_id: Optional[str] = None
    qr_string: Optional[str] = None
    expired_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None


class QrisPaymentCreate(StrictRequestModel):
    booking_id: str = Field(..., min_length=1)


class QrisStatusRequest(StrictRequestModel):
    order_id: str = Field(..., min_length=1)


class PaymentStatusResponse(StrictModel):
    order_id: str
    status: PaymentStatus
    booking_id: str
    booking_status: BookingStatus
    transaction_status: Optional[str] = None
    paid_at: Optional[datetime] = None


class WebhookAck(StrictModel):
    status: str = "ok"
    order_id: str
    payment_status: PaymentStatus
    changed: bool


class PaymentProofCreate(StrictRequestModel):
    payment_id: str = Field(..., min_length=1)
    proof_image_url: str = Field(..., min_length=1, max_length=1000)
    amount: int = Field(..., ge=0)


class PaymentProofReview(StrictRequestModel):
    status: PaymentProofStatus = Field(..., description="APPROVED or REJECTED")
    notes: Optional[str] = Field(None, max_length=1000)
    reviewed_by: Optional[str] = Field(None, max_length=100)


class PaymentProofResponse(StrictModel):
    id: str
    payment_id: str
    proof_image_url: str
    amount: int
    status: PaymentProofStatus
    notes: Optional[str] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
