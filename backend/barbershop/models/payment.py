# backend/barbershop/models/payment.py
"""
Payment and payment proof models.

A booking normally has one active payment. QRIS payments carry the gateway
order id and QR string; cash payments never touch the gateway. Payment
proofs are customer uploads reviewed by an admin as an alternative to the
gateway confirming the transfer.
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Column, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from sqlalchemy.types import JSON
import ulid

from ..core.enums import PaymentMethod, PaymentProofStatus, PaymentStatus
from ..database import Base
from .types import UTCDateTime


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class Payment(Base):
    __tablename__ = "payments"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    booking_id = Column(String(26), ForeignKey("bookings.id"), nullable=False, index=True)
    amount = Column(Integer, nullable=False)
    method = Column(
        Enum(PaymentMethod, native_enum=False, length=10, name="payment_method"),
        nullable=False,
    )
    status = Column(
        Enum(PaymentStatus, native_enum=False, length=20, name="payment_status"),
        nullable=False,
        default=PaymentStatus.PENDING,
        index=True,
    )
    order_id_gateway = Column(String(100), nullable=True, unique=True)
    qr_code_data = Column(Text, nullable=True)
    gateway_data = Column(
        JSONB(astext_type=Text()).with_variant(JSON(), "sqlite"),
        nullable=True,
    )
    expired_at = Column(UTCDateTime, nullable=True)
    paid_at = Column(UTCDateTime, nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=_now_utc)
    updated_at = Column(UTCDateTime, nullable=False, default=_now_utc, onupdate=_now_utc)

    booking = relationship("Booking", back_populates="payments")
    proofs = relationship(
        "PaymentProof",
        back_populates="payment",
        cascade="all, delete-orphan",
        order_by="PaymentProof.created_at",
    )

    def __repr__(self) -> str:
        return (
            f"<Payment {self.id}: booking={self.booking_id}, method={self.method}, "
            f"status={self.status}, order={self.order_id_gateway}>"
        )

    def is_expired(self, now: datetime) -> bool:
        return self.expired_at is not None and self.expired_at <= now

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "booking_id": self.booking_id,
            "amount": self.amount,
            "method": self.method,
            "status": self.status,
            "order_id": self.order_id_gateway,
            "qr_string": self.qr_code_data,
            "expired_at": self.expired_at,
            "paid_at": self.paid_at,
        }


class PaymentProof(Base):
    __tablename__ = "payment_proofs"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    payment_id = Column(String(26), ForeignKey("payments.id"), nullable=False, index=True)
    proof_image_url = Column(String(1000), nullable=False)
    amount = Column(Integer, nullable=False)
    status = Column(
        Enum(PaymentProofStatus, native_enum=False, length=20, name="payment_proof_status"),
        nullable=False,
        default=PaymentProofStatus.PENDING,
        index=True,
    )
    notes = Column(Text, nullable=True)
    reviewed_by = Column(String(100), nullable=True)
    reviewed_at = Column(UTCDateTime, nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=_now_utc)
    updated_at = Column(UTCDateTime, nullable=False, default=_now_utc, onupdate=_now_utc)

    payment = relationship("Payment", back_populates="proofs")

    def __repr__(self) -> str:
        return f"<PaymentProof {self.id}: payment={self.payment_id}, status={self.status}>"
