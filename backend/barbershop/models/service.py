# backend/barbershop/models/service.py
"""
Service model.

A service is what a customer books: a haircut, a shave, a colouring.
Its duration fixes the length of every booking made for it and its price
is the amount charged.
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Boolean, CheckConstraint, Column, Integer, String, Text
from sqlalchemy.orm import relationship
import ulid

from ..database import Base
from .types import UTCDateTime


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class Service(Base):
    __tablename__ = "services"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    duration = Column(Integer, nullable=False)  # minutes
    price = Column(Integer, nullable=False)  # whole IDR
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(UTCDateTime, nullable=False, default=_now_utc)
    updated_at = Column(UTCDateTime, nullable=False, default=_now_utc, onupdate=_now_utc)

    bookings = relationship("Booking", back_populates="service")

    __table_args__ = (
        CheckConstraint("duration > 0", name="check_service_duration_positive"),
        CheckConstraint("price >= 0", name="check_service_price_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<Service {self.id}: {self.name} {self.duration}min {self.price}>"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "duration": self.duration,
            "price": self.price,
            "is_active": self.is_active,
        }
