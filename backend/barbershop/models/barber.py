# backend/barbershop/models/barber.py
"""Barber model."""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Boolean, Column, String, Text
from sqlalchemy.orm import relationship
import ulid

from ..database import Base
from .types import UTCDateTime


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class Barber(Base):
    """A barber customers can book. Inactive barbers are hidden from new bookings."""

    __tablename__ = "barbers"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    name = Column(String(100), nullable=False)
    specialty = Column(String(200), nullable=True)
    description = Column(Text, nullable=True)
    photo_url = Column(String(500), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(UTCDateTime, nullable=False, default=_now_utc)
    updated_at = Column(UTCDateTime, nullable=False, default=_now_utc, onupdate=_now_utc)

    bookings = relationship("Booking", back_populates="barber")

    def __repr__(self) -> str:
        return f"<Barber {self.id}: {self.name} active={self.is_active}>"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "specialty": self.specialty,
            "description": self.description,
            "photo_url": self.photo_url,
            "is_active": self.is_active,
        }
