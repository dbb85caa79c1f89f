# backend/barbershop/models/shop_settings.py
"""
Admin-managed settings rows.

QrisSetting keeps history: a new row becomes active and the previous active
row is switched off. NotificationSettings is a singleton addressed by a fixed
key and written with an upsert.
"""

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, String, Text, UniqueConstraint
import ulid

from ..database import Base
from .types import UTCDateTime

NOTIFICATION_SETTINGS_KEY = "default"


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class QrisSetting(Base):
    """Static QRIS image shown to customers paying by manual transfer."""

    __tablename__ = "qris_settings"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    qris_image_url = Column(String(1000), nullable=False)
    instructions = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(UTCDateTime, nullable=False, default=_now_utc)
    updated_at = Column(UTCDateTime, nullable=False, default=_now_utc, onupdate=_now_utc)


class NotificationSettings(Base):
    """Where admin notifications go and which Google calendar receives events."""

    __tablename__ = "notification_settings"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    key = Column(String(50), nullable=False, default=NOTIFICATION_SETTINGS_KEY)
    admin_email = Column(String(255), nullable=True)
    calendar_id = Column(String(255), nullable=True)
    google_access_token = Column(Text, nullable=True)
    google_refresh_token = Column(Text, nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=_now_utc)
    updated_at = Column(UTCDateTime, nullable=False, default=_now_utc, onupdate=_now_utc)

    __table_args__ = (UniqueConstraint("key", name="uq_notification_settings_key"),)
