# backend/barbershop/schemas/settings.py
from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field

from ..models.shop_settings import NotificationSettings
from ._strict_base import StrictModel, StrictRequestModel


class QrisSettingCreate(StrictRequestModel):
    qris_image_url: str = Field(..., min_length=1, max_length=1000)
    instructions: Optional[str] = None


class QrisSettingResponse(StrictModel):
    id: str
    qris_image_url: str
    instructions: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None


class NotificationSettingsUpdate(StrictRequestModel):
    admin_email: Optional[EmailStr] = None
    calendar_id: Optional[str] = Field(None, max_length=255)
    google_access_token: Optional[str] = None
    google_refresh_token: Optional[str] = None


class NotificationSettingsResponse(StrictModel):
    """Tokens are never echoed back; only whether they are set."""

    admin_email: Optional[str] = None
    calendar_id: Optional[str] = None
    has_google_tokens: bool = False
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Optional[NotificationSettings]) -> "NotificationSettingsResponse":
        if row is None:
            return cls()
        return cls(
            admin_email=row.admin_email,
            calendar_id=row.calendar_id,
            has_google_tokens=bool(row.google_refresh_token or row.google_access_token),
            updated_at=row.updated_at,
        )
