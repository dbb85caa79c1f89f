# backend/barbershop/services/clients.py
"""
Builders for the external clients the services depend on.

Clients are constructed explicitly and passed into services; nothing here is
cached at module level except the in-memory gateway, whose charges must
survive between requests.
"""

from functools import lru_cache
import logging
from typing import Optional, Union

from sqlalchemy.orm import Session

from ..core.config import Settings, settings as default_settings
from ..integrations.google_calendar_client import GoogleCalendarClient, NullCalendarClient
from ..integrations.midtrans_client import FakeMidtransClient, MidtransClient
from ..repositories.shop_settings_repository import NotificationSettingsRepository
from .email import EmailService, build_email_provider
from .notification_service import NotificationService
from .outbox_dispatcher import OutboxDispatcher

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def _shared_fake_gateway() -> FakeMidtransClient:
    return FakeMidtransClient()


def build_gateway_client(config: Optional[Settings] = None) -> MidtransClient:
    config = config or default_settings
    if config.midtrans_fake:
        return _shared_fake_gateway()
    return MidtransClient(
        server_key=config.midtrans_server_key,
        base_url=config.midtrans_base_url,
        timeout=config.midtrans_timeout_seconds,
    )


def build_calendar_client(
    db: Session, config: Optional[Settings] = None
) -> Union[GoogleCalendarClient, NullCalendarClient]:
    """Google client when credentials exist; the admin-stored refresh token wins."""
    config = config or default_settings
    row = NotificationSettingsRepository(db).get()
    refresh_token = (row.google_refresh_token if row is not None else None) or (
        config.google_refresh_token.get_secret_value()
    )
    client_secret = config.google_client_secret.get_secret_value()
    if not (config.google_client_id and client_secret and refresh_token):
        return NullCalendarClient()
    return GoogleCalendarClient(
        client_id=config.google_client_id,
        client_secret=client_secret,
        refresh_token=refresh_token,
        calendar_id=(row.calendar_id if row is not None else None) or config.google_calendar_id,
        shop_name=config.shop_name,
        frontend_url=config.frontend_url,
        timezone=config.shop_timezone,
    )


def build_notification_service(config: Optional[Settings] = None) -> NotificationService:
    config = config or default_settings
    return NotificationService(EmailService(build_email_provider(config), config.from_email))


def build_dispatcher(db: Session) -> OutboxDispatcher:
    return OutboxDispatcher(
        db,
        notification_service=build_notification_service(),
        calendar_client=build_calendar_client(db),
    )
