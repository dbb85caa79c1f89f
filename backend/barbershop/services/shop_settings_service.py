# backend/barbershop/services/shop_settings_service.py
"""Static QRIS image and notification settings maintained by the admin."""

from typing import Any, Optional

from sqlalchemy.orm import Session

from ..models.shop_settings import NotificationSettings, QrisSetting
from ..repositories.shop_settings_repository import (
    NotificationSettingsRepository,
    QrisSettingRepository,
)
from .base import BaseService


class ShopSettingsService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.qris_repository = QrisSettingRepository(db)
        self.notification_repository = NotificationSettingsRepository(db)

    def get_active_qris(self) -> Optional[QrisSetting]:
        return self.qris_repository.get_active()

    @BaseService.measure_operation("save_qris_setting")
    def save_qris(self, *, qris_image_url: str, instructions: Optional[str] = None) -> QrisSetting:
        """Make a new static QRIS image active, switching off the previous one."""
        with self.transaction():
            setting = self.qris_repository.replace_active(qris_image_url, instructions)
        self.log_operation("qris_setting_saved", qris_setting_id=setting.id)
        return setting

    def get_notification_settings(self) -> Optional[NotificationSettings]:
        return self.notification_repository.get()

    @BaseService.measure_operation("save_notification_settings")
    def save_notification_settings(self, **fields: Any) -> NotificationSettings:
        """Upsert the provided fields; omitted fields keep their stored value."""
        with self.transaction():
            row = self.notification_repository.upsert(**fields)
        self.log_operation("notification_settings_saved", fields=sorted(fields))
        return row
