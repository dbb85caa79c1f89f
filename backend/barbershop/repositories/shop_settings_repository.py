# backend/barbershop/repositories/shop_settings_repository.py
"""Data access for the QRIS and notification settings rows."""

from datetime import datetime, timezone
import logging
from typing import Any, Optional, cast

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
import ulid

from ..core.exceptions import RepositoryException
from ..database import get_dialect_name
from ..models.shop_settings import NOTIFICATION_SETTINGS_KEY, NotificationSettings, QrisSetting
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class QrisSettingRepository(BaseRepository[QrisSetting]):
    def __init__(self, db: Session):
        super().__init__(db, QrisSetting)

    def get_active(self) -> Optional[QrisSetting]:
        return (
            self.db.query(QrisSetting)
            .filter(QrisSetting.is_active.is_(True))
            .order_by(QrisSetting.created_at.desc())
            .first()
        )

    def replace_active(self, qris_image_url: str, instructions: Optional[str]) -> QrisSetting:
        """Deactivate every active row and insert the new active one."""
        try:
            self.db.execute(
                update(QrisSetting)
                .where(QrisSetting.is_active.is_(True))
                .values(is_active=False)
            )
            return self.create(
                qris_image_url=qris_image_url, instructions=instructions, is_active=True
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error replacing QRIS setting: {str(e)}")
            raise RepositoryException(f"Failed to save QRIS setting: {str(e)}")


class NotificationSettingsRepository:
    """Singleton settings row addressed by ``NOTIFICATION_SETTINGS_KEY``."""

    def __init__(self, db: Session):
        self.db = db
        self._dialect = get_dialect_name(db)

    def get(self) -> Optional[NotificationSettings]:
        stmt = select(NotificationSettings).where(
            NotificationSettings.key == NOTIFICATION_SETTINGS_KEY
        )
        return cast(Optional[NotificationSettings], self.db.execute(stmt).scalar_one_or_none())

    def upsert(self, **fields: Any) -> NotificationSettings:
        """Insert the singleton row or update the provided fields in place."""
        now = datetime.now(timezone.utc)
        values = {
            "id": str(ulid.ULID()),
            "key": NOTIFICATION_SETTINGS_KEY,
            "created_at": now,
            "updated_at": now,
            **fields,
        }
        changes = {**fields, "updated_at": now}
        try:
            if self._dialect == "postgresql":
                stmt = pg_insert(NotificationSettings).values(**values)
                stmt = stmt.on_conflict_do_update(index_elements=["key"], set_=changes)
            else:
                stmt = sqlite_insert(NotificationSettings).values(**values)
                stmt = stmt.on_conflict_do_update(index_elements=["key"], set_=changes)
            self.db.execute(stmt)
            self.db.flush()
        except SQLAlchemyError as e:
            logger.error("Error saving notification settings: %s", e)
            raise RepositoryException(f"Failed to save notification settings: {str(e)}")
        row = self.get()
        if row is None:
            raise RepositoryException("Notification settings missing after upsert")
        self.db.refresh(row)
        return row
