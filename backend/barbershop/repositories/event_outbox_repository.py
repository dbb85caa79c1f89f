# backend/barbershop/repositories/event_outbox_repository.py
"""
Outbox rows for booking side effects and the ledger of sent notifications.

Effects are enqueued in the transaction that changed the booking, keyed by
their idempotency key so re-running a transition never queues a duplicate.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
import logging
from typing import Any, List, Optional, cast

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session
import ulid

from ..database import get_dialect_name
from ..models.event_outbox import EventOutbox, EventOutboxStatus, NotificationDelivery

logger = logging.getLogger(__name__)

MAX_ERROR_LENGTH = 1000


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class EventOutboxRepository:
    def __init__(self, db: Session):
        self.db = db
        self._dialect = get_dialect_name(db, default="postgresql").lower()

    def _insert_ignoring_duplicates(self, values: dict[str, Any]) -> None:
        insert = sqlite_insert if self._dialect == "sqlite" else pg_insert
        stmt = insert(EventOutbox).values(**values).on_conflict_do_nothing(
            index_elements=["idempotency_key"]
        )
        self.db.execute(stmt)

    def get_by_key(self, idempotency_key: str) -> Optional[EventOutbox]:
        stmt = select(EventOutbox).where(EventOutbox.idempotency_key == idempotency_key)
        return cast(Optional[EventOutbox], self.db.execute(stmt).scalar_one_or_none())

    def enqueue(
        self,
        *,
        event_type: str,
        aggregate_id: str,
        idempotency_key: str,
        payload: Optional[dict[str, Any]] = None,
    ) -> EventOutbox:
        """Queue an event, returning the existing row when the key was seen before."""
        now = _now_utc()
        self._insert_ignoring_duplicates(
            {
                "id": str(ulid.ULID()),
                "event_type": event_type,
                "aggregate_id": aggregate_id,
                "idempotency_key": idempotency_key,
                "payload": payload or {},
                "status": EventOutboxStatus.PENDING.value,
                "attempt_count": 0,
                "next_attempt_at": now,
                "created_at": now,
                "updated_at": now,
            }
        )
        row = self.get_by_key(idempotency_key)
        if row is None:
            raise RuntimeError(f"Outbox event {idempotency_key} missing after enqueue")
        return row

    def get_by_id(self, event_id: str, for_update: bool = False) -> Optional[EventOutbox]:
        """Load one event; with ``for_update`` a row held by another worker reads as None."""
        if not (for_update and self._dialect == "postgresql"):
            return cast(Optional[EventOutbox], self.db.get(EventOutbox, event_id))
        stmt = (
            select(EventOutbox)
            .where(EventOutbox.id == event_id)
            .with_for_update(skip_locked=True)
        )
        return cast(Optional[EventOutbox], self.db.execute(stmt).scalar_one_or_none())

    def fetch_pending(self, limit: int = 200, now: Optional[datetime] = None) -> List[EventOutbox]:
        """Pending events whose next attempt is due, oldest due first."""
        stmt = (
            select(EventOutbox)
            .where(
                EventOutbox.status == EventOutboxStatus.PENDING.value,
                EventOutbox.next_attempt_at <= (now or _now_utc()),
            )
            .order_by(EventOutbox.next_attempt_at, EventOutbox.id)
            .limit(limit)
        )
        if self._dialect == "postgresql":
            stmt = stmt.with_for_update(skip_locked=True)
        return list(self.db.execute(stmt).scalars())

    def list_for_aggregate(self, aggregate_id: str) -> List[EventOutbox]:
        stmt = (
            select(EventOutbox)
            .where(EventOutbox.aggregate_id == aggregate_id)
            .order_by(EventOutbox.id)
        )
        return list(self.db.execute(stmt).scalars())

    def _set(self, event_id: str, **values: Any) -> None:
        values["updated_at"] = _now_utc()
        self.db.execute(update(EventOutbox).where(EventOutbox.id == event_id).values(**values))
        self.db.flush()

    def mark_sent(self, event_id: str, attempt_count: int) -> None:
        self._set(
            event_id,
            status=EventOutboxStatus.SENT.value,
            attempt_count=attempt_count,
            last_error=None,
        )

    def mark_failed(
        self,
        event_id: str,
        *,
        attempt_count: int,
        backoff_seconds: int,
        error: Optional[str] = None,
        terminal: bool = False,
    ) -> None:
        """
        Record a failed attempt.

        A terminal failure parks the row as FAILED; otherwise it stays
        PENDING and becomes due again after ``backoff_seconds``.
        """
        values: dict[str, Any] = {
            "attempt_count": attempt_count,
            "last_error": error[:MAX_ERROR_LENGTH] if error else None,
        }
        if terminal:
            values["status"] = EventOutboxStatus.FAILED.value
        else:
            values["status"] = EventOutboxStatus.PENDING.value
            values["next_attempt_at"] = _now_utc() + timedelta(seconds=max(backoff_seconds, 1))
        self._set(event_id, **values)


class NotificationDeliveryRepository:
    """Ledger of notifications already handed to a provider."""

    def __init__(self, db: Session):
        self.db = db

    def _get(self, idempotency_key: str) -> Optional[NotificationDelivery]:
        stmt = select(NotificationDelivery).where(
            NotificationDelivery.idempotency_key == idempotency_key
        )
        return cast(Optional[NotificationDelivery], self.db.execute(stmt).scalar_one_or_none())

    def was_delivered(self, idempotency_key: str) -> bool:
        return self._get(idempotency_key) is not None

    def record_delivery(
        self, *, event_type: str, idempotency_key: str, recipient: Optional[str]
    ) -> NotificationDelivery:
        delivery = self._get(idempotency_key)
        if delivery is None:
            delivery = NotificationDelivery(
                event_type=event_type,
                idempotency_key=idempotency_key,
                recipient=recipient,
            )
            self.db.add(delivery)
        else:
            delivery.attempt_count += 1
            delivery.delivered_at = _now_utc()
        self.db.flush()
        return delivery
