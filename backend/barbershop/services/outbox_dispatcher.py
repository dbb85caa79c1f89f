# backend/barbershop/services/outbox_dispatcher.py
"""
Delivers side effects written to the event outbox.

Each event is handled in its own commit. Emails are deduplicated through the
notification_delivery ledger; calendar events are attached to a booking only
when it has none yet. Failures are recorded on the outbox row with a backoff
and never reach the transition that produced the event.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from time import monotonic
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Protocol

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.enums import BookingStatus, SideEffectKind
from ..models.booking import Booking
from ..models.event_outbox import EventOutbox, EventOutboxStatus
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.booking_repository import BookingRepository
from ..repositories.event_outbox_repository import (
    EventOutboxRepository,
    NotificationDeliveryRepository,
)
from ..repositories.shop_settings_repository import NotificationSettingsRepository
from .base import BaseService
from .notification_service import NotificationService

MAX_DELIVERY_ATTEMPTS = 5
BACKOFF_SECONDS = [30, 120, 600, 1800, 7200]


def next_backoff(attempt_number: int) -> int:
    """Return backoff delay for the given attempt (1-indexed)."""
    index = max(0, min(attempt_number - 1, len(BACKOFF_SECONDS) - 1))
    return BACKOFF_SECONDS[index]


class CalendarClient(Protocol):
    def create_event(
        self, fields: Dict[str, Any], calendar_id: Optional[str] = None
    ) -> Optional[str]:
        ...

    def delete_event(self, event_id: str, calendar_id: Optional[str] = None) -> bool:
        ...


@dataclass
class DeliveryResult:
    event_id: str
    status: str  # sent | skipped | retry | failed
    attempt_count: int = 0
    backoff_seconds: int = 0
    error: Optional[str] = None


class OutboxDispatcher(BaseService):
    def __init__(
        self,
        db: Session,
        *,
        notification_service: NotificationService,
        calendar_client: CalendarClient,
    ):
        super().__init__(db)
        self.notification_service = notification_service
        self.calendar_client = calendar_client
        self.outbox_repository = EventOutboxRepository(db)
        self.delivery_repository = NotificationDeliveryRepository(db)
        self.booking_repository = BookingRepository(db)
        self.settings_repository = NotificationSettingsRepository(db)

    # ------------------------------------------------------------ destinations

    def _admin_email(self) -> Optional[str]:
        row = self.settings_repository.get()
        if row is not None and row.admin_email:
            return str(row.admin_email)
        return settings.admin_email

    def _calendar_id(self) -> Optional[str]:
        row = self.settings_repository.get()
        if row is not None and row.calendar_id:
            return str(row.calendar_id)
        return None

    # --------------------------------------------------------------- handlers

    def _deliver_email(self, event: EventOutbox, kind: SideEffectKind) -> str:
        if self.delivery_repository.was_delivered(event.idempotency_key):
            self.logger.info("Email %s already delivered; skipping", event.idempotency_key)
            return "skipped"
        payload: Dict[str, Any] = dict(event.payload or {})
        if kind == SideEffectKind.EMAIL_ADMIN_NEW_BOOKING:
            recipient = self._admin_email()
        else:
            recipient = payload.get("recipient")
        sent = self.notification_service.send_template(
            kind, recipient, payload.get("booking") or {}
        )
        if not sent:
            return "skipped"
        self.delivery_repository.record_delivery(
            event_type=event.event_type,
            idempotency_key=event.idempotency_key,
            recipient=recipient,
        )
        return "sent"

    def _create_calendar_event(self, event: EventOutbox) -> str:
        booking: Optional[Booking] = self.booking_repository.get_by_id(event.aggregate_id)
        if booking is None:
            return "skipped"
        if BookingStatus(booking.status) in (BookingStatus.CANCELLED, BookingStatus.COMPLETED):
            return "skipped"
        if booking.calendar_event_id:
            return "skipped"
        calendar_id = self._calendar_id()
        event_id = self.calendar_client.create_event(booking.notification_fields(), calendar_id)
        if not event_id:
            return "skipped"
        if not self.booking_repository.set_calendar_event_if_absent(booking.id, event_id):
            # Another delivery attached an event first
            self.calendar_client.delete_event(event_id, calendar_id)
            return "skipped"
        return "sent"

    def _delete_calendar_event(self, event: EventOutbox) -> str:
        event_id = (event.payload or {}).get("event_id")
        if not event_id:
            return "skipped"
        self.calendar_client.delete_event(event_id, self._calendar_id())
        booking = self.booking_repository.get_by_id(event.aggregate_id, load_relationships=False)
        if booking is not None and booking.calendar_event_id == event_id:
            booking.calendar_event_id = None
            self.db.flush()
        return "sent"

    def deliver(self, event: EventOutbox) -> str:
        """Perform one event. Returns "sent" or "skipped"; provider errors propagate."""
        kind = SideEffectKind(event.event_type)
        if kind.is_email:
            return self._deliver_email(event, kind)
        if kind == SideEffectKind.CALENDAR_CREATE_EVENT:
            return self._create_calendar_event(event)
        return self._delete_calendar_event(event)

    # ------------------------------------------------------------------ driver

    def process_event(self, event_id: str) -> DeliveryResult:
        """Deliver a pending event and record the outcome on its outbox row."""
        event = self.outbox_repository.get_by_id(event_id, for_update=True)
        if event is None or event.status != EventOutboxStatus.PENDING.value:
            self.db.commit()
            return DeliveryResult(event_id=event_id, status="skipped")

        attempt_number = event.attempt_count + 1
        event_type = event.event_type
        prometheus_metrics.record_outbox_attempt(event_type)
        start = monotonic()
        try:
            outcome = self.deliver(event)
        except Exception as exc:
            self.db.rollback()
            prometheus_metrics.observe_outbox_dispatch(event_type, monotonic() - start)
            backoff = next_backoff(attempt_number)
            terminal = attempt_number >= MAX_DELIVERY_ATTEMPTS
            self.outbox_repository.mark_failed(
                event_id,
                attempt_count=attempt_number,
                backoff_seconds=backoff,
                error=str(exc),
                terminal=terminal,
            )
            self.db.commit()
            if terminal:
                prometheus_metrics.record_outbox_outcome(event_type, "failed")
                self.logger.error(
                    "Outbox event %s failed after %s attempts: %s", event_id, attempt_number, exc
                )
                return DeliveryResult(
                    event_id=event_id, status="failed", attempt_count=attempt_number, error=str(exc)
                )
            self.logger.warning(
                "Retrying outbox event %s attempt=%s backoff=%ss: %s",
                event_id,
                attempt_number,
                backoff,
                exc,
            )
            return DeliveryResult(
                event_id=event_id,
                status="retry",
                attempt_count=attempt_number,
                backoff_seconds=backoff,
                error=str(exc),
            )

        self.outbox_repository.mark_sent(event_id, attempt_number)
        self.db.commit()
        prometheus_metrics.observe_outbox_dispatch(event_type, monotonic() - start)
        prometheus_metrics.record_outbox_outcome(event_type, outcome)
        self.logger.info(
            "Delivered outbox event %s type=%s outcome=%s attempts=%s",
            event_id,
            event_type,
            outcome,
            attempt_number,
        )
        return DeliveryResult(event_id=event_id, status=outcome, attempt_count=attempt_number)

    def process_events(self, event_ids: Iterable[str]) -> List[DeliveryResult]:
        return [self.process_event(event_id) for event_id in event_ids]

    def pending_event_ids(self, limit: int = 200) -> List[str]:
        return [event.id for event in self.outbox_repository.fetch_pending(limit=limit)]


DispatcherFactory = Callable[[Session], OutboxDispatcher]


@contextmanager
def session_scope(session_factory: Callable[[], Session]) -> Iterator[Session]:
    """Provide transactional scope outside a request."""
    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def dispatch_events(
    event_ids: List[str],
    *,
    session_factory: Callable[[], Session],
    dispatcher_factory: DispatcherFactory,
) -> List[DeliveryResult]:
    """Deliver events in a fresh session; used after a request commits."""
    if not event_ids:
        return []
    with session_scope(session_factory) as session:
        return dispatcher_factory(session).process_events(event_ids)
