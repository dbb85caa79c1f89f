from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest

from barbershop.core.enums import PaymentMethod, SideEffectKind
from barbershop.integrations.google_calendar_client import CalendarError
from barbershop.models.event_outbox import EventOutbox, EventOutboxStatus, NotificationDelivery
from barbershop.services.email import NotificationProviderTemporaryError
from barbershop.services.outbox_dispatcher import (
    BACKOFF_SECONDS,
    MAX_DELIVERY_ATTEMPTS,
    DeliveryResult,
    dispatch_events,
    next_backoff,
)
from barbershop.services.shop_settings_service import ShopSettingsService
from conftest import booking_payload


def _event(unit_db, event_id: str) -> EventOutbox:
    return unit_db.get(EventOutbox, event_id)


class TestEmailDelivery:
    def test_new_booking_emails(self, dispatcher, email_provider, booking_service, barber, service) -> None:
        created = booking_service.create_booking(**booking_payload(barber, service))

        results = dispatcher.process_events(created.outbox_event_ids)

        assert [r.status for r in results] == ["sent", "sent"]
        assert [m.to_email for m in email_provider.sent] == [
            "owner@barbershop.test",
            "andi@example.com",
        ]
        assert email_provider.sent[0].subject.startswith("Booking Baru - Andi Wijaya")
        assert "Potong Rambut" in email_provider.sent[1].html
        assert email_provider.sent[1].text

    def test_admin_email_from_settings(
        self, unit_db, dispatcher, email_provider, booking_service, barber, service
    ) -> None:
        ShopSettingsService(unit_db).save_notification_settings(admin_email="manager@shop.test")
        created = booking_service.create_booking(**booking_payload(barber, service))

        dispatcher.process_event(created.outbox_event_ids[0])

        assert email_provider.sent[0].to_email == "manager@shop.test"

    def test_processed_event_is_not_delivered_again(
        self, dispatcher, email_provider, booking_service, barber, service
    ) -> None:
        created = booking_service.create_booking(**booking_payload(barber, service))
        dispatcher.process_events(created.outbox_event_ids)

        again = dispatcher.process_events(created.outbox_event_ids)

        assert [r.status for r in again] == ["skipped", "skipped"]
        assert len(email_provider.sent) == 2

    def test_delivery_ledger_prevents_duplicate_email(
        self, unit_db, dispatcher, email_provider, booking_service, barber, service
    ) -> None:
        created = booking_service.create_booking(**booking_payload(barber, service))
        event_id = created.outbox_event_ids[1]
        dispatcher.process_event(event_id)
        # A redelivered row, e.g. after a crash between send and mark_sent
        event = _event(unit_db, event_id)
        event.status = EventOutboxStatus.PENDING.value
        unit_db.commit()

        result = dispatcher.process_event(event_id)

        assert result.status == "skipped"
        assert len(email_provider.sent) == 1
        assert unit_db.query(NotificationDelivery).count() == 1

    def test_provider_failure_schedules_retry(
        self, unit_db, dispatcher, email_provider, booking_service, barber, service
    ) -> None:
        created = booking_service.create_booking(**booking_payload(barber, service))
        event_id = created.outbox_event_ids[1]

        with patch.object(
            email_provider, "send", side_effect=NotificationProviderTemporaryError("rate limited")
        ):
            result = dispatcher.process_event(event_id)

        assert result.status == "retry"
        assert result.attempt_count == 1
        assert result.backoff_seconds == BACKOFF_SECONDS[0]
        event = _event(unit_db, event_id)
        assert event.status == EventOutboxStatus.PENDING.value
        assert event.attempt_count == 1
        assert event.last_error == "rate limited"
        assert event.next_attempt_at > datetime.now(timezone.utc)
        assert event_id not in dispatcher.pending_event_ids()

    def test_gives_up_after_max_attempts(
        self, unit_db, dispatcher, email_provider, booking_service, barber, service
    ) -> None:
        created = booking_service.create_booking(**booking_payload(barber, service))
        event_id = created.outbox_event_ids[1]
        event = _event(unit_db, event_id)
        event.attempt_count = MAX_DELIVERY_ATTEMPTS - 1
        unit_db.commit()

        with patch.object(email_provider, "send", side_effect=RuntimeError("smtp down")):
            result = dispatcher.process_event(event_id)

        assert result.status == "failed"
        assert result.attempt_count == MAX_DELIVERY_ATTEMPTS
        assert _event(unit_db, event_id).status == EventOutboxStatus.FAILED.value


class TestCalendarDelivery:
    def test_cash_booking_gets_calendar_event(
        self, dispatcher, calendar_client, booking_service, barber, service
    ) -> None:
        created = booking_service.create_booking(
            **booking_payload(barber, service, payment_method=PaymentMethod.CASH)
        )

        results = dispatcher.process_events(created.outbox_event_ids)

        assert [r.status for r in results] == ["sent", "sent", "sent"]
        assert calendar_client.created[0]["customer_name"] == "Andi Wijaya"
        assert created.booking.calendar_event_id == "evt-1"

    def test_confirmation_then_cancellation(
        self, dispatcher, calendar_client, booking_service, barber, service
    ) -> None:
        created = booking_service.create_booking(**booking_payload(barber, service))
        confirmed = booking_service.confirm_booking(created.booking.id)
        dispatcher.process_events(confirmed.outbox_event_ids)
        assert created.booking.calendar_event_id == "evt-1"

        cancelled = booking_service.cancel_booking(created.booking.id)
        assert cancelled.effects[0].kind == SideEffectKind.CALENDAR_DELETE_EVENT
        dispatcher.process_events(cancelled.outbox_event_ids)

        assert calendar_client.deleted == ["evt-1"]
        assert created.booking.calendar_event_id is None

    def test_no_event_for_cancelled_booking(
        self, dispatcher, calendar_client, booking_service, barber, service
    ) -> None:
        created = booking_service.create_booking(**booking_payload(barber, service))
        confirmed = booking_service.confirm_booking(created.booking.id)
        booking_service.cancel_booking(created.booking.id)

        result = dispatcher.process_event(confirmed.outbox_event_ids[0])

        assert result.status == "skipped"
        assert calendar_client.created == []

    def test_existing_event_is_not_duplicated(
        self, unit_db, dispatcher, calendar_client, booking_service, barber, service
    ) -> None:
        created = booking_service.create_booking(
            **booking_payload(barber, service, payment_method=PaymentMethod.CASH)
        )
        created.booking.calendar_event_id = "evt-existing"
        unit_db.commit()

        result = dispatcher.process_event(created.outbox_event_ids[2])

        assert result.status == "skipped"
        assert calendar_client.created == []

    def test_calendar_outage_is_retried(
        self, unit_db, dispatcher, calendar_client, booking_service, barber, service
    ) -> None:
        created = booking_service.create_booking(
            **booking_payload(barber, service, payment_method=PaymentMethod.CASH)
        )
        calendar_client.fail_with = CalendarError("unavailable", 503)

        result = dispatcher.process_event(created.outbox_event_ids[2])

        assert result.status == "retry"
        assert created.booking.calendar_event_id is None
        assert "unavailable" in _event(unit_db, created.outbox_event_ids[2]).last_error


@pytest.mark.parametrize(
    "attempt,expected",
    [(1, 30), (2, 120), (3, 600), (4, 1800), (5, 7200), (9, 7200), (0, 30)],
)
def test_next_backoff(attempt: int, expected: int) -> None:
    assert next_backoff(attempt) == expected


class TestDispatchEvents:
    def test_uses_fresh_session(self) -> None:
        session = MagicMock()
        dispatcher = MagicMock()
        dispatcher.process_events.return_value = [DeliveryResult(event_id="e1", status="sent")]

        results = dispatch_events(
            ["e1"],
            session_factory=lambda: session,
            dispatcher_factory=lambda db: dispatcher,
        )

        assert [r.status for r in results] == ["sent"]
        dispatcher.process_events.assert_called_once_with(["e1"])
        session.commit.assert_called_once()
        session.close.assert_called_once()

    def test_nothing_to_do(self) -> None:
        factory = MagicMock()
        assert dispatch_events([], session_factory=factory, dispatcher_factory=MagicMock()) == []
        factory.assert_not_called()
