from datetime import timedelta
from typing import Any, Dict
from unittest.mock import patch

import pytest

from barbershop.constants.payment_status import GatewayOutcome
from barbershop.core.enums import BookingStatus, PaymentMethod, PaymentStatus, SideEffectKind
from barbershop.core.exceptions import (
    GatewayException,
    InvalidSignatureException,
    NotFoundException,
    ValidationException,
)
from barbershop.integrations.midtrans_client import compute_notification_signature
from barbershop.models.booking import Booking
from barbershop.services.payment_service import PaymentService
from conftest import NOW, booking_payload


def notification(order_id: str, transaction_status: str, **overrides: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "order_id": order_id,
        "status_code": "200",
        "gross_amount": "50000.00",
        "transaction_status": transaction_status,
        "payment_type": "qris",
    }
    payload.update(overrides)
    payload["signature_key"] = compute_notification_signature(
        payload["order_id"], payload["status_code"], payload["gross_amount"], "test-server-key"
    )
    return payload


@pytest.fixture
def qris_booking(booking_service, barber, service) -> Booking:
    return booking_service.create_booking(**booking_payload(barber, service)).booking


@pytest.fixture
def charged(payment_service, qris_booking):
    return payment_service.create_qris_payment(qris_booking.id)


class TestCreateQrisPayment:
    def test_charge_is_stored_on_pending_payment(
        self, payment_service, fake_gateway, qris_booking
    ) -> None:
        payment = payment_service.create_qris_payment(qris_booking.id)

        assert payment.booking_id == qris_booking.id
        assert payment.order_id_gateway.startswith(f"BOOK-{qris_booking.id}-")
        assert payment.qr_code_data == f"00020101021226FAKEQRIS{payment.order_id_gateway}"
        assert payment.expired_at == NOW + timedelta(minutes=30)
        assert payment.gateway_data["charge"]["transaction_status"] == "pending"
        assert len(qris_booking.payments) == 1
        assert list(fake_gateway.charges) == [payment.order_id_gateway]

    def test_valid_charge_is_reused(self, payment_service, fake_gateway, qris_booking) -> None:
        first = payment_service.create_qris_payment(qris_booking.id)
        second = payment_service.create_qris_payment(qris_booking.id)
        assert second.id == first.id
        assert second.order_id_gateway == first.order_id_gateway
        assert len(fake_gateway.charges) == 1

    def test_lapsed_charge_is_replaced(
        self, unit_db, fake_gateway, booking_service, qris_booking
    ) -> None:
        first = PaymentService(
            unit_db, fake_gateway, booking_service=booking_service, clock=lambda: NOW
        ).create_qris_payment(qris_booking.id)
        later = PaymentService(
            unit_db,
            fake_gateway,
            booking_service=booking_service,
            clock=lambda: NOW + timedelta(minutes=45),
        )

        second = later.create_qris_payment(qris_booking.id)

        assert second.id != first.id
        assert second.order_id_gateway != first.order_id_gateway
        assert first.status == PaymentStatus.EXPIRED

    def test_confirmed_booking_cannot_be_paid(
        self, payment_service, booking_service, barber, service
    ) -> None:
        cash = booking_service.create_booking(
            **booking_payload(barber, service, payment_method=PaymentMethod.CASH)
        ).booking
        with pytest.raises(ValidationException) as exc_info:
            payment_service.create_qris_payment(cash.id)
        assert exc_info.value.code == "BOOKING_NOT_PAYABLE"

    def test_unknown_booking(self, payment_service) -> None:
        with pytest.raises(NotFoundException):
            payment_service.create_qris_payment("missing")

    def test_gateway_failure_leaves_payment_untouched(
        self, payment_service, fake_gateway, qris_booking
    ) -> None:
        with patch.object(
            fake_gateway, "create_charge", side_effect=GatewayException("gateway down")
        ):
            with pytest.raises(GatewayException):
                payment_service.create_qris_payment(qris_booking.id)
        payment = qris_booking.payments[0]
        assert payment.order_id_gateway is None
        assert payment.status == PaymentStatus.PENDING


class TestHandleNotification:
    def test_settlement_pays_and_confirms(self, payment_service, charged) -> None:
        result = payment_service.handle_notification(
            notification(charged.order_id_gateway, "settlement")
        )

        assert result.changed
        assert result.outcome is GatewayOutcome.PAID
        assert result.payment.status == PaymentStatus.PAID
        assert result.payment.paid_at == NOW
        assert result.booking_status == BookingStatus.CONFIRMED
        assert [effect.kind for effect in result.booking_result.effects] == [
            SideEffectKind.CALENDAR_CREATE_EVENT,
            SideEffectKind.EMAIL_BOOKING_CONFIRMED,
        ]
        assert result.payment.gateway_data["webhook"]["transaction_status"] == "settlement"
        assert len(result.outbox_event_ids) == 2

    def test_duplicate_settlement_is_a_no_op(self, payment_service, charged) -> None:
        payload = notification(charged.order_id_gateway, "settlement")
        payment_service.handle_notification(payload)

        again = payment_service.handle_notification(payload)

        assert not again.changed
        assert again.booking_result is None
        assert again.outbox_event_ids == []
        assert again.payment.status == PaymentStatus.PAID

    def test_capture_accept_counts_as_paid(self, payment_service, charged) -> None:
        result = payment_service.handle_notification(
            notification(charged.order_id_gateway, "capture", fraud_status="accept")
        )
        assert result.payment.status == PaymentStatus.PAID

    def test_capture_challenge_stays_pending(self, payment_service, charged) -> None:
        result = payment_service.handle_notification(
            notification(charged.order_id_gateway, "capture", fraud_status="challenge")
        )
        assert not result.changed
        assert result.payment.status == PaymentStatus.PENDING
        assert result.booking_status == BookingStatus.PENDING_PAYMENT

    def test_expiry_does_not_cancel_booking(self, payment_service, charged) -> None:
        result = payment_service.handle_notification(notification(charged.order_id_gateway, "expire"))
        assert result.payment.status == PaymentStatus.EXPIRED
        assert result.booking_status == BookingStatus.PENDING_PAYMENT

    def test_late_settlement_after_expiry(self, payment_service, charged) -> None:
        payment_service.handle_notification(notification(charged.order_id_gateway, "expire"))
        result = payment_service.handle_notification(
            notification(charged.order_id_gateway, "settlement")
        )
        assert result.changed
        assert result.booking_status == BookingStatus.CONFIRMED

    def test_failure_after_payment_is_ignored(self, payment_service, charged) -> None:
        payment_service.handle_notification(notification(charged.order_id_gateway, "settlement"))
        result = payment_service.handle_notification(notification(charged.order_id_gateway, "deny"))
        assert not result.changed
        assert result.payment.status == PaymentStatus.PAID

    def test_tampered_signature_changes_nothing(self, payment_service, charged) -> None:
        payload = notification(charged.order_id_gateway, "settlement")
        payload["gross_amount"] = "1.00"

        with pytest.raises(InvalidSignatureException) as exc_info:
            payment_service.handle_notification(payload)

        assert exc_info.value.status_code == 400
        assert charged.status == PaymentStatus.PENDING
        assert charged.booking.status == BookingStatus.PENDING_PAYMENT

    def test_unknown_order(self, payment_service) -> None:
        with pytest.raises(NotFoundException):
            payment_service.handle_notification(notification("BOOK-missing-1-AAAAAA", "settlement"))

    def test_settlement_for_cancelled_booking_leaves_booking(
        self, payment_service, booking_service, charged
    ) -> None:
        # The charge stays PENDING on the gateway side if the booking is
        # cancelled after the QR was shown but before it was settled.
        booking_service.cancel_booking(charged.booking_id)
        result = payment_service.handle_notification(
            notification(charged.order_id_gateway, "settlement")
        )
        assert not result.changed
        assert result.booking_status == BookingStatus.CANCELLED


class TestPollStatus:
    def test_poll_applies_gateway_status(self, payment_service, fake_gateway, charged) -> None:
        fake_gateway.set_status(charged.order_id_gateway, "settlement")

        result = payment_service.poll_status(charged.order_id_gateway)

        assert result.changed
        assert result.transaction_status == "settlement"
        assert result.payment.gateway_data["status_check"]["transaction_status"] == "settlement"
        assert result.booking_status == BookingStatus.CONFIRMED

    def test_poll_and_webhook_confirm_once(self, payment_service, fake_gateway, charged) -> None:
        fake_gateway.set_status(charged.order_id_gateway, "settlement")
        first = payment_service.handle_notification(
            notification(charged.order_id_gateway, "settlement")
        )
        second = payment_service.poll_status(charged.order_id_gateway)
        assert first.changed and not second.changed
        assert second.outbox_event_ids == []

    def test_gateway_without_transaction(self, payment_service, fake_gateway, charged) -> None:
        fake_gateway.statuses.clear()
        result = payment_service.poll_status(charged.order_id_gateway)
        assert not result.changed
        assert result.outcome is GatewayOutcome.PENDING
        assert result.transaction_status is None

    def test_gateway_error_propagates(self, payment_service, fake_gateway, charged) -> None:
        with patch.object(fake_gateway, "get_status", side_effect=GatewayException("timeout")):
            with pytest.raises(GatewayException):
                payment_service.poll_status(charged.order_id_gateway)
        assert charged.status == PaymentStatus.PENDING

    def test_local_status(self, payment_service, charged) -> None:
        assert payment_service.get_local_status(charged.order_id_gateway).id == charged.id
        with pytest.raises(NotFoundException):
            payment_service.get_local_status("nope")


def test_reconcile_pending_counts_outcomes(
    payment_service, booking_service, fake_gateway, barber, service
) -> None:
    settled = payment_service.create_qris_payment(
        booking_service.create_booking(**booking_payload(barber, service)).booking.id
    )
    payment_service.create_qris_payment(
        booking_service.create_booking(**booking_payload(barber, service, time="11:00")).booking.id
    )
    fake_gateway.set_status(settled.order_id_gateway, "settlement")

    summary = payment_service.reconcile_pending()

    assert summary.checked == 2
    assert summary.changed == 1
    assert summary.errors == 0
    assert len(summary.outbox_event_ids) == 2
