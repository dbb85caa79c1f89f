from typing import Any, Dict

import pytest

from barbershop.core.enums import SideEffectKind
from barbershop.services.email import ConsoleEmailProvider, EmailService, html_to_text
from barbershop.services.notification_service import (
    EMAIL_TEMPLATES,
    NotificationService,
    email_subject,
)
from barbershop.services.template_service import TemplateService

FIELDS: Dict[str, Any] = {
    "booking_id": "01JBOOKING",
    "customer_name": "Andi Wijaya",
    "email": "andi@example.com",
    "phone": "081234567890",
    "barber_name": "Budi",
    "service_name": "Potong Rambut",
    "price": 75000,
    "start_time": "2025-01-07T03:00:00+00:00",
    "end_time": "2025-01-07T03:30:00+00:00",
    "duration": 30,
    "status": "CONFIRMED",
    "notes": None,
    "payment_method": "QRIS",
}


@pytest.fixture
def provider() -> ConsoleEmailProvider:
    return ConsoleEmailProvider()


@pytest.fixture
def notifications(provider) -> NotificationService:
    return NotificationService(EmailService(provider, from_email="Shop <no-reply@shop.test>"))


@pytest.mark.parametrize("kind", list(EMAIL_TEMPLATES))
def test_every_email_kind_renders(notifications, provider, kind: SideEffectKind) -> None:
    assert notifications.send_template(kind, "andi@example.com", FIELDS)

    message = provider.sent[-1]
    assert message.to_email == "andi@example.com"
    assert message.from_email == "Shop <no-reply@shop.test>"
    assert message.subject == email_subject(kind, FIELDS)
    assert "Andi Wijaya" in message.html or "Potong Rambut" in message.html


def test_booking_details_are_formatted(notifications, provider) -> None:
    notifications.send_template(SideEffectKind.EMAIL_BOOKING_CONFIRMED, "andi@example.com", FIELDS)
    html = provider.sent[0].html
    assert "Rp 75.000" in html
    assert "10:30" in html  # end time in shop-local time
    assert "Dikonfirmasi" in html
    assert "30 menit" in html


def test_long_service_duration_is_spelled_out(notifications, provider) -> None:
    notifications.send_template(
        SideEffectKind.EMAIL_BOOKING_RECEIVED, "andi@example.com", dict(FIELDS, duration=90)
    )
    assert "1 jam 30 menit" in provider.sent[0].html


def test_missing_recipient_is_skipped(notifications, provider) -> None:
    assert not notifications.send_template(SideEffectKind.EMAIL_BOOKING_RECEIVED, None, FIELDS)
    assert provider.sent == []


def test_calendar_kinds_are_not_emails(notifications) -> None:
    with pytest.raises(ValueError):
        notifications.send_template(SideEffectKind.CALENDAR_CREATE_EVENT, "x@y.z", FIELDS)


def test_subjects() -> None:
    assert email_subject(SideEffectKind.EMAIL_BOOKING_RECEIVED, FIELDS) == "Konfirmasi Booking - 01JBOOKING"
    assert (
        email_subject(SideEffectKind.EMAIL_ADMIN_NEW_BOOKING, FIELDS)
        == "Booking Baru - Andi Wijaya (01JBOOKING)"
    )


def test_user_input_is_escaped(notifications, provider) -> None:
    notifications.send_template(
        SideEffectKind.EMAIL_ADMIN_NEW_BOOKING,
        "owner@shop.test",
        dict(FIELDS, notes="<script>alert(1)</script>"),
    )
    assert "<script>" not in provider.sent[0].html


def test_helpers() -> None:
    assert html_to_text("<p>Halo <b>Andi</b></p>") == "Halo Andi"
    assert TemplateService().template_exists("email/base.html")
    assert not TemplateService().template_exists("email/missing.html")
