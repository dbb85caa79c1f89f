# backend/barbershop/services/notification_service.py
"""
Booking notification emails.

Maps each email side effect to its template and subject and sends it to the
given recipient.
"""

import logging
from typing import Any, Dict, Mapping, Optional

from ..core.config import settings
from ..core.enums import SideEffectKind
from .email import EmailService
from .template_service import TemplateService

logger = logging.getLogger(__name__)

EMAIL_TEMPLATES: Dict[SideEffectKind, str] = {
    SideEffectKind.EMAIL_ADMIN_NEW_BOOKING: "email/admin_new_booking.html",
    SideEffectKind.EMAIL_BOOKING_RECEIVED: "email/booking_received.html",
    SideEffectKind.EMAIL_BOOKING_CONFIRMED: "email/booking_confirmed.html",
    SideEffectKind.EMAIL_BOOKING_CANCELLED: "email/booking_cancelled.html",
    SideEffectKind.EMAIL_BOOKING_COMPLETED: "email/booking_completed.html",
}


def email_subject(kind: SideEffectKind, fields: Mapping[str, Any]) -> str:
    shop = settings.shop_name
    booking_id = fields.get("booking_id")
    if kind == SideEffectKind.EMAIL_ADMIN_NEW_BOOKING:
        return f"Booking Baru - {fields.get('customer_name')} ({booking_id})"
    if kind == SideEffectKind.EMAIL_BOOKING_RECEIVED:
        return f"Konfirmasi Booking - {booking_id}"
    if kind == SideEffectKind.EMAIL_BOOKING_CONFIRMED:
        return f"Booking Dikonfirmasi - {booking_id}"
    if kind == SideEffectKind.EMAIL_BOOKING_CANCELLED:
        return f"Booking Dibatalkan - {shop}"
    if kind == SideEffectKind.EMAIL_BOOKING_COMPLETED:
        return f"Terima Kasih - {shop}"
    raise ValueError(f"{kind.value} is not an email notification")


class NotificationService:
    def __init__(
        self,
        email_service: EmailService,
        template_service: Optional[TemplateService] = None,
    ):
        self.email_service = email_service
        self.template_service = template_service or TemplateService()
        self.logger = logging.getLogger(self.__class__.__name__)

    def send_template(
        self,
        kind: SideEffectKind,
        recipient: Optional[str],
        booking_fields: Mapping[str, Any],
    ) -> bool:
        """
        Render and send the email for ``kind``.

        Returns False when there is no recipient to send to. Provider
        failures propagate so the caller can retry.
        """
        template = EMAIL_TEMPLATES.get(kind)
        if template is None:
            raise ValueError(f"{kind.value} is not an email notification")
        if not recipient:
            self.logger.warning(
                "No recipient for %s on booking %s", kind.value, booking_fields.get("booking_id")
            )
            return False
        html = self.template_service.render_template(template, booking=dict(booking_fields))
        self.email_service.send_email(
            to_email=recipient,
            subject=email_subject(kind, booking_fields),
            html_content=html,
        )
        return True
