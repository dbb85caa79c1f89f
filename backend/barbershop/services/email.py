# backend/barbershop/services/email.py
"""
Email delivery for booking notifications.

Two providers exist: Resend for real delivery and a console provider that
only logs, used in development and tests. Transient provider failures are
raised as NotificationProviderTemporaryError so the outbox dispatcher can
back off and retry.
"""

from dataclasses import dataclass
import logging
import re
from typing import Any, Dict, List, Optional, Protocol

import resend

from ..core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class NotificationProviderTemporaryError(RuntimeError):
    """Raised when a provider failure is worth retrying."""


@dataclass
class OutgoingEmail:
    to_email: str
    subject: str
    html: str
    text: str
    from_email: str


class EmailProvider(Protocol):
    def send(self, message: OutgoingEmail) -> Dict[str, Any]:
        ...


class ConsoleEmailProvider:
    """Logs emails instead of sending them; keeps the messages for inspection."""

    def __init__(self) -> None:
        self.sent: List[OutgoingEmail] = []

    def send(self, message: OutgoingEmail) -> Dict[str, Any]:
        self.sent.append(message)
        logger.info(
            "Console email to %s - Subject: %s",
            message.to_email,
            message.subject,
        )
        return {"id": f"console-{len(self.sent)}"}


class ResendEmailProvider:
    def __init__(self, api_key: str):
        if not api_key:
            raise ValueError("Resend API key not configured")
        resend.api_key = api_key

    def send(self, message: OutgoingEmail) -> Dict[str, Any]:
        try:
            response = resend.Emails.send(
                {
                    "from": message.from_email,
                    "to": message.to_email,
                    "subject": message.subject,
                    "html": message.html,
                    "text": message.text,
                }
            )
        except Exception as exc:
            # The Resend SDK raises plain exceptions for transport and API errors alike
            logger.error(f"Failed to send email to {message.to_email}: {exc}")
            raise NotificationProviderTemporaryError(str(exc)) from exc
        return dict(response or {})


def build_email_provider(config: Optional[Settings] = None) -> EmailProvider:
    config = config or default_settings
    if config.email_provider == "resend":
        return ResendEmailProvider(config.resend_api_key.get_secret_value())
    return ConsoleEmailProvider()


def html_to_text(html_content: str) -> str:
    """Plain text alternative of an HTML body."""
    text = re.sub(r"<(style|title)[^>]*>.*?</\1>", "", html_content, flags=re.S | re.I)
    text = re.sub(r"<[^>]+>", "", text)
    text = re.sub(r"\s+", " ", text)
    return text.strip()


class EmailService:
    """Sends rendered emails through the configured provider."""

    def __init__(self, provider: EmailProvider, from_email: Optional[str] = None):
        self.provider = provider
        self.from_email = from_email or default_settings.from_email
        self.logger = logging.getLogger(self.__class__.__name__)

    def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None,
    ) -> Dict[str, Any]:
        message = OutgoingEmail(
            to_email=to_email,
            subject=subject,
            html=html_content,
            text=text_content or html_to_text(html_content),
            from_email=self.from_email,
        )
        response = self.provider.send(message)
        self.logger.info(f"Email sent successfully to {to_email} - Subject: {subject}")
        return response
