"""Google Calendar client used to mirror confirmed bookings."""

from __future__ import annotations

import json
import logging
import threading
import time
from typing import Any, Dict, Mapping, Optional, cast
from urllib.parse import quote

import httpx
from pydantic import SecretStr

from ..core.constants import SHOP_TIMEZONE
from ..domain.formatting import format_duration, format_idr

logger = logging.getLogger(__name__)

TOKEN_URL = "https://oauth2.googleapis.com/token"
CALENDAR_API_URL = "https://www.googleapis.com/calendar/v3"

# Refresh a little before Google's expiry
_TOKEN_EXPIRY_MARGIN_S = 60


class CalendarError(RuntimeError):
    """Raised when Google Calendar or its token endpoint fails."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def is_transient(self) -> bool:
        return self.status_code is None or self.status_code == 429 or self.status_code >= 500


def build_event_body(
    fields: Mapping[str, Any],
    *,
    shop_name: str,
    frontend_url: str,
    timezone: str = SHOP_TIMEZONE,
) -> Dict[str, Any]:
    """Google event resource for a booking snapshot."""
    booking_id = fields.get("booking_id")
    description = "\n".join(
        [
            f"Booking Barbershop - {shop_name}",
            "",
            "DETAIL BOOKING:",
            f"- ID: {booking_id}",
            f"- Nama: {fields.get('customer_name')}",
            f"- Email: {fields.get('email')}",
            f"- WhatsApp: {fields.get('phone')}",
            f"- Barber: {fields.get('barber_name')}",
            f"- Layanan: {fields.get('service_name')}",
            f"- Harga: {format_idr(fields.get('price'))}",
            f"- Durasi: {format_duration(fields.get('duration'))}",
            f"- Status: {fields.get('status')}",
            "",
            "LINK ADMIN:",
            f"{frontend_url.rstrip('/')}/admin/bookings/{booking_id}",
        ]
    )
    body: Dict[str, Any] = {
        "summary": f"{fields.get('customer_name')} - {fields.get('service_name')}",
        "description": description,
        "start": {"dateTime": fields.get("start_time"), "timeZone": timezone},
        "end": {"dateTime": fields.get("end_time"), "timeZone": timezone},
        "reminders": {
            "useDefault": False,
            "overrides": [
                {"method": "email", "minutes": 60},
                {"method": "popup", "minutes": 30},
            ],
        },
        "colorId": "2",
        "location": shop_name,
    }
    if fields.get("email"):
        body["attendees"] = [
            {
                "email": fields["email"],
                "displayName": fields.get("customer_name"),
                "optional": True,
            }
        ]
    return body


class GoogleCalendarClient:
    """Creates and deletes events through the Calendar REST API."""

    def __init__(
        self,
        *,
        client_id: str,
        client_secret: str | SecretStr,
        refresh_token: str | SecretStr,
        calendar_id: str = "primary",
        shop_name: str = "Barbershop",
        frontend_url: str = "",
        timezone: str = SHOP_TIMEZONE,
        timeout: float = 15.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._client_id = client_id
        self._client_secret = (
            client_secret.get_secret_value()
            if isinstance(client_secret, SecretStr)
            else client_secret
        )
        self._refresh_token = (
            refresh_token.get_secret_value()
            if isinstance(refresh_token, SecretStr)
            else refresh_token
        )
        if not (self._client_id and self._client_secret and self._refresh_token):
            raise ValueError("Google client id, secret and refresh token must be provided")
        self.calendar_id = calendar_id
        self._shop_name = shop_name
        self._frontend_url = frontend_url
        self._timezone = timezone
        self._timeout = timeout
        self._transport = transport
        self._access_token: Optional[str] = None
        self._access_token_expires_at = 0.0
        self._token_lock = threading.Lock()

    def _client(self) -> httpx.Client:
        return httpx.Client(timeout=self._timeout, transport=self._transport)

    def _get_access_token(self) -> str:
        with self._token_lock:
            if self._access_token and time.monotonic() < self._access_token_expires_at:
                return self._access_token
            with self._client() as client:
                try:
                    response = client.post(
                        TOKEN_URL,
                        data={
                            "client_id": self._client_id,
                            "client_secret": self._client_secret,
                            "refresh_token": self._refresh_token,
                            "grant_type": "refresh_token",
                        },
                    )
                    response.raise_for_status()
                    payload = response.json()
                except httpx.HTTPStatusError as exc:
                    logger.error(
                        "Google token refresh failed with %s: %s",
                        exc.response.status_code,
                        exc.response.text[:500],
                    )
                    raise CalendarError(
                        "Failed to refresh Google access token", exc.response.status_code
                    ) from exc
                except (httpx.RequestError, json.JSONDecodeError) as exc:
                    raise CalendarError(f"Failed to refresh Google access token: {exc}") from exc
            self._access_token = str(payload["access_token"])
            expires_in = int(payload.get("expires_in", 3600))
            self._access_token_expires_at = (
                time.monotonic() + max(expires_in - _TOKEN_EXPIRY_MARGIN_S, 0)
            )
            return self._access_token

    def _events_url(self, calendar_id: Optional[str]) -> str:
        calendar = quote(calendar_id or self.calendar_id, safe="")
        return f"{CALENDAR_API_URL}/calendars/{calendar}/events"

    def create_event(
        self, fields: Mapping[str, Any], calendar_id: Optional[str] = None
    ) -> Optional[str]:
        """Insert an event for the booking and return its id."""
        body = build_event_body(
            fields,
            shop_name=self._shop_name,
            frontend_url=self._frontend_url,
            timezone=self._timezone,
        )
        token = self._get_access_token()
        with self._client() as client:
            try:
                response = client.post(
                    self._events_url(calendar_id),
                    params={"sendUpdates": "all"},
                    json=body,
                    headers={"Authorization": f"Bearer {token}"},
                )
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                logger.error(
                    "Google Calendar insert failed with %s: %s",
                    exc.response.status_code,
                    exc.response.text[:500],
                )
                raise CalendarError(
                    "Failed to create calendar event", exc.response.status_code
                ) from exc
            except httpx.RequestError as exc:
                raise CalendarError(f"Failed to reach Google Calendar: {exc}") from exc
        event_id = cast(Dict[str, Any], response.json()).get("id")
        logger.info("Calendar event created", extra={"event_id": event_id})
        return str(event_id) if event_id else None

    def delete_event(self, event_id: str, calendar_id: Optional[str] = None) -> bool:
        """Delete an event; an event that is already gone counts as deleted."""
        token = self._get_access_token()
        with self._client() as client:
            try:
                response = client.delete(
                    f"{self._events_url(calendar_id)}/{quote(event_id, safe='')}",
                    params={"sendUpdates": "all"},
                    headers={"Authorization": f"Bearer {token}"},
                )
            except httpx.RequestError as exc:
                raise CalendarError(f"Failed to reach Google Calendar: {exc}") from exc
        if response.status_code in (404, 410):
            logger.info("Calendar event %s already removed", event_id)
            return True
        if response.is_error:
            logger.error(
                "Google Calendar delete failed with %s: %s",
                response.status_code,
                response.text[:500],
            )
            raise CalendarError("Failed to delete calendar event", response.status_code)
        return True


class NullCalendarClient:
    """Used when Google Calendar is not configured."""

    calendar_id = "primary"

    def create_event(
        self, fields: Mapping[str, Any], calendar_id: Optional[str] = None
    ) -> Optional[str]:
        logger.debug("Calendar not configured; skipping event for %s", fields.get("booking_id"))
        return None

    def delete_event(self, event_id: str, calendar_id: Optional[str] = None) -> bool:
        return False

