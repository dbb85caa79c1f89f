"""Minimal Midtrans Core API client for QRIS charges."""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
import secrets
import string
import time
from typing import Any, Dict, Mapping, Optional, cast

import httpx
from pydantic import SecretStr

from ..core.constants import ORDER_ID_PREFIX, QRIS_ITEM_CATEGORY, QRIS_ITEM_NAME
from ..core.exceptions import GatewayException

logger = logging.getLogger(__name__)

SANDBOX_BASE_URL = "https://api.sandbox.midtrans.com/v2"
PRODUCTION_BASE_URL = "https://api.midtrans.com/v2"

_ORDER_SUFFIX_ALPHABET = string.digits + string.ascii_uppercase


def generate_order_id(booking_id: str, now_ms: Optional[int] = None) -> str:
    """Gateway order id: ``BOOK-{booking_id}-{epoch_ms}-{6 base36 chars}``."""
    timestamp = now_ms if now_ms is not None else int(time.time() * 1000)
    suffix = "".join(secrets.choice(_ORDER_SUFFIX_ALPHABET) for _ in range(6))
    return f"{ORDER_ID_PREFIX}-{booking_id}-{timestamp}-{suffix}"


def compute_notification_signature(
    order_id: str, status_code: str, gross_amount: str, server_key: str
) -> str:
    raw = f"{order_id}{status_code}{gross_amount}{server_key}"
    return hashlib.sha512(raw.encode("utf-8")).hexdigest()


def verify_notification_signature(payload: Mapping[str, Any], server_key: str) -> bool:
    """Check ``signature_key`` of a notification in constant time."""
    provided = payload.get("signature_key")
    if not isinstance(provided, str) or not provided:
        return False
    expected = compute_notification_signature(
        str(payload.get("order_id", "")),
        str(payload.get("status_code", "")),
        str(payload.get("gross_amount", "")),
        server_key,
    )
    return hmac.compare_digest(expected, provided.lower())


class MidtransClient:
    """Thin client for the Midtrans Core API."""

    def __init__(
        self,
        *,
        server_key: str | SecretStr,
        base_url: str = SANDBOX_BASE_URL,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        secret_value = (
            server_key.get_secret_value() if isinstance(server_key, SecretStr) else server_key
        )
        if not secret_value:
            raise ValueError("Midtrans server key must be provided")

        self._server_key = secret_value
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        # Midtrans uses HTTP Basic auth with the server key as username and a blank password.
        self._auth = httpx.BasicAuth(self._server_key, "")

    @property
    def server_key(self) -> str:
        return self._server_key

    def create_charge(
        self,
        *,
        order_id: str,
        amount: int,
        customer: Mapping[str, Any],
        booking_id: str,
        expiry_minutes: int,
    ) -> Dict[str, Any]:
        """
        Create a QRIS charge.

        Returns:
            ``{"qr_string", "order_id", "raw"}``

        Raises:
            GatewayException: Transport failure, error status, or a response
                without a QR string
        """
        body: Dict[str, Any] = {
            "payment_type": "qris",
            "transaction_details": {"order_id": order_id, "gross_amount": amount},
            "customer_details": {
                "first_name": customer.get("name"),
                "email": customer.get("email"),
                "phone": customer.get("phone"),
            },
            "item_details": [
                {
                    "id": booking_id,
                    "price": amount,
                    "quantity": 1,
                    "name": QRIS_ITEM_NAME,
                    "category": QRIS_ITEM_CATEGORY,
                }
            ],
            "custom_field1": booking_id,
            "custom_expiry": {"expiry_duration": expiry_minutes, "unit": "minute"},
        }
        raw = self.request("POST", "/charge", json_body=body)
        qr_string = raw.get("qr_string")
        if not qr_string:
            raise GatewayException(
                str(raw.get("status_message") or "Failed to create QRIS payment"),
                details={"order_id": order_id, "status_code": raw.get("status_code")},
            )
        return {"qr_string": qr_string, "order_id": raw.get("order_id") or order_id, "raw": raw}

    def get_status(self, order_id: str) -> Dict[str, Any]:
        """Fetch the raw transaction status for an order."""
        if not order_id:
            raise ValueError("order_id must be provided")
        return self.request("GET", f"/{order_id}/status")

    def verify_notification(self, payload: Mapping[str, Any]) -> bool:
        return verify_notification_signature(payload, self._server_key)

    def request(
        self,
        method: str,
        path: str,
        *,
        json_body: Dict[str, Any] | None = None,
    ) -> Dict[str, Any]:
        """Perform a raw Midtrans API request and return the parsed JSON payload."""

        url = f"{self._base_url}{path}"
        with httpx.Client(
            timeout=self._timeout,
            transport=self._transport,
            auth=self._auth,
            headers={"Accept": "application/json", "Content-Type": "application/json"},
        ) as client:
            try:
                response = client.request(method, url, json=json_body)
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                status = exc.response.status_code
                logger.error(
                    "Midtrans API error %s for %s %s: %s",
                    status,
                    method,
                    path,
                    exc.response.text[:500],
                )
                raise GatewayException(
                    f"Payment gateway responded with status {status}",
                    details={"status_code": status},
                ) from exc
            except httpx.RequestError as exc:
                logger.error("Midtrans request failure for %s %s: %s", method, path, str(exc))
                raise GatewayException("Failed to reach payment gateway") from exc

        try:
            return cast(Dict[str, Any], response.json())
        except json.JSONDecodeError as exc:
            logger.error("Invalid JSON from Midtrans for %s %s: %s", method, path, response.text)
            raise GatewayException("Received malformed JSON from payment gateway") from exc


class FakeMidtransClient(MidtransClient):
    """In-memory stand-in that mimics Midtrans for non-production flows."""

    def __init__(self, server_key: str = "fake-midtrans-key") -> None:
        super().__init__(server_key=server_key)
        self._logger = logging.getLogger(self.__class__.__name__)
        self.charges: Dict[str, Dict[str, Any]] = {}
        self.statuses: Dict[str, Dict[str, Any]] = {}

    def create_charge(
        self,
        *,
        order_id: str,
        amount: int,
        customer: Mapping[str, Any],
        booking_id: str,
        expiry_minutes: int,
    ) -> Dict[str, Any]:
        raw = {
            "status_code": "201",
            "status_message": "QRIS transaction is created",
            "order_id": order_id,
            "gross_amount": f"{amount}.00",
            "payment_type": "qris",
            "transaction_status": "pending",
            "qr_string": f"00020101021226FAKEQRIS{order_id}",
        }
        self.charges[order_id] = raw
        self.statuses.setdefault(order_id, dict(raw, status_code="201"))
        self._logger.debug("Fake QRIS charge created", extra={"order_id": order_id})
        return {"qr_string": raw["qr_string"], "order_id": order_id, "raw": raw}

    def set_status(
        self, order_id: str, transaction_status: str, fraud_status: Optional[str] = None
    ) -> None:
        status = dict(self.statuses.get(order_id, {"order_id": order_id}))
        status["transaction_status"] = transaction_status
        status["status_code"] = "200"
        if fraud_status is not None:
            status["fraud_status"] = fraud_status
        self.statuses[order_id] = status

    def get_status(self, order_id: str) -> Dict[str, Any]:
        status = self.statuses.get(order_id)
        if status is None:
            return {
                "status_code": "404",
                "status_message": "Transaction doesn't exist.",
                "order_id": order_id,
            }
        return dict(status)
