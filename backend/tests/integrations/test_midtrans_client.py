import base64
import json
from typing import Any, Dict, List

import httpx
import pytest

from barbershop.core.exceptions import GatewayException
from barbershop.integrations.midtrans_client import (
    SANDBOX_BASE_URL,
    FakeMidtransClient,
    MidtransClient,
    compute_notification_signature,
    generate_order_id,
    verify_notification_signature,
)

SERVER_KEY = "SB-Mid-server-test"


def _client(handler, captured: List[httpx.Request]) -> MidtransClient:
    def recording(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return handler(request)

    return MidtransClient(server_key=SERVER_KEY, transport=httpx.MockTransport(recording))


def _charge(client: MidtransClient) -> Dict[str, Any]:
    return client.create_charge(
        order_id="BOOK-b1-1-ABCDEF",
        amount=50000,
        customer={"name": "Andi", "email": "andi@example.com", "phone": "0812"},
        booking_id="b1",
        expiry_minutes=15,
    )


class TestCreateCharge:
    def test_posts_qris_charge_with_basic_auth(self) -> None:
        captured: List[httpx.Request] = []
        client = _client(
            lambda request: httpx.Response(
                201,
                json={
                    "status_code": "201",
                    "order_id": "BOOK-b1-1-ABCDEF",
                    "qr_string": "000201QR",
                },
            ),
            captured,
        )

        charge = _charge(client)

        assert charge["qr_string"] == "000201QR"
        assert charge["order_id"] == "BOOK-b1-1-ABCDEF"
        request = captured[0]
        assert str(request.url) == f"{SANDBOX_BASE_URL}/charge"
        expected_auth = base64.b64encode(f"{SERVER_KEY}:".encode()).decode()
        assert request.headers["Authorization"] == f"Basic {expected_auth}"
        body = json.loads(request.content)
        assert body["payment_type"] == "qris"
        assert body["transaction_details"] == {"order_id": "BOOK-b1-1-ABCDEF", "gross_amount": 50000}
        assert body["custom_field1"] == "b1"
        assert body["custom_expiry"] == {"expiry_duration": 15, "unit": "minute"}
        assert body["item_details"][0]["price"] == 50000

    def test_response_without_qr_string_is_an_error(self) -> None:
        client = _client(
            lambda request: httpx.Response(
                200, json={"status_code": "406", "status_message": "Duplicate order ID"}
            ),
            [],
        )
        with pytest.raises(GatewayException) as exc_info:
            _charge(client)
        assert exc_info.value.message == "Duplicate order ID"
        assert exc_info.value.status_code == 502

    def test_http_error_status(self) -> None:
        client = _client(lambda request: httpx.Response(500, text="boom"), [])
        with pytest.raises(GatewayException) as exc_info:
            _charge(client)
        assert exc_info.value.details == {"status_code": 500}

    def test_transport_failure(self) -> None:
        def unreachable(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = MidtransClient(server_key=SERVER_KEY, transport=httpx.MockTransport(unreachable))
        with pytest.raises(GatewayException, match="Failed to reach payment gateway"):
            _charge(client)


def test_get_status_requests_order_status() -> None:
    captured: List[httpx.Request] = []
    client = _client(
        lambda request: httpx.Response(200, json={"transaction_status": "settlement"}), captured
    )
    assert client.get_status("BOOK-b1-1-ABCDEF") == {"transaction_status": "settlement"}
    assert captured[0].method == "GET"
    assert captured[0].url.path.endswith("/BOOK-b1-1-ABCDEF/status")


def test_missing_server_key_is_rejected() -> None:
    with pytest.raises(ValueError):
        MidtransClient(server_key="")


class TestNotificationSignature:
    def _payload(self, **overrides: Any) -> Dict[str, Any]:
        payload = {
            "order_id": "BOOK-b1-1-ABCDEF",
            "status_code": "200",
            "gross_amount": "50000.00",
            "transaction_status": "settlement",
        }
        payload.update(overrides)
        payload.setdefault(
            "signature_key",
            compute_notification_signature(
                payload["order_id"], payload["status_code"], payload["gross_amount"], SERVER_KEY
            ),
        )
        return payload

    def test_valid_signature(self) -> None:
        assert verify_notification_signature(self._payload(), SERVER_KEY)

    def test_signature_is_case_insensitive(self) -> None:
        payload = self._payload()
        payload["signature_key"] = payload["signature_key"].upper()
        assert verify_notification_signature(payload, SERVER_KEY)

    def test_tampered_amount(self) -> None:
        payload = self._payload()
        payload["gross_amount"] = "1.00"
        assert not verify_notification_signature(payload, SERVER_KEY)

    def test_wrong_key(self) -> None:
        assert not verify_notification_signature(self._payload(), "other-key")

    @pytest.mark.parametrize("signature", [None, "", 123])
    def test_missing_signature(self, signature: Any) -> None:
        payload = self._payload()
        payload["signature_key"] = signature
        assert not verify_notification_signature(payload, SERVER_KEY)


def test_order_id_format() -> None:
    order_id = generate_order_id("01JABC", now_ms=1736128800000)
    prefix, booking_id, timestamp, suffix = order_id.split("-")
    assert (prefix, booking_id, timestamp) == ("BOOK", "01JABC", "1736128800000")
    assert len(suffix) == 6
    assert suffix.isalnum() and suffix.upper() == suffix


class TestFakeMidtransClient:
    def test_charge_then_settle(self) -> None:
        fake = FakeMidtransClient(server_key="k")
        charge = fake.create_charge(
            order_id="BOOK-x-1-AAAAAA",
            amount=1000,
            customer={},
            booking_id="x",
            expiry_minutes=15,
        )
        assert charge["qr_string"].endswith("BOOK-x-1-AAAAAA")
        assert fake.get_status("BOOK-x-1-AAAAAA")["transaction_status"] == "pending"

        fake.set_status("BOOK-x-1-AAAAAA", "settlement")
        assert fake.get_status("BOOK-x-1-AAAAAA")["transaction_status"] == "settlement"

    def test_unknown_order(self) -> None:
        status = FakeMidtransClient().get_status("missing")
        assert status["status_code"] == "404"
        assert "transaction_status" not in status
