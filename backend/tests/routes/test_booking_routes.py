from typing import Any, Dict

from conftest import SLOT_DAY


def booking_body(barber, service, **overrides: Any) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "customerName": "Andi Wijaya",
        "email": "andi@example.com",
        "phone": "081234567890",
        "barberId": barber.id,
        "serviceId": service.id,
        "date": SLOT_DAY,
        "time": "10:00",
        "paymentMethod": "QRIS",
    }
    body.update(overrides)
    return body


class TestCatalog:
    def test_lists_active_barbers_and_services(self, client, barber, service) -> None:
        barbers = client.get("/api/barbers")
        services = client.get("/api/services")

        assert barbers.status_code == 200
        assert [b["name"] for b in barbers.json()] == ["Budi"]
        assert services.json()[0]["price"] == 50000
        assert services.json()[0]["isActive"] is True


class TestAvailability:
    def test_free_slot(self, client, barber, service) -> None:
        response = client.post(
            "/api/availability",
            json={"barberId": barber.id, "serviceId": service.id, "date": SLOT_DAY, "time": "10:00"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["available"] is True
        assert data["details"]["duration"] == 30
        assert data["details"]["conflicts"] == []

    def test_taken_slot(self, client, barber, service) -> None:
        client.post("/api/bookings", json=booking_body(barber, service))
        response = client.post(
            "/api/availability",
            json={"barberId": barber.id, "serviceId": service.id, "date": SLOT_DAY, "time": "10:15"},
        )
        data = response.json()
        assert data["available"] is False
        assert len(data["details"]["conflicts"]) == 1

    def test_closed_day(self, client, barber, service) -> None:
        response = client.post(
            "/api/availability",
            json={"barberId": barber.id, "serviceId": service.id, "date": "2025-01-12", "time": "10:00"},
        )
        assert response.json()["reason"] == "CLOSED_DAY"
        assert response.json()["details"] is None

    def test_malformed_date(self, client, barber, service) -> None:
        response = client.post(
            "/api/availability",
            json={"barberId": barber.id, "serviceId": service.id, "date": "07-01-2025", "time": "10:00"},
        )
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_FORMAT"

    def test_offered_start_times(self, client) -> None:
        response = client.get("/api/slots")

        assert response.status_code == 200
        data = response.json()
        assert data["intervalMinutes"] == 30
        assert len(data["slots"]) == 20
        assert data["slots"][0] == "09:00"
        assert data["slots"][-1] == "18:30"


class TestCreateBooking:
    def test_created(self, client, email_provider, barber, service) -> None:
        response = client.post("/api/bookings", json=booking_body(barber, service))

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "PENDING_PAYMENT"
        assert data["barberName"] == "Budi"
        assert data["serviceName"] == "Potong Rambut"
        assert data["price"] == 50000
        assert data["payment"]["status"] == "PENDING"
        assert data["payment"]["method"] == "QRIS"
        # Side effects are delivered after the response
        assert sorted(m.to_email for m in email_provider.sent) == [
            "andi@example.com",
            "owner@barbershop.test",
        ]

    def test_conflict(self, client, barber, service) -> None:
        client.post("/api/bookings", json=booking_body(barber, service))
        response = client.post("/api/bookings", json=booking_body(barber, service, time="10:15"))

        assert response.status_code == 409
        problem = response.json()
        assert problem["code"] == "SLOT_TAKEN"
        assert problem["title"] == "Conflict"
        assert problem["instance"] == "/api/bookings"

    def test_invalid_slot(self, client, barber, service) -> None:
        response = client.post("/api/bookings", json=booking_body(barber, service, time="20:00"))
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_SLOT"
        assert response.json()["errors"] == {"reason": "OUTSIDE_HOURS"}

    def test_schema_validation(self, client, barber, service) -> None:
        response = client.post(
            "/api/bookings", json=booking_body(barber, service, email="not-an-email", phone="123")
        )
        assert response.status_code == 422
        assert response.json()["code"] == "validation_error"

    def test_unknown_payment_method(self, client, barber, service) -> None:
        response = client.post(
            "/api/bookings", json=booking_body(barber, service, paymentMethod="CARD")
        )
        assert response.status_code == 422

    def test_unknown_barber(self, client, service, barber) -> None:
        response = client.post("/api/bookings", json=booking_body(barber, service, barberId="nope"))
        assert response.status_code == 404


class TestReadBooking:
    def test_get_booking_and_status(self, client, barber, service) -> None:
        booking_id = client.post("/api/bookings", json=booking_body(barber, service)).json()["id"]

        booking = client.get(f"/api/bookings/{booking_id}")
        status_response = client.get(f"/api/bookings/{booking_id}/status")

        assert booking.status_code == 200
        assert booking.json()["customerName"] == "Andi Wijaya"
        assert status_response.json() == {
            "id": booking_id,
            "status": "PENDING_PAYMENT",
            "paymentStatus": "PENDING",
            "paymentMethod": "QRIS",
            "orderId": None,
        }

    def test_unknown_booking(self, client) -> None:
        response = client.get("/api/bookings/missing")
        assert response.status_code == 404
        assert response.json()["code"] == "BOOKING_NOT_FOUND"
