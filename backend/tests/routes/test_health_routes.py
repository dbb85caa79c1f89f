def test_health(client) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["database"] is True
    assert data["environment"] == "test"


def test_metrics_exposition(client, booking_service, barber, service) -> None:
    client.get("/api/barbers")
    response = client.get("/metrics")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert "barbershop_" in response.text


def test_unknown_route_is_a_problem_document(client) -> None:
    response = client.get("/api/nope")
    assert response.status_code == 404
    assert response.json()["title"] == "Not Found"
    assert response.json()["instance"] == "/api/nope"
