from __future__ import annotations

from fastapi.testclient import TestClient

from conftest import booking_payload


def test_root_and_liveness(client: TestClient) -> None:
    assert client.get("/").json() == {"service": "railbook-api", "status": "ok"}
    assert client.get("/health").json() == {"status": "ok"}


def test_create_booking_endpoint(client: TestClient) -> None:
    response = client.post("/api/bookings/create", json=booking_payload())

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["totalAmount"] == 280000.0
    assert body["message"] == "Booking berhasil dibuat dan disimpan di bookings_kereta"


def test_malformed_json_is_rejected(client: TestClient) -> None:
    response = client.post(
        "/api/bookings/create",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "Invalid JSON in request body"
    assert body["message"] == "Format data tidak valid"


def test_missing_passengers_is_rejected(client: TestClient) -> None:
    response = client.post("/api/bookings/create", json={"contactDetail": {"email": "a@b.co"}})

    assert response.status_code == 400
    assert response.json()["error"] == "Passengers data is required"


def test_storage_exhaustion_is_reported_with_status_200(client: TestClient, database) -> None:
    database.memory.drop_table("bookings_kereta")

    response = client.post("/api/bookings/create", json=booking_payload())

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is False
    assert body["fallbackData"]["isFallback"] is True


def test_booking_health_check(client: TestClient) -> None:
    response = client.get("/api/bookings/create")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["busBackend"] == "memory"
    assert body["emailNormalization"]["output"] == "name@domain.com"
    assert body["emailNormalization"]["isValid"] is True


def test_send_email_flow(client: TestClient, transport) -> None:
    created = client.post("/api/bookings/create", json=booking_payload()).json()["data"]

    response = client.post(
        "/api/tickets/send-email",
        json={"bookingId": created["bookingId"], "sendToEmail": "tiket%40example.com"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["bookingCode"] == created["bookingCode"]
    assert body["emailTo"] == "tiket@example.com"
    assert transport.outbox[0].to == "tiket@example.com"

    ticket = client.get(f"/api/tickets/{created['ticketNumber']}").json()
    assert ticket["delivery_status"] == "sent"
    assert ticket["email_sent"] is True

    activity = client.get(f"/api/bookings/{created['bookingCode']}/activity").json()
    assert [entry["action"] for entry in activity] == ["booking_created", "email_sent"]


def test_send_email_error_codes(client: TestClient) -> None:
    missing = client.post("/api/tickets/send-email", json={})
    assert missing.status_code == 400
    assert missing.json()["code"] == "BOOKING_ID_REQUIRED"

    unknown = client.post("/api/tickets/send-email", json={"bookingId": "BOOK-000000-NONE"})
    assert unknown.status_code == 404
    assert unknown.json() == {
        "success": False,
        "error": "Booking not found",
        "message": "No booking matches 'BOOK-000000-NONE'",
        "details": "No booking matches 'BOOK-000000-NONE'",
        "code": "BOOKING_NOT_FOUND",
    }


def test_unknown_ticket_is_404(client: TestClient) -> None:
    assert client.get("/api/tickets/TICKET-00000000-NONE").status_code == 404
