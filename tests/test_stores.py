from __future__ import annotations

from decimal import Decimal

from railbook.db.repositories import Database, PassengerRepository, TicketRepository
from railbook.models.booking import BookingSnapshot, DeliveryRecord, PassengerInput
from railbook.stores.passengers import PassengerStore
from railbook.stores.tickets import TicketIssuer

BOOKING_ID = "b7a5e2f0-3333-4c4c-8d8d-000000000003"


def _snapshot() -> BookingSnapshot:
    return BookingSnapshot(
        booking_id=BOOKING_ID,
        booking_code="BOOK-654321-ZX90",
        order_id="ORDER-1700000654321-ZX90",
        customer_name="Sari Dewi",
        customer_email="sari@example.com",
        train_name="Parahyangan",
        origin="Bandung",
        destination="Gambir",
        departure_date="2026-11-02",
        departure_time="06:00",
        arrival_time="11:00",
        total_amount=Decimal("280000"),
    )


def test_passengers_are_stored_with_order_seat_segment_and_clean_email() -> None:
    database = Database.in_memory()
    store = PassengerStore(PassengerRepository(database, "passengers"))
    passengers = [
        PassengerInput(full_name="Sari Dewi", email="sari%40example.com", seat_number="7C", wagon_number="2"),
        PassengerInput(full_name="Adi Putra", seat_number="7D", use_contact_detail=True),
        PassengerInput(full_name="Rina"),
    ]

    result = store.store_passengers(BOOKING_ID, passengers, contact_email="kontak%2540example.com", contact_phone="0812")

    assert result.success is True
    assert result.saved_count == 3
    rows = sorted(database.memory.table("passengers").rows, key=lambda row: row["passenger_order"])
    assert [row["passenger_order"] for row in rows] == [1, 2, 3]
    assert rows[0]["email"] == "sari@example.com"
    assert rows[0]["segment_id"] == f"{BOOKING_ID}:2:7C"
    assert rows[1]["email"] == "kontak@example.com"
    assert rows[1]["phone"] == "0812"
    assert rows[1]["segment_id"] == f"{BOOKING_ID}:0:7D"
    assert rows[2]["segment_id"] is None
    assert rows[2]["email"] == ""


def test_missing_passenger_table_is_reported_not_raised() -> None:
    database = Database.in_memory()
    database.memory.drop_table("passengers")
    store = PassengerStore(PassengerRepository(database, "passengers"))

    result = store.store_passengers(BOOKING_ID, [PassengerInput(full_name="Sari Dewi")])

    assert result.success is False
    assert result.saved_count == 0
    assert "passengers" in result.error
    assert store.list_for_booking(BOOKING_ID) == []


def test_list_for_booking_returns_records_in_order() -> None:
    database = Database.in_memory()
    store = PassengerStore(PassengerRepository(database, "passengers"))
    store.store_passengers(BOOKING_ID, [PassengerInput(full_name="A"), PassengerInput(full_name="B")])

    records = store.list_for_booking(BOOKING_ID)

    assert [record.full_name for record in records] == ["A", "B"]
    assert store.list_for_booking("other-booking") == []


def test_reissuing_a_ticket_updates_instead_of_duplicating() -> None:
    database = Database.in_memory()
    issuer = TicketIssuer(TicketRepository(database, "tickets"))
    snapshot = _snapshot()

    first = issuer.issue_ticket(snapshot.booking_code, "TICKET-00654321-ZX90", snapshot)
    snapshot.departure_time = "08:00"
    second = issuer.issue_ticket(snapshot.booking_code, "TICKET-00654321-ZX90", snapshot)

    assert first.success and second.success
    rows = database.memory.table("tickets").rows
    assert len(rows) == 1
    assert rows[0]["departure_time"] == "08:00"
    ticket = issuer.get("TICKET-00654321-ZX90")
    assert ticket.status == "pending"
    assert ticket.delivery_status == "not_sent"
    assert ticket.email_sent is False


def test_delivery_state_machine() -> None:
    database = Database.in_memory()
    issuer = TicketIssuer(TicketRepository(database, "tickets"))
    snapshot = _snapshot()
    issuer.issue_ticket(snapshot.booking_code, "TICKET-1", snapshot)

    failed = issuer.record_delivery("TICKET-1", DeliveryRecord(success=False, recipient="sari@example.com", error="timeout"))
    assert failed.delivery_status == "send_failed"
    assert failed.email_error == "timeout"
    assert failed.status == "pending"

    sent = issuer.record_delivery(
        "TICKET-1", DeliveryRecord(success=True, recipient="sari@example.com", message_id="<m1@railbook.local>")
    )
    assert sent.delivery_status == "sent"
    assert sent.status == "active"
    assert sent.email_sent is True
    assert sent.email_message_id == "<m1@railbook.local>"
    assert sent.email_sent_at
    assert sent.email_error is None

    resend_failed = issuer.record_delivery("TICKET-1", DeliveryRecord(success=False, recipient="x@example.com", error="bounce"))
    assert resend_failed.delivery_status == "sent"
    assert resend_failed.status == "active"
    assert resend_failed.email_error == "bounce"


def test_delivery_for_unknown_ticket_is_dropped() -> None:
    issuer = TicketIssuer(TicketRepository(Database.in_memory(), "tickets"))

    assert issuer.record_delivery("TICKET-404", DeliveryRecord(success=True, recipient="a@b.co")) is None


def test_find_by_booking_code() -> None:
    database = Database.in_memory()
    issuer = TicketIssuer(TicketRepository(database, "tickets"))
    snapshot = _snapshot()
    issuer.issue_ticket(snapshot.booking_code, "TICKET-2", snapshot)

    ticket = issuer.find_by_booking_code(snapshot.booking_code)

    assert ticket is not None
    assert ticket.ticket_number == "TICKET-2"
    assert ticket.total_amount == Decimal("280000")
    assert ticket.as_payload()["total_amount"] == 280000.0
