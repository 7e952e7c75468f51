from __future__ import annotations

from railbook.config import DEFAULT_BOOKING_TABLES
from railbook.db.repositories import BookingTableRepository, Database, MemoryDatabase
from railbook.storage.adaptive import MINIMAL_FIELDS, AdaptivePersistenceLayer, TableAdapter


def _layer(database: Database) -> AdaptivePersistenceLayer:
    return AdaptivePersistenceLayer(
        TableAdapter(BookingTableRepository(database, table)) for table in DEFAULT_BOOKING_TABLES
    )


def _record(**overrides: object) -> dict[str, object]:
    record: dict[str, object] = {
        "id": "6f1c8e9a-1111-4a4a-9b9b-000000000001",
        "booking_code": "BOOK-123456-AB12",
        "order_id": "ORDER-1700000123456-AB12",
        "customer_name": "Budi Santoso",
        "customer_email": "budi@example.com",
        "total_amount": 280000.0,
        "passenger_count": 1,
        "train_name": "Parahyangan",
        "status": "pending_payment",
        "payment_status": "pending",
        "passengers_data": [{"fullName": "Budi Santoso"}],
        "created_at": "2026-10-19T08:00:00+00:00",
        "updated_at": "2026-10-19T08:00:00+00:00",
    }
    record.update(overrides)
    return record


def test_direct_insert_into_first_available_target() -> None:
    database = Database.in_memory()

    result = _layer(database).store(_record())

    assert result.success is True
    assert result.target_used == "bookings_kereta"
    assert result.method == "direct"
    assert result.stored_id == "6f1c8e9a-1111-4a4a-9b9b-000000000001"
    assert result.attempts == ["bookings_kereta: direct"]
    assert database.memory.table("bookings_kereta").rows[0]["customer_email"] == "budi@example.com"


def test_missing_target_is_skipped_and_aliases_are_used() -> None:
    memory = MemoryDatabase()
    memory.create_table(
        "bookings",
        {"id", "bookingCode", "orderId", "passenger_name", "passenger_details", "total_amount", "created_at", "updated_at"},
    )

    result = _layer(Database.in_memory(memory)).store(_record())

    assert result.success is True
    assert result.target_used == "bookings"
    assert result.method == "direct"
    assert result.attempts[0].startswith("bookings_kereta:")
    row = memory.table("bookings").rows[0]
    assert row["bookingCode"] == "BOOK-123456-AB12"
    assert row["orderId"] == "ORDER-1700000123456-AB12"
    assert row["passenger_name"] == "Budi Santoso"
    assert row["passenger_details"] == [{"fullName": "Budi Santoso"}]
    assert "customer_email" not in row


def test_minimal_retry_when_optional_columns_are_rejected() -> None:
    memory = MemoryDatabase()
    memory.create_table("bookings_kereta", set(MINIMAL_FIELDS), introspectable=False, unique_keys=("booking_code",))

    result = _layer(Database.in_memory(memory)).store(_record())

    assert result.success is True
    assert result.target_used == "bookings_kereta"
    assert result.method == "minimal"
    row = memory.table("bookings_kereta").rows[0]
    assert set(row) <= set(MINIMAL_FIELDS)
    assert row["customer_name"] == "Budi Santoso"


def test_exhaustion_reports_every_target() -> None:
    result = _layer(Database.in_memory(MemoryDatabase())).store(_record())

    assert result.success is False
    assert len(result.attempts) == 3
    for table in DEFAULT_BOOKING_TABLES:
        assert table in result.error


def test_required_fields_are_synthesized() -> None:
    database = Database.in_memory()

    result = _layer(database).store({"customer_name": "Tanpa Kode"})

    assert result.success is True
    row = database.memory.table("bookings_kereta").rows[0]
    assert row["booking_code"].startswith("BOOK-")
    assert row["order_id"].startswith("ORDER-")
    assert row["id"] == result.stored_id
    assert row["created_at"] and row["updated_at"]


def test_resubmitted_booking_code_updates_existing_row() -> None:
    database = Database.in_memory()
    layer = _layer(database)
    first = layer.store(_record())

    second = layer.store(
        _record(
            id="6f1c8e9a-2222-4a4a-9b9b-000000000002",
            customer_name="Budi S.",
            created_at="2026-10-19T09:00:00+00:00",
        )
    )

    assert second.success is True
    assert second.replayed is True
    assert second.stored_id == first.stored_id
    rows = database.memory.table("bookings_kereta").rows
    assert len(rows) == 1
    assert rows[0]["customer_name"] == "Budi S."
    assert rows[0]["created_at"] == "2026-10-19T08:00:00+00:00"


def test_fetch_by_internal_id_or_booking_code() -> None:
    database = Database.in_memory()
    layer = _layer(database)
    layer.store(_record())

    by_id = layer.fetch("6f1c8e9a-1111-4a4a-9b9b-000000000001")
    by_code = layer.fetch("BOOK-123456-AB12")

    assert by_id is not None and by_id.target == "bookings_kereta"
    assert by_code is not None and by_code.row["id"] == by_id.row["id"]
    assert layer.fetch("BOOK-000000-NONE") is None


def test_probe_all_reports_reachability() -> None:
    report = _layer(Database.in_memory()).probe_all()

    assert [entry["table"] for entry in report] == list(DEFAULT_BOOKING_TABLES)
    assert report[0]["reachable"] is True
    assert report[1]["reachable"] is False
    assert report[2]["reachable"] is False
