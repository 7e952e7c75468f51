from __future__ import annotations

from decimal import Decimal

from railbook.documents import renderer
from railbook.fares import compose_fare
from railbook.models.booking import (
    BookingSnapshot,
    JourneySegment,
    PassengerRecord,
    SeatSelection,
    TransitDetail,
)


def _snapshot(**overrides: object) -> BookingSnapshot:
    snapshot = BookingSnapshot(
        booking_id="c1d2e3f4-4444-4e4e-8f8f-000000000004",
        booking_code="BOOK-111111-QW12",
        order_id="ORDER-1700000111111-QW12",
        customer_name="Dewi Lestari",
        customer_email="dewi@example.com",
        created_at="2026-10-19T08:00:00+00:00",
        train_name="Parahyangan",
        train_type="Ekonomi",
        origin="Bandung",
        destination="Gambir",
        departure_date="2026-11-02",
        departure_time="06:00",
        arrival_time="11:00",
        total_amount=Decimal("280000"),
        fare_breakdown=compose_fare(),
        passengers=[PassengerRecord(full_name="Dewi Lestari", seat_number="5A", wagon_number="1", passenger_order=1)],
        seats=[SeatSelection(seat_number="5A", wagon_number="1", wagon_class="Ekonomi", price=Decimal("265000"))],
        segments=[JourneySegment(segment_order=1, train_name="Parahyangan", origin="Bandung", destination="Gambir")],
        transit=TransitDetail(station="Purwakarta", arrival="07:40", departure="07:55"),
    )
    for key, value in overrides.items():
        setattr(snapshot, key, value)
    return snapshot


def test_full_layout_renders_pdf() -> None:
    document = renderer.render_document(_snapshot())

    assert document.layout == "full"
    assert document.content.startswith(b"%PDF")


def test_sections_are_optional() -> None:
    sparse = _snapshot(
        fare_breakdown=None,
        passengers=[],
        seats=[],
        segments=[],
        transit=None,
        train_name=None,
        origin=None,
        destination=None,
        departure_date=None,
        departure_time=None,
        arrival_time=None,
    )

    document = renderer.render_document(sparse)

    assert document.layout == "full"
    assert document.content.startswith(b"%PDF")


def test_fallback_layout_when_full_layout_fails(monkeypatch) -> None:
    def broken_story(snapshot: BookingSnapshot) -> list[object]:
        raise RuntimeError("font table missing")

    monkeypatch.setattr(renderer, "_build_story", broken_story)

    document = renderer.render_document(_snapshot())

    assert document.layout == "fallback"
    assert document.content.startswith(b"%PDF")
    assert len(document.content) > 200
    assert renderer.render(_snapshot()).startswith(b"%PDF")


def test_format_rupiah() -> None:
    assert renderer.format_rupiah(280000) == "Rp 280.000"
    assert renderer.format_rupiah(None) == "Rp 0"
