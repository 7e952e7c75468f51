from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from railbook.db.repositories import TicketRepository
from railbook.models.booking import BookingSnapshot, DeliveryRecord, DeliveryStatus, TicketStatus

logger = logging.getLogger(__name__)

_DELIVERY_TRANSITIONS: dict[DeliveryStatus, frozenset[DeliveryStatus]] = {
    DeliveryStatus.NOT_SENT: frozenset({DeliveryStatus.SENT, DeliveryStatus.SEND_FAILED}),
    DeliveryStatus.SEND_FAILED: frozenset({DeliveryStatus.SENT, DeliveryStatus.SEND_FAILED}),
    DeliveryStatus.SENT: frozenset({DeliveryStatus.SENT}),
}


@dataclass
class TicketSnapshot:
    ticket_number: str
    booking_code: str
    booking_id: str | None = None
    order_id: str | None = None
    passenger_name: str | None = None
    passenger_email: str | None = None
    train_name: str | None = None
    origin: str | None = None
    destination: str | None = None
    departure_date: str | None = None
    departure_time: str | None = None
    arrival_time: str | None = None
    seat_numbers: str | None = None
    total_amount: Decimal = Decimal("0")
    status: str = TicketStatus.PENDING.value
    delivery_status: str = DeliveryStatus.NOT_SENT.value
    email_sent: bool = False
    email_sent_at: str | None = None
    email_message_id: str | None = None
    email_error: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    def as_payload(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["total_amount"] = float(self.total_amount)
        return payload


@dataclass
class TicketIssueResult:
    success: bool
    ticket_number: str
    error: str | None = None


def _ticket_from_row(row: dict[str, Any]) -> TicketSnapshot:
    return TicketSnapshot(
        ticket_number=row["ticket_number"],
        booking_code=row.get("booking_code") or "",
        booking_id=row.get("booking_id"),
        order_id=row.get("order_id"),
        passenger_name=row.get("passenger_name"),
        passenger_email=row.get("passenger_email"),
        train_name=row.get("train_name"),
        origin=row.get("origin"),
        destination=row.get("destination"),
        departure_date=row.get("departure_date"),
        departure_time=row.get("departure_time"),
        arrival_time=row.get("arrival_time"),
        seat_numbers=row.get("seat_numbers"),
        total_amount=Decimal(str(row.get("total_amount") or 0)),
        status=row.get("status") or TicketStatus.PENDING.value,
        delivery_status=row.get("delivery_status") or DeliveryStatus.NOT_SENT.value,
        email_sent=bool(row.get("email_sent")),
        email_sent_at=row.get("email_sent_at"),
        email_message_id=row.get("email_message_id"),
        email_error=row.get("email_error"),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


class TicketIssuer:
    def __init__(self, repository: TicketRepository) -> None:
        self.repository = repository

    def _snapshot_columns(self, booking_code: str, snapshot: BookingSnapshot) -> dict[str, Any]:
        return {
            "booking_code": booking_code,
            "booking_id": snapshot.booking_id,
            "order_id": snapshot.order_id,
            "passenger_name": snapshot.customer_name,
            "passenger_email": snapshot.customer_email,
            "train_name": snapshot.train_name,
            "origin": snapshot.origin,
            "destination": snapshot.destination,
            "departure_date": snapshot.departure_date,
            "departure_time": snapshot.departure_time,
            "arrival_time": snapshot.arrival_time,
            "seat_numbers": snapshot.seat_numbers or None,
            "total_amount": float(snapshot.total_amount),
        }

    def preview(self, booking_code: str, ticket_number: str, snapshot: BookingSnapshot) -> TicketSnapshot:
        """Unsaved ticket view of a booking, used when the ticket row cannot be stored."""
        return _ticket_from_row({"ticket_number": ticket_number, **self._snapshot_columns(booking_code, snapshot)})

    def issue_ticket(self, booking_code: str, ticket_number: str, snapshot: BookingSnapshot) -> TicketIssueResult:
        now = datetime.now(timezone.utc).isoformat()
        row = {"ticket_number": ticket_number, **self._snapshot_columns(booking_code, snapshot), "updated_at": now}
        try:
            existing = self.repository.get(ticket_number)
            if existing is None:
                row.update(
                    {
                        "status": TicketStatus.PENDING.value,
                        "delivery_status": DeliveryStatus.NOT_SENT.value,
                        "email_sent": False,
                        "created_at": now,
                    }
                )
            self.repository.upsert(row)
        except Exception as exc:
            logger.error("Ticket %s for booking %s not issued: %s", ticket_number, booking_code, exc)
            return TicketIssueResult(success=False, ticket_number=ticket_number, error=str(exc))
        return TicketIssueResult(success=True, ticket_number=ticket_number)

    def get(self, ticket_number: str) -> TicketSnapshot | None:
        row = self.repository.get(ticket_number)
        return _ticket_from_row(row) if row else None

    def find_by_booking_code(self, booking_code: str) -> TicketSnapshot | None:
        row = self.repository.find_by_booking_code(booking_code)
        return _ticket_from_row(row) if row else None

    def record_delivery(self, ticket_number: str, record: DeliveryRecord) -> TicketSnapshot | None:
        current = self.get(ticket_number)
        if current is None:
            logger.warning("Delivery outcome for unknown ticket %s dropped", ticket_number)
            return None

        target = DeliveryStatus.SENT if record.success else DeliveryStatus.SEND_FAILED
        now = datetime.now(timezone.utc).isoformat()
        if target not in _DELIVERY_TRANSITIONS[DeliveryStatus(current.delivery_status)]:
            # A failed resend keeps the earlier successful delivery on record.
            updated = self.repository.update(ticket_number, {"email_error": record.error, "updated_at": now})
            return _ticket_from_row(updated) if updated else current

        if record.success:
            values: dict[str, Any] = {
                "status": TicketStatus.ACTIVE.value,
                "delivery_status": target.value,
                "email_sent": True,
                "email_sent_at": record.sent_at or now,
                "email_message_id": record.message_id,
                "email_error": None,
            }
        else:
            values = {"delivery_status": target.value, "email_error": record.error}
        values["updated_at"] = now
        updated = self.repository.update(ticket_number, values)
        return _ticket_from_row(updated) if updated else None
