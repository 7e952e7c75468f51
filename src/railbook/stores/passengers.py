from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from railbook.contacts import normalize_email
from railbook.db.repositories import PassengerRepository
from railbook.models.booking import PassengerInput, PassengerRecord, passenger_from_row

logger = logging.getLogger(__name__)


@dataclass
class PassengerStoreResult:
    success: bool
    saved_count: int = 0
    error: str | None = None


def segment_id_for(booking_id: str, wagon_number: str | None, seat_number: str | None) -> str | None:
    if not seat_number:
        return None
    return f"{booking_id}:{wagon_number or '0'}:{seat_number}"


class PassengerStore:
    def __init__(self, repository: PassengerRepository) -> None:
        self.repository = repository

    def build_rows(
        self,
        booking_id: str,
        passengers: list[PassengerInput],
        contact_email: str = "",
        contact_phone: str = "",
    ) -> list[dict[str, Any]]:
        created_at = datetime.now(timezone.utc).isoformat()
        rows: list[dict[str, Any]] = []
        for order, passenger in enumerate(passengers, start=1):
            email = normalize_email(passenger.email)
            phone = passenger.phone_number or ""
            if passenger.use_contact_detail:
                email = email or normalize_email(contact_email)
                phone = phone or contact_phone
            row = {
                "id": str(uuid4()),
                "booking_id": booking_id,
                "passenger_order": order,
                "full_name": passenger.full_name or f"Penumpang {order}",
                "id_number": passenger.id_number or "",
                "email": email,
                "phone": phone,
                "title": passenger.title or "Tn",
                "seat_number": passenger.seat_number,
                "wagon_number": passenger.wagon_number,
                "wagon_class": passenger.wagon_class,
                "birth_date": passenger.birth_date,
                "gender": passenger.gender,
                "segment_id": segment_id_for(booking_id, passenger.wagon_number, passenger.seat_number),
                "created_at": created_at,
            }
            if passenger.transit_station:
                row["transit_station"] = passenger.transit_station
                row["transit_arrival"] = passenger.transit_arrival
                row["transit_departure"] = passenger.transit_departure
            rows.append(row)
        return rows

    def store_passengers(
        self,
        booking_id: str,
        passengers: list[PassengerInput],
        contact_email: str = "",
        contact_phone: str = "",
    ) -> PassengerStoreResult:
        if not passengers:
            return PassengerStoreResult(success=True, saved_count=0)
        rows = self.build_rows(booking_id, passengers, contact_email, contact_phone)
        try:
            saved = self.repository.insert_many(rows)
        except Exception as exc:
            logger.error("Passengers for booking %s not saved: %s", booking_id, exc)
            return PassengerStoreResult(success=False, saved_count=0, error=str(exc))
        return PassengerStoreResult(success=True, saved_count=len(saved) or len(rows))

    def list_for_booking(self, booking_id: str) -> list[PassengerRecord]:
        try:
            rows = self.repository.get_by_booking(booking_id)
        except Exception as exc:
            logger.warning("Passengers for booking %s unavailable: %s", booking_id, exc)
            return []
        return [passenger_from_row(row) for row in rows]
