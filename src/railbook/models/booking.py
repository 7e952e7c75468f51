from __future__ import annotations

import json
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class BookingStatus(str, Enum):
    PENDING_PAYMENT = "pending_payment"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class TicketStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    EXPIRED = "expired"


class DeliveryStatus(str, Enum):
    NOT_SENT = "not_sent"
    SENT = "sent"
    SEND_FAILED = "send_failed"


class _ClientModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class FareBreakdown(BaseModel):
    base_fare: Decimal = Decimal("0")
    seat_premium: Decimal = Decimal("0")
    transit_discount: Decimal = Decimal("0")
    transit_additional: Decimal = Decimal("0")
    promo_discount: Decimal = Decimal("0")
    admin_fee: Decimal = Decimal("0")
    insurance_fee: Decimal = Decimal("0")
    payment_fee: Decimal = Decimal("0")
    total: Decimal = Decimal("0")
    needs_review: bool = False

    def linear_total(self) -> Decimal:
        return (
            self.base_fare
            + self.seat_premium
            + self.transit_additional
            - self.transit_discount
            - self.promo_discount
            + self.admin_fee
            + self.insurance_fee
            + self.payment_fee
        )

    def as_row(self) -> dict[str, Any]:
        row: dict[str, Any] = {
            key: float(value) for key, value in self.model_dump().items() if isinstance(value, Decimal)
        }
        row["needs_review"] = self.needs_review
        return row


class PassengerInput(_ClientModel):
    id: str | None = None
    full_name: str = ""
    id_number: str | None = None
    email: str | None = None
    phone_number: str | None = None
    seat_number: str | None = None
    wagon_number: str | None = None
    wagon_class: str | None = None
    title: str | None = None
    birth_date: str | None = None
    gender: str | None = None
    use_contact_detail: bool = False
    transit_station: str | None = None
    transit_arrival: str | None = None
    transit_departure: str | None = None


class ContactDetail(_ClientModel):
    full_name: str = ""
    email: str = ""
    phone_number: str = ""


class TrainDetail(_ClientModel):
    train_id: int | str | None = None
    train_name: str | None = None
    train_type: str | None = None
    train_code: str | None = None
    origin: str | None = None
    destination: str | None = None
    departure_date: str | None = None
    departure_time: str | None = None
    arrival_time: str | None = None
    duration: str | None = None
    price: Decimal | None = None
    schedule_id: int | str | None = None


class SeatSelection(_ClientModel):
    seat_id: str | None = None
    seat_number: str
    wagon_number: str | None = None
    wagon_class: str | None = None
    price: Decimal | None = None
    window_seat: bool | None = None


class JourneySegment(_ClientModel):
    segment_order: int | None = None
    train_name: str | None = None
    origin: str | None = None
    destination: str | None = None
    departure_time: str | None = None
    arrival_time: str | None = None


class TransitDetail(_ClientModel):
    station: str | None = None
    arrival: str | None = None
    departure: str | None = None
    duration: str | None = None


class BookingSubmission(_ClientModel):
    passengers: list[PassengerInput]
    contact_detail: ContactDetail | None = None
    customer_name: str | None = None
    customer_email: str | None = None
    customer_phone: str | None = None
    train_detail: TrainDetail | None = None
    segments: list[JourneySegment] = Field(default_factory=list)
    transit: TransitDetail | None = None
    fare_breakdown: dict[str, Any] = Field(default_factory=dict)
    selected_seats: list[SeatSelection] = Field(default_factory=list)
    total_amount: Any = None
    passenger_count: int | None = None
    payment_method: str | None = None
    booking_code: str | None = None
    order_id: str | None = None

    @property
    def contact_name(self) -> str:
        if self.customer_name:
            return self.customer_name
        if self.contact_detail and self.contact_detail.full_name:
            return self.contact_detail.full_name
        names = [passenger.full_name for passenger in self.passengers if passenger.full_name]
        return ", ".join(names)[:100] or "Penumpang"

    @property
    def contact_email(self) -> str:
        if self.customer_email:
            return self.customer_email
        if self.contact_detail and self.contact_detail.email:
            return self.contact_detail.email
        return next((p.email for p in self.passengers if p.email), "")

    @property
    def contact_phone(self) -> str:
        if self.customer_phone:
            return self.customer_phone
        if self.contact_detail and self.contact_detail.phone_number:
            return self.contact_detail.phone_number
        return next((p.phone_number for p in self.passengers if p.phone_number), "")

    @property
    def effective_passenger_count(self) -> int:
        return len(self.passengers) or self.passenger_count or 1


@dataclass
class PassengerRecord:
    full_name: str
    email: str = ""
    phone: str = ""
    id_number: str = ""
    seat_number: str = ""
    wagon_number: str = ""
    wagon_class: str = ""
    passenger_order: int = 0
    transit_station: str | None = None


@dataclass
class BookingSnapshot:
    booking_id: str
    booking_code: str
    order_id: str
    customer_name: str
    customer_email: str = ""
    customer_phone: str = ""
    status: str = BookingStatus.PENDING_PAYMENT.value
    payment_status: str = PaymentStatus.PENDING.value
    payment_method: str | None = None
    created_at: str | None = None
    train_name: str | None = None
    train_type: str | None = None
    train_code: str | None = None
    origin: str | None = None
    destination: str | None = None
    departure_date: str | None = None
    departure_time: str | None = None
    arrival_time: str | None = None
    total_amount: Decimal = Decimal("0")
    passenger_count: int = 1
    fare_breakdown: FareBreakdown | None = None
    passengers: list[PassengerRecord] = field(default_factory=list)
    seats: list[SeatSelection] = field(default_factory=list)
    segments: list[JourneySegment] = field(default_factory=list)
    transit: TransitDetail | None = None

    @property
    def route(self) -> str:
        return f"{self.origin or '-'} → {self.destination or '-'}"

    @property
    def seat_numbers(self) -> str:
        if self.seats:
            return ", ".join(seat.seat_number for seat in self.seats)
        return ", ".join(p.seat_number for p in self.passengers if p.seat_number)


def _json_field(value: Any) -> Any:
    if isinstance(value, str):
        try:
            return json.loads(value)
        except ValueError:
            return None
    return value


def _first(row: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if row.get(key) not in (None, ""):
            return row[key]
    return None


def passenger_from_row(row: dict[str, Any]) -> PassengerRecord:
    return PassengerRecord(
        full_name=_first(row, "full_name", "nama", "fullName") or "-",
        email=row.get("email") or "",
        phone=row.get("phone") or "",
        id_number=row.get("id_number") or "",
        seat_number=row.get("seat_number") or "",
        wagon_number=row.get("wagon_number") or "",
        wagon_class=row.get("wagon_class") or "",
        passenger_order=int(row.get("passenger_order") or 0),
        transit_station=row.get("transit_station"),
    )


def booking_snapshot_from_row(
    row: dict[str, Any],
    passengers: list[dict[str, Any]] | None = None,
) -> BookingSnapshot:
    """Build a snapshot from a stored booking row, whichever column names it carries."""
    fare = _json_field(row.get("fare_breakdown"))
    seats = _json_field(row.get("selected_seats")) or []
    segments = _json_field(row.get("segments")) or []
    transit = _json_field(_first(row, "transit_details", "transit_info"))
    train = _json_field(row.get("train_detail")) or {}

    passenger_records = [passenger_from_row(item) for item in passengers or []]
    if not passenger_records:
        embedded = _json_field(_first(row, "passengers_data", "passenger_details")) or []
        passenger_records = [
            PassengerRecord(
                full_name=item.get("fullName") or item.get("full_name") or "-",
                email=item.get("email") or "",
                seat_number=item.get("seatNumber") or item.get("seat_number") or "",
                wagon_number=item.get("wagonNumber") or item.get("wagon_number") or "",
                passenger_order=index + 1,
            )
            for index, item in enumerate(embedded)
            if isinstance(item, dict)
        ]
    passenger_records.sort(key=lambda record: record.passenger_order)

    return BookingSnapshot(
        booking_id=str(row["id"]),
        booking_code=_first(row, "booking_code", "bookingCode") or "",
        order_id=_first(row, "order_id", "orderId") or "",
        customer_name=_first(row, "customer_name", "passenger_name") or "Pelanggan",
        customer_email=_first(row, "customer_email", "passenger_email") or "",
        customer_phone=_first(row, "customer_phone", "passenger_phone") or "",
        status=row.get("status") or BookingStatus.PENDING_PAYMENT.value,
        payment_status=row.get("payment_status") or PaymentStatus.PENDING.value,
        payment_method=row.get("payment_method"),
        created_at=row.get("created_at"),
        train_name=_first(row, "train_name") or train.get("trainName"),
        train_type=_first(row, "train_type") or train.get("trainType"),
        train_code=_first(row, "train_code") or train.get("trainCode"),
        origin=_first(row, "origin") or train.get("origin"),
        destination=_first(row, "destination") or train.get("destination"),
        departure_date=_first(row, "departure_date") or train.get("departureDate"),
        departure_time=_first(row, "departure_time") or train.get("departureTime"),
        arrival_time=_first(row, "arrival_time") or train.get("arrivalTime"),
        total_amount=Decimal(str(row.get("total_amount") or 0)),
        passenger_count=int(row.get("passenger_count") or len(passenger_records) or 1),
        fare_breakdown=FareBreakdown.model_validate(fare) if isinstance(fare, dict) and fare else None,
        passengers=passenger_records,
        seats=[SeatSelection.model_validate(item) for item in seats if isinstance(item, dict) and _has_seat(item)],
        segments=[JourneySegment.model_validate(item) for item in segments if isinstance(item, dict)],
        transit=TransitDetail.model_validate(transit) if isinstance(transit, dict) and transit else None,
    )


def _has_seat(item: dict[str, Any]) -> bool:
    return bool(item.get("seatNumber") or item.get("seat_number"))


@dataclass
class DeliveryRecord:
    success: bool
    recipient: str
    message_id: str | None = None
    error: str | None = None
    sent_at: str | None = None
