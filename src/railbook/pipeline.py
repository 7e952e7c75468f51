from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import ValidationError

from railbook.audit.activity import ActivityLog
from railbook.contacts import is_valid_email, normalize_email
from railbook.documents.renderer import render_document
from railbook.errors import (
    BookingIdRequiredError,
    BookingNotFoundError,
    DeliveryFailedError,
    InvalidSubmissionError,
    RecipientMissingError,
)
from railbook.fares import compose_fare
from railbook.identifiers import generate_ids, new_ticket_number
from railbook.models.booking import (
    BookingSnapshot,
    BookingStatus,
    BookingSubmission,
    PaymentStatus,
    TrainDetail,
    booking_snapshot_from_row,
)
from railbook.models.events import BookingEvent, BookingEventType
from railbook.notifications.dispatcher import NotificationDispatcher
from railbook.storage.adaptive import AdaptivePersistenceLayer, StoreResult
from railbook.stores.passengers import PassengerStore, PassengerStoreResult
from railbook.stores.tickets import TicketIssuer, TicketSnapshot

logger = logging.getLogger(__name__)

DEFAULT_TRAIN = {
    "train_name": "Parahyangan",
    "train_type": "Ekonomi",
    "origin": "Bandung",
    "destination": "Gambir",
    "departure_time": "06:00",
    "arrival_time": "11:00",
}
HEALTH_SELF_TEST_EMAIL = "name%2540domain.com"


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _as_decimal(value: Any) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


def parse_submission(payload: Any) -> BookingSubmission:
    if not isinstance(payload, dict):
        raise InvalidSubmissionError("Invalid JSON in request body", "Format data tidak valid")
    passengers = payload.get("passengers")
    if not isinstance(passengers, list) or not passengers:
        raise InvalidSubmissionError("Passengers data is required", "Data penumpang tidak valid")
    try:
        return BookingSubmission.model_validate(payload)
    except ValidationError as exc:
        raise InvalidSubmissionError("Invalid booking submission", str(exc)) from exc


class BookingPipeline:
    def __init__(
        self,
        persistence: AdaptivePersistenceLayer,
        passengers: PassengerStore,
        tickets: TicketIssuer,
        dispatcher: NotificationDispatcher,
        activity: ActivityLog,
        bus: Any,
        storage_backend: str = "memory",
    ) -> None:
        self.persistence = persistence
        self.passengers = passengers
        self.tickets = tickets
        self.dispatcher = dispatcher
        self.activity = activity
        self.bus = bus
        self.storage_backend = storage_backend

    def _publish(self, event_type: BookingEventType, booking_code: str, ticket_number: str | None = None, **payload: Any) -> None:
        event = BookingEvent(event_type=event_type, booking_code=booking_code, ticket_number=ticket_number, payload=payload)
        try:
            self.bus.publish(event)
        except Exception:
            logger.exception("Publishing %s for %s failed", event_type.value, booking_code)

    def _log_activity(self, action: str, component: str, booking_code: str | None, **kwargs: Any) -> None:
        try:
            self.activity.log(action=action, component=component, booking_code=booking_code, **kwargs)
        except Exception:
            logger.exception("Activity %s for %s not recorded", action, booking_code)

    def build_record(self, submission: BookingSubmission, booking_id: str, booking_code: str, order_id: str) -> dict[str, Any]:
        train = submission.train_detail or TrainDetail()
        passenger_count = submission.effective_passenger_count
        fare = compose_fare(submission.fare_breakdown, passenger_count, train.price)
        submitted_total = _as_decimal(submission.total_amount)
        if submitted_total is not None and submitted_total != fare.total:
            logger.warning(
                "Booking %s submitted total %s differs from composed fare %s, storing composed fare",
                booking_code,
                submitted_total,
                fare.total,
            )

        contact_email = normalize_email(submission.contact_email)
        passengers_data = []
        for passenger in submission.passengers:
            data = passenger.model_dump(by_alias=True, exclude_none=True)
            data["email"] = normalize_email(passenger.email)
            passengers_data.append(data)

        now = _utc_now()
        return {
            "id": booking_id,
            "booking_code": booking_code,
            "order_id": order_id,
            "customer_name": submission.contact_name,
            "customer_email": contact_email,
            "customer_phone": submission.contact_phone,
            "total_amount": float(fare.total),
            "passenger_count": passenger_count,
            "train_name": train.train_name or DEFAULT_TRAIN["train_name"],
            "train_type": train.train_type or DEFAULT_TRAIN["train_type"],
            "train_code": train.train_code,
            "origin": train.origin or DEFAULT_TRAIN["origin"],
            "destination": train.destination or DEFAULT_TRAIN["destination"],
            "departure_date": train.departure_date or date.today().isoformat(),
            "departure_time": train.departure_time or DEFAULT_TRAIN["departure_time"],
            "arrival_time": train.arrival_time or DEFAULT_TRAIN["arrival_time"],
            "schedule_id": str(train.schedule_id) if train.schedule_id is not None else None,
            "payment_method": submission.payment_method,
            "status": BookingStatus.PENDING_PAYMENT.value,
            "payment_status": PaymentStatus.PENDING.value,
            "passengers_data": passengers_data,
            "selected_seats": [seat.model_dump(mode="json", by_alias=True) for seat in submission.selected_seats],
            "fare_breakdown": fare.as_row(),
            "train_detail": train.model_dump(mode="json", by_alias=True, exclude_none=True),
            "segments": [segment.model_dump(mode="json", by_alias=True) for segment in submission.segments],
            "transit_details": submission.transit.model_dump(mode="json", by_alias=True) if submission.transit else None,
            "created_at": now,
            "updated_at": now,
        }

    def _store_passengers(self, stored: StoreResult, booking_id: str, submission: BookingSubmission) -> PassengerStoreResult:
        if stored.replayed:
            existing = self.passengers.list_for_booking(booking_id)
            if existing:
                logger.info("Booking %s replayed, keeping %d stored passengers", booking_id, len(existing))
                return PassengerStoreResult(success=True, saved_count=len(existing))
        return self.passengers.store_passengers(
            booking_id,
            submission.passengers,
            contact_email=normalize_email(submission.contact_email),
            contact_phone=submission.contact_phone,
        )

    def _issue_ticket(self, stored: StoreResult, booking_code: str, ticket_number: str, snapshot: BookingSnapshot) -> tuple[bool, str]:
        if stored.replayed:
            try:
                existing = self.tickets.find_by_booking_code(booking_code)
            except Exception as exc:
                logger.warning("Ticket lookup for %s failed: %s", booking_code, exc)
                existing = None
            if existing is not None:
                ticket_number = existing.ticket_number
        result = self.tickets.issue_ticket(booking_code, ticket_number, snapshot)
        return result.success, result.ticket_number

    def create(self, payload: Any) -> dict[str, Any]:
        submission = parse_submission(payload)
        ids = generate_ids(submission.booking_code, submission.order_id)
        record = self.build_record(submission, ids.booking_id, ids.booking_code, ids.order_id)
        logger.info(
            "Booking %s received with %d passenger(s)", ids.booking_code, len(submission.passengers)
        )

        stored = self.persistence.store(record)
        if not stored.success:
            self._log_activity(
                "booking_store_failed", "persistence", ids.booking_code, detail={"error": stored.error}
            )
            return {
                "success": False,
                "error": stored.error,
                "fallbackData": {
                    "bookingId": ids.booking_id,
                    "bookingCode": ids.booking_code,
                    "orderId": ids.order_id,
                    "ticketNumber": ids.ticket_number,
                    "passengers": record["passenger_count"],
                    "savedToDatabase": False,
                    "isFallback": True,
                    "timestamp": _utc_now(),
                },
                "message": "Gagal menyimpan ke database, menggunakan fallback mode",
            }

        booking_id = stored.stored_id or ids.booking_id
        # A replayed booking code keeps the order id it was first stored with.
        order_id = stored.order_id or ids.order_id
        passenger_result = self._store_passengers(stored, booking_id, submission)
        if not passenger_result.success:
            self._log_activity(
                "passengers_store_failed", "passengers", ids.booking_code, detail={"error": passenger_result.error}
            )

        snapshot = booking_snapshot_from_row({**record, "id": booking_id, "order_id": order_id})
        ticket_created, ticket_number = self._issue_ticket(stored, ids.booking_code, ids.ticket_number, snapshot)
        if not ticket_created:
            self._log_activity("ticket_issue_failed", "tickets", ids.booking_code, reference=ticket_number)

        self._publish(
            BookingEventType.BOOKING_CREATED,
            ids.booking_code,
            booking_id=booking_id,
            order_id=order_id,
            total_amount=record["total_amount"],
            target=stored.target_used,
            replayed=stored.replayed,
        )
        if ticket_created:
            self._publish(BookingEventType.TICKET_ISSUED, ids.booking_code, ticket_number, booking_id=booking_id)
        self._log_activity(
            "booking_created",
            "pipeline",
            ids.booking_code,
            reference=booking_id,
            detail={
                "target": stored.target_used,
                "method": stored.method,
                "replayed": stored.replayed,
                "passengers_saved": passenger_result.success,
                "ticket_created": ticket_created,
            },
        )

        return {
            "success": True,
            "data": {
                "bookingId": booking_id,
                "bookingCode": ids.booking_code,
                "orderId": order_id,
                "ticketNumber": ticket_number,
                "passengers": record["passenger_count"],
                "savedToDatabase": True,
                "passengersSaved": passenger_result.success,
                "ticketCreated": ticket_created,
                "usedTable": stored.target_used,
                "insertionMethod": stored.method,
                "replayed": stored.replayed,
                "trainName": record["train_name"],
                "trainType": record["train_type"],
                "origin": record["origin"],
                "destination": record["destination"],
                "departureDate": record["departure_date"],
                "departureTime": record["departure_time"],
                "scheduleId": record["schedule_id"] or "unknown",
                "totalAmount": record["total_amount"],
                "fareBreakdown": record["fare_breakdown"],
                "hasDatabaseError": False,
                "databaseError": None,
            },
            "message": f"Booking berhasil dibuat dan disimpan di {stored.target_used}",
        }

    def load_snapshot(self, reference: str) -> BookingSnapshot:
        stored = self.persistence.fetch(reference)
        if stored is None:
            raise BookingNotFoundError("Booking not found", f"No booking matches '{reference}'")
        snapshot = booking_snapshot_from_row(stored.row)
        passengers = self.passengers.list_for_booking(snapshot.booking_id)
        if passengers:
            snapshot.passengers = passengers
        return snapshot

    def _resolve_ticket(self, snapshot: BookingSnapshot) -> TicketSnapshot:
        try:
            ticket = self.tickets.find_by_booking_code(snapshot.booking_code)
        except Exception as exc:
            logger.warning("Ticket lookup for %s failed: %s", snapshot.booking_code, exc)
            ticket = None
        if ticket is not None:
            return ticket
        ticket_number = new_ticket_number()
        if self.tickets.issue_ticket(snapshot.booking_code, ticket_number, snapshot).success:
            issued = self.tickets.get(ticket_number)
            if issued is not None:
                return issued
        return self.tickets.preview(snapshot.booking_code, ticket_number, snapshot)

    def deliver(self, booking_id: Any, send_to: Any = None) -> dict[str, Any]:
        reference = str(booking_id).strip() if booking_id is not None else ""
        if not reference:
            raise BookingIdRequiredError("Booking ID is required")

        snapshot = self.load_snapshot(reference)
        recipient = normalize_email(send_to) if send_to else snapshot.customer_email
        if not is_valid_email(recipient):
            raise RecipientMissingError(
                "No valid recipient e-mail",
                f"Booking {snapshot.booking_code} has no usable e-mail address",
            )

        ticket = self._resolve_ticket(snapshot)
        document = render_document(snapshot)
        record = self.dispatcher.send(recipient, f"E-Tiket KAI Anda: {snapshot.booking_code}", ticket, document.content)

        if not record.success:
            self._log_activity(
                "email_send_failed",
                "notifications",
                snapshot.booking_code,
                reference=ticket.ticket_number,
                detail={"error": record.error, "code": DeliveryFailedError.code, "recipient": recipient},
            )
            self._publish(
                BookingEventType.TICKET_DELIVERY_FAILED,
                snapshot.booking_code,
                ticket.ticket_number,
                error=record.error,
            )
            raise DeliveryFailedError("Failed to send email", record.error)

        self._log_activity(
            "email_sent",
            "notifications",
            snapshot.booking_code,
            reference=ticket.ticket_number,
            detail={"recipient": recipient, "message_id": record.message_id, "layout": document.layout},
        )
        self._publish(
            BookingEventType.TICKET_DELIVERED,
            snapshot.booking_code,
            ticket.ticket_number,
            recipient=recipient,
            message_id=record.message_id,
        )
        return {
            "success": True,
            "message": "Email sent successfully",
            "bookingId": snapshot.booking_id,
            "bookingCode": snapshot.booking_code,
            "ticketNumber": ticket.ticket_number,
            "emailTo": recipient,
            "emailMessageId": record.message_id,
            "documentLayout": document.layout,
            "timestamp": _utc_now(),
        }

    def health(self) -> dict[str, Any]:
        targets = self.persistence.probe_all()
        decoded = normalize_email(HEALTH_SELF_TEST_EMAIL)
        return {
            "status": "healthy",
            "endpoint": "/api/bookings/create",
            "method": "POST",
            "storageBackend": self.storage_backend,
            "database": "connected" if any(target["reachable"] for target in targets) else "error",
            "targets": targets,
            "emailNormalization": {
                "input": HEALTH_SELF_TEST_EMAIL,
                "output": decoded,
                "hasAt": "@" in decoded,
                "isValid": is_valid_email(decoded),
            },
            "timestamp": _utc_now(),
        }
