from __future__ import annotations

from railbook.models.events import BookingEvent, BookingEventType

# Both delivery outcomes share a topic so consumers see them in order per booking.
EVENT_TOPIC_MAP = {
    BookingEventType.BOOKING_CREATED: "booking.created",
    BookingEventType.TICKET_ISSUED: "ticket.issued",
    BookingEventType.TICKET_DELIVERED: "ticket.delivery",
    BookingEventType.TICKET_DELIVERY_FAILED: "ticket.delivery",
}


def topic_for(event: BookingEvent) -> str:
    return EVENT_TOPIC_MAP[event.event_type]
