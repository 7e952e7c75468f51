from __future__ import annotations

import logging
from typing import Iterable, Protocol

from railbook.models.events import BookingEvent

logger = logging.getLogger(__name__)


class EventPublisher(Protocol):
    def publish(self, event: BookingEvent) -> None: ...

    def publish_many(self, events: Iterable[BookingEvent]) -> None: ...


class FanoutBus:
    """Publishes each booking event to every configured bus, in order.

    A failing bus stops the fan-out and the error reaches the caller; buses
    earlier in the list have already received the event.
    """

    def __init__(self, buses: Iterable[EventPublisher]) -> None:
        self.buses = list(buses)

    def publish(self, event: BookingEvent) -> None:
        for bus in self.buses:
            bus.publish(event)
        logger.debug("Event %s for %s fanned out to %d buses", event.event_type.value, event.booking_code, len(self.buses))

    def publish_many(self, events: Iterable[BookingEvent]) -> None:
        batch = list(events)
        for bus in self.buses:
            bus.publish_many(batch)

    def close(self) -> None:
        for bus in self.buses:
            close = getattr(bus, "close", None)
            if callable(close):
                close()
