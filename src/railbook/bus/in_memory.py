from __future__ import annotations

from collections import defaultdict
from typing import Any, Iterable

from railbook.bus.routing import topic_for
from railbook.models.events import BookingEvent


class InMemoryBus:
    """Process-local bus; also the snapshot the runtime exposes to the API and tests."""

    def __init__(self) -> None:
        self.topics: dict[str, list[BookingEvent]] = defaultdict(list)

    def publish(self, event: BookingEvent) -> None:
        self.topics[topic_for(event)].append(event)

    def publish_many(self, events: Iterable[BookingEvent]) -> None:
        for event in events:
            self.publish(event)

    def for_booking(self, booking_code: str) -> list[BookingEvent]:
        events = [event for events in self.topics.values() for event in events if event.booking_code == booking_code]
        return sorted(events, key=lambda event: event.occurred_at)

    def snapshot(self) -> dict[str, list[dict[str, Any]]]:
        return {
            topic: [event.model_dump(mode="json") for event in events]
            for topic, events in sorted(self.topics.items())
        }

    def clear(self) -> None:
        self.topics.clear()
