from __future__ import annotations

import json
from typing import Any, Iterable

from kafka import KafkaProducer

from railbook.bus.routing import topic_for
from railbook.models.events import BookingEvent


def _headers(event: BookingEvent) -> list[tuple[str, bytes]]:
    headers = [("event_type", event.event_type.value.encode("utf-8"))]
    if event.ticket_number:
        headers.append(("ticket_number", event.ticket_number.encode("utf-8")))
    return headers


class KafkaBus:
    def __init__(
        self,
        bootstrap_servers: str,
        client_id: str = "railbook-producer",
        producer: KafkaProducer | None = None,
    ) -> None:
        self._owns_producer = producer is None
        self._producer = producer or KafkaProducer(
            bootstrap_servers=bootstrap_servers,
            client_id=client_id,
            linger_ms=10,
            acks="all",
            value_serializer=lambda payload: json.dumps(payload).encode("utf-8"),
            key_serializer=lambda key: key.encode("utf-8"),
        )

    def _send(self, event: BookingEvent) -> Any:
        # Keyed by booking code so every event of one booking lands on one partition.
        return self._producer.send(
            topic_for(event),
            key=event.booking_code,
            value=event.model_dump(mode="json"),
            headers=_headers(event),
        )

    def publish(self, event: BookingEvent) -> None:
        self._send(event)
        self._producer.flush()

    def publish_many(self, events: Iterable[BookingEvent]) -> None:
        for event in events:
            self._send(event)
        self._producer.flush()

    def close(self) -> None:
        if self._owns_producer:
            self._producer.flush()
            self._producer.close()
