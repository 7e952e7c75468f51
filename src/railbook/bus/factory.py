from __future__ import annotations

from railbook.bus.kafka import KafkaBus
from railbook.config import Settings


def build_transport_bus(settings: Settings) -> KafkaBus | None:
    backend = settings.bus_backend
    if backend == "memory":
        return None
    if backend == "kafka":
        return KafkaBus(bootstrap_servers=settings.kafka_bootstrap_servers, client_id=settings.kafka_client_id)
    raise ValueError("Unsupported RAILBOOK_BUS_BACKEND. Use 'memory' or 'kafka'.")
