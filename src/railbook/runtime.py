from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any

from railbook.audit.activity import ActivityLog
from railbook.bus import FanoutBus, InMemoryBus, build_transport_bus
from railbook.config import Settings
from railbook.db.repositories import (
    ActivityLogRepository,
    BookingTableRepository,
    Database,
    PassengerRepository,
    TicketRepository,
)
from railbook.notifications.dispatcher import NotificationDispatcher
from railbook.notifications.transports import MailTransport, build_transport
from railbook.pipeline import BookingPipeline
from railbook.storage.adaptive import AdaptivePersistenceLayer, TableAdapter
from railbook.stores.passengers import PassengerStore
from railbook.stores.tickets import TicketIssuer

logger = logging.getLogger(__name__)


class RailbookRuntime:
    def __init__(
        self,
        settings: Settings | None = None,
        database: Database | None = None,
        transport: MailTransport | None = None,
        transport_bus: Any = None,
    ) -> None:
        self.settings = settings or Settings.from_env()
        self.database = database or Database.from_settings(self.settings)

        self.persistence = AdaptivePersistenceLayer(
            TableAdapter(BookingTableRepository(self.database, table)) for table in self.settings.booking_tables
        )
        self.passenger_store = PassengerStore(PassengerRepository(self.database, self.settings.passenger_table))
        self.ticket_issuer = TicketIssuer(TicketRepository(self.database, self.settings.ticket_table))
        self.activity = ActivityLog(ActivityLogRepository(self.database, self.settings.activity_table))

        self.transport = transport or build_transport(self.settings)
        self.dispatcher = NotificationDispatcher(
            self.transport,
            self.ticket_issuer,
            sender=self.settings.email_from,
            app_url=self.settings.app_url,
        )

        self.snapshot_bus = InMemoryBus()
        transport_bus = transport_bus if transport_bus is not None else build_transport_bus(self.settings)
        self.bus = self.snapshot_bus if transport_bus is None else FanoutBus([self.snapshot_bus, transport_bus])

        self.pipeline = BookingPipeline(
            persistence=self.persistence,
            passengers=self.passenger_store,
            tickets=self.ticket_issuer,
            dispatcher=self.dispatcher,
            activity=self.activity,
            bus=self.bus,
            storage_backend=self.database.backend.value,
        )
        logger.info(
            "Railbook runtime ready (storage=%s, bus=%s, email=%s, targets=%s)",
            self.database.backend.value,
            self.settings.bus_backend,
            self.settings.email_backend,
            ",".join(self.settings.booking_tables),
        )

    def create_booking(self, payload: Any) -> dict[str, Any]:
        return self.pipeline.create(payload)

    def send_ticket_email(self, booking_id: Any, send_to: Any = None) -> dict[str, Any]:
        return self.pipeline.deliver(booking_id, send_to)

    def health(self) -> dict[str, Any]:
        payload = self.pipeline.health()
        payload["busBackend"] = self.settings.bus_backend
        payload["emailBackend"] = self.settings.email_backend
        payload["environment"] = {
            "hasSupabaseUrl": bool(self.settings.supabase_url),
            "hasSupabaseKey": bool(self.settings.supabase_key),
        }
        return payload

    def ticket_detail(self, ticket_number: str) -> dict[str, Any] | None:
        ticket = self.ticket_issuer.get(ticket_number)
        return ticket.as_payload() if ticket else None

    def booking_activity(self, booking_code: str) -> list[dict[str, Any]]:
        return [asdict(record) for record in self.activity.get_history(booking_code)]

    def published_events(self) -> dict[str, list[dict[str, Any]]]:
        return self.snapshot_bus.snapshot()

    def close(self) -> None:
        close = getattr(self.bus, "close", None)
        if callable(close):
            close()
