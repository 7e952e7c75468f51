from __future__ import annotations

import logging
from datetime import datetime, timezone

from railbook.documents.renderer import format_rupiah
from railbook.models.booking import DeliveryRecord
from railbook.notifications.templates import render_ticket_email
from railbook.notifications.transports import MailTransport, OutgoingMessage
from railbook.stores.tickets import TicketIssuer, TicketSnapshot

logger = logging.getLogger(__name__)

TICKET_STATUS_LABELS = {
    "pending": "MENUNGGU PEMBAYARAN",
    "active": "AKTIF",
}


def _ticket_details(ticket: TicketSnapshot) -> list[tuple[str, str]]:
    return [
        ("Nomor Tiket", ticket.ticket_number),
        ("Kode Booking", ticket.booking_code or "-"),
        ("Kereta", ticket.train_name or "-"),
        ("Rute", f"{ticket.origin or '-'} → {ticket.destination or '-'}"),
        ("Tanggal", ticket.departure_date or "-"),
        ("Berangkat", ticket.departure_time or "-"),
        ("Tiba", ticket.arrival_time or "-"),
        ("Kursi", ticket.seat_numbers or "Akan ditentukan"),
        ("Total", format_rupiah(ticket.total_amount)),
        ("Status", TICKET_STATUS_LABELS.get(ticket.status, ticket.status.upper())),
    ]


class NotificationDispatcher:
    def __init__(
        self,
        transport: MailTransport,
        issuer: TicketIssuer,
        sender: str,
        app_url: str = "http://localhost:3000",
    ) -> None:
        self.transport = transport
        self.issuer = issuer
        self.sender = sender
        self.app_url = app_url.rstrip("/")

    def compose(self, to: str, subject: str, ticket: TicketSnapshot, document: bytes) -> OutgoingMessage:
        html, text = render_ticket_email(
            {
                "ticket": ticket,
                "details": _ticket_details(ticket),
                "view_url": f"{self.app_url}/tickets/{ticket.booking_id or ticket.booking_code}",
                "year": datetime.now(timezone.utc).year,
            }
        )
        return OutgoingMessage(
            sender=self.sender,
            to=to,
            subject=subject,
            text=text,
            html=html,
            attachment_name=f"E-Tiket-{ticket.booking_code or ticket.ticket_number}.pdf",
            attachment=document,
        )

    def send(self, to: str, subject: str, ticket: TicketSnapshot, document: bytes) -> DeliveryRecord:
        message = self.compose(to, subject, ticket, document)
        try:
            message_id = self.transport.send(message)
        except Exception as exc:
            logger.error("Ticket %s e-mail to %s failed: %s", ticket.ticket_number, to, exc)
            record = DeliveryRecord(success=False, recipient=to, error=str(exc))
        else:
            logger.info("Ticket %s e-mailed to %s (%s)", ticket.ticket_number, to, message_id)
            record = DeliveryRecord(
                success=True,
                recipient=to,
                message_id=message_id,
                sent_at=datetime.now(timezone.utc).isoformat(),
            )
        try:
            self.issuer.record_delivery(ticket.ticket_number, record)
        except Exception:
            logger.exception("Delivery outcome for ticket %s not recorded", ticket.ticket_number)
        return record
