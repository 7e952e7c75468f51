from __future__ import annotations

import base64
import logging
import smtplib
from dataclasses import dataclass, field
from email.message import EmailMessage
from email.utils import formataddr, make_msgid
from typing import Protocol
from uuid import uuid4

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Attachment, Disposition, FileContent, FileName, FileType, Mail

from railbook.config import Settings

logger = logging.getLogger(__name__)

SENDER_NAME = "Railbook"


@dataclass
class OutgoingMessage:
    sender: str
    to: str
    subject: str
    text: str
    html: str
    attachment_name: str | None = None
    attachment: bytes | None = None


class MailTransport(Protocol):
    def send(self, message: OutgoingMessage) -> str:
        """Deliver the message and return its message id."""


class SmtpTransport:
    def __init__(self, host: str, port: int, user: str = "", password: str = "", timeout: float = 30.0) -> None:
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.timeout = timeout

    def _build(self, message: OutgoingMessage) -> EmailMessage:
        email = EmailMessage()
        email["From"] = formataddr((SENDER_NAME, message.sender))
        email["To"] = message.to
        email["Subject"] = message.subject
        email["Message-ID"] = make_msgid(domain=message.sender.split("@")[-1] or None)
        email["X-Priority"] = "1"
        email.set_content(message.text)
        email.add_alternative(message.html, subtype="html")
        if message.attachment is not None:
            email.add_attachment(
                message.attachment,
                maintype="application",
                subtype="pdf",
                filename=message.attachment_name or "ticket.pdf",
            )
        return email

    def send(self, message: OutgoingMessage) -> str:
        email = self._build(message)
        if self.port == 465:
            server: smtplib.SMTP = smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout)
        else:
            server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        with server:
            if self.port != 465:
                server.starttls()
            if self.user:
                server.login(self.user, self.password)
            server.send_message(email)
        return email["Message-ID"]


class SendGridTransport:
    def __init__(self, api_key: str, client: SendGridAPIClient | None = None) -> None:
        if not api_key and client is None:
            raise RuntimeError("SENDGRID_API_KEY must be set for RAILBOOK_EMAIL_BACKEND=sendgrid")
        self.client = client or SendGridAPIClient(api_key)

    def send(self, message: OutgoingMessage) -> str:
        mail = Mail(
            from_email=message.sender,
            to_emails=message.to,
            subject=message.subject,
            plain_text_content=message.text,
            html_content=message.html,
        )
        if message.attachment is not None:
            mail.attachment = Attachment(
                FileContent(base64.b64encode(message.attachment).decode("ascii")),
                FileName(message.attachment_name or "ticket.pdf"),
                FileType("application/pdf"),
                Disposition("attachment"),
            )
        response = self.client.send(mail)
        headers = getattr(response, "headers", None) or {}
        return headers.get("X-Message-Id") or f"sendgrid-{uuid4()}"


@dataclass
class MemoryTransport:
    outbox: list[OutgoingMessage] = field(default_factory=list)

    def send(self, message: OutgoingMessage) -> str:
        self.outbox.append(message)
        return f"<{uuid4()}@railbook.local>"


def build_transport(settings: Settings) -> MailTransport:
    backend = settings.email_backend
    if backend == "memory":
        return MemoryTransport()
    if backend == "smtp":
        return SmtpTransport(settings.smtp_host, settings.smtp_port, settings.smtp_user, settings.smtp_pass)
    if backend == "sendgrid":
        return SendGridTransport(settings.sendgrid_api_key)
    raise ValueError("Unsupported RAILBOOK_EMAIL_BACKEND. Use 'memory', 'smtp' or 'sendgrid'.")
