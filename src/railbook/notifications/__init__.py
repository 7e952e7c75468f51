from .dispatcher import NotificationDispatcher
from .transports import MemoryTransport, OutgoingMessage, SendGridTransport, SmtpTransport, build_transport

__all__ = [
    "MemoryTransport",
    "NotificationDispatcher",
    "OutgoingMessage",
    "SendGridTransport",
    "SmtpTransport",
    "build_transport",
]
