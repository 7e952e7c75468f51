from __future__ import annotations

import os
from dataclasses import dataclass, field

DEFAULT_BOOKING_TABLES = ("bookings_kereta", "bookings", "temp_bookings")


def _split_csv(raw: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in raw.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    storage_backend: str = "memory"
    supabase_url: str = ""
    supabase_key: str = ""
    booking_tables: tuple[str, ...] = DEFAULT_BOOKING_TABLES
    passenger_table: str = "passengers"
    ticket_table: str = "tickets"
    activity_table: str = "activity_logs"
    bus_backend: str = "memory"
    kafka_bootstrap_servers: str = "127.0.0.1:9092"
    kafka_client_id: str = "railbook-producer"
    email_backend: str = "memory"
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 465
    smtp_user: str = ""
    smtp_pass: str = ""
    email_from: str = "noreply@railbook.local"
    sendgrid_api_key: str = ""
    app_url: str = "http://localhost:3000"
    cors_origins: tuple[str, ...] = field(default_factory=lambda: ("http://localhost:3000",))
    log_level: str = "INFO"

    @property
    def has_supabase_credentials(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    @classmethod
    def from_env(cls) -> Settings:
        smtp_user = os.getenv("SMTP_USER", "")
        return cls(
            storage_backend=os.getenv("RAILBOOK_STORAGE_BACKEND", "memory").strip().lower(),
            supabase_url=os.getenv("SUPABASE_URL", ""),
            supabase_key=os.getenv("SUPABASE_KEY", ""),
            booking_tables=_split_csv(os.getenv("RAILBOOK_BOOKING_TABLES", "")) or DEFAULT_BOOKING_TABLES,
            passenger_table=os.getenv("RAILBOOK_PASSENGER_TABLE", "passengers"),
            ticket_table=os.getenv("RAILBOOK_TICKET_TABLE", "tickets"),
            activity_table=os.getenv("RAILBOOK_ACTIVITY_TABLE", "activity_logs"),
            bus_backend=os.getenv("RAILBOOK_BUS_BACKEND", "memory").strip().lower(),
            kafka_bootstrap_servers=os.getenv("RAILBOOK_KAFKA_BOOTSTRAP_SERVERS", "127.0.0.1:9092"),
            kafka_client_id=os.getenv("RAILBOOK_KAFKA_CLIENT_ID", "railbook-producer"),
            email_backend=os.getenv("RAILBOOK_EMAIL_BACKEND", "memory").strip().lower(),
            smtp_host=os.getenv("SMTP_HOST", "smtp.gmail.com"),
            smtp_port=int(os.getenv("SMTP_PORT", "465")),
            smtp_user=smtp_user,
            smtp_pass=os.getenv("SMTP_PASS", ""),
            email_from=os.getenv("EMAIL_FROM") or smtp_user or "noreply@railbook.local",
            sendgrid_api_key=os.getenv("SENDGRID_API_KEY", ""),
            app_url=os.getenv("APP_URL", "http://localhost:3000"),
            cors_origins=_split_csv(os.getenv("RAILBOOK_CORS_ORIGINS", "http://localhost:3000")),
            log_level=os.getenv("RAILBOOK_LOG_LEVEL", "INFO").strip().upper(),
        )
