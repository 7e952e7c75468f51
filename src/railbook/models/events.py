from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field


class BookingEventType(str, Enum):
    BOOKING_CREATED = "booking_created"
    TICKET_ISSUED = "ticket_issued"
    TICKET_DELIVERED = "ticket_delivered"
    TICKET_DELIVERY_FAILED = "ticket_delivery_failed"


class BookingEvent(BaseModel):
    event_id: str = Field(default_factory=lambda: str(uuid4()))
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    event_type: BookingEventType
    booking_code: str
    ticket_number: str | None = None
    payload: dict[str, Any] = Field(default_factory=dict)
