from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from railbook.db.repositories import ActivityLogRepository


@dataclass
class ActivityRecord:
    id: str
    timestamp: str
    action: str
    component: str
    booking_code: str | None
    reference: str | None
    detail: dict[str, Any]


class ActivityLog:
    def __init__(self, repository: ActivityLogRepository) -> None:
        self.repository = repository

    def reset(self) -> None:
        self.repository.reset()

    def log(
        self,
        action: str,
        component: str,
        booking_code: str | None = None,
        reference: str | None = None,
        detail: dict[str, Any] | None = None,
    ) -> ActivityRecord:
        row = {
            "id": str(uuid4()),
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "action": action,
            "component": component,
            "booking_code": booking_code,
            "reference": reference,
            "detail": detail or {},
        }
        stored = self.repository.insert(row)
        return ActivityRecord(**{key: stored.get(key, row[key]) for key in row})

    def get_history(self, booking_code: str) -> list[ActivityRecord]:
        rows = self.repository.get_by_booking_code(booking_code)
        return [
            ActivityRecord(
                id=row["id"],
                timestamp=row["timestamp"],
                action=row["action"],
                component=row["component"],
                booking_code=row.get("booking_code"),
                reference=row.get("reference"),
                detail=row.get("detail") or {},
            )
            for row in rows
        ]
