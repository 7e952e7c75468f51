"""Booking persistence against a schema whose shape is not guaranteed.

Deployed projects disagree on which booking table exists and on how its
columns are spelled. Each candidate table is wrapped in a ``TableAdapter``;
``AdaptivePersistenceLayer`` walks the candidates in priority order and stops
at the first one that accepts the record, either as projected onto its known
columns ("direct") or cut down to the minimal column set ("minimal").
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable
from uuid import UUID, uuid4

from railbook.db.repositories import (
    BookingTableRepository,
    DuplicateKeyError,
    TableMissingError,
    UnknownColumnError,
)

logger = logging.getLogger(__name__)

FIELD_ALIASES: dict[str, str] = {
    "booking_code": "bookingCode",
    "order_id": "orderId",
    "customer_name": "passenger_name",
    "customer_email": "passenger_email",
    "customer_phone": "passenger_phone",
    "passengers_data": "passenger_details",
    "transit_details": "transit_info",
}

REQUIRED_FIELDS = ("id", "booking_code", "order_id", "created_at", "updated_at")

MINIMAL_FIELDS = (
    "id",
    "booking_code",
    "order_id",
    "customer_name",
    "total_amount",
    "passenger_count",
    "status",
    "payment_status",
    "created_at",
    "updated_at",
)

# Never overwritten when a booking code is submitted again.
_IMMUTABLE_ON_REPLAY = ("id", "created_at", "order_id", FIELD_ALIASES["order_id"])


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class StoreResult:
    success: bool
    stored_id: str | None = None
    target_used: str | None = None
    method: str | None = None
    error: str | None = None
    attempts: list[str] = field(default_factory=list)
    replayed: bool = False
    order_id: str | None = None


@dataclass
class StoredBooking:
    target: str
    row: dict[str, Any]


def _with_required_fields(record: dict[str, Any]) -> dict[str, Any]:
    completed = dict(record)
    now = _now_iso()
    defaults = {
        "id": lambda: str(uuid4()),
        "booking_code": lambda: f"BOOK-{uuid4().hex[:10].upper()}",
        "order_id": lambda: f"ORDER-{uuid4().hex[:12].upper()}",
        "created_at": lambda: now,
        "updated_at": lambda: now,
    }
    for key in REQUIRED_FIELDS:
        if completed.get(key) in (None, ""):
            completed[key] = defaults[key]()
    return completed


def project_record(record: dict[str, Any], columns: frozenset[str] | None) -> dict[str, Any]:
    """Map a record onto a table's columns, falling back to each field's synonym."""
    if columns is None:
        return dict(record)
    projected: dict[str, Any] = {}
    for key, value in record.items():
        if key in columns:
            projected[key] = value
        elif FIELD_ALIASES.get(key) in columns:
            projected[FIELD_ALIASES[key]] = value
    return projected


class TableAdapter:
    def __init__(self, repository: BookingTableRepository) -> None:
        self.repository = repository
        self.name = repository.table_name

    def try_insert(self, record: dict[str, Any]) -> StoreResult:
        try:
            columns = self.repository.probe_columns()
        except TableMissingError as exc:
            logger.info("Booking target %s unavailable: %s", self.name, exc)
            return StoreResult(success=False, target_used=self.name, error=str(exc))
        except Exception as exc:
            logger.warning("Schema probe of %s failed, skipping target: %s", self.name, exc)
            return StoreResult(success=False, target_used=self.name, error=f"probe failed: {exc}")

        full = project_record(record, columns)
        try:
            return self._insert(full, method="direct")
        except UnknownColumnError as exc:
            logger.warning("Target %s rejected optional columns (%s), retrying with minimal set", self.name, exc)
        except TableMissingError as exc:
            return StoreResult(success=False, target_used=self.name, error=str(exc))
        except Exception as exc:
            logger.exception("Insert into %s failed", self.name)
            return StoreResult(success=False, target_used=self.name, error=str(exc))

        minimal = project_record({key: record[key] for key in MINIMAL_FIELDS if key in record}, columns)
        try:
            return self._insert(minimal, method="minimal")
        except Exception as exc:
            logger.warning("Minimal insert into %s failed: %s", self.name, exc)
            return StoreResult(success=False, target_used=self.name, error=f"minimal insert: {exc}")

    def _insert(self, row: dict[str, Any], method: str) -> StoreResult:
        try:
            stored = self.repository.insert(row)
        except DuplicateKeyError:
            return self._replay(row, method)
        return StoreResult(
            success=True,
            stored_id=str(stored.get("id") or row.get("id")),
            target_used=self.name,
            method=method,
            order_id=_order_id(stored) or _order_id(row),
        )

    def _replay(self, row: dict[str, Any], method: str) -> StoreResult:
        code_column = "booking_code" if "booking_code" in row else FIELD_ALIASES["booking_code"]
        booking_code = row.get(code_column)
        existing = self.repository.find_by(code_column, booking_code) if booking_code else None
        if existing is None:
            return StoreResult(
                success=False,
                target_used=self.name,
                error=f"duplicate key in {self.name} not attributable to booking code {booking_code!r}",
            )
        values = {key: value for key, value in row.items() if key not in _IMMUTABLE_ON_REPLAY and key != code_column}
        values["updated_at"] = _now_iso()
        self.repository.update_by_code(booking_code, values, code_column=code_column)
        logger.info("Booking %s already stored in %s, updated in place", booking_code, self.name)
        return StoreResult(
            success=True,
            stored_id=str(existing["id"]),
            target_used=self.name,
            method=method,
            replayed=True,
            order_id=_order_id(existing),
        )

    def find(self, reference: str) -> dict[str, Any] | None:
        lookups = ["booking_code", FIELD_ALIASES["booking_code"]]
        if _is_uuid(reference):
            lookups.insert(0, "id")
        for column in lookups:
            try:
                row = self.repository.find_by(column, reference)
            except UnknownColumnError:
                continue
            if row is not None:
                return row
        return None


def _order_id(row: dict[str, Any]) -> str | None:
    value = row.get("order_id") or row.get(FIELD_ALIASES["order_id"])
    return str(value) if value else None


def _is_uuid(value: str) -> bool:
    try:
        UUID(str(value))
    except ValueError:
        return False
    return True


class AdaptivePersistenceLayer:
    def __init__(self, adapters: Iterable[TableAdapter]) -> None:
        self.adapters = list(adapters)

    def store(self, record: dict[str, Any]) -> StoreResult:
        completed = _with_required_fields(record)
        attempts: list[str] = []
        for adapter in self.adapters:
            result = adapter.try_insert(completed)
            if result.success:
                result.attempts = attempts + [f"{adapter.name}: {result.method}"]
                logger.info(
                    "Booking %s stored in %s (%s)", completed["booking_code"], adapter.name, result.method
                )
                return result
            attempts.append(f"{adapter.name}: {result.error}")
        error = "All booking targets failed: " + "; ".join(attempts)
        logger.error(error)
        return StoreResult(success=False, error=error, attempts=attempts)

    def fetch(self, reference: str) -> StoredBooking | None:
        """Look a booking up by internal id or booking code across every target."""
        for adapter in self.adapters:
            try:
                row = adapter.find(reference)
            except TableMissingError:
                continue
            if row is not None:
                return StoredBooking(target=adapter.name, row=row)
        return None

    def probe_all(self) -> list[dict[str, Any]]:
        report: list[dict[str, Any]] = []
        for adapter in self.adapters:
            try:
                columns = adapter.repository.probe_columns()
            except Exception as exc:
                report.append({"table": adapter.name, "reachable": False, "columns": None, "error": str(exc)})
                continue
            report.append(
                {
                    "table": adapter.name,
                    "reachable": True,
                    "columns": len(columns) if columns is not None else None,
                    "error": None,
                }
            )
        return report
