from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, NoReturn
from uuid import uuid4

from railbook.config import DEFAULT_BOOKING_TABLES, Settings
from railbook.db.supabase_client import fetch_table_columns, get_client

logger = logging.getLogger(__name__)


class StorageBackend(str, Enum):
    MEMORY = "memory"
    SUPABASE = "supabase"


def get_storage_backend(raw: str | None) -> StorageBackend:
    if (raw or "").strip().lower() == StorageBackend.SUPABASE.value:
        return StorageBackend.SUPABASE
    return StorageBackend.MEMORY


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class TableMissingError(LookupError):
    def __init__(self, table: str) -> None:
        super().__init__(f"Table '{table}' does not exist or is not accessible")
        self.table = table


class UnknownColumnError(ValueError):
    def __init__(self, table: str, column: str | None = None) -> None:
        detail = f"column '{column}'" if column else "unknown column"
        super().__init__(f"Table '{table}' rejected {detail}")
        self.table = table
        self.column = column


class DuplicateKeyError(ValueError):
    def __init__(self, table: str, key: str) -> None:
        super().__init__(f"Duplicate value for unique key '{key}' in '{table}'")
        self.table = table
        self.key = key


BOOKING_COLUMNS = frozenset(
    {
        "id",
        "booking_code",
        "order_id",
        "customer_name",
        "customer_email",
        "customer_phone",
        "total_amount",
        "passenger_count",
        "train_name",
        "train_type",
        "train_code",
        "origin",
        "destination",
        "departure_date",
        "departure_time",
        "arrival_time",
        "schedule_id",
        "payment_method",
        "status",
        "payment_status",
        "passengers_data",
        "selected_seats",
        "fare_breakdown",
        "train_detail",
        "segments",
        "transit_details",
        "created_at",
        "updated_at",
    }
)

PASSENGER_COLUMNS = frozenset(
    {
        "id",
        "booking_id",
        "passenger_order",
        "full_name",
        "id_number",
        "email",
        "phone",
        "seat_number",
        "wagon_number",
        "wagon_class",
        "title",
        "birth_date",
        "gender",
        "segment_id",
        "transit_station",
        "transit_arrival",
        "transit_departure",
        "created_at",
    }
)

TICKET_COLUMNS = frozenset(
    {
        "ticket_number",
        "booking_code",
        "booking_id",
        "order_id",
        "passenger_name",
        "passenger_email",
        "train_name",
        "origin",
        "destination",
        "departure_date",
        "departure_time",
        "arrival_time",
        "seat_numbers",
        "total_amount",
        "status",
        "delivery_status",
        "email_sent",
        "email_sent_at",
        "email_message_id",
        "email_error",
        "created_at",
        "updated_at",
    }
)

ACTIVITY_COLUMNS = frozenset(
    {"id", "timestamp", "action", "component", "booking_code", "reference", "detail"}
)


@dataclass
class MemoryTable:
    name: str
    columns: frozenset[str]
    introspectable: bool = True
    unique_keys: tuple[str, ...] = ()
    rows: list[dict[str, Any]] = field(default_factory=list)

    def _check_columns(self, row: dict[str, Any]) -> None:
        unknown = sorted(set(row) - self.columns)
        if unknown:
            raise UnknownColumnError(self.name, unknown[0])

    def find(self, **match: Any) -> list[dict[str, Any]]:
        return [
            dict(row) for row in self.rows if all(row.get(key) == value for key, value in match.items())
        ]

    def insert(self, row: dict[str, Any]) -> dict[str, Any]:
        self._check_columns(row)
        for key in self.unique_keys:
            if row.get(key) is not None and any(existing.get(key) == row[key] for existing in self.rows):
                raise DuplicateKeyError(self.name, key)
        stored = dict(row)
        self.rows.append(stored)
        return dict(stored)

    def update(self, values: dict[str, Any], **match: Any) -> list[dict[str, Any]]:
        self._check_columns(values)
        updated: list[dict[str, Any]] = []
        for row in self.rows:
            if all(row.get(key) == value for key, value in match.items()):
                row.update(values)
                updated.append(dict(row))
        return updated

    def upsert(self, row: dict[str, Any], on_conflict: str) -> dict[str, Any]:
        existing = self.update(row, **{on_conflict: row[on_conflict]})
        if existing:
            return existing[0]
        return self.insert(row)


@dataclass
class MemoryDatabase:
    tables: dict[str, MemoryTable] = field(default_factory=dict)

    def create_table(
        self,
        name: str,
        columns: frozenset[str] | set[str],
        introspectable: bool = True,
        unique_keys: tuple[str, ...] = (),
    ) -> MemoryTable:
        table = MemoryTable(
            name=name,
            columns=frozenset(columns),
            introspectable=introspectable,
            unique_keys=unique_keys,
        )
        self.tables[name] = table
        return table

    def drop_table(self, name: str) -> None:
        self.tables.pop(name, None)

    def table(self, name: str) -> MemoryTable:
        if name not in self.tables:
            raise TableMissingError(name)
        return self.tables[name]

    def reset(self) -> None:
        for table in self.tables.values():
            table.rows.clear()


def build_memory_database(settings: Settings | None = None) -> MemoryDatabase:
    """In-memory schema: only the primary booking table exists, like a fresh project."""
    settings = settings or Settings()
    booking_tables = settings.booking_tables or DEFAULT_BOOKING_TABLES
    database = MemoryDatabase()
    database.create_table(booking_tables[0], BOOKING_COLUMNS, unique_keys=("id", "booking_code", "order_id"))
    database.create_table(settings.passenger_table, PASSENGER_COLUMNS, unique_keys=("id",))
    database.create_table(settings.ticket_table, TICKET_COLUMNS, unique_keys=("ticket_number",))
    database.create_table(settings.activity_table, ACTIVITY_COLUMNS, unique_keys=("id",))
    return database


@dataclass
class Database:
    """Storage handle passed to every repository; one per runtime."""

    backend: StorageBackend
    client: Any = None
    memory: MemoryDatabase | None = None
    schema: dict[str, frozenset[str]] | None = None

    @classmethod
    def in_memory(cls, memory: MemoryDatabase | None = None) -> Database:
        return cls(backend=StorageBackend.MEMORY, memory=memory or build_memory_database())

    @classmethod
    def from_settings(cls, settings: Settings) -> Database:
        backend = get_storage_backend(settings.storage_backend)
        if backend == StorageBackend.MEMORY:
            return cls(backend=backend, memory=build_memory_database(settings))
        return cls(
            backend=backend,
            client=get_client(settings.supabase_url, settings.supabase_key),
            schema=fetch_table_columns(settings.supabase_url, settings.supabase_key),
        )


def _raise_storage_error(exc: Exception, table: str) -> NoReturn:
    """Translate a PostgREST error into the storage error it stands for."""
    code = str(getattr(exc, "code", "") or "")
    message = str(getattr(exc, "message", "") or exc)
    lowered = message.lower()
    if code in {"42P01", "42501", "PGRST205", "PGRST106"} or (
        "relation" in lowered and "does not exist" in lowered
    ) or "could not find the table" in lowered:
        raise TableMissingError(table) from exc
    if code in {"PGRST204", "42703"} or ("column" in lowered and (
        "does not exist" in lowered or "could not find" in lowered
    )):
        raise UnknownColumnError(table) from exc
    if code == "23505":
        raise DuplicateKeyError(table, "unique") from exc
    raise exc


class _BaseRepository:
    def __init__(self, db: Database, table_name: str) -> None:
        self.db = db
        self.backend = db.backend
        self.client = db.client
        self.table_name = table_name

    def _memory_table(self) -> MemoryTable:
        if self.db.memory is None:
            raise RuntimeError(f"Repository for '{self.table_name}' has no in-memory database to use")
        return self.db.memory.table(self.table_name)

    def _execute(self, query: Any) -> list[dict[str, Any]]:
        try:
            response = query.execute()
        except Exception as exc:
            _raise_storage_error(exc, self.table_name)
        return response.data or []

    def probe_columns(self) -> frozenset[str] | None:
        """Zero-row schema probe: the column set, or None when it cannot be introspected.

        Raises TableMissingError when the table is absent or inaccessible.
        """
        if self.backend == StorageBackend.MEMORY:
            table = self._memory_table()
            return table.columns if table.introspectable else None
        if self.db.schema is not None:
            if self.table_name not in self.db.schema:
                raise TableMissingError(self.table_name)
            return self.db.schema[self.table_name]
        rows = self._execute(self.client.table(self.table_name).select("*").limit(1))
        return frozenset(rows[0].keys()) if rows else None

    def reset(self) -> None:
        if self.backend == StorageBackend.MEMORY:
            self._memory_table().rows.clear()


class BookingTableRepository(_BaseRepository):
    def insert(self, row: dict[str, Any]) -> dict[str, Any]:
        if self.backend == StorageBackend.MEMORY:
            return self._memory_table().insert(row)
        rows = self._execute(self.client.table(self.table_name).insert(row))
        return (rows or [row])[0]

    def update_by_code(self, booking_code: str, values: dict[str, Any], code_column: str = "booking_code") -> dict[str, Any]:
        if self.backend == StorageBackend.MEMORY:
            updated = self._memory_table().update(values, **{code_column: booking_code})
            return updated[0] if updated else values
        rows = self._execute(self.client.table(self.table_name).update(values).eq(code_column, booking_code))
        return (rows or [values])[0]

    def find_by(self, column: str, value: str) -> dict[str, Any] | None:
        if self.backend == StorageBackend.MEMORY:
            rows = self._memory_table().find(**{column: value})
            return rows[0] if rows else None
        rows = self._execute(self.client.table(self.table_name).select("*").eq(column, value).limit(1))
        return rows[0] if rows else None


class PassengerRepository(_BaseRepository):
    def insert_many(self, rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
        if self.backend == StorageBackend.MEMORY:
            table = self._memory_table()
            for row in rows:
                table._check_columns(row)
            return [table.insert(row) for row in rows]
        return self._execute(self.client.table(self.table_name).insert(rows))

    def get_by_booking(self, booking_id: str) -> list[dict[str, Any]]:
        if self.backend == StorageBackend.MEMORY:
            rows = self._memory_table().find(booking_id=booking_id)
        else:
            rows = self._execute(
                self.client.table(self.table_name)
                .select("*")
                .eq("booking_id", booking_id)
                .order("passenger_order")
            )
        return sorted(rows, key=lambda row: int(row.get("passenger_order") or 0))


class TicketRepository(_BaseRepository):
    def upsert(self, row: dict[str, Any]) -> dict[str, Any]:
        if self.backend == StorageBackend.MEMORY:
            return self._memory_table().upsert(row, on_conflict="ticket_number")
        rows = self._execute(self.client.table(self.table_name).upsert(row, on_conflict="ticket_number"))
        return (rows or [row])[0]

    def update(self, ticket_number: str, values: dict[str, Any]) -> dict[str, Any] | None:
        if self.backend == StorageBackend.MEMORY:
            updated = self._memory_table().update(values, ticket_number=ticket_number)
            return updated[0] if updated else None
        rows = self._execute(
            self.client.table(self.table_name).update(values).eq("ticket_number", ticket_number)
        )
        return rows[0] if rows else None

    def get(self, ticket_number: str) -> dict[str, Any] | None:
        if self.backend == StorageBackend.MEMORY:
            rows = self._memory_table().find(ticket_number=ticket_number)
            return rows[0] if rows else None
        rows = self._execute(
            self.client.table(self.table_name).select("*").eq("ticket_number", ticket_number).limit(1)
        )
        return rows[0] if rows else None

    def find_by_booking_code(self, booking_code: str) -> dict[str, Any] | None:
        if self.backend == StorageBackend.MEMORY:
            rows = self._memory_table().find(booking_code=booking_code)
        else:
            rows = self._execute(
                self.client.table(self.table_name)
                .select("*")
                .eq("booking_code", booking_code)
                .order("created_at")
            )
        return rows[0] if rows else None


class ActivityLogRepository(_BaseRepository):
    def insert(self, row: dict[str, Any]) -> dict[str, Any]:
        if "id" not in row:
            row = {**row, "id": str(uuid4())}
        if self.backend == StorageBackend.MEMORY:
            return self._memory_table().insert(row)
        rows = self._execute(self.client.table(self.table_name).insert(row))
        return (rows or [row])[0]

    def get_by_booking_code(self, booking_code: str) -> list[dict[str, Any]]:
        if self.backend == StorageBackend.MEMORY:
            rows = self._memory_table().find(booking_code=booking_code)
            return sorted(rows, key=lambda item: item["timestamp"])
        return self._execute(
            self.client.table(self.table_name)
            .select("*")
            .eq("booking_code", booking_code)
            .order("timestamp")
        )
