from .repositories import (
    ActivityLogRepository,
    BookingTableRepository,
    Database,
    DuplicateKeyError,
    MemoryDatabase,
    PassengerRepository,
    StorageBackend,
    TableMissingError,
    TicketRepository,
    UnknownColumnError,
    get_storage_backend,
)

__all__ = [
    "ActivityLogRepository",
    "BookingTableRepository",
    "Database",
    "DuplicateKeyError",
    "MemoryDatabase",
    "PassengerRepository",
    "StorageBackend",
    "TableMissingError",
    "TicketRepository",
    "UnknownColumnError",
    "get_storage_backend",
]
