from .adaptive import AdaptivePersistenceLayer, StoreResult, StoredBooking, TableAdapter

__all__ = ["AdaptivePersistenceLayer", "StoreResult", "StoredBooking", "TableAdapter"]
