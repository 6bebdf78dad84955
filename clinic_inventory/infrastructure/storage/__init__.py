"""Storage infrastructure implementations."""

from clinic_inventory.infrastructure.storage.sqlite import (
    SQLiteInventoryStore,
    close_pool,
    get_connection,
    get_inventory_store,
    get_pool,
    get_transaction,
)

__all__ = [
    # SQLite store
    "SQLiteInventoryStore",
    "get_inventory_store",
    # Connection pool
    "get_pool",
    "close_pool",
    "get_connection",
    "get_transaction",
]
