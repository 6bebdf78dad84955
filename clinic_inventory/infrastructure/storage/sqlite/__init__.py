"""SQLite storage implementations."""

from clinic_inventory.infrastructure.storage.sqlite.connection import (
    ConnectionPool,
    close_pool,
    get_connection,
    get_pool,
    get_transaction,
)
from clinic_inventory.infrastructure.storage.sqlite.inventory_store import (
    SQLiteInventoryStore,
)

# Type alias for convenience
InventoryStore = SQLiteInventoryStore

# Singleton instance
_inventory_store: SQLiteInventoryStore | None = None


async def get_inventory_store() -> SQLiteInventoryStore:
    """Get singleton inventory store instance."""
    global _inventory_store
    if _inventory_store is None:
        _inventory_store = SQLiteInventoryStore()
    return _inventory_store


def reset_inventory_store() -> None:
    """Drop the singleton (for testing)."""
    global _inventory_store
    _inventory_store = None


__all__ = [
    # Connection
    "ConnectionPool",
    "get_pool",
    "close_pool",
    "get_connection",
    "get_transaction",
    # Store
    "SQLiteInventoryStore",
    "InventoryStore",
    "get_inventory_store",
    "reset_inventory_store",
]
