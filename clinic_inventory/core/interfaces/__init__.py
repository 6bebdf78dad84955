"""Core interfaces (ports) for dependency injection."""

from clinic_inventory.core.interfaces.inventory_store import IInventoryStore

__all__ = [
    "IInventoryStore",
]
