"""Infrastructure layer implementations."""

from clinic_inventory.infrastructure import storage

__all__ = ["storage"]
