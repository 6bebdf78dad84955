"""Core domain layer - entities, interfaces, services and exceptions."""

from clinic_inventory.core import entities, exceptions, interfaces

__all__ = ["entities", "interfaces", "exceptions"]
