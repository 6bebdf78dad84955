"""
Core business logic services.

Layer-pure services that depend only on:
- clinic_inventory/core/entities/*
- clinic_inventory/core/interfaces/*
- clinic_inventory/core/exceptions.py

NO infrastructure imports. All dependencies injected via constructor.
"""

from clinic_inventory.core.services.audit import AuditQueryService
from clinic_inventory.core.services.catalog import ProductCatalogService, ProductDetail
from clinic_inventory.core.services.locks import ProductLockRegistry
from clinic_inventory.core.services.reconciliation import (
    MovementResult,
    ReconciliationEngine,
)

__all__ = [
    # Catalog
    "ProductCatalogService",
    "ProductDetail",
    # Reconciliation
    "ReconciliationEngine",
    "MovementResult",
    "ProductLockRegistry",
    # Audit
    "AuditQueryService",
]
