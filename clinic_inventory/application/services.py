"""
Service factory functions for dependency injection.

This module wires the SQLite store to the core services. Use cases and
routes should import from here.

Clean Architecture: Application layer orchestrates DI, not core layer.
"""

from typing import TYPE_CHECKING

from clinic_inventory.config import get_settings
from clinic_inventory.core.services import (
    AuditQueryService,
    ProductCatalogService,
    ProductLockRegistry,
    ReconciliationEngine,
)

if TYPE_CHECKING:
    from clinic_inventory.core.interfaces import IInventoryStore


# Singleton service instances
_catalog_service: ProductCatalogService | None = None
_reconciliation_engine: ReconciliationEngine | None = None
_audit_service: AuditQueryService | None = None

# One lock registry per process so every engine instance queues on the same locks
_lock_registry: ProductLockRegistry | None = None


async def _default_store() -> "IInventoryStore":
    # Lazy import infrastructure to avoid circular imports
    from clinic_inventory.infrastructure.storage.sqlite import get_inventory_store

    return await get_inventory_store()


def get_lock_registry() -> ProductLockRegistry:
    global _lock_registry
    if _lock_registry is None:
        _lock_registry = ProductLockRegistry()
    return _lock_registry


async def get_catalog_service(
    store: "IInventoryStore | None" = None,
) -> ProductCatalogService:
    """
    Get or create ProductCatalogService instance.

    Args:
        store: Optional store override; overrides are not cached

    Returns:
        Configured ProductCatalogService
    """
    global _catalog_service

    if _catalog_service is not None and store is None:
        return _catalog_service

    settings = get_settings()
    service = ProductCatalogService(
        store=store or await _default_store(),
        opening_description=settings.ledger.opening_balance_description,
    )

    if store is None:
        _catalog_service = service

    return service


async def get_reconciliation_engine(
    store: "IInventoryStore | None" = None,
) -> ReconciliationEngine:
    """
    Get or create the ReconciliationEngine.

    All engines share the process-wide lock registry.

    Args:
        store: Optional store override; overrides are not cached

    Returns:
        Configured ReconciliationEngine
    """
    global _reconciliation_engine

    if _reconciliation_engine is not None and store is None:
        return _reconciliation_engine

    settings = get_settings()
    engine = ReconciliationEngine(
        store=store or await _default_store(),
        locks=get_lock_registry(),
        max_retries=settings.ledger.cas_max_retries,
    )

    if store is None:
        _reconciliation_engine = engine

    return engine


async def get_audit_service(
    store: "IInventoryStore | None" = None,
) -> AuditQueryService:
    """
    Get or create AuditQueryService instance.

    Args:
        store: Optional store override; overrides are not cached

    Returns:
        Configured AuditQueryService
    """
    global _audit_service

    if _audit_service is not None and store is None:
        return _audit_service

    settings = get_settings()
    service = AuditQueryService(
        store=store or await _default_store(),
        recent_window_days=settings.ledger.recent_window_days,
        default_limit=settings.ledger.history_default_limit,
        max_limit=settings.ledger.history_max_limit,
    )

    if store is None:
        _audit_service = service

    return service


def reset_services() -> None:
    """
    Reset all singleton services.

    Useful for testing to ensure clean state.
    """
    global _catalog_service, _reconciliation_engine, _audit_service, _lock_registry

    _catalog_service = None
    _reconciliation_engine = None
    _audit_service = None
    _lock_registry = None
