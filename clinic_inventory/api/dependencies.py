"""
Dependency injection container for FastAPI.

Provides service and use case instances to route handlers. Tests swap
any of these through ``app.dependency_overrides``.
"""

from functools import lru_cache

from clinic_inventory.application.services import (
    get_audit_service,
    get_catalog_service,
)
from clinic_inventory.application.use_cases import (
    AdjustStockUseCase,
    CreateProductUseCase,
    RecordStockMovementUseCase,
    UpdateProductUseCase,
)
from clinic_inventory.config import Settings, get_settings
from clinic_inventory.core.services import (
    AuditQueryService,
    ProductCatalogService,
)


@lru_cache
def get_app_settings() -> Settings:
    """Get cached application settings."""
    return get_settings()


# Service dependencies
async def get_catalog() -> ProductCatalogService:
    """Get product catalog service."""
    return await get_catalog_service()


async def get_audit() -> AuditQueryService:
    """Get audit query service."""
    return await get_audit_service()


# Use case dependencies
def get_create_product_use_case() -> CreateProductUseCase:
    """Get create product use case."""
    return CreateProductUseCase()


def get_update_product_use_case() -> UpdateProductUseCase:
    """Get update product use case."""
    return UpdateProductUseCase()


def get_record_movement_use_case() -> RecordStockMovementUseCase:
    """Get record stock movement use case."""
    return RecordStockMovementUseCase()


def get_adjust_stock_use_case() -> AdjustStockUseCase:
    """Get stock adjustment use case."""
    return AdjustStockUseCase()
