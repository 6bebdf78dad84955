"""
Application layer - Use cases, DTOs, and service factories.

This layer orchestrates business logic by:
1. Defining request/response DTOs for API contracts
2. Implementing use cases that coordinate core services
3. Providing factory functions for dependency injection

Use cases are the only entry point for API writes.
"""

from clinic_inventory.application.dto.requests import (
    CreateProductRequest,
    StockAdjustmentRequest,
    StockMovementRequest,
    UpdateProductRequest,
)
from clinic_inventory.application.dto.responses import (
    ErrorResponse,
    HealthResponse,
    MovementResultResponse,
    ProductResponse,
)
from clinic_inventory.application.services import (
    get_audit_service,
    get_catalog_service,
    get_reconciliation_engine,
    reset_services,
)
from clinic_inventory.application.use_cases import (
    AdjustStockUseCase,
    CreateProductUseCase,
    RecordStockMovementUseCase,
    UpdateProductUseCase,
)

__all__ = [
    # Request DTOs
    "CreateProductRequest",
    "UpdateProductRequest",
    "StockMovementRequest",
    "StockAdjustmentRequest",
    # Response DTOs
    "ProductResponse",
    "MovementResultResponse",
    "HealthResponse",
    "ErrorResponse",
    # Service factories
    "get_catalog_service",
    "get_reconciliation_engine",
    "get_audit_service",
    "reset_services",
    # Use cases
    "CreateProductUseCase",
    "UpdateProductUseCase",
    "RecordStockMovementUseCase",
    "AdjustStockUseCase",
]
