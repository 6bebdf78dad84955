"""Data transfer objects for API contracts."""

from clinic_inventory.application.dto.requests import (
    CreateProductRequest,
    StockAdjustmentRequest,
    StockMovementRequest,
    UpdateProductRequest,
)
from clinic_inventory.application.dto.responses import (
    ErrorResponse,
    HealthResponse,
    LowStockProductResponse,
    MovementPageResponse,
    MovementResultResponse,
    ProductDetailResponse,
    ProductReconciliationResponse,
    ProductResponse,
    ProviderHealthResponse,
    ReconciliationReportResponse,
    StockMovementResponse,
    StockSnapshotResponse,
    StockSummaryResponse,
)

__all__ = [
    # Requests
    "CreateProductRequest",
    "UpdateProductRequest",
    "StockMovementRequest",
    "StockAdjustmentRequest",
    # Responses
    "ProductResponse",
    "ProductDetailResponse",
    "StockMovementResponse",
    "MovementResultResponse",
    "MovementPageResponse",
    "StockSummaryResponse",
    "LowStockProductResponse",
    "StockSnapshotResponse",
    "ProductReconciliationResponse",
    "ReconciliationReportResponse",
    "ProviderHealthResponse",
    "HealthResponse",
    "ErrorResponse",
]
