"""Response DTOs for API endpoints.

Pydantic v2 models for API response serialization.
These are the ONLY contracts between use cases and API layer.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


# --- Catalog ---


class ProductResponse(BaseModel):
    """Product with its derived stock status."""

    id: int
    name: str
    description: str | None = None
    category: str
    supplier: str | None = None
    unit_of_measure: str
    unit_price: float | None = None
    barcode: str | None = None
    is_active: bool
    min_stock: int
    current_stock: int
    stock_status: str = Field(..., description="normal, low or out_of_stock")
    stock_value: float = Field(..., description="current_stock * unit_price")
    created_at: datetime
    updated_at: datetime


# --- Ledger ---


class StockMovementResponse(BaseModel):
    """One ledger row."""

    id: int
    product_id: int
    product_name: str | None = None
    movement_type: str
    quantity: int
    delta: int
    previous_stock: int
    new_stock: int
    reason: str
    description: str | None = None
    reference_number: str | None = None
    unit_cost: float | None = None
    total_cost: float | None = None
    actor: str | None = None
    request_id: str | None = None
    created_at: datetime


class ProductDetailResponse(ProductResponse):
    """Product with its latest movements."""

    recent_movements: list[StockMovementResponse] = Field(default_factory=list)


class MovementResultResponse(BaseModel):
    """Outcome of recording a movement or adjustment."""

    movement: StockMovementResponse
    current_stock: int
    stock_status: str
    replayed: bool = Field(
        default=False,
        description="True when the idempotency key matched an earlier movement",
    )


class MovementPageResponse(BaseModel):
    """Page of ledger rows, newest first."""

    items: list[StockMovementResponse]
    next_cursor: int | None = Field(
        default=None, description="Pass as before_id to fetch the next page"
    )


# --- Audit ---


class StockSummaryResponse(BaseModel):
    """Dashboard totals over active products."""

    total_products: int
    low_stock_products: int
    out_of_stock_products: int
    total_value: float
    recent_movements: int
    pending_alerts: int
    generated_at: datetime


class LowStockProductResponse(BaseModel):
    """Product at or below its minimum."""

    id: int
    name: str
    category: str
    current_stock: int
    min_stock: int
    stock_status: str
    days_until_out: float | None = None


class StockSnapshotResponse(BaseModel):
    """Stock replayed from the ledger at a past instant."""

    product_id: int
    as_of: datetime
    stock: int
    movement_count: int
    last_movement_id: int | None = None
    stock_status: str


class ProductReconciliationResponse(BaseModel):
    product_id: int
    current_stock: int
    ledger_stock: int
    movement_count: int
    consistent: bool
    issues: list[str] = Field(default_factory=list)


class ReconciliationReportResponse(BaseModel):
    """Materialized stock checked against the ledger."""

    checked: int
    inconsistent: int
    products: list[ProductReconciliationResponse]
    generated_at: datetime


# --- Health / errors ---


class ProviderHealthResponse(BaseModel):
    """Dependency health status."""

    name: str
    available: bool
    latency_ms: float | None = None
    error: str | None = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str = "1.0.0"
    uptime_seconds: float
    database: ProviderHealthResponse | None = None


class ErrorResponse(BaseModel):
    """Standardized error response DTO.

    Every error response includes:
    - error_code: machine-readable code (e.g. INSUFFICIENT_STOCK)
    - message: human-readable description
    - hint: suggested recovery action
    - path: request path that triggered the error
    """

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error description")
    hint: str | None = Field(default=None, description="Suggested recovery action")
    detail: str | None = Field(default=None, description="Additional details")
    details: dict[str, Any] = Field(
        default_factory=dict, description="Structured error context"
    )
    path: str | None = Field(default=None, description="Request path")
    timestamp: datetime = Field(default_factory=datetime.now)
