"""Request DTOs for API endpoints.

Pydantic v2 models for API request validation.
These are the ONLY contracts between API and use cases.
"""

from typing import Literal

from pydantic import AliasChoices, BaseModel, Field

from clinic_inventory.core.entities.movement import MovementReason
from clinic_inventory.core.entities.product import ProductCategory


class CreateProductRequest(BaseModel):
    """Request to register a product.

    ``current_stock`` here is the opening balance; it is written to the
    ledger as an adjustment from zero.
    """

    name: str = Field(..., min_length=1, max_length=200, description="Product name")
    description: str | None = Field(default=None, description="Free-text description")
    category: ProductCategory = Field(..., description="Product category")
    supplier: str | None = Field(default=None, description="Usual supplier")
    unit_of_measure: str = Field(
        default="unidade",
        description="Unit stock is counted in",
        examples=["unidade", "caixa", "ml"],
    )
    unit_price: float | None = Field(default=None, ge=0, description="Current unit price")
    barcode: str | None = Field(default=None, description="EAN or internal barcode")
    min_stock: int = Field(default=0, ge=0, description="Low-stock threshold")
    current_stock: int = Field(default=0, ge=0, description="Opening balance")
    actor: str | None = Field(default=None, description="Who registered the product")


class UpdateProductRequest(BaseModel):
    """Request to edit product attributes.

    Only fields present in the body are changed. ``current_stock`` is
    accepted by the schema so it can be refused with a clear error:
    stock changes go through stock movements.
    """

    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    category: ProductCategory | None = None
    supplier: str | None = None
    unit_of_measure: str | None = None
    unit_price: float | None = Field(default=None, ge=0)
    barcode: str | None = None
    min_stock: int | None = Field(default=None, ge=0)
    is_active: bool | None = None
    current_stock: int | None = Field(
        default=None,
        description="Rejected: use /stock-movements/adjustment",
    )


class StockMovementRequest(BaseModel):
    """Request to record a receipt (in) or an issue (out)."""

    product_id: int = Field(..., description="Product ID")
    movement_type: Literal["in", "out"] = Field(
        ...,
        validation_alias=AliasChoices("type", "movement_type"),
        description="Direction of the movement; sent as type or movement_type",
    )
    quantity: int = Field(..., gt=0, description="Units moved")
    reason: MovementReason = Field(..., description="Why stock moved")
    description: str | None = Field(default=None, description="Free-text note")
    reference_number: str | None = Field(
        default=None, description="Invoice, requisition or PO number"
    )
    unit_cost: float | None = Field(default=None, ge=0, description="Cost per unit")
    actor: str | None = Field(default=None, description="Who recorded the movement")
    request_id: str | None = Field(
        default=None,
        min_length=1,
        max_length=128,
        description="Idempotency key; the Idempotency-Key header takes precedence",
    )


class StockAdjustmentRequest(BaseModel):
    """Request to set stock to a counted quantity."""

    product_id: int = Field(..., description="Product ID")
    new_quantity: int = Field(..., ge=0, description="Counted stock")
    reason: MovementReason = Field(
        default=MovementReason.ADJUSTMENT, description="Why stock was corrected"
    )
    description: str | None = Field(default=None, description="Free-text note")
    reference_number: str | None = Field(default=None, description="Count sheet reference")
    actor: str | None = Field(default=None, description="Who did the count")
    request_id: str | None = Field(
        default=None,
        min_length=1,
        max_length=128,
        description="Idempotency key; the Idempotency-Key header takes precedence",
    )
