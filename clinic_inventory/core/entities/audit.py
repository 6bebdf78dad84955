"""Read-side projections over the catalog and the ledger."""

from datetime import datetime

from pydantic import BaseModel, Field

from clinic_inventory.core.entities.product import ProductCategory, StockStatus
from clinic_inventory.core.timeutils import utcnow


class StockSummary(BaseModel):
    """
    Dashboard aggregates across active products.

    Each product's figures are consistent with its own stock at scan time;
    the totals are not a transactional snapshot across products.
    """

    total_products: int = 0
    low_stock_products: int = 0  # current_stock <= min_stock, out of stock included
    out_of_stock_products: int = 0
    total_value: float = 0.0  # current_stock * current unit_price
    recent_movements: int = 0
    pending_alerts: int = 0
    generated_at: datetime = Field(default_factory=utcnow)


class LowStockProduct(BaseModel):
    """A product at or below its minimum stock."""

    id: int
    name: str
    category: ProductCategory
    current_stock: int
    min_stock: int
    stock_status: StockStatus
    days_until_out: float | None = None


class StockSnapshot(BaseModel):
    """Stock of one product replayed from the ledger at a past instant."""

    product_id: int
    as_of: datetime
    stock: int
    movement_count: int
    last_movement_id: int | None = None
    stock_status: StockStatus


class ProductReconciliation(BaseModel):
    """Ledger-versus-materialized check for one product."""

    product_id: int
    current_stock: int
    ledger_stock: int
    movement_count: int
    issues: list[str] = Field(default_factory=list)

    @property
    def consistent(self) -> bool:
        return not self.issues


class ReconciliationReport(BaseModel):
    """Outcome of verifying materialized stock against the ledger."""

    products: list[ProductReconciliation] = Field(default_factory=list)
    generated_at: datetime = Field(default_factory=utcnow)

    @property
    def checked(self) -> int:
        return len(self.products)

    @property
    def inconsistent(self) -> list[ProductReconciliation]:
        return [p for p in self.products if not p.consistent]
