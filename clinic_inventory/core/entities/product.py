"""Product catalog entities and stock-health classification."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from clinic_inventory.core.timeutils import utcnow


class ProductCategory(str, Enum):
    """Classification of a stock-keeping item."""

    MEDICATION = "medication"
    MEDICAL_SUPPLY = "medical_supply"
    EQUIPMENT = "equipment"
    CONSUMABLE = "consumable"
    INSTRUMENT = "instrument"
    OTHER = "other"


class StockStatus(str, Enum):
    """Stock health, derived from current and minimum stock."""

    NORMAL = "normal"
    LOW = "low"
    OUT_OF_STOCK = "out_of_stock"


def classify_stock(current_stock: int, min_stock: int) -> StockStatus:
    """
    Classify stock health.

    out_of_stock when nothing is left, low while at or below the
    configured minimum, normal otherwise.
    """
    if current_stock == 0:
        return StockStatus.OUT_OF_STOCK
    if current_stock <= min_stock:
        return StockStatus.LOW
    return StockStatus.NORMAL


# Attributes a catalog edit may change. Stock only moves through the ledger.
EDITABLE_FIELDS = frozenset(
    {
        "name",
        "description",
        "category",
        "supplier",
        "unit_of_measure",
        "unit_price",
        "barcode",
        "min_stock",
        "is_active",
    }
)


class Product(BaseModel):
    """A stock-keeping item with its materialized stock level."""

    id: int | None = None
    name: str
    description: str | None = None
    category: ProductCategory
    supplier: str | None = None
    unit_of_measure: str = "unidade"
    unit_price: float | None = None
    barcode: str | None = None
    is_active: bool = True
    min_stock: int = 0
    current_stock: int = 0  # written only by the reconciliation engine
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def stock_status(self) -> StockStatus:
        return classify_stock(self.current_stock, self.min_stock)

    @property
    def stock_value(self) -> float:
        """Valuation at the current unit price."""
        return self.current_stock * (self.unit_price or 0.0)


def get_stock_status(product: Product) -> StockStatus:
    """Stock status of a product; pure function of its stock fields."""
    return classify_stock(product.current_stock, product.min_stock)
