"""Core domain entities."""

from clinic_inventory.core.entities.audit import (
    LowStockProduct,
    ProductReconciliation,
    ReconciliationReport,
    StockSnapshot,
    StockSummary,
)
from clinic_inventory.core.entities.movement import (
    MovementCommand,
    MovementFilter,
    MovementPage,
    MovementReason,
    MovementType,
    StockAdjustment,
    StockIn,
    StockMovement,
    StockOut,
    build_command,
)
from clinic_inventory.core.entities.product import (
    EDITABLE_FIELDS,
    Product,
    ProductCategory,
    StockStatus,
    classify_stock,
    get_stock_status,
)

__all__ = [
    # Product entities
    "Product",
    "ProductCategory",
    "StockStatus",
    "EDITABLE_FIELDS",
    "classify_stock",
    "get_stock_status",
    # Ledger entities
    "StockMovement",
    "MovementType",
    "MovementReason",
    "MovementCommand",
    "StockIn",
    "StockOut",
    "StockAdjustment",
    "MovementFilter",
    "MovementPage",
    "build_command",
    # Audit projections
    "StockSummary",
    "LowStockProduct",
    "StockSnapshot",
    "ProductReconciliation",
    "ReconciliationReport",
]
