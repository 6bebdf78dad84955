"""Application use cases."""

from clinic_inventory.application.use_cases.manage_products import (
    CreateProductUseCase,
    UpdateProductUseCase,
)
from clinic_inventory.application.use_cases.record_movement import (
    AdjustStockUseCase,
    RecordStockMovementUseCase,
)

__all__ = [
    "CreateProductUseCase",
    "UpdateProductUseCase",
    "RecordStockMovementUseCase",
    "AdjustStockUseCase",
]
