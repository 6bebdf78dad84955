"""API route modules."""

from clinic_inventory.api.routes.health import router as health_router
from clinic_inventory.api.routes.products import router as products_router
from clinic_inventory.api.routes.stock import router as stock_router
from clinic_inventory.api.routes.stock_movements import router as stock_movements_router

__all__ = [
    "health_router",
    "products_router",
    "stock_movements_router",
    "stock_router",
]
