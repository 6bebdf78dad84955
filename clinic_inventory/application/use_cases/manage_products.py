"""Product catalog use cases: register and edit products."""

from clinic_inventory.application.dto.mappers import product_to_response
from clinic_inventory.application.dto.requests import (
    CreateProductRequest,
    UpdateProductRequest,
)
from clinic_inventory.application.dto.responses import ProductResponse
from clinic_inventory.config import get_logger
from clinic_inventory.core.entities.product import Product
from clinic_inventory.core.services import ProductCatalogService

logger = get_logger(__name__)


class _CatalogUseCase:
    def __init__(self, catalog: ProductCatalogService | None = None):
        self._catalog = catalog

    async def _get_catalog(self) -> ProductCatalogService:
        if self._catalog is None:
            from clinic_inventory.application.services import get_catalog_service

            self._catalog = await get_catalog_service()
        return self._catalog

    def to_response(self, result: Product) -> ProductResponse:
        """Convert result to API response."""
        return product_to_response(result)


class CreateProductUseCase(_CatalogUseCase):
    """Register a product, recording any opening stock in the ledger."""

    async def execute(self, request: CreateProductRequest) -> Product:
        logger.info(
            "create_product_started",
            name=request.name,
            category=request.category.value,
            opening_stock=request.current_stock,
        )
        catalog = await self._get_catalog()
        return await catalog.create_product(
            name=request.name,
            category=request.category,
            description=request.description,
            supplier=request.supplier,
            unit_of_measure=request.unit_of_measure,
            unit_price=request.unit_price,
            barcode=request.barcode,
            min_stock=request.min_stock,
            current_stock=request.current_stock,
            actor=request.actor,
        )


class UpdateProductUseCase(_CatalogUseCase):
    """Edit non-stock attributes of a product."""

    async def execute(self, product_id: int, request: UpdateProductRequest) -> Product:
        # Only fields the caller actually sent; current_stock is kept so the
        # catalog can refuse it
        changes = request.model_dump(exclude_unset=True)
        logger.info("update_product_started", product_id=product_id, fields=sorted(changes))
        catalog = await self._get_catalog()
        return await catalog.update_product(product_id, **changes)
