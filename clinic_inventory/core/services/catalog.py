"""
Product catalog service.

Owns product identity and classification. Stock is never edited here:
an opening quantity becomes an adjustment row in the ledger, written in
the same transaction as the product itself.
"""

from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from clinic_inventory.config import get_logger
from clinic_inventory.core.entities.movement import (
    MovementFilter,
    MovementReason,
    MovementType,
    StockMovement,
)
from clinic_inventory.core.entities.product import (
    EDITABLE_FIELDS,
    Product,
    ProductCategory,
)
from clinic_inventory.core.exceptions import (
    InvalidOperationError,
    ProductNotFoundError,
    ValidationError,
)
from clinic_inventory.core.interfaces.inventory_store import IInventoryStore
from clinic_inventory.core.timeutils import utcnow

logger = get_logger(__name__)

DEFAULT_OPENING_DESCRIPTION = "Opening balance"


@dataclass
class ProductDetail:
    """A product together with its latest ledger rows."""

    product: Product
    recent_movements: list[StockMovement] = field(default_factory=list)


def _validate_product(data: dict[str, Any]) -> Product:
    try:
        return Product.model_validate(data)
    except PydanticValidationError as e:
        first = e.errors()[0]
        loc = first["loc"]
        raise ValidationError(
            field=str(loc[-1]) if loc else "product",
            message=first["msg"],
            value=first.get("input"),
        ) from e


def _check_attributes(product: Product) -> None:
    if not product.name or not product.name.strip():
        raise ValidationError("name", "is required", product.name)
    if product.min_stock < 0:
        raise ValidationError("min_stock", "must be zero or greater", product.min_stock)
    if product.unit_price is not None and product.unit_price < 0:
        raise ValidationError("unit_price", "must be zero or greater", product.unit_price)


class ProductCatalogService:
    """Create, edit, deactivate and look up products."""

    def __init__(
        self,
        store: IInventoryStore,
        opening_description: str = DEFAULT_OPENING_DESCRIPTION,
    ) -> None:
        self._store = store
        self._opening_description = opening_description

    async def create_product(
        self,
        name: str,
        category: ProductCategory | str,
        *,
        description: str | None = None,
        supplier: str | None = None,
        unit_of_measure: str = "unidade",
        unit_price: float | None = None,
        barcode: str | None = None,
        min_stock: int = 0,
        current_stock: int = 0,
        actor: str | None = None,
    ) -> Product:
        """
        Register a product.

        A positive ``current_stock`` is the opening balance: it is recorded
        as an adjustment movement from 0 so the ledger sums to the stock
        from the first row on.
        """
        if current_stock is None or current_stock < 0:
            raise ValidationError("current_stock", "must be zero or greater", current_stock)

        product = _validate_product(
            {
                "name": name.strip() if isinstance(name, str) else name,
                "category": category,
                "description": description,
                "supplier": supplier,
                "unit_of_measure": unit_of_measure or "unidade",
                "unit_price": unit_price,
                "barcode": barcode,
                "min_stock": min_stock,
                "current_stock": current_stock,
            }
        )
        _check_attributes(product)

        opening = None
        if current_stock > 0:
            opening = StockMovement(
                product_id=0,  # assigned by the store
                movement_type=MovementType.ADJUSTMENT,
                quantity=current_stock,
                delta=current_stock,
                previous_stock=0,
                new_stock=current_stock,
                reason=MovementReason.ADJUSTMENT,
                description=self._opening_description,
                actor=actor,
            )

        created, opening_row = await self._store.create_product(product, opening)
        logger.info(
            "product_created",
            product_id=created.id,
            name=created.name,
            category=created.category.value,
            opening_stock=created.current_stock,
            opening_movement_id=opening_row.id if opening_row else None,
        )
        return created

    async def update_product(self, product_id: int, **changes: Any) -> Product:
        """
        Change non-stock attributes.

        Raises:
            InvalidOperationError: if ``current_stock`` is among the changes
            ValidationError: on unknown fields or invalid values
            ProductNotFoundError: if the product does not exist
        """
        if "current_stock" in changes:
            raise InvalidOperationError(
                "update_product",
                "current_stock can only change through stock movements",
            )
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            field_name = sorted(unknown)[0]
            raise ValidationError(field_name, "is not an editable product field")

        product = await self._store.get_product(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)

        if not changes:
            return product

        data = product.model_dump()
        data.update(changes)
        data["updated_at"] = utcnow()
        updated = _validate_product(data)
        _check_attributes(updated)

        saved = await self._store.update_product(updated)
        logger.info(
            "product_updated",
            product_id=product_id,
            fields=sorted(changes),
        )
        return saved

    async def deactivate(self, product_id: int) -> Product:
        """Soft-delete a product. Its ledger stays readable."""
        found = await self._store.set_active(product_id, False)
        if not found:
            raise ProductNotFoundError(product_id)
        logger.info("product_deactivated", product_id=product_id)
        product = await self._store.get_product(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        return product

    async def get_product(self, product_id: int, movements: int = 10) -> ProductDetail:
        product = await self._store.get_product(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        recent: list[StockMovement] = []
        if movements > 0:
            recent = await self._store.list_movements(
                MovementFilter(product_id=product_id), limit=movements
            )
        return ProductDetail(product=product, recent_movements=recent)

    async def list_products(
        self,
        category: ProductCategory | None = None,
        is_active: bool | None = None,
        low_stock: bool | None = None,
        search: str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Product]:
        return await self._store.list_products(
            category=category,
            is_active=is_active,
            low_stock=low_stock,
            search=search.strip() if search else None,
            limit=limit,
            offset=offset,
        )
