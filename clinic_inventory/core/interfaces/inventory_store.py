"""Abstract interface for inventory storage."""

from abc import ABC, abstractmethod
from datetime import datetime

from clinic_inventory.core.entities.movement import MovementFilter, StockMovement
from clinic_inventory.core.entities.product import Product, ProductCategory


class IInventoryStore(ABC):
    """Interface for product catalog and stock ledger persistence."""

    # --- Catalog ---

    @abstractmethod
    async def create_product(
        self, product: Product, opening: StockMovement | None = None
    ) -> tuple[Product, StockMovement | None]:
        """
        Insert a product and, when given, its opening ledger row.

        Both are written in one transaction; the opening row's product_id
        is filled in by the store.
        """
        pass

    @abstractmethod
    async def get_product(self, product_id: int) -> Product | None:
        """Get product by ID (active or not)."""
        pass

    @abstractmethod
    async def list_products(
        self,
        category: ProductCategory | None = None,
        is_active: bool | None = None,
        low_stock: bool | None = None,
        search: str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Product]:
        """List products ordered by name."""
        pass

    @abstractmethod
    async def update_product(self, product: Product) -> Product:
        """Persist non-stock attributes. Never writes current_stock."""
        pass

    @abstractmethod
    async def set_active(self, product_id: int, active: bool) -> bool:
        """Flip the active flag. Returns False if the product does not exist."""
        pass

    @abstractmethod
    async def summarize_products(self) -> dict[str, float]:
        """
        Aggregate active products in one statement.

        Keys: total_products, low_stock_products, out_of_stock_products,
        total_value.
        """
        pass

    # --- Ledger ---

    @abstractmethod
    async def append_movement(
        self, movement: StockMovement, expected_stock: int
    ) -> StockMovement:
        """
        Append a ledger row and move current_stock to movement.new_stock.

        Atomic compare-and-swap: applies only while the product is active and
        its current_stock still equals ``expected_stock``; otherwise raises
        StaleStockError and writes nothing. Raises DuplicateRequestError,
        also writing nothing, when request_id is already in the ledger.
        """
        pass

    @abstractmethod
    async def get_movement_by_request_id(self, request_id: str) -> StockMovement | None:
        """Find the ledger row recorded for an idempotency key."""
        pass

    @abstractmethod
    async def list_movements(
        self,
        filters: MovementFilter,
        limit: int = 50,
        before_id: int | None = None,
    ) -> list[StockMovement]:
        """Ledger rows matching filters, newest first, with id < before_id."""
        pass

    @abstractmethod
    async def get_ledger(self, product_id: int) -> list[StockMovement]:
        """Every ledger row of a product, oldest first."""
        pass

    @abstractmethod
    async def stock_as_of(
        self, product_id: int, as_of: datetime
    ) -> tuple[int, int, int | None]:
        """(sum of deltas, row count, last row id) for rows created at or before as_of."""
        pass

    @abstractmethod
    async def count_movements_since(self, since: datetime) -> int:
        """Number of ledger rows created at or after ``since``."""
        pass

    @abstractmethod
    async def outflow_since(self, since: datetime) -> dict[int, int]:
        """Units issued per product (out movements) since ``since``."""
        pass
