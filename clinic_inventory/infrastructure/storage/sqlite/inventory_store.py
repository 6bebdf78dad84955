"""SQLite implementation of the product catalog and stock ledger."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime

import aiosqlite

from clinic_inventory.config import get_logger
from clinic_inventory.core.entities.movement import (
    MovementFilter,
    MovementReason,
    MovementType,
    StockMovement,
)
from clinic_inventory.core.entities.product import Product, ProductCategory
from clinic_inventory.core.exceptions import (
    DatabaseError,
    DuplicateRequestError,
    ProductNotFoundError,
    StaleStockError,
)
from clinic_inventory.core.interfaces.inventory_store import IInventoryStore
from clinic_inventory.core.timeutils import from_db_timestamp, to_db_timestamp, utcnow
from clinic_inventory.infrastructure.storage.sqlite.connection import (
    ConnectionPool,
    get_pool,
)

logger = get_logger(__name__)

_MOVEMENT_COLUMNS = """
    m.id, m.product_id, m.movement_type, m.quantity, m.delta,
    m.previous_stock, m.new_stock, m.reason, m.description,
    m.reference_number, m.unit_cost, m.total_cost, m.actor,
    m.request_id, m.created_at, p.name AS product_name
"""

_SEARCH_CLAUSE = (
    "(name LIKE ? ESCAPE '\\' OR description LIKE ? ESCAPE '\\'"
    " OR supplier LIKE ? ESCAPE '\\' OR barcode LIKE ? ESCAPE '\\')"
)


def _escape_like(text: str) -> str:
    """Make ``%`` and ``_`` in user input match literally."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class SQLiteInventoryStore(IInventoryStore):
    """
    SQLite implementation of catalog and ledger storage.

    Uses the global connection pool unless one is passed in.
    """

    def __init__(self, pool: ConnectionPool | None = None) -> None:
        self._pool = pool

    async def _get_pool(self) -> ConnectionPool:
        return self._pool or await get_pool()

    @asynccontextmanager
    async def _connection(self, operation: str) -> AsyncIterator[aiosqlite.Connection]:
        pool = await self._get_pool()
        try:
            async with pool.acquire() as conn:
                yield conn
        except aiosqlite.Error as e:
            logger.error("database_error", operation=operation, error=str(e))
            raise DatabaseError(operation, str(e)) from e

    @asynccontextmanager
    async def _transaction(self, operation: str) -> AsyncIterator[aiosqlite.Connection]:
        pool = await self._get_pool()
        try:
            async with pool.transaction() as conn:
                yield conn
        except aiosqlite.Error as e:
            logger.error("database_error", operation=operation, error=str(e))
            raise DatabaseError(operation, str(e)) from e

    # --- Catalog ---

    async def create_product(
        self, product: Product, opening: StockMovement | None = None
    ) -> tuple[Product, StockMovement | None]:
        """Insert a product and its opening ledger row in one transaction."""
        now = utcnow()
        opening_row = None
        async with self._transaction("create_product") as conn:
            cursor = await conn.execute(
                """
                INSERT INTO products (
                    name, description, category, supplier, unit_of_measure,
                    unit_price, barcode, is_active, min_stock, current_stock,
                    created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    product.name,
                    product.description,
                    product.category.value,
                    product.supplier,
                    product.unit_of_measure,
                    product.unit_price,
                    product.barcode,
                    int(product.is_active),
                    product.min_stock,
                    product.current_stock,
                    to_db_timestamp(now),
                    to_db_timestamp(now),
                ),
            )
            product_id = cursor.lastrowid

            if opening is not None:
                opening_row = await self._insert_movement(
                    conn, opening.model_copy(update={"product_id": product_id}), now
                )

        created = product.model_copy(
            update={"id": product_id, "created_at": now, "updated_at": now}
        )
        logger.info("product_stored", product_id=product_id)
        return created, opening_row

    async def get_product(self, product_id: int) -> Product | None:
        async with self._connection("get_product") as conn:
            cursor = await conn.execute(
                "SELECT * FROM products WHERE id = ?", (product_id,)
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_product(row)

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
        conditions = []
        params: list = []

        if category is not None:
            conditions.append("category = ?")
            params.append(ProductCategory(category).value)
        if is_active is not None:
            conditions.append("is_active = ?")
            params.append(int(is_active))
        # Same boundary as classify_stock: low and out_of_stock both satisfy it
        if low_stock is True:
            conditions.append("current_stock <= min_stock")
        elif low_stock is False:
            conditions.append("current_stock > min_stock")
        if search:
            conditions.append(_SEARCH_CLAUSE)
            pattern = f"%{_escape_like(search)}%"
            params.extend([pattern] * 4)

        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
        params.extend([limit, offset])

        async with self._connection("list_products") as conn:
            cursor = await conn.execute(
                f"""
                SELECT * FROM products
                {where}
                ORDER BY name COLLATE NOCASE, id
                LIMIT ? OFFSET ?
                """,
                params,
            )
            rows = await cursor.fetchall()
            return [self._row_to_product(row) for row in rows]

    async def update_product(self, product: Product) -> Product:
        """Persist non-stock attributes. current_stock is left untouched."""
        now = utcnow()
        async with self._transaction("update_product") as conn:
            cursor = await conn.execute(
                """
                UPDATE products SET
                    name = ?,
                    description = ?,
                    category = ?,
                    supplier = ?,
                    unit_of_measure = ?,
                    unit_price = ?,
                    barcode = ?,
                    is_active = ?,
                    min_stock = ?,
                    updated_at = ?
                WHERE id = ?
                """,
                (
                    product.name,
                    product.description,
                    product.category.value,
                    product.supplier,
                    product.unit_of_measure,
                    product.unit_price,
                    product.barcode,
                    int(product.is_active),
                    product.min_stock,
                    to_db_timestamp(now),
                    product.id,
                ),
            )
            if cursor.rowcount == 0:
                raise ProductNotFoundError(product.id or 0)

            cursor = await conn.execute(
                "SELECT * FROM products WHERE id = ?", (product.id,)
            )
            row = await cursor.fetchone()
            return self._row_to_product(row)

    async def set_active(self, product_id: int, active: bool) -> bool:
        async with self._transaction("set_active") as conn:
            cursor = await conn.execute(
                "UPDATE products SET is_active = ?, updated_at = ? WHERE id = ?",
                (int(active), to_db_timestamp(utcnow()), product_id),
            )
            return cursor.rowcount > 0

    async def summarize_products(self) -> dict[str, float]:
        async with self._connection("summarize_products") as conn:
            cursor = await conn.execute(
                """
                SELECT
                    COUNT(*) AS total_products,
                    COALESCE(SUM(CASE WHEN current_stock <= min_stock THEN 1 ELSE 0 END), 0)
                        AS low_stock_products,
                    COALESCE(SUM(CASE WHEN current_stock = 0 THEN 1 ELSE 0 END), 0)
                        AS out_of_stock_products,
                    COALESCE(SUM(current_stock * COALESCE(unit_price, 0)), 0)
                        AS total_value
                FROM products
                WHERE is_active = 1
                """
            )
            row = await cursor.fetchone()
            return {
                "total_products": row["total_products"],
                "low_stock_products": row["low_stock_products"],
                "out_of_stock_products": row["out_of_stock_products"],
                "total_value": float(row["total_value"]),
            }

    # --- Ledger ---

    async def append_movement(
        self, movement: StockMovement, expected_stock: int
    ) -> StockMovement:
        """
        Compare-and-swap the product's stock and append the ledger row.

        The stock update runs first so the transaction takes the write lock
        before anything else; a miss leaves the transaction empty.
        """
        now = utcnow()
        async with self._transaction("append_movement") as conn:
            cursor = await conn.execute(
                """
                UPDATE products
                SET current_stock = ?, updated_at = ?
                WHERE id = ? AND current_stock = ? AND is_active = 1
                """,
                (
                    movement.new_stock,
                    to_db_timestamp(now),
                    movement.product_id,
                    expected_stock,
                ),
            )
            if cursor.rowcount != 1:
                raise StaleStockError(movement.product_id, expected_stock)

            return await self._insert_movement(conn, movement, now)

    async def _insert_movement(
        self,
        conn: aiosqlite.Connection,
        movement: StockMovement,
        created_at: datetime,
    ) -> StockMovement:
        try:
            cursor = await conn.execute(
                """
                INSERT INTO stock_movements (
                    product_id, movement_type, quantity, delta,
                    previous_stock, new_stock, reason, description,
                    reference_number, unit_cost, total_cost, actor,
                    request_id, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    movement.product_id,
                    movement.movement_type.value,
                    movement.quantity,
                    movement.delta,
                    movement.previous_stock,
                    movement.new_stock,
                    movement.reason.value,
                    movement.description,
                    movement.reference_number,
                    movement.unit_cost,
                    movement.total_cost,
                    movement.actor,
                    movement.request_id,
                    to_db_timestamp(created_at),
                ),
            )
        except aiosqlite.IntegrityError as e:
            if movement.request_id and "request_id" in str(e):
                raise DuplicateRequestError(movement.request_id) from e
            raise

        return movement.model_copy(
            update={"id": cursor.lastrowid, "created_at": created_at}
        )

    async def get_movement_by_request_id(self, request_id: str) -> StockMovement | None:
        async with self._connection("get_movement_by_request_id") as conn:
            cursor = await conn.execute(
                f"""
                SELECT {_MOVEMENT_COLUMNS}
                FROM stock_movements m
                JOIN products p ON p.id = m.product_id
                WHERE m.request_id = ?
                """,
                (request_id,),
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_movement(row)

    async def list_movements(
        self,
        filters: MovementFilter,
        limit: int = 50,
        before_id: int | None = None,
    ) -> list[StockMovement]:
        """Ledger rows newest first. Ordered by id, which is the append order."""
        conditions = []
        params: list = []

        if filters.product_id is not None:
            conditions.append("m.product_id = ?")
            params.append(filters.product_id)
        if filters.movement_type is not None:
            conditions.append("m.movement_type = ?")
            params.append(filters.movement_type.value)
        if filters.start is not None:
            conditions.append("m.created_at >= ?")
            params.append(to_db_timestamp(filters.start))
        if filters.end is not None:
            conditions.append("m.created_at < ?")
            params.append(to_db_timestamp(filters.end))
        if before_id is not None:
            conditions.append("m.id < ?")
            params.append(before_id)

        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
        params.append(limit)

        async with self._connection("list_movements") as conn:
            cursor = await conn.execute(
                f"""
                SELECT {_MOVEMENT_COLUMNS}
                FROM stock_movements m
                JOIN products p ON p.id = m.product_id
                {where}
                ORDER BY m.id DESC
                LIMIT ?
                """,
                params,
            )
            rows = await cursor.fetchall()
            return [self._row_to_movement(row) for row in rows]

    async def get_ledger(self, product_id: int) -> list[StockMovement]:
        async with self._connection("get_ledger") as conn:
            cursor = await conn.execute(
                f"""
                SELECT {_MOVEMENT_COLUMNS}
                FROM stock_movements m
                JOIN products p ON p.id = m.product_id
                WHERE m.product_id = ?
                ORDER BY m.id
                """,
                (product_id,),
            )
            rows = await cursor.fetchall()
            return [self._row_to_movement(row) for row in rows]

    async def stock_as_of(
        self, product_id: int, as_of: datetime
    ) -> tuple[int, int, int | None]:
        async with self._connection("stock_as_of") as conn:
            cursor = await conn.execute(
                """
                SELECT COALESCE(SUM(delta), 0), COUNT(*), MAX(id)
                FROM stock_movements
                WHERE product_id = ? AND created_at <= ?
                """,
                (product_id, to_db_timestamp(as_of)),
            )
            row = await cursor.fetchone()
            return int(row[0]), int(row[1]), row[2]

    async def count_movements_since(self, since: datetime) -> int:
        async with self._connection("count_movements_since") as conn:
            cursor = await conn.execute(
                "SELECT COUNT(*) FROM stock_movements WHERE created_at >= ?",
                (to_db_timestamp(since),),
            )
            row = await cursor.fetchone()
            return int(row[0])

    async def outflow_since(self, since: datetime) -> dict[int, int]:
        async with self._connection("outflow_since") as conn:
            cursor = await conn.execute(
                """
                SELECT product_id, SUM(quantity)
                FROM stock_movements
                WHERE movement_type = 'out' AND created_at >= ?
                GROUP BY product_id
                """,
                (to_db_timestamp(since),),
            )
            rows = await cursor.fetchall()
            return {row[0]: int(row[1]) for row in rows}

    async def ping(self) -> int:
        """Row count of the catalog; used by the database health check."""
        async with self._connection("ping") as conn:
            cursor = await conn.execute("SELECT COUNT(*) FROM products")
            row = await cursor.fetchone()
            return int(row[0])

    @staticmethod
    def _row_to_product(row: aiosqlite.Row) -> Product:
        return Product(
            id=row["id"],
            name=row["name"],
            description=row["description"],
            category=ProductCategory(row["category"]),
            supplier=row["supplier"],
            unit_of_measure=row["unit_of_measure"],
            unit_price=row["unit_price"],
            barcode=row["barcode"],
            is_active=bool(row["is_active"]),
            min_stock=row["min_stock"],
            current_stock=row["current_stock"],
            created_at=from_db_timestamp(row["created_at"]) or utcnow(),
            updated_at=from_db_timestamp(row["updated_at"]) or utcnow(),
        )

    @staticmethod
    def _row_to_movement(row: aiosqlite.Row) -> StockMovement:
        return StockMovement(
            id=row["id"],
            product_id=row["product_id"],
            movement_type=MovementType(row["movement_type"]),
            quantity=row["quantity"],
            delta=row["delta"],
            previous_stock=row["previous_stock"],
            new_stock=row["new_stock"],
            reason=MovementReason(row["reason"]),
            description=row["description"],
            reference_number=row["reference_number"],
            unit_cost=row["unit_cost"],
            total_cost=row["total_cost"],
            actor=row["actor"],
            request_id=row["request_id"],
            created_at=from_db_timestamp(row["created_at"]) or utcnow(),
            product_name=row["product_name"],
        )
