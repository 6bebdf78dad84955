"""
Audit query service.

Read-only projections over the catalog and the ledger. Nothing here takes
a product lock or writes; every figure comes from committed rows.
"""

from collections.abc import AsyncIterator
from datetime import datetime, timedelta

from clinic_inventory.config import get_logger
from clinic_inventory.core.entities.audit import (
    LowStockProduct,
    ProductReconciliation,
    ReconciliationReport,
    StockSnapshot,
    StockSummary,
)
from clinic_inventory.core.entities.movement import (
    MovementFilter,
    MovementPage,
    StockMovement,
)
from clinic_inventory.core.entities.product import (
    Product,
    StockStatus,
    classify_stock,
)
from clinic_inventory.core.exceptions import ProductNotFoundError, ValidationError
from clinic_inventory.core.interfaces.inventory_store import IInventoryStore
from clinic_inventory.core.timeutils import utcnow

logger = get_logger(__name__)

# Catalog scan page size
SCAN_PAGE_SIZE = 200

_SEVERITY = {
    StockStatus.OUT_OF_STOCK: 0,
    StockStatus.LOW: 1,
    StockStatus.NORMAL: 2,
}


class AuditQueryService:
    """History, summary, low-stock, replay and reconciliation reads."""

    def __init__(
        self,
        store: IInventoryStore,
        recent_window_days: int = 7,
        default_limit: int = 50,
        max_limit: int = 500,
    ) -> None:
        self._store = store
        self._recent_window = timedelta(days=recent_window_days)
        self._window_days = recent_window_days
        self._default_limit = default_limit
        self._max_limit = max_limit

    def _clamp(self, limit: int | None) -> int:
        if limit is None:
            return self._default_limit
        if limit < 1:
            raise ValidationError("limit", "must be at least 1", limit)
        return min(limit, self._max_limit)

    async def _require_product(self, product_id: int) -> Product:
        product = await self._store.get_product(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        return product

    async def _scan_products(self, **filters) -> list[Product]:
        products: list[Product] = []
        offset = 0
        while True:
            batch = await self._store.list_products(
                limit=SCAN_PAGE_SIZE, offset=offset, **filters
            )
            products.extend(batch)
            if len(batch) < SCAN_PAGE_SIZE:
                return products
            offset += SCAN_PAGE_SIZE

    # --- Ledger reads ---

    async def get_history(
        self, product_id: int, limit: int | None = None
    ) -> list[StockMovement]:
        """Latest movements of one product, newest first. Works for inactive products."""
        await self._require_product(product_id)
        return await self._store.list_movements(
            MovementFilter(product_id=product_id), limit=self._clamp(limit)
        )

    async def list_movements(
        self,
        filters: MovementFilter | None = None,
        limit: int | None = None,
        before_id: int | None = None,
    ) -> MovementPage:
        """
        One page of ledger rows, newest first.

        ``next_cursor`` is set only when more rows exist; pass it back as
        ``before_id`` to continue.
        """
        filters = filters or MovementFilter()
        if filters.start and filters.end and filters.start >= filters.end:
            raise ValidationError("end_date", "must be after start_date")
        size = self._clamp(limit)
        rows = await self._store.list_movements(filters, limit=size + 1, before_id=before_id)
        if len(rows) > size:
            rows = rows[:size]
            return MovementPage(items=rows, next_cursor=rows[-1].id)
        return MovementPage(items=rows)

    async def iter_movements(
        self,
        filters: MovementFilter | None = None,
        page_size: int | None = None,
    ) -> AsyncIterator[StockMovement]:
        """Walk every matching ledger row, newest first, one page at a time."""
        cursor: int | None = None
        while True:
            page = await self.list_movements(filters, limit=page_size, before_id=cursor)
            for movement in page.items:
                yield movement
            if page.next_cursor is None:
                return
            cursor = page.next_cursor

    # --- Catalog projections ---

    async def get_summary(self) -> StockSummary:
        """
        Dashboard totals over active products.

        Each product row is read consistently, but products are not read in
        one snapshot: a movement committed mid-scan may or may not be counted.
        """
        totals = await self._store.summarize_products()
        recent = await self._store.count_movements_since(utcnow() - self._recent_window)
        low = int(totals.get("low_stock_products", 0))
        return StockSummary(
            total_products=int(totals.get("total_products", 0)),
            low_stock_products=low,
            out_of_stock_products=int(totals.get("out_of_stock_products", 0)),
            total_value=round(float(totals.get("total_value", 0.0)), 2),
            recent_movements=recent,
            pending_alerts=low,
        )

    async def get_low_stock(self) -> list[LowStockProduct]:
        """Active products at or below minimum, most urgent first."""
        products = await self._scan_products(is_active=True, low_stock=True)
        outflow = await self._store.outflow_since(utcnow() - self._recent_window)

        result = []
        for product in products:
            status = classify_stock(product.current_stock, product.min_stock)
            if status == StockStatus.NORMAL:
                continue
            days_until_out = None
            issued = outflow.get(product.id, 0)
            if product.current_stock == 0:
                days_until_out = 0.0
            elif issued > 0:
                daily = issued / self._window_days
                days_until_out = round(product.current_stock / daily, 1)
            result.append(
                LowStockProduct(
                    id=product.id,
                    name=product.name,
                    category=product.category,
                    current_stock=product.current_stock,
                    min_stock=product.min_stock,
                    stock_status=status,
                    days_until_out=days_until_out,
                )
            )

        result.sort(key=lambda p: (_SEVERITY[p.stock_status], p.current_stock, p.name))
        return result

    # --- Audit ---

    async def replay_stock(self, product_id: int, as_of: datetime) -> StockSnapshot:
        """Stock of a product at ``as_of``, summed from the ledger alone."""
        product = await self._require_product(product_id)
        stock, count, last_id = await self._store.stock_as_of(product_id, as_of)
        return StockSnapshot(
            product_id=product_id,
            as_of=as_of,
            stock=stock,
            movement_count=count,
            last_movement_id=last_id,
            stock_status=classify_stock(stock, product.min_stock),
        )

    async def verify_reconciliation(
        self, product_id: int | None = None
    ) -> ReconciliationReport:
        """
        Check materialized stock against the ledger.

        For each product the ledger must sum to ``current_stock`` and form an
        unbroken chain: every row starts where the previous one ended, stays
        at or above zero, and applies its own delta.
        """
        if product_id is not None:
            products = [await self._require_product(product_id)]
        else:
            products = await self._scan_products()

        report = ReconciliationReport()
        for product in products:
            ledger = await self._store.get_ledger(product.id)
            report.products.append(self._reconcile(product, ledger))

        if report.inconsistent:
            logger.warning(
                "stock_reconciliation_drift",
                checked=report.checked,
                inconsistent=[p.product_id for p in report.inconsistent],
            )
        else:
            logger.info("stock_reconciliation_ok", checked=report.checked)
        return report

    @staticmethod
    def _reconcile(product: Product, ledger: list[StockMovement]) -> ProductReconciliation:
        issues: list[str] = []
        running = 0
        for row in ledger:
            if row.previous_stock != running:
                issues.append(
                    f"movement {row.id}: previous_stock {row.previous_stock}, expected {running}"
                )
            if row.new_stock != row.previous_stock + row.delta:
                issues.append(
                    f"movement {row.id}: new_stock {row.new_stock} does not match delta {row.delta}"
                )
            if row.new_stock < 0:
                issues.append(f"movement {row.id}: negative stock {row.new_stock}")
            running = row.previous_stock + row.delta

        ledger_stock = sum(row.delta for row in ledger)
        if ledger_stock != product.current_stock:
            issues.append(
                f"current_stock {product.current_stock} differs from ledger sum {ledger_stock}"
            )

        return ProductReconciliation(
            product_id=product.id or 0,
            current_stock=product.current_stock,
            ledger_stock=ledger_stock,
            movement_count=len(ledger),
            issues=issues,
        )
