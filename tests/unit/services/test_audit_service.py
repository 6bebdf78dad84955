"""Tests for AuditQueryService projections."""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from clinic_inventory.core.entities import (
    MovementFilter,
    MovementReason,
    MovementType,
    Product,
    ProductCategory,
    StockMovement,
    StockStatus,
)
from clinic_inventory.core.exceptions import ProductNotFoundError, ValidationError
from clinic_inventory.core.services import AuditQueryService
from clinic_inventory.core.services.audit import SCAN_PAGE_SIZE
from clinic_inventory.core.timeutils import utcnow


def _movement(movement_id: int, previous: int, delta: int, new: int | None = None) -> StockMovement:
    movement_type = MovementType.IN if delta >= 0 else MovementType.OUT
    return StockMovement(
        id=movement_id,
        product_id=1,
        movement_type=movement_type,
        quantity=abs(delta),
        delta=delta,
        previous_stock=previous,
        new_stock=previous + delta if new is None else new,
        reason=MovementReason.OTHER,
    )


def _product(product_id: int, name: str, stock: int, min_stock: int) -> Product:
    return Product(
        id=product_id,
        name=name,
        category=ProductCategory.CONSUMABLE,
        current_stock=stock,
        min_stock=min_stock,
    )


@pytest.fixture
def mock_store():
    return AsyncMock()


@pytest.fixture
def audit(mock_store):
    return AuditQueryService(store=mock_store, recent_window_days=7, default_limit=2, max_limit=3)


class TestListMovements:
    async def test_next_cursor_when_more_rows(self, audit, mock_store):
        mock_store.list_movements.return_value = [
            _movement(9, 0, 1),
            _movement(8, 0, 1),
            _movement(7, 0, 1),
        ]

        page = await audit.list_movements()

        assert [m.id for m in page.items] == [9, 8]
        assert page.next_cursor == 8
        assert mock_store.list_movements.call_args.kwargs["limit"] == 3

    async def test_no_cursor_on_last_page(self, audit, mock_store):
        mock_store.list_movements.return_value = [_movement(2, 0, 1)]

        page = await audit.list_movements(before_id=3)

        assert page.next_cursor is None
        assert mock_store.list_movements.call_args.kwargs["before_id"] == 3

    async def test_limit_is_clamped(self, audit, mock_store):
        mock_store.list_movements.return_value = []

        await audit.list_movements(limit=1000)

        assert mock_store.list_movements.call_args.kwargs["limit"] == 4

    async def test_rejects_zero_limit(self, audit):
        with pytest.raises(ValidationError):
            await audit.list_movements(limit=0)

    async def test_rejects_inverted_window(self, audit):
        now = utcnow()

        with pytest.raises(ValidationError) as exc_info:
            await audit.list_movements(MovementFilter(start=now, end=now - timedelta(days=1)))

        assert exc_info.value.details["field"] == "end_date"

    async def test_iter_follows_cursor(self, audit, mock_store):
        mock_store.list_movements.side_effect = [
            [_movement(5, 0, 1), _movement(4, 0, 1), _movement(3, 0, 1)],
            [_movement(3, 0, 1), _movement(2, 0, 1)],
        ]

        ids = [m.id async for m in audit.iter_movements()]

        assert ids == [5, 4, 3, 2]
        assert mock_store.list_movements.call_args_list[1].kwargs["before_id"] == 4


class TestHistory:
    async def test_history_requires_product(self, audit, mock_store):
        mock_store.get_product.return_value = None

        with pytest.raises(ProductNotFoundError):
            await audit.get_history(1)


class TestSummary:
    async def test_summary_rounds_value(self, audit, mock_store):
        mock_store.summarize_products.return_value = {
            "total_products": 4,
            "low_stock_products": 2,
            "out_of_stock_products": 1,
            "total_value": 100.456,
        }
        mock_store.count_movements_since.return_value = 12

        summary = await audit.get_summary()

        assert summary.total_products == 4
        assert summary.low_stock_products == 2
        assert summary.out_of_stock_products == 1
        assert summary.total_value == 100.46
        assert summary.recent_movements == 12
        assert summary.pending_alerts == 2


class TestLowStock:
    async def test_ordering_and_days_until_out(self, audit, mock_store):
        mock_store.list_products.return_value = [
            _product(1, "Bisturi", 3, 5),
            _product(2, "Alcool", 0, 2),
            _product(3, "Dipirona", 5, 5),
        ]
        mock_store.outflow_since.return_value = {1: 14}

        low = await audit.get_low_stock()

        assert [p.name for p in low] == ["Alcool", "Bisturi", "Dipirona"]
        assert low[0].stock_status == StockStatus.OUT_OF_STOCK
        assert low[0].days_until_out == 0.0
        # 14 issued over 7 days is 2 per day
        assert low[1].days_until_out == 1.5
        assert low[2].days_until_out is None

    async def test_scan_pages_through_catalog(self, audit, mock_store):
        full = [_product(i, f"P{i:04d}", 0, 1) for i in range(1, SCAN_PAGE_SIZE + 1)]
        mock_store.list_products.side_effect = [full, [_product(999, "Z", 1, 1)]]
        mock_store.outflow_since.return_value = {}

        low = await audit.get_low_stock()

        assert len(low) == SCAN_PAGE_SIZE + 1
        assert mock_store.list_products.call_args_list[1].kwargs["offset"] == SCAN_PAGE_SIZE


class TestReconciliation:
    async def test_consistent_ledger(self, audit, mock_store):
        mock_store.get_product.return_value = _product(1, "Gaze", 7, 2)
        mock_store.get_ledger.return_value = [_movement(1, 0, 10), _movement(2, 10, -3)]

        report = await audit.verify_reconciliation(product_id=1)

        assert report.checked == 1
        assert report.inconsistent == []
        assert report.products[0].ledger_stock == 7

    async def test_drift_is_reported(self, audit, mock_store):
        mock_store.get_product.return_value = _product(1, "Gaze", 9, 2)
        mock_store.get_ledger.return_value = [_movement(1, 0, 10), _movement(2, 10, -3)]

        report = await audit.verify_reconciliation(product_id=1)

        assert len(report.inconsistent) == 1
        assert "differs from ledger sum 7" in report.products[0].issues[0]

    async def test_broken_chain_is_reported(self, audit, mock_store):
        mock_store.list_products.return_value = [_product(1, "Gaze", 7, 2)]
        mock_store.get_ledger.return_value = [_movement(1, 0, 10), _movement(2, 8, -1)]

        report = await audit.verify_reconciliation()

        issues = report.products[0].issues
        assert any("previous_stock 8, expected 10" in issue for issue in issues)

    async def test_replay_stock(self, audit, mock_store):
        mock_store.get_product.return_value = _product(1, "Gaze", 7, 5)
        mock_store.stock_as_of.return_value = (4, 2, 11)
        as_of = utcnow()

        snapshot = await audit.replay_stock(1, as_of)

        assert snapshot.stock == 4
        assert snapshot.movement_count == 2
        assert snapshot.last_movement_id == 11
        assert snapshot.stock_status == StockStatus.LOW
