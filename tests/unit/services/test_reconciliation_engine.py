"""Tests for ReconciliationEngine with a mocked store."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from clinic_inventory.core.entities import (
    MovementReason,
    MovementType,
    Product,
    ProductCategory,
    StockAdjustment,
    StockMovement,
    StockOut,
    StockStatus,
)
from clinic_inventory.core.exceptions import (
    ConcurrencyConflictError,
    DuplicateRequestError,
    IdempotencyConflictError,
    InsufficientStockError,
    ProductNotFoundError,
    StaleStockError,
    ValidationError,
)
from clinic_inventory.core.services import ProductLockRegistry, ReconciliationEngine


def _product(stock: int, min_stock: int = 5, active: bool = True) -> Product:
    return Product(
        id=1,
        name="Soro fisiologico",
        category=ProductCategory.MEDICATION,
        current_stock=stock,
        min_stock=min_stock,
        is_active=active,
    )


def _stored(movement: StockMovement, movement_id: int = 100) -> StockMovement:
    return movement.model_copy(update={"id": movement_id})


@pytest.fixture
def mock_store():
    store = AsyncMock()
    store.get_movement_by_request_id.return_value = None
    store.append_movement.side_effect = lambda movement, expected_stock: _stored(movement)
    return store


@pytest.fixture
def engine(mock_store):
    return ReconciliationEngine(store=mock_store, locks=ProductLockRegistry(), max_retries=3)


class TestRecordMovement:
    async def test_receipt_adds_stock(self, engine, mock_store):
        mock_store.get_product.return_value = _product(4)

        result = await engine.record_movement(1, "in", 10, "purchase", unit_cost=2.0)

        assert result.current_stock == 14
        assert result.stock_status == StockStatus.NORMAL
        assert result.replayed is False
        movement = mock_store.append_movement.call_args.args[0]
        assert movement.delta == 10
        assert movement.total_cost == 20.0
        assert mock_store.append_movement.call_args.kwargs["expected_stock"] == 4

    async def test_issue_to_zero_is_out_of_stock(self, engine, mock_store):
        mock_store.get_product.return_value = _product(4)

        result = await engine.record_movement(1, MovementType.OUT, 4, "usage")

        assert result.current_stock == 0
        assert result.stock_status == StockStatus.OUT_OF_STOCK

    async def test_adjustment_records_signed_delta(self, engine, mock_store):
        mock_store.get_product.return_value = _product(10)

        result = await engine.record_movement(1, "adjustment", 7, "adjustment")

        assert result.movement.delta == -3
        assert result.movement.quantity == 7
        assert result.current_stock == 7

    async def test_invalid_quantity_never_reads_store(self, engine, mock_store):
        with pytest.raises(ValidationError):
            await engine.record_movement(1, "out", 0, "usage")

        mock_store.get_product.assert_not_called()


class TestApplyFailures:
    async def test_insufficient_stock_writes_nothing(self, engine, mock_store):
        mock_store.get_product.return_value = _product(10)

        with pytest.raises(InsufficientStockError) as exc_info:
            await engine.apply(StockOut(product_id=1, quantity=50, reason=MovementReason.USAGE))

        assert exc_info.value.requested == 50
        assert exc_info.value.available == 10
        mock_store.append_movement.assert_not_called()

    async def test_missing_product(self, engine, mock_store):
        mock_store.get_product.return_value = None

        with pytest.raises(ProductNotFoundError):
            await engine.record_movement(1, "in", 1, "purchase")

        mock_store.append_movement.assert_not_called()

    async def test_inactive_product(self, engine, mock_store):
        mock_store.get_product.return_value = _product(10, active=False)

        with pytest.raises(ProductNotFoundError) as exc_info:
            await engine.record_movement(1, "in", 1, "purchase")

        assert exc_info.value.details["inactive"] is True


class TestCompareAndSwap:
    async def test_retries_after_lost_swap(self, engine, mock_store):
        mock_store.get_product.side_effect = [_product(10), _product(8)]
        mock_store.append_movement.side_effect = [
            StaleStockError(1, 10),
            _stored(StockOut(product_id=1, quantity=3, reason=MovementReason.USAGE).to_movement(8)),
        ]

        result = await engine.record_movement(1, "out", 3, "usage")

        assert result.current_stock == 5
        assert mock_store.append_movement.call_count == 2
        second = mock_store.append_movement.call_args_list[1]
        assert second.kwargs["expected_stock"] == 8
        assert second.args[0].previous_stock == 8

    async def test_retry_revalidates_against_fresh_stock(self, engine, mock_store):
        mock_store.get_product.side_effect = [_product(5), _product(2)]
        mock_store.append_movement.side_effect = [StaleStockError(1, 5)]

        with pytest.raises(InsufficientStockError) as exc_info:
            await engine.record_movement(1, "out", 3, "usage")

        assert exc_info.value.available == 2

    async def test_exhausted_retries_raise_conflict(self, engine, mock_store):
        mock_store.get_product.return_value = _product(10)
        mock_store.append_movement.side_effect = StaleStockError(1, 10)

        with pytest.raises(ConcurrencyConflictError) as exc_info:
            await engine.record_movement(1, "in", 1, "purchase")

        assert exc_info.value.details["attempts"] == 3
        assert mock_store.append_movement.call_count == 3


class TestIdempotency:
    def _existing(self, **overrides) -> StockMovement:
        data = {
            "id": 77,
            "product_id": 1,
            "movement_type": MovementType.OUT,
            "quantity": 3,
            "delta": -3,
            "previous_stock": 5,
            "new_stock": 2,
            "reason": MovementReason.USAGE,
            "request_id": "req-1",
        }
        data.update(overrides)
        return StockMovement(**data)

    async def test_replay_returns_original(self, engine, mock_store):
        mock_store.get_movement_by_request_id.return_value = self._existing()
        mock_store.get_product.return_value = _product(2)

        result = await engine.record_movement(1, "out", 3, "usage", request_id="req-1")

        assert result.replayed is True
        assert result.movement.id == 77
        assert result.current_stock == 2
        assert result.stock_status == StockStatus.LOW
        mock_store.append_movement.assert_not_called()

    async def test_reused_key_with_different_payload(self, engine, mock_store):
        mock_store.get_movement_by_request_id.return_value = self._existing()

        with pytest.raises(IdempotencyConflictError) as exc_info:
            await engine.record_movement(1, "out", 4, "usage", request_id="req-1")

        assert exc_info.value.details["existing_movement_id"] == 77
        mock_store.append_movement.assert_not_called()

    async def test_concurrent_duplicate_becomes_replay(self, engine, mock_store):
        mock_store.get_movement_by_request_id.side_effect = [None, None, self._existing()]
        mock_store.get_product.return_value = _product(5)
        mock_store.append_movement.side_effect = DuplicateRequestError("req-1")

        result = await engine.record_movement(1, "out", 3, "usage", request_id="req-1")

        assert result.replayed is True
        assert result.movement.id == 77

    async def test_adjustment_replay_matches_target(self, engine, mock_store):
        mock_store.get_movement_by_request_id.return_value = self._existing(
            movement_type=MovementType.ADJUSTMENT,
            quantity=7,
            delta=-3,
            previous_stock=10,
            new_stock=7,
            reason=MovementReason.ADJUSTMENT,
        )
        mock_store.get_product.return_value = _product(7)

        result = await engine.apply(StockAdjustment(product_id=1, new_quantity=7, request_id="req-1"))

        assert result.replayed is True

    async def test_repeat_after_lost_swap_is_replay(self, engine, mock_store):
        """The original committed between our read and our swap."""
        mock_store.get_movement_by_request_id.side_effect = [None, None, self._existing()]
        mock_store.get_product.return_value = _product(5)
        mock_store.append_movement.side_effect = [StaleStockError(1, 5)]

        result = await engine.record_movement(1, "out", 3, "usage", request_id="req-1")

        assert result.replayed is True
        assert result.movement.id == 77
        assert mock_store.append_movement.call_count == 1

    async def test_repeat_queued_behind_original_gets_original(self, mock_store):
        """Two identical issues of 3 against stock 5: one write, one replay."""
        stock = {"value": 5}
        ledger: dict[str, StockMovement] = {}

        async def get_product(product_id):
            await asyncio.sleep(0)
            return _product(stock["value"])

        async def get_movement_by_request_id(request_id):
            await asyncio.sleep(0)
            return ledger.get(request_id)

        async def append_movement(movement, expected_stock):
            await asyncio.sleep(0)
            stored = _stored(movement)
            stock["value"] = stored.new_stock
            ledger[stored.request_id] = stored
            return stored

        mock_store.get_product.side_effect = get_product
        mock_store.get_movement_by_request_id.side_effect = get_movement_by_request_id
        mock_store.append_movement.side_effect = append_movement
        engine = ReconciliationEngine(store=mock_store, locks=ProductLockRegistry())

        results = await asyncio.gather(
            engine.record_movement(1, "out", 3, "usage", request_id="req-9"),
            engine.record_movement(1, "out", 3, "usage", request_id="req-9"),
        )

        assert sorted(r.replayed for r in results) == [False, True]
        assert results[0].movement.id == results[1].movement.id
        assert mock_store.append_movement.call_count == 1
        assert stock["value"] == 2


class TestLocking:
    async def test_same_product_writes_are_serialized(self, mock_store):
        """Two concurrent issues against stock 5: one wins, the other sees 2 left."""
        stock = {"value": 5}

        async def get_product(product_id):
            await asyncio.sleep(0)
            return _product(stock["value"])

        async def append_movement(movement, expected_stock):
            await asyncio.sleep(0)
            if stock["value"] != expected_stock:
                raise StaleStockError(movement.product_id, expected_stock)
            stock["value"] = movement.new_stock
            return _stored(movement)

        mock_store.get_product.side_effect = get_product
        mock_store.append_movement.side_effect = append_movement
        engine = ReconciliationEngine(store=mock_store, locks=ProductLockRegistry())

        results = await asyncio.gather(
            engine.record_movement(1, "out", 3, "usage"),
            engine.record_movement(1, "out", 3, "usage"),
            return_exceptions=True,
        )

        successes = [r for r in results if not isinstance(r, Exception)]
        failures = [r for r in results if isinstance(r, Exception)]
        assert len(successes) == 1
        assert successes[0].current_stock == 2
        assert len(failures) == 1
        assert isinstance(failures[0], InsufficientStockError)
        assert stock["value"] == 2

    async def test_registry_drops_released_locks(self):
        registry = ProductLockRegistry()

        async with registry.hold(1):
            async with registry.hold(2):
                assert len(registry) == 2

        assert len(registry) == 0

    async def test_waiter_keeps_lock_alive(self):
        registry = ProductLockRegistry()
        order: list[str] = []
        released = asyncio.Event()

        async def first():
            async with registry.hold(1):
                order.append("first")
                await released.wait()

        async def second():
            async with registry.hold(1):
                order.append("second")

        first_task = asyncio.create_task(first())
        await asyncio.sleep(0)
        second_task = asyncio.create_task(second())
        await asyncio.sleep(0)

        assert order == ["first"]
        assert len(registry) == 1

        released.set()
        await asyncio.gather(first_task, second_task)

        assert order == ["first", "second"]
        assert len(registry) == 0

    async def test_cancelled_waiter_is_released(self):
        registry = ProductLockRegistry()
        released = asyncio.Event()

        async def holder():
            async with registry.hold(1):
                await released.wait()

        async def waiter():
            async with registry.hold(1):
                pass

        holder_task = asyncio.create_task(holder())
        await asyncio.sleep(0)
        waiter_task = asyncio.create_task(waiter())
        await asyncio.sleep(0)
        waiter_task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter_task

        released.set()
        await holder_task

        assert len(registry) == 0
