"""Tests for stock movement use cases."""

from unittest.mock import AsyncMock

import pytest

from clinic_inventory.application.dto.requests import (
    StockAdjustmentRequest,
    StockMovementRequest,
)
from clinic_inventory.application.use_cases import (
    AdjustStockUseCase,
    RecordStockMovementUseCase,
)
from clinic_inventory.core.entities import (
    MovementReason,
    MovementType,
    StockMovement,
    StockStatus,
)
from clinic_inventory.core.services import MovementResult


def _result(movement_type: MovementType, quantity: int, delta: int, previous: int) -> MovementResult:
    movement = StockMovement(
        id=1,
        product_id=3,
        movement_type=movement_type,
        quantity=quantity,
        delta=delta,
        previous_stock=previous,
        new_stock=previous + delta,
        reason=MovementReason.USAGE,
    )
    return MovementResult(
        movement=movement,
        current_stock=movement.new_stock,
        stock_status=StockStatus.NORMAL,
    )


@pytest.fixture
def mock_engine():
    return AsyncMock()


class TestRecordStockMovementUseCase:
    async def test_forwards_request(self, mock_engine):
        mock_engine.record_movement.return_value = _result(MovementType.OUT, 2, -2, 10)
        use_case = RecordStockMovementUseCase(engine=mock_engine)
        request = StockMovementRequest(
            product_id=3, type="out", quantity=2, reason="usage", request_id="body-key"
        )

        result = await use_case.execute(request)

        kwargs = mock_engine.record_movement.call_args.kwargs
        assert kwargs["kind"] == MovementType.OUT
        assert kwargs["quantity"] == 2
        assert kwargs["reason"] == "usage"
        assert kwargs["request_id"] == "body-key"
        assert result.current_stock == 8

    async def test_header_key_wins_over_body(self, mock_engine):
        mock_engine.record_movement.return_value = _result(MovementType.IN, 5, 5, 0)
        use_case = RecordStockMovementUseCase(engine=mock_engine)
        request = StockMovementRequest(
            product_id=3, movement_type="in", quantity=5, reason="purchase", request_id="body-key"
        )

        await use_case.execute(request, idempotency_key="header-key")

        assert mock_engine.record_movement.call_args.kwargs["request_id"] == "header-key"

    async def test_to_response(self, mock_engine):
        use_case = RecordStockMovementUseCase(engine=mock_engine)

        response = use_case.to_response(_result(MovementType.IN, 5, 5, 0))

        assert response.current_stock == 5
        assert response.stock_status == "normal"
        assert response.replayed is False
        assert response.movement.delta == 5


class TestAdjustStockUseCase:
    async def test_adjustment_passes_target(self, mock_engine):
        mock_engine.record_movement.return_value = _result(MovementType.ADJUSTMENT, 7, -3, 10)
        use_case = AdjustStockUseCase(engine=mock_engine)
        request = StockAdjustmentRequest(product_id=3, new_quantity=7)

        result = await use_case.execute(request)

        kwargs = mock_engine.record_movement.call_args.kwargs
        assert kwargs["kind"] == MovementType.ADJUSTMENT
        assert kwargs["quantity"] == 7
        assert kwargs["reason"] == "adjustment"
        assert kwargs["request_id"] is None
        assert result.movement.delta == -3
