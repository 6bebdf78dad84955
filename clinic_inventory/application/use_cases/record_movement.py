"""Stock movement use cases: receipts, issues and count adjustments."""

from clinic_inventory.application.dto.mappers import result_to_response
from clinic_inventory.application.dto.requests import (
    StockAdjustmentRequest,
    StockMovementRequest,
)
from clinic_inventory.application.dto.responses import MovementResultResponse
from clinic_inventory.config import get_logger
from clinic_inventory.core.entities.movement import MovementType
from clinic_inventory.core.services import MovementResult, ReconciliationEngine

logger = get_logger(__name__)


class _MovementUseCase:
    def __init__(self, engine: ReconciliationEngine | None = None):
        self._engine = engine

    async def _get_engine(self) -> ReconciliationEngine:
        if self._engine is None:
            from clinic_inventory.application.services import get_reconciliation_engine

            self._engine = await get_reconciliation_engine()
        return self._engine

    def to_response(self, result: MovementResult) -> MovementResultResponse:
        """Convert result to API response."""
        return result_to_response(result)


class RecordStockMovementUseCase(_MovementUseCase):
    """Record a receipt (in) or issue (out)."""

    async def execute(
        self,
        request: StockMovementRequest,
        idempotency_key: str | None = None,
    ) -> MovementResult:
        """
        Execute the movement.

        ``idempotency_key`` (from the Idempotency-Key header) wins over the
        body's ``request_id`` when both are given.
        """
        engine = await self._get_engine()
        return await engine.record_movement(
            product_id=request.product_id,
            kind=MovementType(request.movement_type),
            quantity=request.quantity,
            reason=request.reason.value,
            description=request.description,
            reference_number=request.reference_number,
            unit_cost=request.unit_cost,
            actor=request.actor,
            request_id=idempotency_key or request.request_id,
        )


class AdjustStockUseCase(_MovementUseCase):
    """Set stock to a counted quantity; the ledger records the difference."""

    async def execute(
        self,
        request: StockAdjustmentRequest,
        idempotency_key: str | None = None,
    ) -> MovementResult:
        engine = await self._get_engine()
        result = await engine.record_movement(
            product_id=request.product_id,
            kind=MovementType.ADJUSTMENT,
            quantity=request.new_quantity,
            reason=request.reason.value,
            description=request.description,
            reference_number=request.reference_number,
            actor=request.actor,
            request_id=idempotency_key or request.request_id,
        )
        if not result.replayed and result.movement.delta == 0:
            logger.info("stock_count_confirmed", product_id=request.product_id)
        return result
