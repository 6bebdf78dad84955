"""Stock movement endpoints: record, adjust and browse the ledger."""

from datetime import date

from fastapi import APIRouter, Depends, Header, Query, status

from clinic_inventory.api.dependencies import (
    get_adjust_stock_use_case,
    get_audit,
    get_record_movement_use_case,
)
from clinic_inventory.application.dto.mappers import (
    low_stock_to_response,
    page_to_response,
)
from clinic_inventory.application.dto.requests import (
    StockAdjustmentRequest,
    StockMovementRequest,
)
from clinic_inventory.application.dto.responses import (
    ErrorResponse,
    LowStockProductResponse,
    MovementPageResponse,
    MovementResultResponse,
)
from clinic_inventory.application.use_cases import (
    AdjustStockUseCase,
    RecordStockMovementUseCase,
)
from clinic_inventory.core.entities.movement import MovementFilter, MovementType
from clinic_inventory.core.services import AuditQueryService
from clinic_inventory.core.timeutils import end_of_day_exclusive, start_of_day

router = APIRouter(prefix="/stock-movements", tags=["stock-movements"])

_WRITE_ERRORS = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


@router.post(
    "",
    response_model=MovementResultResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_WRITE_ERRORS,
)
async def record_movement(
    request: StockMovementRequest,
    idempotency_key: str | None = Header(default=None, max_length=128),
    use_case: RecordStockMovementUseCase = Depends(get_record_movement_use_case),
) -> MovementResultResponse:
    """
    Record a receipt or an issue.

    Repeating a request with the same Idempotency-Key returns the original
    movement with replayed=true instead of applying it again.
    """
    result = await use_case.execute(request, idempotency_key=idempotency_key)
    return use_case.to_response(result)


@router.post(
    "/adjustment",
    response_model=MovementResultResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_WRITE_ERRORS,
)
async def adjust_stock(
    request: StockAdjustmentRequest,
    idempotency_key: str | None = Header(default=None, max_length=128),
    use_case: AdjustStockUseCase = Depends(get_adjust_stock_use_case),
) -> MovementResultResponse:
    """Set stock to a counted quantity; the ledger stores the difference."""
    result = await use_case.execute(request, idempotency_key=idempotency_key)
    return use_case.to_response(result)


@router.get(
    "",
    response_model=MovementPageResponse,
    responses={400: {"model": ErrorResponse}},
)
async def list_movements(
    product_id: int | None = None,
    movement_type: MovementType | None = None,
    start_date: date | None = Query(default=None, description="Inclusive"),
    end_date: date | None = Query(default=None, description="Inclusive"),
    limit: int | None = Query(default=None, ge=1),
    before_id: int | None = Query(default=None, ge=1, description="Cursor from next_cursor"),
    audit: AuditQueryService = Depends(get_audit),
) -> MovementPageResponse:
    """Browse the ledger, newest first."""
    filters = MovementFilter(
        product_id=product_id,
        movement_type=movement_type,
        start=start_of_day(start_date) if start_date else None,
        end=end_of_day_exclusive(end_date) if end_date else None,
    )
    page = await audit.list_movements(filters, limit=limit, before_id=before_id)
    return page_to_response(page)


@router.get("/low-stock", response_model=list[LowStockProductResponse])
async def list_low_stock(
    audit: AuditQueryService = Depends(get_audit),
) -> list[LowStockProductResponse]:
    """Active products at or below their minimum, most urgent first."""
    items = await audit.get_low_stock()
    return [low_stock_to_response(item) for item in items]
