"""Stock dashboard and audit endpoints."""

from fastapi import APIRouter, Depends

from clinic_inventory.api.dependencies import get_audit
from clinic_inventory.application.dto.mappers import (
    report_to_response,
    summary_to_response,
)
from clinic_inventory.application.dto.responses import (
    ErrorResponse,
    ReconciliationReportResponse,
    StockSummaryResponse,
)
from clinic_inventory.core.services import AuditQueryService

router = APIRouter(prefix="/stock", tags=["stock"])


@router.get("/dashboard/summary", response_model=StockSummaryResponse)
async def get_summary(
    audit: AuditQueryService = Depends(get_audit),
) -> StockSummaryResponse:
    """Totals for the stock dashboard."""
    summary = await audit.get_summary()
    return summary_to_response(summary)


@router.get(
    "/reconciliation",
    response_model=ReconciliationReportResponse,
    responses={404: {"model": ErrorResponse}},
)
async def verify_reconciliation(
    product_id: int | None = None,
    audit: AuditQueryService = Depends(get_audit),
) -> ReconciliationReportResponse:
    """Check materialized stock against the ledger for one or all products."""
    report = await audit.verify_reconciliation(product_id)
    return report_to_response(report)
