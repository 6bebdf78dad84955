"""Entity to response DTO conversion shared by use cases and routes."""

from clinic_inventory.application.dto.responses import (
    LowStockProductResponse,
    MovementPageResponse,
    MovementResultResponse,
    ProductDetailResponse,
    ProductReconciliationResponse,
    ProductResponse,
    ReconciliationReportResponse,
    StockMovementResponse,
    StockSnapshotResponse,
    StockSummaryResponse,
)
from clinic_inventory.core.entities import (
    LowStockProduct,
    MovementPage,
    Product,
    ReconciliationReport,
    StockMovement,
    StockSnapshot,
    StockSummary,
)
from clinic_inventory.core.services import MovementResult, ProductDetail


def product_to_response(product: Product) -> ProductResponse:
    return ProductResponse(
        id=product.id,  # type: ignore[arg-type]
        name=product.name,
        description=product.description,
        category=product.category.value,
        supplier=product.supplier,
        unit_of_measure=product.unit_of_measure,
        unit_price=product.unit_price,
        barcode=product.barcode,
        is_active=product.is_active,
        min_stock=product.min_stock,
        current_stock=product.current_stock,
        stock_status=product.stock_status.value,
        stock_value=round(product.stock_value, 2),
        created_at=product.created_at,
        updated_at=product.updated_at,
    )


def movement_to_response(movement: StockMovement) -> StockMovementResponse:
    return StockMovementResponse(
        id=movement.id,  # type: ignore[arg-type]
        product_id=movement.product_id,
        product_name=movement.product_name,
        movement_type=movement.movement_type.value,
        quantity=movement.quantity,
        delta=movement.delta,
        previous_stock=movement.previous_stock,
        new_stock=movement.new_stock,
        reason=movement.reason.value,
        description=movement.description,
        reference_number=movement.reference_number,
        unit_cost=movement.unit_cost,
        total_cost=movement.total_cost,
        actor=movement.actor,
        request_id=movement.request_id,
        created_at=movement.created_at,
    )


def detail_to_response(detail: ProductDetail) -> ProductDetailResponse:
    base = product_to_response(detail.product)
    return ProductDetailResponse(
        **base.model_dump(),
        recent_movements=[movement_to_response(m) for m in detail.recent_movements],
    )


def result_to_response(result: MovementResult) -> MovementResultResponse:
    return MovementResultResponse(
        movement=movement_to_response(result.movement),
        current_stock=result.current_stock,
        stock_status=result.stock_status.value,
        replayed=result.replayed,
    )


def page_to_response(page: MovementPage) -> MovementPageResponse:
    return MovementPageResponse(
        items=[movement_to_response(m) for m in page.items],
        next_cursor=page.next_cursor,
    )


def summary_to_response(summary: StockSummary) -> StockSummaryResponse:
    return StockSummaryResponse(**summary.model_dump())


def low_stock_to_response(item: LowStockProduct) -> LowStockProductResponse:
    return LowStockProductResponse(
        id=item.id,
        name=item.name,
        category=item.category.value,
        current_stock=item.current_stock,
        min_stock=item.min_stock,
        stock_status=item.stock_status.value,
        days_until_out=item.days_until_out,
    )


def snapshot_to_response(snapshot: StockSnapshot) -> StockSnapshotResponse:
    return StockSnapshotResponse(
        product_id=snapshot.product_id,
        as_of=snapshot.as_of,
        stock=snapshot.stock,
        movement_count=snapshot.movement_count,
        last_movement_id=snapshot.last_movement_id,
        stock_status=snapshot.stock_status.value,
    )


def report_to_response(report: ReconciliationReport) -> ReconciliationReportResponse:
    return ReconciliationReportResponse(
        checked=report.checked,
        inconsistent=len(report.inconsistent),
        products=[
            ProductReconciliationResponse(
                product_id=p.product_id,
                current_stock=p.current_stock,
                ledger_stock=p.ledger_stock,
                movement_count=p.movement_count,
                consistent=p.consistent,
                issues=p.issues,
            )
            for p in report.products
        ],
        generated_at=report.generated_at,
    )
