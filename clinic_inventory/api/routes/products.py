"""Product catalog endpoints."""

from datetime import datetime

from fastapi import APIRouter, Depends, Query, Response, status

from clinic_inventory.api.dependencies import (
    get_app_settings,
    get_audit,
    get_catalog,
    get_create_product_use_case,
    get_update_product_use_case,
)
from clinic_inventory.application.dto.mappers import (
    detail_to_response,
    movement_to_response,
    product_to_response,
    snapshot_to_response,
)
from clinic_inventory.application.dto.requests import (
    CreateProductRequest,
    UpdateProductRequest,
)
from clinic_inventory.application.dto.responses import (
    ErrorResponse,
    ProductDetailResponse,
    ProductResponse,
    StockMovementResponse,
    StockSnapshotResponse,
)
from clinic_inventory.application.use_cases import (
    CreateProductUseCase,
    UpdateProductUseCase,
)
from clinic_inventory.config import Settings
from clinic_inventory.core.entities.product import ProductCategory
from clinic_inventory.core.services import AuditQueryService, ProductCatalogService

router = APIRouter(prefix="/products", tags=["products"])


@router.post(
    "",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def create_product(
    request: CreateProductRequest,
    use_case: CreateProductUseCase = Depends(get_create_product_use_case),
) -> ProductResponse:
    """Register a product. A positive current_stock is booked as the opening balance."""
    result = await use_case.execute(request)
    return use_case.to_response(result)


@router.get("", response_model=list[ProductResponse])
async def list_products(
    category: ProductCategory | None = None,
    is_active: bool | None = None,
    low_stock: bool | None = None,
    search: str | None = None,
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    catalog: ProductCatalogService = Depends(get_catalog),
) -> list[ProductResponse]:
    """List products, optionally filtered. low_stock=true includes out-of-stock items."""
    products = await catalog.list_products(
        category=category,
        is_active=is_active,
        low_stock=low_stock,
        search=search,
        limit=limit,
        offset=offset,
    )
    return [product_to_response(p) for p in products]


@router.get(
    "/{product_id}",
    response_model=ProductDetailResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_product(
    product_id: int,
    catalog: ProductCatalogService = Depends(get_catalog),
    settings: Settings = Depends(get_app_settings),
) -> ProductDetailResponse:
    """Get a product with its most recent movements."""
    detail = await catalog.get_product(
        product_id, movements=settings.ledger.product_detail_movements
    )
    return detail_to_response(detail)


@router.put(
    "/{product_id}",
    response_model=ProductResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)
async def update_product(
    product_id: int,
    request: UpdateProductRequest,
    use_case: UpdateProductUseCase = Depends(get_update_product_use_case),
) -> ProductResponse:
    """Edit product attributes. Stock cannot be set here."""
    result = await use_case.execute(product_id, request)
    return use_case.to_response(result)


@router.delete(
    "/{product_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}},
)
async def deactivate_product(
    product_id: int,
    catalog: ProductCatalogService = Depends(get_catalog),
) -> Response:
    """Deactivate a product. Its movement history stays available."""
    await catalog.deactivate(product_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{product_id}/movements",
    response_model=list[StockMovementResponse],
    responses={404: {"model": ErrorResponse}},
)
async def get_product_history(
    product_id: int,
    limit: int | None = Query(default=None, ge=1),
    audit: AuditQueryService = Depends(get_audit),
) -> list[StockMovementResponse]:
    """Movement history of one product, newest first."""
    movements = await audit.get_history(product_id, limit=limit)
    return [movement_to_response(m) for m in movements]


@router.get(
    "/{product_id}/stock-at",
    response_model=StockSnapshotResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_stock_at(
    product_id: int,
    as_of: datetime,
    audit: AuditQueryService = Depends(get_audit),
) -> StockSnapshotResponse:
    """Stock of a product at a past instant, replayed from the ledger."""
    snapshot = await audit.replay_stock(product_id, as_of)
    return snapshot_to_response(snapshot)
