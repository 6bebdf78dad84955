"""
Health check endpoints.
"""

import time

from fastapi import APIRouter

from clinic_inventory.application.dto.responses import HealthResponse, ProviderHealthResponse
from clinic_inventory.config import get_settings

router = APIRouter(prefix="/api/health", tags=["health"])

# Track startup time
_start_time = time.time()


@router.get("", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Basic health check.

    Returns service status and uptime.
    """
    return HealthResponse(
        status="healthy",
        version=get_settings().app_version,
        uptime_seconds=time.time() - _start_time,
    )


@router.get("/db", response_model=HealthResponse)
async def db_health() -> HealthResponse:
    """
    Database health check.

    Runs a catalog count through the inventory store and times it.
    """
    from clinic_inventory.infrastructure.storage.sqlite import get_inventory_store

    db_status = ProviderHealthResponse(
        name="sqlite",
        available=False,
    )

    try:
        store = await get_inventory_store()
        start = time.time()
        await store.ping()
        latency = (time.time() - start) * 1000

        db_status = ProviderHealthResponse(
            name="sqlite",
            available=True,
            latency_ms=latency,
        )

    except Exception as e:
        db_status = ProviderHealthResponse(
            name="sqlite",
            available=False,
            error=str(e),
        )

    return HealthResponse(
        status="healthy" if db_status.available else "unhealthy",
        version=get_settings().app_version,
        uptime_seconds=time.time() - _start_time,
        database=db_status,
    )
