"""Pytest configuration and fixtures."""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from clinic_inventory.core.services import (
    AuditQueryService,
    ProductCatalogService,
    ProductLockRegistry,
    ReconciliationEngine,
)
from clinic_inventory.infrastructure.storage.sqlite.connection import ConnectionPool
from clinic_inventory.infrastructure.storage.sqlite.inventory_store import (
    SQLiteInventoryStore,
)
from clinic_inventory.infrastructure.storage.sqlite.migrations.migrator import (
    initialize_database,
)


@pytest.fixture
def temp_db_path(tmp_path: Path) -> Path:
    """Create a temporary database path."""
    return tmp_path / "inventory_test.db"


@pytest_asyncio.fixture
async def ledger_pool(temp_db_path: Path) -> AsyncGenerator[ConnectionPool, None]:
    """Connection pool over a temporary database with the real migrations applied."""
    await initialize_database(temp_db_path, create_backup_before=False)
    pool = ConnectionPool(db_path=temp_db_path, pool_size=3, busy_timeout=5000)
    await pool.initialize()
    yield pool
    await pool.close()


@pytest.fixture
def store(ledger_pool: ConnectionPool) -> SQLiteInventoryStore:
    return SQLiteInventoryStore(pool=ledger_pool)


@pytest.fixture
def catalog(store: SQLiteInventoryStore) -> ProductCatalogService:
    return ProductCatalogService(store=store)


@pytest.fixture
def engine(store: SQLiteInventoryStore) -> ReconciliationEngine:
    return ReconciliationEngine(store=store, locks=ProductLockRegistry(), max_retries=5)


@pytest.fixture
def audit(store: SQLiteInventoryStore) -> AuditQueryService:
    return AuditQueryService(store=store, recent_window_days=7)


@pytest_asyncio.fixture
async def api_client(
    store: SQLiteInventoryStore,
    catalog: ProductCatalogService,
    engine: ReconciliationEngine,
    audit: AuditQueryService,
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client whose services all run against the temporary database."""
    from clinic_inventory.api.dependencies import (
        get_adjust_stock_use_case,
        get_audit,
        get_catalog,
        get_create_product_use_case,
        get_record_movement_use_case,
        get_update_product_use_case,
    )
    from clinic_inventory.api.main import app
    from clinic_inventory.application.use_cases import (
        AdjustStockUseCase,
        CreateProductUseCase,
        RecordStockMovementUseCase,
        UpdateProductUseCase,
    )

    overrides = {
        get_catalog: lambda: catalog,
        get_audit: lambda: audit,
        get_create_product_use_case: lambda: CreateProductUseCase(catalog=catalog),
        get_update_product_use_case: lambda: UpdateProductUseCase(catalog=catalog),
        get_record_movement_use_case: lambda: RecordStockMovementUseCase(engine=engine),
        get_adjust_stock_use_case: lambda: AdjustStockUseCase(engine=engine),
    }
    app.dependency_overrides.update(overrides)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    for dependency in overrides:
        app.dependency_overrides.pop(dependency, None)
