"""Pytest fixtures for SQLite storage tests."""

from collections.abc import AsyncGenerator
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from clinic_inventory.core.entities import (
    MovementReason,
    MovementType,
    Product,
    ProductCategory,
    StockMovement,
)
from clinic_inventory.infrastructure.storage.sqlite.migrations.migrator import (
    initialize_database,
)


@pytest.fixture
async def initialized_db(temp_db_path: Path) -> AsyncGenerator[Path, None]:
    """Create a temporary database with the real schema applied."""
    await initialize_database(temp_db_path, create_backup_before=False)
    yield temp_db_path


@pytest.fixture
def mock_settings(temp_db_path: Path):
    """Mock settings with temp database path."""
    mock = MagicMock()
    mock.storage.db_path = temp_db_path
    mock.storage.pool_size = 2
    mock.storage.busy_timeout = 5000
    return mock


@pytest.fixture
def sample_product() -> Product:
    """Sample product with a low-stock threshold."""
    return Product(
        name="Luva de procedimento M",
        description="Caixa com 100 unidades",
        category=ProductCategory.MEDICAL_SUPPLY,
        supplier="Descarpack",
        unit_of_measure="caixa",
        unit_price=32.5,
        barcode="7891234567890",
        min_stock=5,
    )


@pytest.fixture
def make_opening():
    """Factory for the opening adjustment row the catalog service builds."""

    def _make(quantity: int) -> StockMovement:
        return StockMovement(
            product_id=0,
            movement_type=MovementType.ADJUSTMENT,
            quantity=quantity,
            delta=quantity,
            previous_stock=0,
            new_stock=quantity,
            reason=MovementReason.ADJUSTMENT,
            description="Opening balance",
        )

    return _make


@pytest.fixture
def make_movement():
    """Factory for an in/out ledger row of ``quantity`` against ``previous_stock``."""

    def _make(
        product_id: int,
        movement_type: MovementType,
        quantity: int,
        previous_stock: int,
        request_id: str | None = None,
    ) -> StockMovement:
        delta = quantity if movement_type == MovementType.IN else -quantity
        return StockMovement(
            product_id=product_id,
            movement_type=movement_type,
            quantity=quantity,
            delta=delta,
            previous_stock=previous_stock,
            new_stock=previous_stock + delta,
            reason=(
                MovementReason.PURCHASE
                if movement_type == MovementType.IN
                else MovementReason.USAGE
            ),
            request_id=request_id,
        )

    return _make
