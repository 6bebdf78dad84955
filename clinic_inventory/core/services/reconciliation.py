"""
Reconciliation engine.

The only writer of a product's materialized stock. Turns a movement
request into a (ledger row, stock value) pair:

1. Read the latest committed stock of the product.
2. Compute the delta for the request variant.
3. Reject anything that would leave stock below zero.
4. Append the ledger row and swap the stock in one storage transaction,
   conditioned on the stock still being what was read in step 1.
5. Derive the stock status from the result; it is never stored.

Steps 1-4 run under the product's lock. If the conditional write still
loses (another process wrote first), the engine re-reads and tries again,
a bounded number of times. Validation failures are never retried: the
caller's quantity is wrong, not the timing.

A request id is looked up in the ledger before every attempt, so a retry
that arrives while its original is still being written gets the original
row back instead of being validated again.
"""

from dataclasses import dataclass
from typing import Any

from clinic_inventory.config import get_logger
from clinic_inventory.core.entities.movement import (
    MovementType,
    StockAdjustment,
    StockIn,
    StockMovement,
    StockOut,
    build_command,
)
from clinic_inventory.core.entities.product import StockStatus, classify_stock
from clinic_inventory.core.exceptions import (
    ConcurrencyConflictError,
    DuplicateRequestError,
    IdempotencyConflictError,
    InsufficientStockError,
    ProductNotFoundError,
    StaleStockError,
    ValidationError,
)
from clinic_inventory.core.interfaces.inventory_store import IInventoryStore
from clinic_inventory.core.services.locks import ProductLockRegistry

logger = get_logger(__name__)

DEFAULT_MAX_RETRIES = 5


@dataclass
class MovementResult:
    """Outcome of applying a movement."""

    movement: StockMovement
    current_stock: int
    stock_status: StockStatus
    replayed: bool = False  # True when an idempotent retry returned the original row


class ReconciliationEngine:
    """Validates and applies stock movements atomically per product."""

    def __init__(
        self,
        store: IInventoryStore,
        locks: ProductLockRegistry | None = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ) -> None:
        self._store = store
        self._locks = locks or ProductLockRegistry()
        self._max_retries = max_retries

    async def record_movement(
        self,
        product_id: int,
        kind: MovementType | str,
        quantity: int,
        reason: str,
        **meta: Any,
    ) -> MovementResult:
        """
        Record a movement from loose arguments.

        ``quantity`` is the amount for ``in``/``out`` and the absolute target
        for ``adjustment``. ``meta`` carries description, reference_number,
        unit_cost, actor and request_id.
        """
        kind_value = kind.value if isinstance(kind, MovementType) else kind
        qty_field = "new_quantity" if kind_value == MovementType.ADJUSTMENT.value else "quantity"
        command = build_command(
            kind=kind_value,
            product_id=product_id,
            reason=reason,
            **{qty_field: quantity},
            **meta,
        )
        return await self.apply(command)

    async def apply(self, command: StockIn | StockOut | StockAdjustment) -> MovementResult:
        """Apply a validated movement request."""
        logger.info(
            "stock_movement_requested",
            product_id=command.product_id,
            kind=command.kind,
            quantity=command.recorded_quantity,
            request_id=command.request_id,
        )

        if command.request_id:
            replay = await self._replay(command)
            if replay is not None:
                return replay

        async with self._locks.hold(command.product_id):
            for attempt in range(1, self._max_retries + 1):
                if command.request_id:
                    # The original may have committed while this call waited
                    # on the lock or lost the swap
                    replay = await self._replay(command)
                    if replay is not None:
                        return replay

                product = await self._store.get_product(command.product_id)
                if product is None:
                    raise ProductNotFoundError(command.product_id)
                if not product.is_active:
                    raise ProductNotFoundError(command.product_id, inactive=True)

                movement = self._plan(command, product.current_stock)

                try:
                    stored = await self._store.append_movement(
                        movement, expected_stock=product.current_stock
                    )
                except StaleStockError:
                    logger.warning(
                        "stock_cas_lost",
                        product_id=command.product_id,
                        attempt=attempt,
                    )
                    continue
                except DuplicateRequestError:
                    # A concurrent identical request committed first
                    replay = await self._replay(command)
                    if replay is None:
                        raise
                    return replay

                logger.info(
                    "stock_movement_recorded",
                    movement_id=stored.id,
                    product_id=stored.product_id,
                    movement_type=stored.movement_type.value,
                    delta=stored.delta,
                    new_stock=stored.new_stock,
                )
                return MovementResult(
                    movement=stored,
                    current_stock=stored.new_stock,
                    stock_status=classify_stock(stored.new_stock, product.min_stock),
                )

        logger.error(
            "stock_cas_exhausted",
            product_id=command.product_id,
            attempts=self._max_retries,
        )
        raise ConcurrencyConflictError(command.product_id, self._max_retries)

    @staticmethod
    def _plan(
        command: StockIn | StockOut | StockAdjustment, current_stock: int
    ) -> StockMovement:
        """Build the ledger row for ``command`` or raise without side effects."""
        movement = command.to_movement(previous_stock=current_stock)
        if movement.new_stock < 0:
            if isinstance(command, StockAdjustment):
                # Unreachable while new_quantity >= 0 is enforced on the model
                raise ValidationError(
                    "new_quantity", "must be zero or greater", command.new_quantity
                )
            raise InsufficientStockError(
                product_id=command.product_id,
                requested=command.recorded_quantity,
                available=current_stock,
            )
        return movement

    async def _replay(
        self, command: StockIn | StockOut | StockAdjustment
    ) -> MovementResult | None:
        """Return the original result for a repeated request id, if any."""
        if command.request_id is None:
            return None
        existing = await self._store.get_movement_by_request_id(command.request_id)
        if existing is None:
            return None
        if not command.matches(existing):
            raise IdempotencyConflictError(command.request_id, existing.id or 0)

        product = await self._store.get_product(existing.product_id)
        min_stock = product.min_stock if product else 0
        current = product.current_stock if product else existing.new_stock
        logger.info(
            "stock_movement_replayed",
            movement_id=existing.id,
            request_id=command.request_id,
        )
        return MovementResult(
            movement=existing,
            current_stock=current,
            stock_status=classify_stock(current, min_stock),
            replayed=True,
        )
