"""
Stock ledger entities.

A movement request is one of three closed variants (receipt, issue,
adjustment) discriminated by ``kind``; each variant knows which fields it
needs and how it turns into a signed delta. Ledger rows are frozen once
built: corrections are new rows, never edits.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from clinic_inventory.core.exceptions import ValidationError
from clinic_inventory.core.timeutils import utcnow


class MovementType(str, Enum):
    """Types of stock movements."""

    IN = "in"
    OUT = "out"
    ADJUSTMENT = "adjustment"


class MovementReason(str, Enum):
    """Why stock moved."""

    PURCHASE = "purchase"
    SALE = "sale"
    USAGE = "usage"
    RETURN = "return"
    ADJUSTMENT = "adjustment"
    TRANSFER = "transfer"
    EXPIRED = "expired"
    DAMAGED = "damaged"
    THEFT = "theft"
    DONATION = "donation"
    OTHER = "other"


class StockMovement(BaseModel):
    """One immutable ledger row."""

    model_config = ConfigDict(frozen=True)

    id: int | None = None
    product_id: int
    movement_type: MovementType
    quantity: int  # amount for in/out, absolute target for adjustment
    delta: int  # signed effect on stock
    previous_stock: int
    new_stock: int
    reason: MovementReason
    description: str | None = None
    reference_number: str | None = None
    unit_cost: float | None = None
    total_cost: float | None = None
    actor: str | None = None
    request_id: str | None = None
    created_at: datetime = Field(default_factory=utcnow)

    # Read-side projection, not part of the ledger row
    product_name: str | None = None


class _MovementCommand(BaseModel):
    """Fields shared by every movement request."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    product_id: int
    reason: MovementReason
    description: str | None = None
    reference_number: str | None = None
    actor: str | None = None
    request_id: str | None = Field(default=None, min_length=1, max_length=128)

    @property
    def movement_type(self) -> MovementType:
        return MovementType(self.kind)  # type: ignore[attr-defined]

    @property
    def recorded_quantity(self) -> int:
        raise NotImplementedError

    def delta(self, current_stock: int) -> int:
        """Signed change this request applies to ``current_stock``."""
        raise NotImplementedError

    def matches(self, movement: StockMovement) -> bool:
        """True when ``movement`` was produced by an identical request."""
        return (
            movement.product_id == self.product_id
            and movement.movement_type == self.movement_type
            and movement.quantity == self.recorded_quantity
            and movement.reason == self.reason
        )

    def to_movement(self, previous_stock: int) -> StockMovement:
        """Build the ledger row this request produces against ``previous_stock``."""
        delta = self.delta(previous_stock)
        unit_cost = getattr(self, "unit_cost", None)
        total_cost = None
        if unit_cost is not None and self.movement_type != MovementType.ADJUSTMENT:
            total_cost = round(unit_cost * self.recorded_quantity, 4)
        return StockMovement(
            product_id=self.product_id,
            movement_type=self.movement_type,
            quantity=self.recorded_quantity,
            delta=delta,
            previous_stock=previous_stock,
            new_stock=previous_stock + delta,
            reason=self.reason,
            description=self.description,
            reference_number=self.reference_number,
            unit_cost=unit_cost,
            total_cost=total_cost,
            actor=self.actor,
            request_id=self.request_id,
        )


class StockIn(_MovementCommand):
    """Receipt: adds ``quantity`` units."""

    kind: Literal["in"] = "in"
    quantity: int = Field(gt=0)
    unit_cost: float | None = Field(default=None, ge=0)

    @property
    def recorded_quantity(self) -> int:
        return self.quantity

    def delta(self, current_stock: int) -> int:
        return self.quantity


class StockOut(_MovementCommand):
    """Issue: removes ``quantity`` units; never more than are on hand."""

    kind: Literal["out"] = "out"
    quantity: int = Field(gt=0)
    unit_cost: float | None = Field(default=None, ge=0)

    @property
    def recorded_quantity(self) -> int:
        return self.quantity

    def delta(self, current_stock: int) -> int:
        return -self.quantity


class StockAdjustment(_MovementCommand):
    """Count correction: sets stock to ``new_quantity``."""

    kind: Literal["adjustment"] = "adjustment"
    new_quantity: int = Field(ge=0)
    reason: MovementReason = MovementReason.ADJUSTMENT

    @property
    def recorded_quantity(self) -> int:
        return self.new_quantity

    def delta(self, current_stock: int) -> int:
        return self.new_quantity - current_stock


MovementCommand = Annotated[
    StockIn | StockOut | StockAdjustment,
    Field(discriminator="kind"),
]

_command_adapter: TypeAdapter[StockIn | StockOut | StockAdjustment] = TypeAdapter(
    MovementCommand
)


def build_command(**fields: Any) -> StockIn | StockOut | StockAdjustment:
    """
    Build a movement request from loose input.

    Raises the domain ValidationError (not pydantic's) so callers see one
    error type for bad input regardless of where it was caught.
    """
    try:
        return _command_adapter.validate_python(fields)
    except PydanticValidationError as e:
        first = e.errors()[0]
        # loc is prefixed with the variant tag, e.g. ("out", "quantity")
        field = str(first["loc"][-1]) if first["loc"] else "kind"
        raise ValidationError(
            field=field,
            message=first["msg"],
            value=first.get("input"),
        ) from e


class MovementFilter(BaseModel):
    """Filters for ledger reads."""

    product_id: int | None = None
    movement_type: MovementType | None = None
    start: datetime | None = None  # inclusive
    end: datetime | None = None  # exclusive


class MovementPage(BaseModel):
    """One page of ledger rows, newest first."""

    items: list[StockMovement]
    next_cursor: int | None = None  # pass as before_id for the next page
