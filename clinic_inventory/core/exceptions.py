"""
Domain exceptions for the clinic inventory ledger.

Every failure the engine can report has its own type and a stable,
machine-readable code. Domain errors are raised before anything is
written, so catching one means the ledger and stock are unchanged.
"""

from typing import Any


class InventoryError(Exception):
    """Base exception for all inventory errors."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


# Validation Exceptions
class ValidationError(InventoryError):
    """Input validation failed."""

    def __init__(self, field: str, message: str, value: Any = None):
        super().__init__(
            f"Validation error for '{field}': {message}",
            code="VALIDATION_ERROR",
            details={
                "field": field,
                "message": message,
                "value": str(value)[:100] if value is not None else None,
            },
        )


class InvalidOperationError(InventoryError):
    """The operation is not allowed through this path."""

    def __init__(self, operation: str, reason: str):
        super().__init__(
            f"Invalid operation '{operation}': {reason}",
            code="INVALID_OPERATION",
            details={"operation": operation, "reason": reason},
        )


# Ledger Exceptions
class LedgerError(InventoryError):
    """Base exception for ledger and reconciliation failures."""

    pass


class InsufficientStockError(LedgerError):
    """Movement would take stock below zero."""

    def __init__(self, product_id: int, requested: int, available: int):
        super().__init__(
            f"Insufficient stock for product {product_id}: "
            f"requested {requested}, available {available}",
            code="INSUFFICIENT_STOCK",
            details={
                "product_id": product_id,
                "requested": requested,
                "available": available,
            },
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available


class ConcurrencyConflictError(LedgerError):
    """Compare-and-swap on current stock kept losing to other writers."""

    def __init__(self, product_id: int, attempts: int):
        super().__init__(
            f"Stock for product {product_id} changed concurrently "
            f"{attempts} times in a row",
            code="CONCURRENCY_CONFLICT",
            details={"product_id": product_id, "attempts": attempts},
        )


class StaleStockError(LedgerError):
    """Stock changed between read and write; the engine re-reads and retries."""

    def __init__(self, product_id: int, expected: int):
        super().__init__(
            f"Stock for product {product_id} is no longer {expected}",
            code="STALE_STOCK",
            details={"product_id": product_id, "expected": expected},
        )


class DuplicateRequestError(LedgerError):
    """A ledger row with this request id already exists."""

    def __init__(self, request_id: str):
        super().__init__(
            f"Request id already recorded: {request_id}",
            code="DUPLICATE_REQUEST",
            details={"request_id": request_id},
        )


class IdempotencyConflictError(LedgerError):
    """Request id was already used for a different movement."""

    def __init__(self, request_id: str, existing_movement_id: int):
        super().__init__(
            f"Request id '{request_id}' was already used for movement "
            f"{existing_movement_id} with a different payload",
            code="IDEMPOTENCY_CONFLICT",
            details={
                "request_id": request_id,
                "existing_movement_id": existing_movement_id,
            },
        )


# Storage Exceptions
class StorageError(InventoryError):
    """Base exception for storage operations."""

    pass


class ProductNotFoundError(StorageError):
    """Product does not exist or is inactive."""

    def __init__(self, product_id: int, inactive: bool = False):
        reason = "inactive" if inactive else "not found"
        super().__init__(
            f"Product {reason}: {product_id}",
            code="PRODUCT_NOT_FOUND",
            details={"product_id": product_id, "inactive": inactive},
        )


class DatabaseError(StorageError):
    """Database operation failed."""

    def __init__(self, operation: str, error: str):
        super().__init__(
            f"Database error during {operation}: {error}",
            code="DATABASE_ERROR",
            details={"operation": operation, "error": error},
        )


class ConfigurationError(InventoryError):
    """Configuration error."""

    pass
