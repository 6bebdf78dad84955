"""API middleware."""

from clinic_inventory.api.middleware.error_handler import ErrorHandlerMiddleware
from clinic_inventory.api.middleware.logging import LoggingMiddleware

__all__ = ["LoggingMiddleware", "ErrorHandlerMiddleware"]
