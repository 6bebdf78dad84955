"""Configuration module."""

from clinic_inventory.config.logging import (
    bind_request_context,
    clear_request_context,
    configure_logging,
    get_logger,
)
from clinic_inventory.config.settings import (
    LedgerSettings,
    Settings,
    get_settings,
    reset_settings,
)

__all__ = [
    "Settings",
    "LedgerSettings",
    "get_settings",
    "reset_settings",
    "configure_logging",
    "bind_request_context",
    "clear_request_context",
    "get_logger",
]
