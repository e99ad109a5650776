"""Core client portal utilities.

This module exports configuration, logging and error types used
throughout the application.
"""

from clientportal.core.config import Settings, get_settings
from clientportal.core.logging import (
    bind_correlation_id,
    clear_context,
    configure_logging,
    get_logger,
)

__all__ = [
    "Settings",
    "get_settings",
    "configure_logging",
    "get_logger",
    "bind_correlation_id",
    "clear_context",
]
