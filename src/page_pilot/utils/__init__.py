"""
Utilities module for page-pilot.

Provides logging setup and helpers.
"""

from page_pilot.utils.logging import (
    setup_logging,
    get_logger,
    get_logger_with_context,
    reset_logging,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "get_logger_with_context",
    "reset_logging",
]
