"""
Core module for page-pilot.

Contains the exception hierarchy used throughout the package.
"""

from page_pilot.core.exceptions import (
    PagePilotError,
    ConfigurationError,
    UnsupportedEventError,
    InputValidationError,
    BrowserError,
    InitializationError,
    EngineCallError,
    CookieError,
    WaitTimeoutError,
)

__all__ = [
    # Base
    "PagePilotError",
    "ConfigurationError",
    "UnsupportedEventError",
    "InputValidationError",
    # Browser
    "BrowserError",
    "InitializationError",
    "EngineCallError",
    "CookieError",
    "WaitTimeoutError",
]
