"""
Configuration module for page-pilot.

Pydantic settings models loaded from layered sources: defaults,
a YAML file, environment variables and caller overrides.
"""

from page_pilot.config.settings import (
    Settings,
    BrowserSettings,
    SessionSettings,
    LoggingSettings,
)
from page_pilot.config.loader import (
    find_config_file,
    get_settings,
    load_config,
    reset_settings,
)

__all__ = [
    "Settings",
    "BrowserSettings",
    "SessionSettings",
    "LoggingSettings",
    "find_config_file",
    "get_settings",
    "load_config",
    "reset_settings",
]
