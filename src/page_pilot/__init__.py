"""
page-pilot - An asyncio control surface over a headless browser page.

Exposes navigation, DOM inspection and manipulation, input simulation
and page-event hooks as awaitable operations, all gated on one lazily
started browser session.
"""

from page_pilot.config import Settings, load_config
from page_pilot.core.exceptions import (
    PagePilotError,
    InitializationError,
    EngineCallError,
    WaitTimeoutError,
    InputValidationError,
)
from page_pilot.engine.base import EventKind
from page_pilot.operations import TypeOptions
from page_pilot.pilot import Pilot
from page_pilot.session import Session
from page_pilot.utils.logging import setup_logging, get_logger

__version__ = "0.1.0"

__all__ = [
    "Pilot",
    "Session",
    "Settings",
    "load_config",
    "EventKind",
    "TypeOptions",
    "setup_logging",
    "get_logger",
    "PagePilotError",
    "InitializationError",
    "EngineCallError",
    "WaitTimeoutError",
    "InputValidationError",
]
