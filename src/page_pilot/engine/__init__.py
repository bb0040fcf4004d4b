"""
Engine module for page-pilot.

Provides the capability interface the session drives and its
Playwright implementation:
- PageCapability / Engine protocols and the EventKind vocabulary
- Browser lifecycle management
- Playwright page adapter
"""

from page_pilot.engine.base import (
    Engine,
    EventKind,
    EVENT_ARGUMENTS,
    IMAGE_FORMATS,
    MODIFIER_KEYS,
    PageCapability,
)
from page_pilot.engine.manager import BrowserManager
from page_pilot.engine.playwright_engine import PlaywrightEngine, PlaywrightPage

__all__ = [
    "Engine",
    "EventKind",
    "EVENT_ARGUMENTS",
    "IMAGE_FORMATS",
    "MODIFIER_KEYS",
    "PageCapability",
    "BrowserManager",
    "PlaywrightEngine",
    "PlaywrightPage",
]
