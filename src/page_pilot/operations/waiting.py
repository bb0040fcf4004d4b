"""
Event registration and waiting operations.
"""

import asyncio
from typing import Any

from page_pilot.engine.base import EventKind
from page_pilot.session import Session, resolve_event_kind
from page_pilot.session.events import EventCallback
from page_pilot.utils.logging import get_logger

logger = get_logger(__name__)

_SELECTOR_PRESENT_FN = "(selector) => document.querySelector(selector) !== null"


async def on(
    session: Session,
    event: EventKind | str,
    callback: EventCallback | None,
) -> None:
    """
    Register a callback for a page event.

    The name is checked before anything else; registration takes effect
    once the session is ready.

    Raises:
        UnsupportedEventError: If event is not a supported event kind
    """
    kind = resolve_event_kind(event)
    await session.ready()
    session.events.register(kind, callback)


async def wait(session: Session, milliseconds: float) -> None:
    """Sleep for a fixed time once the session is ready."""
    logger.debug(f".wait() {milliseconds}")
    await session.ready()
    await asyncio.sleep(milliseconds / 1000)


async def wait_for(session: Session, fn: str, expected: Any, *args: Any) -> None:
    """
    Poll a page-context function until it returns ``expected``.

    Raises:
        WaitTimeoutError: If the session timeout elapses first
    """
    logger.debug(".waitFor()")
    await session.waits.wait_for(fn, expected, *args)


async def wait_for_selector(session: Session, selector: str) -> None:
    """
    Wait until ``selector`` matches an element.

    Raises:
        WaitTimeoutError: If the session timeout elapses first
    """
    logger.debug(f".waitForSelector() {selector}")
    await session.waits.wait_for(_SELECTOR_PRESENT_FN, True, selector)


async def wait_for_next_page(session: Session) -> None:
    """
    Wait until the engine reports the next finished page load.

    Raises:
        WaitTimeoutError: If the session timeout elapses first
    """
    logger.debug(".waitForNextPage()")
    await session.waits.wait_for_next_page()
