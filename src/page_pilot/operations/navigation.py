"""
Navigation and page-settings operations.

Getter/setter pairs (user agent, viewport, cookies) read when called
without a value and write otherwise. Writes resolve with None once the
engine has acknowledged them.
"""

import asyncio
from typing import Any

from page_pilot.core.exceptions import CookieError
from page_pilot.operations.information import evaluate
from page_pilot.session import Session
from page_pilot.utils.logging import get_logger

logger = get_logger(__name__)


async def user_agent(session: Session, agent: str | None = None) -> str | None:
    """
    Get or set the user agent sent with page requests.

    Args:
        session: Session to run against
        agent: New user agent; omit to read the current one

    Returns:
        The current user agent when reading, None when writing
    """
    async with session.operation("userAgent") as page:
        settings = await page.get("settings")
        if agent is None:
            return settings.get("userAgent")
        settings["userAgent"] = agent
        await page.set("settings", settings)
        return None


async def open_url(session: Session, url: str) -> str:
    """
    Open a url in the page.

    Returns:
        The engine's load status, ``"success"`` or ``"fail"``
    """
    async with session.operation("open") as page:
        logger.debug(f".open {url}")
        status = await page.open(url)
        session.target_url = url
        return status


async def post(session: Session, url: str, data: str) -> None:
    """Open a url with a POST request carrying ``data``."""
    session.target_url = url
    async with session.operation("post") as page:
        status = await page.open(url, "POST", data)
        logger.debug(f".post: {url} - status: {status}")


async def headers(session: Session, custom_headers: dict[str, str]) -> None:
    """Set headers sent to the remote server on every request."""
    async with session.operation("headers") as page:
        await page.set("customHeaders", custom_headers)


async def back(session: Session) -> None:
    """Go back a page."""
    async with session.operation("back") as page:
        await page.go_back()


async def forward(session: Session) -> None:
    """Go forward a page."""
    async with session.operation("forward") as page:
        await page.go_forward()


async def authentication(session: Session, user: str, password: str) -> None:
    """Use HTTP basic authentication for subsequent requests."""
    async with session.operation("authentication") as page:
        settings = await page.get("settings")
        settings["userName"] = user
        settings["password"] = password
        await page.set("settings", settings)


async def viewport(
    session: Session,
    width: int | None = None,
    height: int | None = None,
) -> dict[str, int] | None:
    """
    Get or set the size of the viewport.

    Returns:
        ``{"width": ..., "height": ...}`` when reading, None when writing
    """
    if width is None:
        return await evaluate(
            session,
            "() => ({width: window.innerWidth, height: window.innerHeight})",
        )

    logger.debug(f"setting viewport() to width {width} height {height}")
    async with session.operation("viewport") as page:
        await page.set("viewportSize", {"width": width, "height": height})
        return None


async def zoom(session: Session, factor: float) -> None:
    """Set the zoom factor of the page."""
    async with session.operation("zoom") as page:
        await page.set("zoomFactor", factor)


async def scroll_to(session: Session, top: int, left: int) -> None:
    """Scroll the page to a position."""
    async with session.operation("scrollTo") as page:
        await page.set("scrollPosition", {"top": top, "left": left})


async def reload(session: Session) -> None:
    """Reload the page."""
    # Deferred so the evaluate reply is sent before the document unloads
    await evaluate(
        session,
        "() => { setTimeout(() => document.location.reload(), 0); }",
    )


async def cookies(
    session: Session,
    arg: list[dict[str, Any]] | dict[str, Any] | None = None,
) -> list[dict[str, Any]] | None:
    """
    Read, add or replace cookies.

    - list: clear every cookie, then add each one. If clearing fails,
      nothing is added. Every addition is attempted and awaited; failures
      are reported together in one CookieError.
    - dict: add a single cookie.
    - None: return the current cookies.

    Raises:
        EngineCallError: If clearing or a single addition fails
        CookieError: If any addition in a replacement failed
    """
    async with session.operation("cookies") as page:
        if arg is None:
            return await page.get("cookies")

        if isinstance(arg, dict):
            await page.add_cookie(arg)
            logger.debug(".cookie() added")
            return None

        await page.clear_cookies()
        logger.debug(".cookies() reset")

        results = await asyncio.gather(
            *(page.add_cookie(cookie) for cookie in arg),
            return_exceptions=True,
        )
        failures = [
            (cookie, result)
            for cookie, result in zip(arg, results)
            if isinstance(result, Exception)
        ]
        if failures:
            raise CookieError(
                f"Failed to add {len(failures)} of {len(arg)} cookies",
                failures=failures,
            )
        return None


async def switch_to_child_frame(session: Session, frame: str | int) -> None:
    """Direct subsequent page-context operations to a child frame."""
    async with session.operation("switchToChildFrame") as page:
        await page.switch_to_child_frame(frame)
