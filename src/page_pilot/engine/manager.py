"""
Playwright driver and browser process lifetime.

One manager owns one browser process. Contexts handed out by
``new_context`` carry the viewport, user agent and timeouts from
BrowserSettings; the page adapter layers page-level settings on top.
"""

from typing import Any

from playwright.async_api import (
    async_playwright,
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    Playwright,
)

from page_pilot.config.settings import BrowserSettings
from page_pilot.core.exceptions import BrowserError
from page_pilot.utils.logging import get_logger

logger = get_logger(__name__)


def context_options(settings: BrowserSettings) -> dict[str, Any]:
    """Translate BrowserSettings into ``Browser.new_context`` keyword arguments."""
    options: dict[str, Any] = {
        "viewport": {
            "width": settings.viewport_width,
            "height": settings.viewport_height,
        },
        "ignore_https_errors": settings.ignore_https_errors,
        "java_script_enabled": settings.javascript_enabled,
    }
    if settings.user_agent:
        options["user_agent"] = settings.user_agent
    return options


class BrowserManager:
    """
    Starts and stops a single Playwright browser.

    Example:
        >>> async with BrowserManager(settings.browser) as manager:
        ...     context = await manager.new_context()
    """

    def __init__(self, settings: BrowserSettings) -> None:
        self.settings = settings
        self._driver: Playwright | None = None
        self._browser: Browser | None = None

    @property
    def is_running(self) -> bool:
        return self._browser is not None and self._browser.is_connected()

    async def start(self) -> None:
        """
        Launch the configured browser engine. A second call is a no-op.

        Raises:
            BrowserError: If the driver or the browser cannot start
        """
        if self._browser is not None:
            return

        engine = self.settings.browser_type
        logger.info(f"Launching {engine} (headless={self.settings.headless})")
        try:
            self._driver = await async_playwright().start()
            self._browser = await getattr(self._driver, engine).launch(
                headless=self.settings.headless)
        except Exception as e:
            await self._release()
            raise BrowserError(
                f"Failed to launch browser: {e}",
                details={"browser_type": engine},
            ) from e

    async def stop(self) -> None:
        """Close the browser and the driver. Safe before start and when repeated."""
        was_running = self._browser is not None
        await self._release()
        if was_running:
            logger.info("Browser stopped")

    async def new_context(self) -> BrowserContext:
        """
        Open a fresh browser context.

        Raises:
            BrowserError: If the browser is not started or refuses the context
        """
        if self._browser is None:
            raise BrowserError("Browser not started; call start() before new_context()")

        try:
            context = await self._browser.new_context(**context_options(self.settings))
        except PlaywrightError as e:
            raise BrowserError(f"Failed to create browser context: {e}") from e

        timeout = self.settings.navigation_timeout_ms
        context.set_default_timeout(timeout)
        context.set_default_navigation_timeout(timeout)
        return context

    async def _release(self) -> None:
        browser, self._browser = self._browser, None
        driver, self._driver = self._driver, None

        if browser is not None:
            try:
                await browser.close()
            except PlaywrightError as e:
                logger.warning(f"Error closing browser: {e}")
        if driver is not None:
            try:
                await driver.stop()
            except PlaywrightError as e:
                logger.warning(f"Error stopping Playwright: {e}")

    async def __aenter__(self) -> "BrowserManager":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()
