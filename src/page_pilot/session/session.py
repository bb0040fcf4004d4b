"""
Browser session handle.

Owns one engine connection and its single active page. Every operation
goes through ``Session.operation()``, which waits for the memoized
readiness task and then for admission on the session's operation queue.
Nothing reaches the page before the session is ready.
"""

import asyncio
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable

from page_pilot.config.settings import Settings
from page_pilot.core.exceptions import BrowserError, EngineCallError, InitializationError
from page_pilot.engine.base import Engine, PageCapability
from page_pilot.engine.playwright_engine import PlaywrightEngine
from page_pilot.session.events import EventBridge
from page_pilot.session.queue import OperationQueue
from page_pilot.session.wait import WaitEngine
from page_pilot.utils.logging import get_logger_with_context


class Session:
    """
    One browser engine connection and one active page.

    The engine is launched lazily on the first ``ready()`` call. Every
    later call, concurrent or not, awaits the same launch. A failed
    launch is final: ``ready()`` keeps raising the same
    InitializationError.

    Attributes:
        target_url: Last URL opened or reported by the engine
        waiting_for_next_page: Raised by wait_for_next_page, cleared on load finished
        on_tab_created: Callback registered for tabCreated, if any
    """

    def __init__(
        self,
        settings: Settings | None = None,
        engine: Engine | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.options = self.settings.session
        self.id = uuid.uuid4().hex[:8]
        self.logger = get_logger_with_context(__name__, session=self.id)

        self.target_url: str | None = None
        self.waiting_for_next_page = False
        self.on_tab_created: Callable[..., Any] | None = None

        self.queue = OperationQueue(enabled=self.options.serialize_operations)
        self.events = EventBridge(self)
        self.waits = WaitEngine(self)

        self._engine = engine
        self._page: PageCapability | None = None
        self._ready: asyncio.Task | None = None
        self._closed = False

    async def ready(self) -> None:
        """
        Wait until the engine is launched and the page configured.

        Raises:
            InitializationError: If the engine could not be started
        """
        if self._ready is None:
            if self._closed:
                raise BrowserError("Session is closed")
            self._ready = asyncio.ensure_future(self._initialize())
        # Shielded so a cancelled caller does not cancel the shared launch
        await asyncio.shield(self._ready)

    async def _initialize(self) -> None:
        if self._engine is None:
            self._engine = PlaywrightEngine()

        self.logger.debug("Launching browser engine")
        try:
            page = await self._engine.launch(self.settings.browser)
        except Exception as e:
            raise InitializationError(
                f"Browser session failed to start: {e}",
                details={"browser_type": self.settings.browser.browser_type},
            ) from e

        self._page = page
        self.events.attach(page)
        self.logger.debug("Session ready")

    @property
    def is_ready(self) -> bool:
        """Whether readiness has resolved successfully."""
        return (
            self._ready is not None
            and self._ready.done()
            and not self._ready.cancelled()
            and self._ready.exception() is None
        )

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def page(self) -> PageCapability:
        """
        The page capability.

        Raises:
            BrowserError: If accessed before readiness
        """
        if self._page is None:
            raise BrowserError("Session is not ready")
        return self._page

    @asynccontextmanager
    async def operation(self, name: str) -> AsyncIterator[PageCapability]:
        """
        Gate one engine operation on readiness and queue admission.

        Example:
            >>> async with session.operation("title") as page:
            ...     title = await page.evaluate("() => document.title")
        """
        if self._closed:
            raise BrowserError("Session is closed", details={"operation": name})
        await self.ready()
        async with self.queue.admit():
            self.logger.debug(f".{name}()")
            yield self.page

    async def close(self) -> None:
        """
        Stop event delivery, close the page and shut the engine down.

        Safe to call multiple times and before the session became ready.
        """
        if self._closed:
            return
        self._closed = True

        await self.events.close()

        if self._ready is None:
            return
        await asyncio.wait({self._ready})

        if self._page is not None:
            try:
                await self._page.close()
            except EngineCallError as e:
                self.logger.warning(f"Error closing page: {e}")
            self._page = None

        if self._engine is not None:
            await self._engine.shutdown()

        self.logger.debug("Session closed")
