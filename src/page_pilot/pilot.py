"""
Public control surface over one headless browser page.

Pilot owns a Session and exposes every operation as an async method.
Each call waits for the session to be ready before touching the page,
so methods can be called immediately after construction.

Example:
    >>> async with Pilot() as pilot:
    ...     await pilot.open("https://example.com")
    ...     await pilot.wait_for_selector("h1")
    ...     print(await pilot.title())
"""

from pathlib import Path
from typing import Any

from page_pilot import operations as ops
from page_pilot.config.settings import Settings
from page_pilot.engine.base import Engine, EventKind
from page_pilot.operations import UNSET, TypeOptions
from page_pilot.session import Session
from page_pilot.session.events import EventCallback


class Pilot:
    """
    Async control surface for one browser session.

    Operations issued one after another (each awaited before the next)
    run in issue order. Concurrently issued operations are admitted one
    at a time in FIFO order unless ``session.serialize_operations`` is
    disabled, in which case ordering is the caller's responsibility.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        engine: Engine | None = None,
    ) -> None:
        self.session = Session(settings, engine)

    async def ready(self) -> None:
        """Wait until the browser session is ready."""
        await self.session.ready()

    async def close(self) -> None:
        """Close the page and shut the browser down."""
        await self.session.close()

    async def __aenter__(self) -> "Pilot":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @property
    def target_url(self) -> str | None:
        return self.session.target_url

    # -------------------------------------------------------------------------
    # Navigation
    # -------------------------------------------------------------------------

    async def user_agent(self, agent: str | None = None) -> str | None:
        return await ops.user_agent(self.session, agent)

    async def open(self, url: str) -> str:
        return await ops.open_url(self.session, url)

    async def post(self, url: str, data: str) -> None:
        await ops.post(self.session, url, data)

    async def headers(self, custom_headers: dict[str, str]) -> None:
        await ops.headers(self.session, custom_headers)

    async def back(self) -> None:
        await ops.back(self.session)

    async def forward(self) -> None:
        await ops.forward(self.session)

    async def authentication(self, user: str, password: str) -> None:
        await ops.authentication(self.session, user, password)

    async def viewport(
        self,
        width: int | None = None,
        height: int | None = None,
    ) -> dict[str, int] | None:
        return await ops.viewport(self.session, width, height)

    async def zoom(self, factor: float) -> None:
        await ops.zoom(self.session, factor)

    async def scroll_to(self, top: int, left: int) -> None:
        await ops.scroll_to(self.session, top, left)

    async def reload(self) -> None:
        await ops.reload(self.session)

    async def cookies(
        self,
        arg: list[dict[str, Any]] | dict[str, Any] | None = None,
    ) -> list[dict[str, Any]] | None:
        return await ops.cookies(self.session, arg)

    async def switch_to_child_frame(self, frame: str | int) -> None:
        await ops.switch_to_child_frame(self.session, frame)

    # -------------------------------------------------------------------------
    # Interaction
    # -------------------------------------------------------------------------

    async def click(self, selector: str) -> None:
        await ops.click(self.session, selector)

    async def screenshot(
        self,
        path: str | Path,
        top: float | None = None,
        left: float | None = None,
        width: float | None = None,
        height: float | None = None,
    ) -> None:
        await ops.screenshot(self.session, path, top, left, width, height)

    async def screenshot_base64(self, fmt: str) -> str:
        return await ops.screenshot_base64(self.session, fmt)

    async def pdf(self, path: str | Path, paper_size: dict[str, Any] | None = None) -> None:
        await ops.pdf(self.session, path, paper_size)

    async def inject_js(self, path: str | Path) -> bool:
        return await ops.inject_js(self.session, path)

    async def select(self, selector: str, option: Any) -> None:
        await ops.select(self.session, selector, option)

    async def clear(self, selector: str) -> None:
        await ops.clear(self.session, selector)

    async def keyboard_event(
        self,
        event_type: str = "keypress",
        key: str | None = None,
        modifier: int = 0,
    ) -> None:
        await ops.keyboard_event(self.session, event_type, key, modifier)

    async def mouse_event(
        self,
        event_type: str = "click",
        x: float | None = None,
        y: float | None = None,
        button: str = "left",
    ) -> None:
        await ops.mouse_event(self.session, event_type, x, y, button)

    async def type(
        self,
        selector: str,
        text: str,
        options: TypeOptions | dict[str, Any] | None = None,
    ) -> None:
        await ops.type_text(self.session, selector, text, options)

    async def upload(self, selector: str, path: str | Path) -> None:
        await ops.upload(self.session, selector, path)

    async def manipulate(self, fn: str, *args: Any) -> None:
        await ops.manipulate(self.session, fn, *args)

    # -------------------------------------------------------------------------
    # Information
    # -------------------------------------------------------------------------

    async def evaluate(self, fn: str, *args: Any) -> Any:
        return await ops.evaluate(self.session, fn, *args)

    async def url(self) -> str:
        return await ops.url(self.session)

    async def title(self) -> str:
        return await ops.title(self.session)

    async def count(self, selector: str) -> int:
        return await ops.count(self.session, selector)

    async def exists(self, selector: str) -> bool:
        return await ops.exists(self.session, selector)

    async def html(self, selector: str | None = None) -> str:
        return await ops.html(self.session, selector)

    async def text(self, selector: str | None = None) -> str:
        return await ops.text(self.session, selector)

    async def attribute(self, selector: str, name: str) -> str | None:
        return await ops.attribute(self.session, selector, name)

    async def css_property(self, selector: str, prop: str) -> str:
        return await ops.css_property(self.session, selector, prop)

    async def width(self, selector: str) -> int:
        return await ops.width(self.session, selector)

    async def height(self, selector: str) -> int:
        return await ops.height(self.session, selector)

    async def value(self, selector: str, new_value: Any = UNSET) -> Any:
        return await ops.value(self.session, selector, new_value)

    async def visible(self, selector: str) -> bool:
        return await ops.visible(self.session, selector)

    # -------------------------------------------------------------------------
    # Events and waiting
    # -------------------------------------------------------------------------

    async def on(self, event: EventKind | str, callback: EventCallback | None) -> None:
        await ops.on(self.session, event, callback)

    async def wait(self, milliseconds: float) -> None:
        await ops.wait(self.session, milliseconds)

    async def wait_for(self, fn: str, expected: Any, *args: Any) -> None:
        await ops.wait_for(self.session, fn, expected, *args)

    async def wait_for_selector(self, selector: str) -> None:
        await ops.wait_for_selector(self.session, selector)

    async def wait_for_next_page(self) -> None:
        await ops.wait_for_next_page(self.session)

    # -------------------------------------------------------------------------
    # Tabs
    # -------------------------------------------------------------------------

    def tab_count(self) -> int:
        raise NotImplementedError("Multiple tabs are not supported")

    async def switch_to_tab(self, index: int) -> None:
        raise NotImplementedError("Multiple tabs are not supported")

    async def open_tab(self, url: str | None = None) -> None:
        raise NotImplementedError("Multiple tabs are not supported")
