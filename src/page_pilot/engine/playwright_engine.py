"""
Playwright implementation of the page capability interface.

Maps the property/evaluate/send-event/render vocabulary the session
speaks onto a Playwright Page and its BrowserContext, and forwards
Playwright page events to the handlers installed by the event bridge.
"""

import asyncio
import base64
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from playwright.async_api import (
    BrowserContext,
    ConsoleMessage,
    Dialog,
    Error as PlaywrightError,
    Frame,
    Page,
    Request,
    Response,
    Route,
)

from page_pilot.config.settings import BrowserSettings
from page_pilot.core.exceptions import BrowserError, EngineCallError
from page_pilot.engine.base import EventHandler, EventKind, MODIFIER_KEYS
from page_pilot.engine.manager import BrowserManager
from page_pilot.utils.logging import get_logger

logger = get_logger(__name__)

# Playwright key names for the modifier bits; keypad has no equivalent
_MODIFIER_KEY_NAMES = {
    MODIFIER_KEYS["ctrl"]: "Control",
    MODIFIER_KEYS["shift"]: "Shift",
    MODIFIER_KEYS["alt"]: "Alt",
    MODIFIER_KEYS["meta"]: "Meta",
}

_KEY_EVENTS = ("keypress", "keydown", "keyup")
_MOUSE_EVENTS = ("click", "doubleclick", "mousedown", "mouseup", "mousemove")


@contextmanager
def _engine_call(operation: str) -> Iterator[None]:
    """Translate Playwright failures into EngineCallError."""
    try:
        yield
    except PlaywrightError as e:
        raise EngineCallError(str(e), operation=operation) from e


def modifier_key_names(modifier: int) -> list[str]:
    """
    Convert a modifier bitmask into Playwright key names.

    Args:
        modifier: Bitwise OR of MODIFIER_KEYS values

    Returns:
        Key names in Control, Shift, Alt, Meta order
    """
    return [
        name for bit, name in _MODIFIER_KEY_NAMES.items()
        if modifier & bit
    ]


def to_playwright_cookie(cookie: dict[str, Any]) -> dict[str, Any]:
    """
    Normalize a cookie record into the shape Playwright accepts.

    Accepts both lower-case ``httponly``/``expiry`` keys and Playwright's
    own ``httpOnly``/``expires``.
    """
    converted: dict[str, Any] = {
        "name": cookie["name"],
        "value": str(cookie.get("value", "")),
    }

    if "url" in cookie:
        converted["url"] = cookie["url"]
    else:
        converted["domain"] = cookie.get("domain")
        converted["path"] = cookie.get("path") or "/"

    http_only = cookie.get("httpOnly", cookie.get("httponly"))
    if http_only is not None:
        converted["httpOnly"] = bool(http_only)
    if cookie.get("secure") is not None:
        converted["secure"] = bool(cookie["secure"])

    expires = cookie.get("expires", cookie.get("expiry"))
    if isinstance(expires, (int, float)):
        converted["expires"] = expires

    if cookie.get("sameSite"):
        converted["sameSite"] = cookie["sameSite"]

    return converted


def navigation_type(request: Request) -> str:
    """
    Classify a navigation request for the navigationRequested event.

    Playwright reports requests only once they are being sent, so it
    cannot tell link clicks, reloads or history moves apart. POST
    navigations are reported as form submissions, a POST reached through
    a redirect as a resubmission, and everything else as ``"Other"``.
    """
    if request.method.upper() != "POST":
        return "Other"
    if request.redirected_from is not None:
        return "FormResubmitted"
    return "FormSubmitted"


def to_screenshot_clip(rect: dict[str, Any] | None) -> dict[str, float] | None:
    """Convert a {top, left, width, height} rectangle into a Playwright clip."""
    if not rect:
        return None
    return {
        "x": rect["left"],
        "y": rect["top"],
        "width": rect["width"],
        "height": rect["height"],
    }


class PlaywrightPage:
    """
    Page capability backed by a Playwright Page.

    Playwright's screenshot and pdf calls resolve after the file has been
    written, so renders are acknowledged.
    """

    render_acknowledged = True

    def __init__(
        self,
        page: Page,
        context: BrowserContext,
        settings: BrowserSettings,
    ) -> None:
        self.page = page
        self.context = context
        self._frame: Frame = page.main_frame
        self._handlers: dict[EventKind, EventHandler] = {}
        self._page_settings: dict[str, Any] = {
            "userAgent": settings.user_agent,
            "userName": None,
            "password": None,
            "loadImages": settings.load_images,
            "javascriptEnabled": settings.javascript_enabled,
        }
        self._custom_headers: dict[str, str] = {}
        self._clip_rect: dict[str, Any] | None = None
        self._paper_size: dict[str, Any] | None = None
        self._zoom_factor: float = 1.0
        self._attach_listeners()

    async def configure(self) -> None:
        """Apply the launch-time defaults the context does not cover."""
        with _engine_call("configure"):
            if not self._page_settings["userAgent"]:
                self._page_settings["userAgent"] = await self.page.evaluate(
                    "() => navigator.userAgent")
            if not self._page_settings["loadImages"]:
                await self.page.route("**/*", self._block_images)

    @staticmethod
    async def _block_images(route: Route) -> None:
        if route.request.resource_type == "image":
            await route.abort()
        else:
            await route.continue_()

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    async def get(self, name: str) -> Any:
        with _engine_call(f"get:{name}"):
            if name == "settings":
                return dict(self._page_settings)
            if name == "viewportSize":
                return self.page.viewport_size
            if name == "zoomFactor":
                return self._zoom_factor
            if name == "scrollPosition":
                return await self._frame.evaluate(
                    "() => ({top: window.scrollY, left: window.scrollX})")
            if name == "customHeaders":
                return dict(self._custom_headers)
            if name == "cookies":
                return await self.context.cookies()
            if name == "clipRect":
                return self._clip_rect
            if name == "paperSize":
                return self._paper_size
        raise EngineCallError(f"Unknown page property: {name}", operation="get")

    async def set(self, name: str, value: Any) -> None:
        with _engine_call(f"set:{name}"):
            if name == "settings":
                self._page_settings.update(value)
                await self._apply_headers()
            elif name == "viewportSize":
                await self.page.set_viewport_size(
                    {"width": int(value["width"]), "height": int(value["height"])})
            elif name == "zoomFactor":
                self._zoom_factor = float(value)
                await self._frame.evaluate(
                    "(zoom) => { document.body.style.zoom = zoom; }", self._zoom_factor)
            elif name == "scrollPosition":
                await self._frame.evaluate(
                    "(pos) => window.scrollTo(pos.left || 0, pos.top || 0)", value)
            elif name == "customHeaders":
                self._custom_headers = {k: str(v) for k, v in (value or {}).items()}
                await self._apply_headers()
            elif name == "cookies":
                await self.context.clear_cookies()
                await self.context.add_cookies(
                    [to_playwright_cookie(c) for c in value or []])
            elif name == "clipRect":
                self._clip_rect = value
            elif name == "paperSize":
                self._paper_size = value
            else:
                raise EngineCallError(
                    f"Unknown page property: {name}", operation="set")

    async def _apply_headers(self) -> None:
        headers = dict(self._custom_headers)
        user_agent = self._page_settings.get("userAgent")
        if user_agent:
            headers["User-Agent"] = user_agent
        user_name = self._page_settings.get("userName")
        if user_name:
            token = f"{user_name}:{self._page_settings.get('password') or ''}"
            headers["Authorization"] = "Basic " + base64.b64encode(
                token.encode("utf-8")).decode("ascii")
        await self.page.set_extra_http_headers(headers)

    # -------------------------------------------------------------------------
    # Navigation
    # -------------------------------------------------------------------------

    async def open(
        self,
        url: str,
        method: str = "GET",
        data: str | None = None,
    ) -> str:
        with _engine_call("open"):
            if method.upper() != "GET":
                async def rewrite(route: Route) -> None:
                    await route.continue_(method=method.upper(), post_data=data)

                await self.page.route(url, rewrite, times=1)

            response = await self.page.goto(url)
            self._frame = self.page.main_frame

        if response is not None and not response.ok:
            return "fail"
        return "success"

    async def go_back(self) -> None:
        with _engine_call("back"):
            await self.page.go_back()
            self._frame = self.page.main_frame

    async def go_forward(self) -> None:
        with _engine_call("forward"):
            await self.page.go_forward()
            self._frame = self.page.main_frame

    async def switch_to_child_frame(self, frame: str | int) -> None:
        with _engine_call("switchToChildFrame"):
            children = self._frame.child_frames
            target: Frame | None = None

            if isinstance(frame, int):
                if 0 <= frame < len(children):
                    target = children[frame]
            else:
                target = next((f for f in children if f.name == frame), None)
                if target is None:
                    element = await self._frame.query_selector(frame)
                    if element is not None:
                        target = await element.content_frame()

        if target is None:
            raise EngineCallError(
                f"Child frame not found: {frame}", operation="switchToChildFrame")
        self._frame = target

    # -------------------------------------------------------------------------
    # Page context
    # -------------------------------------------------------------------------

    async def evaluate(self, fn: str, *args: Any) -> Any:
        # Arguments travel as one serialized array and are spread into fn
        with _engine_call("evaluate"):
            return await self._frame.evaluate(
                f"(args) => ({fn})(...args)", list(args))

    async def inject_js(self, path: str) -> bool:
        with _engine_call("injectJs"):
            await self._frame.add_script_tag(path=path)
        return True

    async def upload_file(self, selector: str, path: str) -> None:
        with _engine_call("uploadFile"):
            await self._frame.set_input_files(selector, path)

    # -------------------------------------------------------------------------
    # Input
    # -------------------------------------------------------------------------

    async def send_event(
        self,
        event_type: str,
        arg1: Any = None,
        arg2: Any = None,
        arg3: Any = None,
        modifier: int = 0,
    ) -> None:
        with _engine_call("sendEvent"):
            if event_type in _KEY_EVENTS:
                await self._send_key_event(event_type, arg1, modifier)
            elif event_type in _MOUSE_EVENTS:
                await self._send_mouse_event(event_type, arg1, arg2, arg3)
            else:
                raise EngineCallError(
                    f"Unsupported input event: {event_type}", operation="sendEvent")

    async def _send_key_event(self, event_type: str, key: Any, modifier: int) -> None:
        keyboard = self.page.keyboard
        modifiers = modifier_key_names(modifier)
        key = str(key)

        if event_type == "keypress":
            if not modifiers and len(key) == 1:
                await keyboard.type(key)
            else:
                await keyboard.press("+".join(modifiers + [key]))
        elif event_type == "keydown":
            for name in modifiers:
                await keyboard.down(name)
            await keyboard.down(key)
        else:
            await keyboard.up(key)
            for name in reversed(modifiers):
                await keyboard.up(name)

    async def _send_mouse_event(
        self,
        event_type: str,
        x: float | None,
        y: float | None,
        button: str | None,
    ) -> None:
        mouse = self.page.mouse
        x = x or 0
        y = y or 0
        button = button or "left"

        if event_type == "click":
            await mouse.click(x, y, button=button)
        elif event_type == "doubleclick":
            await mouse.dblclick(x, y, button=button)
        elif event_type == "mousemove":
            await mouse.move(x, y)
        elif event_type == "mousedown":
            await mouse.move(x, y)
            await mouse.down(button=button)
        else:
            await mouse.move(x, y)
            await mouse.up(button=button)

    # -------------------------------------------------------------------------
    # Rendering
    # -------------------------------------------------------------------------

    async def render(self, path: str, options: dict[str, Any] | None = None) -> None:
        options = options or {}
        fmt = str(options.get("format") or Path(path).suffix.lstrip(".") or "png").lower()

        with _engine_call("render"):
            if fmt == "pdf":
                paper = self._paper_size or {}
                margin = paper.get("margin", "0.5in")
                await self.page.pdf(
                    path=path,
                    format=paper.get("format", "Letter"),
                    landscape=paper.get("orientation") == "landscape",
                    margin={side: margin for side in ("top", "right", "bottom", "left")},
                )
                return

            image_type = "jpeg" if fmt in ("jpg", "jpeg") else "png"
            screenshot_options: dict[str, Any] = {"path": path, "type": image_type}
            clip = to_screenshot_clip(self._clip_rect)
            if clip is not None:
                screenshot_options["clip"] = clip
            else:
                screenshot_options["full_page"] = True
            if image_type == "jpeg" and options.get("quality"):
                screenshot_options["quality"] = int(options["quality"])

            await self.page.screenshot(**screenshot_options)

    async def render_base64(self, fmt: str) -> str:
        if fmt.upper() == "GIF":
            raise EngineCallError(
                "GIF rendering is not supported by Playwright", operation="renderBase64")

        with _engine_call("renderBase64"):
            data = await self.page.screenshot(type=fmt.lower())
        return base64.b64encode(data).decode("ascii")

    # -------------------------------------------------------------------------
    # Cookies
    # -------------------------------------------------------------------------

    async def clear_cookies(self) -> None:
        with _engine_call("clearCookies"):
            await self.context.clear_cookies()

    async def add_cookie(self, cookie: dict[str, Any]) -> None:
        with _engine_call("addCookie"):
            await self.context.add_cookies([to_playwright_cookie(cookie)])

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    def set_handler(self, kind: EventKind, handler: EventHandler | None) -> None:
        if handler is None:
            self._handlers.pop(kind, None)
        else:
            self._handlers[kind] = handler

    def _emit(self, kind: EventKind, *args: Any) -> "asyncio.Future[Any] | None":
        handler = self._handlers.get(kind)
        if handler is None:
            return None
        return handler(*args)

    def _attach_listeners(self) -> None:
        page = self.page
        page.on("domcontentloaded", lambda _: self._emit(EventKind.INITIALIZED))
        page.on("load", lambda _: self._emit(EventKind.LOAD_FINISHED, "success"))
        page.on("framenavigated", self._on_frame_navigated)
        page.on("request", self._on_request)
        page.on("requestfailed", self._on_request_failed)
        page.on("response", self._on_response)
        page.on("console", self._on_console)
        page.on("dialog", self._on_dialog)
        page.on("pageerror", self._on_page_error)
        page.on("popup", lambda popup: self._emit(EventKind.TAB_CREATED, popup.url))

    def _is_main_frame(self, request: Request) -> bool:
        try:
            return request.frame == self.page.main_frame
        except PlaywrightError:
            # Service worker requests have no frame
            return False

    def _on_frame_navigated(self, frame: Frame) -> None:
        if frame == self.page.main_frame:
            self._emit(EventKind.URL_CHANGED, frame.url)

    def _on_request(self, request: Request) -> None:
        # Only navigations already under way are reported, so will_navigate is always True
        if request.is_navigation_request():
            main_frame = self._is_main_frame(request)
            if main_frame:
                self._emit(EventKind.LOAD_STARTED)
            self._emit(
                EventKind.NAVIGATION_REQUESTED,
                request.url, navigation_type(request), True, main_frame,
            )
        self._emit(
            EventKind.RESOURCE_REQUESTED,
            {
                "url": request.url,
                "method": request.method,
                "headers": request.headers,
                "resourceType": request.resource_type,
            },
            None,
        )

    def _on_request_failed(self, request: Request) -> None:
        if request.is_navigation_request() and self._is_main_frame(request):
            self._emit(EventKind.LOAD_FINISHED, "fail")

    def _on_response(self, response: Response) -> None:
        self._emit(
            EventKind.RESOURCE_RECEIVED,
            {
                "url": response.url,
                "status": response.status,
                "statusText": response.status_text,
                "headers": response.headers,
            },
        )

    def _on_console(self, message: ConsoleMessage) -> None:
        location = message.location or {}
        self._emit(
            EventKind.CONSOLE_MESSAGE,
            message.text,
            location.get("lineNumber"),
            location.get("url"),
        )

    def _on_page_error(self, error: Any) -> None:
        self._emit(
            EventKind.ERROR,
            getattr(error, "message", str(error)),
            getattr(error, "stack", None),
        )

    async def _on_dialog(self, dialog: Dialog) -> None:
        """Answer a dialog with the registered callback's return value."""
        if dialog.type == "alert":
            pending = self._emit(EventKind.ALERT, dialog.message)
        elif dialog.type == "confirm":
            pending = self._emit(EventKind.CONFIRM, dialog.message)
        elif dialog.type == "prompt":
            pending = self._emit(EventKind.PROMPT, dialog.message, dialog.default_value)
        else:
            pending = None

        answer = await pending if pending is not None else None

        try:
            if dialog.type in ("alert", "beforeunload"):
                await dialog.accept()
            elif dialog.type == "confirm" and answer:
                await dialog.accept()
            elif dialog.type == "prompt" and answer is not None:
                await dialog.accept(str(answer))
            else:
                await dialog.dismiss()
        except PlaywrightError as e:
            logger.warning(f"Failed to answer {dialog.type} dialog: {e}")

    async def close(self) -> None:
        with _engine_call("close"):
            await self.page.close()


class PlaywrightEngine:
    """
    Engine that launches a Playwright browser with one context and page.

    Example:
        >>> engine = PlaywrightEngine()
        >>> page = await engine.launch(settings.browser)
        >>> await page.open("https://example.com")
        >>> await engine.shutdown()
    """

    def __init__(self) -> None:
        self._manager: BrowserManager | None = None
        self._context: BrowserContext | None = None

    async def launch(self, settings: BrowserSettings) -> PlaywrightPage:
        """
        Launch the browser and open the session's page.

        Any failure after the browser started shuts it down again.

        Raises:
            BrowserError: If the browser, context or page cannot be created
            EngineCallError: If the new page cannot be configured
        """
        self._manager = BrowserManager(settings)
        try:
            await self._manager.start()
            self._context = await self._manager.new_context()
            page = await self._context.new_page()
            capability = PlaywrightPage(page, self._context, settings)
            await capability.configure()
        except PlaywrightError as e:
            await self.shutdown()
            raise BrowserError(f"Failed to open page: {e}") from e
        except Exception:
            await self.shutdown()
            raise
        return capability

    async def shutdown(self) -> None:
        """Close the context and stop the browser. Safe to call twice."""
        if self._context is not None:
            try:
                await self._context.close()
            except PlaywrightError as e:
                logger.warning(f"Error closing browser context: {e}")
            self._context = None

        if self._manager is not None:
            await self._manager.stop()
            self._manager = None
