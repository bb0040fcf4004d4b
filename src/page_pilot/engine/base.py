"""
Capability interface between page-pilot and a browser engine.

The session, wait engine, event bridge and operations only ever talk to
an engine through these protocols. An engine adapter is responsible for
launching the browser, marshaling arguments across the process boundary
and translating native failures into EngineCallError.
"""

import asyncio
from enum import Enum
from typing import Any, Callable, Protocol, runtime_checkable

from page_pilot.config.settings import BrowserSettings


class EventKind(str, Enum):
    """Page lifecycle events a session can subscribe to."""

    INITIALIZED = "initialized"
    LOAD_STARTED = "loadStarted"
    LOAD_FINISHED = "loadFinished"
    URL_CHANGED = "urlChanged"
    NAVIGATION_REQUESTED = "navigationRequested"
    RESOURCE_REQUESTED = "resourceRequested"
    RESOURCE_RECEIVED = "resourceReceived"
    CONSOLE_MESSAGE = "consoleMessage"
    ALERT = "alert"
    CONFIRM = "confirm"
    PROMPT = "prompt"
    ERROR = "error"
    TIMEOUT = "timeout"
    TAB_CREATED = "tabCreated"

    @property
    def engine_emitted(self) -> bool:
        """Whether the engine raises this event (timeout is raised by waits)."""
        return self is not EventKind.TIMEOUT

    @property
    def is_dialog(self) -> bool:
        """Whether the page stays blocked until the callback answers."""
        return self in (EventKind.ALERT, EventKind.CONFIRM, EventKind.PROMPT)

    @property
    def arguments(self) -> tuple[str, ...]:
        """Positional argument names a callback for this event receives."""
        return EVENT_ARGUMENTS[self]


EVENT_ARGUMENTS: dict[EventKind, tuple[str, ...]] = {
    EventKind.INITIALIZED: (),
    EventKind.LOAD_STARTED: (),
    EventKind.LOAD_FINISHED: ("status",),
    EventKind.URL_CHANGED: ("target_url",),
    EventKind.NAVIGATION_REQUESTED: ("url", "navigation_type", "will_navigate", "main_frame"),
    EventKind.RESOURCE_REQUESTED: ("request_data", "network_request"),
    EventKind.RESOURCE_RECEIVED: ("response",),
    EventKind.CONSOLE_MESSAGE: ("message", "line_number", "source_id"),
    EventKind.ALERT: ("message",),
    EventKind.CONFIRM: ("message",),
    EventKind.PROMPT: ("message", "default_value"),
    EventKind.ERROR: ("message", "trace"),
    EventKind.TIMEOUT: (),
    EventKind.TAB_CREATED: ("url",),
}

# Handler the engine calls for each native event. The returned future
# carries the user callback's return value (used to answer confirm/prompt).
EventHandler = Callable[..., "asyncio.Future[Any]"]


@runtime_checkable
class PageCapability(Protocol):
    """
    Narrow async interface onto one engine page.

    Every method raises EngineCallError when the engine reports a failure.
    """

    # True when render() returns only after the output file is written.
    render_acknowledged: bool

    async def get(self, name: str) -> Any: ...

    async def set(self, name: str, value: Any) -> None: ...

    async def open(
        self,
        url: str,
        method: str = "GET",
        data: str | None = None,
    ) -> str: ...

    async def evaluate(self, fn: str, *args: Any) -> Any: ...

    async def send_event(
        self,
        event_type: str,
        arg1: Any = None,
        arg2: Any = None,
        arg3: Any = None,
        modifier: int = 0,
    ) -> None: ...

    async def render(self, path: str, options: dict[str, Any] | None = None) -> None: ...

    async def render_base64(self, fmt: str) -> str: ...

    async def inject_js(self, path: str) -> bool: ...

    async def upload_file(self, selector: str, path: str) -> None: ...

    async def go_back(self) -> None: ...

    async def go_forward(self) -> None: ...

    async def switch_to_child_frame(self, frame: str | int) -> None: ...

    async def clear_cookies(self) -> None: ...

    async def add_cookie(self, cookie: dict[str, Any]) -> None: ...

    def set_handler(self, kind: EventKind, handler: EventHandler | None) -> None: ...

    async def close(self) -> None: ...


@runtime_checkable
class Engine(Protocol):
    """Launches the browser process and hands out the page capability."""

    async def launch(self, settings: BrowserSettings) -> PageCapability: ...

    async def shutdown(self) -> None: ...


# Keyboard modifier bits understood by send_event()
MODIFIER_KEYS: dict[str, int] = {
    "ctrl": 0x04000000,
    "shift": 0x02000000,
    "alt": 0x08000000,
    "meta": 0x10000000,
    "keypad": 0x20000000,
}

# Formats accepted by render_base64()
IMAGE_FORMATS = ("PNG", "GIF", "JPEG")
