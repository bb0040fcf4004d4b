"""
Shared pytest fixtures for page-pilot tests.

Provides reusable fixtures for:
- Configuration and settings
- An in-memory engine and page that record every call
- Sessions and pilots wired to that engine
- Temporary resources
"""

import asyncio
import copy
import tempfile
from pathlib import Path
from typing import Any, Callable, Generator

import pytest
import pytest_asyncio

from page_pilot.config import Settings, reset_settings
from page_pilot.core.exceptions import EngineCallError
from page_pilot.engine.base import EventKind
from page_pilot.pilot import Pilot
from page_pilot.session import Session
from page_pilot.utils.logging import reset_logging


class FakePage:
    """
    In-memory page capability.

    Records every call as ``(method, args)``. Evaluate results come from
    ``evaluate_results`` (consumed in order, exceptions are raised), then
    from ``evaluate_fn`` if set, then ``evaluate_default``.
    """

    render_acknowledged = True

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.properties: dict[str, Any] = {
            "settings": {
                "userAgent": "FakeAgent/1.0",
                "userName": None,
                "password": None,
            },
            "clipRect": None,
            "paperSize": None,
            "cookies": [],
        }
        self.handlers: dict[EventKind, Callable[..., Any]] = {}
        self.evaluate_results: list[Any] = []
        self.evaluate_fn: Callable[..., Any] | None = None
        self.evaluate_default: Any = None
        self.evaluate_delay: float = 0
        self.open_status = "success"
        self.failures: dict[str, Exception] = {}
        self.rejected_cookies: set[str] = set()
        self.closed = False

    def _record(self, method: str, *args: Any) -> None:
        self.calls.append((method, args))
        failure = self.failures.get(method)
        if failure is not None:
            raise failure

    def calls_to(self, method: str) -> list[tuple[Any, ...]]:
        return [args for name, args in self.calls if name == method]

    @property
    def methods(self) -> list[str]:
        return [name for name, _ in self.calls]

    def emit(self, kind: EventKind, *args: Any) -> Any:
        """Raise a native event the way an engine would."""
        handler = self.handlers.get(kind)
        if handler is None:
            return None
        return handler(*args)

    async def get(self, name: str) -> Any:
        self._record("get", name)
        return copy.deepcopy(self.properties.get(name))

    async def set(self, name: str, value: Any) -> None:
        self._record("set", name, copy.deepcopy(value))
        self.properties[name] = copy.deepcopy(value)

    async def open(self, url: str, method: str = "GET", data: str | None = None) -> str:
        self._record("open", url, method, data)
        return self.open_status

    async def evaluate(self, fn: str, *args: Any) -> Any:
        self._record("evaluate", fn, *args)
        if self.evaluate_delay:
            await asyncio.sleep(self.evaluate_delay)
        if self.evaluate_results:
            result = self.evaluate_results.pop(0)
            if isinstance(result, Exception):
                raise result
            return result
        if self.evaluate_fn is not None:
            return self.evaluate_fn(fn, *args)
        return self.evaluate_default

    async def send_event(
        self,
        event_type: str,
        arg1: Any = None,
        arg2: Any = None,
        arg3: Any = None,
        modifier: int = 0,
    ) -> None:
        self._record("send_event", event_type, arg1, arg2, arg3, modifier)

    async def render(self, path: str, options: dict[str, Any] | None = None) -> None:
        self._record("render", path, options)

    async def render_base64(self, fmt: str) -> str:
        self._record("render_base64", fmt)
        return "aW1hZ2U="

    async def inject_js(self, path: str) -> bool:
        self._record("inject_js", path)
        return True

    async def upload_file(self, selector: str, path: str) -> None:
        self._record("upload_file", selector, path)

    async def go_back(self) -> None:
        self._record("go_back")

    async def go_forward(self) -> None:
        self._record("go_forward")

    async def switch_to_child_frame(self, frame: str | int) -> None:
        self._record("switch_to_child_frame", frame)

    async def clear_cookies(self) -> None:
        self._record("clear_cookies")
        self.properties["cookies"] = []

    async def add_cookie(self, cookie: dict[str, Any]) -> None:
        self._record("add_cookie", cookie)
        if cookie.get("name") in self.rejected_cookies:
            raise EngineCallError(f"Cookie rejected: {cookie['name']}", operation="addCookie")
        self.properties["cookies"].append(cookie)

    def set_handler(self, kind: EventKind, handler: Callable[..., Any] | None) -> None:
        if handler is None:
            self.handlers.pop(kind, None)
        else:
            self.handlers[kind] = handler

    async def close(self) -> None:
        self._record("close")
        self.closed = True


class FakeEngine:
    """Engine that hands out one FakePage and counts launches."""

    def __init__(
        self,
        page: FakePage | None = None,
        fail_with: Exception | None = None,
        launch_delay: float = 0,
    ) -> None:
        self.page = page or FakePage()
        self.fail_with = fail_with
        self.launch_delay = launch_delay
        self.launches = 0
        self.shutdowns = 0

    async def launch(self, settings: Any) -> FakePage:
        self.launches += 1
        if self.launch_delay:
            await asyncio.sleep(self.launch_delay)
        if self.fail_with is not None:
            raise self.fail_with
        return self.page

    async def shutdown(self) -> None:
        self.shutdowns += 1


@pytest.fixture(autouse=True)
def reset_global_state():
    """
    Reset cached settings and logging before and after each test.

    This ensures tests are isolated and don't share global state.
    """
    reset_settings()
    reset_logging()
    yield
    reset_settings()
    reset_logging()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory that's cleaned up after the test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def test_settings() -> Settings:
    """
    Provide settings with short waits.

    Keeps timeouts small so timeout paths finish quickly.
    """
    return Settings(
        session={
            "timeout_ms": 200,
            "poll_interval_ms": 10,
            "screenshot_grace_ms": 0,
        },
    )


@pytest.fixture
def fake_page() -> FakePage:
    return FakePage()


@pytest.fixture
def fake_engine(fake_page: FakePage) -> FakeEngine:
    return FakeEngine(fake_page)


@pytest_asyncio.fixture
async def session(test_settings: Settings, fake_engine: FakeEngine):
    """Provide a session on the fake engine, closed after the test."""
    session = Session(test_settings, fake_engine)
    yield session
    await session.close()


@pytest_asyncio.fixture
async def pilot(test_settings: Settings, fake_engine: FakeEngine):
    """Provide a pilot on the fake engine, closed after the test."""
    async with Pilot(test_settings, fake_engine) as pilot:
        yield pilot
