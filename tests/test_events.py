"""
Tests for event registration and delivery.

Tests the event vocabulary, argument shapes, ordering and the
session state events update.
"""

import asyncio
import contextvars
import logging

import pytest

from page_pilot.core.exceptions import UnsupportedEventError
from page_pilot.engine.base import EVENT_ARGUMENTS, EventKind
from page_pilot.pilot import Pilot
from page_pilot.session import resolve_event_kind

from tests.conftest import FakeEngine, FakePage


class TestEventVocabulary:
    """Tests for the supported event kinds."""

    def test_resolve_by_name(self):
        """Wire names should resolve to event kinds."""
        assert resolve_event_kind("loadFinished") is EventKind.LOAD_FINISHED
        assert resolve_event_kind(EventKind.ALERT) is EventKind.ALERT

    def test_resolve_unknown(self):
        """Unknown names should raise UnsupportedEventError."""
        with pytest.raises(UnsupportedEventError) as exc_info:
            resolve_event_kind("hover")

        assert exc_info.value.event == "hover"
        assert "timeout" in exc_info.value.details["supported"]

    def test_every_kind_has_argument_shape(self):
        """Each kind should declare its callback arguments."""
        assert set(EVENT_ARGUMENTS) == set(EventKind)
        assert EventKind.NAVIGATION_REQUESTED.arguments == (
            "url", "navigation_type", "will_navigate", "main_frame")

    def test_timeout_not_engine_emitted(self):
        """Only timeout is raised outside the engine."""
        emitted = [kind for kind in EventKind if not kind.engine_emitted]

        assert emitted == [EventKind.TIMEOUT]


class TestEventRegistration:
    """Tests for on()."""

    @pytest.mark.asyncio
    async def test_unsupported_event_rejected_before_launch(self, pilot, fake_engine):
        """Bad names should fail without starting the browser."""
        with pytest.raises(UnsupportedEventError):
            await pilot.on("hover", lambda: None)

        assert fake_engine.launches == 0

    @pytest.mark.asyncio
    async def test_bridge_installed_on_engine_slots(self, pilot, fake_page):
        """Every engine-emitted kind should have a handler after readiness."""
        await pilot.ready()

        assert set(fake_page.handlers) == {
            kind for kind in EventKind if kind.engine_emitted
        }

    @pytest.mark.asyncio
    async def test_callback_receives_arguments(self, pilot, fake_page):
        """Callbacks should get the engine's arguments."""
        received = []
        await pilot.on("consoleMessage", lambda *args: received.append(args))

        fake_page.emit(EventKind.CONSOLE_MESSAGE, "hello", 12, "app.js")
        await pilot.session.events.drain()

        assert received == [("hello", 12, "app.js")]

    @pytest.mark.asyncio
    async def test_missing_arguments_padded(self, pilot, fake_page):
        """Missing engine arguments should arrive as None."""
        received = []
        await pilot.on(EventKind.PROMPT, lambda *args: received.append(args))

        fake_page.emit(EventKind.PROMPT, "Name?")
        await pilot.session.events.drain()

        assert received == [("Name?", None)]

    @pytest.mark.asyncio
    async def test_extra_arguments_dropped(self, pilot, fake_page):
        """Extra engine arguments should be truncated to the kind's shape."""
        received = []
        await pilot.on("loadFinished", lambda *args: received.append(args))

        fake_page.emit(EventKind.LOAD_FINISHED, "success", "extra")
        await pilot.session.events.drain()

        assert received == [("success",)]

    @pytest.mark.asyncio
    async def test_register_replaces_previous(self, pilot, fake_page):
        """Only the latest callback should be invoked."""
        calls = []
        await pilot.on("alert", lambda msg: calls.append(("first", msg)))
        await pilot.on("alert", lambda msg: calls.append(("second", msg)))

        fake_page.emit(EventKind.ALERT, "hi")
        await pilot.session.events.drain()

        assert calls == [("second", "hi")]

    @pytest.mark.asyncio
    async def test_register_none_removes(self, pilot, fake_page):
        """Registering None should remove the callback."""
        calls = []
        await pilot.on("alert", calls.append)
        await pilot.on("alert", None)

        result = await fake_page.emit(EventKind.ALERT, "hi")

        assert calls == []
        assert result is None

    @pytest.mark.asyncio
    async def test_tab_created_recorded_on_session(self, pilot):
        """The tabCreated callback should be kept on the session."""
        def callback(url):
            return None

        await pilot.on("tabCreated", callback)

        assert pilot.session.on_tab_created is callback


class TestEventDelivery:
    """Tests for ordered delivery and session side effects."""

    @pytest.mark.asyncio
    async def test_callbacks_run_in_emission_order(self, pilot, fake_page):
        """Slow async callbacks should not be overtaken by later events."""
        order = []

        async def slow_started():
            await asyncio.sleep(0.02)
            order.append("loadStarted")

        await pilot.on("loadStarted", slow_started)
        await pilot.on("urlChanged", lambda url: order.append(f"urlChanged:{url}"))
        await pilot.on("loadFinished", lambda status: order.append(f"loadFinished:{status}"))

        fake_page.emit(EventKind.LOAD_STARTED)
        fake_page.emit(EventKind.URL_CHANGED, "https://example.com/")
        fake_page.emit(EventKind.LOAD_FINISHED, "success")
        await pilot.session.events.drain()

        assert order == [
            "loadStarted",
            "urlChanged:https://example.com/",
            "loadFinished:success",
        ]

    @pytest.mark.asyncio
    async def test_url_changed_updates_target_url(self, pilot, fake_page):
        """urlChanged should update the target url without a callback."""
        await pilot.ready()

        fake_page.emit(EventKind.URL_CHANGED, "https://example.com/next")

        assert pilot.target_url == "https://example.com/next"

    @pytest.mark.asyncio
    async def test_load_finished_clears_next_page_flag(self, pilot, fake_page):
        """loadFinished should clear the waiting-for-next-page flag."""
        await pilot.ready()
        pilot.session.waiting_for_next_page = True

        fake_page.emit(EventKind.LOAD_FINISHED, "success")

        assert pilot.session.waiting_for_next_page is False

    @pytest.mark.asyncio
    async def test_callback_return_value_answers_engine(self, pilot, fake_page):
        """The engine should receive the callback's return value."""
        await pilot.on("confirm", lambda message: message == "Leave page?")

        assert await fake_page.emit(EventKind.CONFIRM, "Leave page?") is True
        assert await fake_page.emit(EventKind.CONFIRM, "Stay?") is False

    @pytest.mark.asyncio
    async def test_async_callback_return_value(self, pilot, fake_page):
        """Coroutine callbacks should be awaited for their answer."""
        async def answer(message, default_value):
            await asyncio.sleep(0)
            return "Ada"

        await pilot.on("prompt", answer)

        assert await fake_page.emit(EventKind.PROMPT, "Name?", "") == "Ada"

    @pytest.mark.asyncio
    async def test_failing_callback_does_not_stop_delivery(self, pilot, fake_page, caplog):
        """A raising callback should be logged and later events still delivered."""
        caplog.set_level(logging.ERROR, logger="page_pilot")
        delivered = []

        def broken(message):
            raise ValueError("bad handler")

        await pilot.on("alert", broken)
        await pilot.on("error", lambda message, trace: delivered.append(message))

        answer = await fake_page.emit(EventKind.ALERT, "hi")
        fake_page.emit(EventKind.ERROR, "ReferenceError: x is not defined", None)
        await pilot.session.events.drain()

        assert answer is None
        assert delivered == ["ReferenceError: x is not defined"]
        assert "alert callback failed" in caplog.text

    @pytest.mark.asyncio
    async def test_callback_may_issue_operations(self, pilot, fake_page):
        """Operations issued from a callback should run, not deadlock."""
        fake_page.evaluate_default = "Next Page"
        titles = []

        async def on_load(status):
            titles.append(await pilot.title())

        await pilot.on("loadFinished", on_load)
        await pilot.open("https://example.com")

        fake_page.emit(EventKind.LOAD_FINISHED, "success")
        await asyncio.wait_for(pilot.session.events.drain(), timeout=1)

        assert titles == ["Next Page"]


class BlockingDialogPage(FakePage):
    """
    Page whose ``confirm(...)`` scripts block until the dialog is answered.

    The dialog is raised from a fresh context, the way a browser driver
    delivers it outside the task running the script.
    """

    def __init__(self, before_dialog: list[tuple] | None = None) -> None:
        super().__init__()
        self.before_dialog = before_dialog or []

    async def evaluate(self, fn: str, *args):
        if "confirm(" not in fn:
            return await super().evaluate(fn, *args)

        self._record("evaluate", fn, *args)
        loop = asyncio.get_running_loop()
        answered = loop.create_future()

        def raise_dialog():
            for kind, *event_args in self.before_dialog:
                self.emit(kind, *event_args)
            pending = self.emit(EventKind.CONFIRM, "Sure?")
            pending.add_done_callback(lambda done: answered.set_result(done.result()))

        loop.call_soon(raise_dialog, context=contextvars.Context())
        return await answered


class TestDialogCallbacks:
    """Tests for callbacks that answer a blocked page."""

    @pytest.mark.asyncio
    async def test_confirm_callback_can_issue_operations(self, test_settings):
        """A confirm callback may use the page while the script waits on it."""
        page = BlockingDialogPage()
        page.evaluate_default = "https://example.com/"
        seen = []

        async with Pilot(test_settings, FakeEngine(page)) as pilot:
            async def answer(message):
                seen.append(await pilot.url())
                return True

            await pilot.on("confirm", answer)

            result = await asyncio.wait_for(
                pilot.evaluate("() => confirm('Sure?')"), timeout=1)

        assert result is True
        assert seen == ["https://example.com/"]

    @pytest.mark.asyncio
    async def test_confirm_not_queued_behind_other_callbacks(self, test_settings):
        """A dialog should be answered even while an earlier callback waits on the queue."""
        page = BlockingDialogPage(before_dialog=[(EventKind.CONSOLE_MESSAGE, "about to ask")])
        page.evaluate_default = "Example Domain"
        titles = []

        async with Pilot(test_settings, FakeEngine(page)) as pilot:
            async def on_console(message, line_number, source_id):
                titles.append(await pilot.title())

            await pilot.on("consoleMessage", on_console)
            await pilot.on("confirm", lambda message: True)

            result = await asyncio.wait_for(
                pilot.evaluate("() => confirm('Sure?')"), timeout=1)
            await asyncio.wait_for(pilot.session.events.drain(), timeout=1)

        assert result is True
        assert titles == ["Example Domain"]

    @pytest.mark.asyncio
    async def test_unanswered_dialog_resolves_none(self, test_settings, caplog):
        """A callback that never answers should give up after the session timeout."""
        caplog.set_level(logging.WARNING, logger="page_pilot")
        page = BlockingDialogPage()

        async with Pilot(test_settings, FakeEngine(page)) as pilot:
            async def never(message):
                await asyncio.Event().wait()

            await pilot.on("confirm", never)

            result = await asyncio.wait_for(
                pilot.evaluate("() => confirm('Sure?')"), timeout=2)

        assert result is None
        assert "confirm callback did not answer within 200ms" in caplog.text
