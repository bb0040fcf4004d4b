"""
Tests for the session core.

Tests the readiness gate, the operation queue and session shutdown.
"""

import asyncio

import pytest

from page_pilot import operations as ops
from page_pilot.core.exceptions import BrowserError, InitializationError
from page_pilot.session import OperationQueue, Session

from tests.conftest import FakeEngine, FakePage


class TrackingPage(FakePage):
    """FakePage that measures how many evaluates overlap."""

    def __init__(self) -> None:
        super().__init__()
        self.in_flight = 0
        self.max_in_flight = 0

    async def evaluate(self, fn, *args):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0.01)
            return await super().evaluate(fn, *args)
        finally:
            self.in_flight -= 1


class TestReadiness:
    """Tests for the memoized readiness gate."""

    @pytest.mark.asyncio
    async def test_engine_not_launched_on_construction(self, test_settings):
        """Constructing a session should not start the browser."""
        engine = FakeEngine()
        session = Session(test_settings, engine)

        assert engine.launches == 0
        assert session.is_ready is False
        await session.close()

    @pytest.mark.asyncio
    async def test_concurrent_ready_launches_once(self, test_settings):
        """Concurrent ready() calls should share one launch."""
        engine = FakeEngine(launch_delay=0.02)
        session = Session(test_settings, engine)

        await asyncio.gather(*(session.ready() for _ in range(5)))

        assert engine.launches == 1
        assert session.is_ready is True
        await session.close()

    @pytest.mark.asyncio
    async def test_operations_wait_for_readiness(self, test_settings):
        """Nothing should reach the page before the session is ready."""
        page = FakePage()
        page.evaluate_default = "Example Domain"
        engine = FakeEngine(page, launch_delay=0.05)
        session = Session(test_settings, engine)

        task = asyncio.create_task(ops.title(session))
        await asyncio.sleep(0.01)

        assert page.calls == []
        assert await task == "Example Domain"
        await session.close()

    @pytest.mark.asyncio
    async def test_handlers_attached_before_first_operation(self, session, fake_page):
        """The event bridge should be installed as part of readiness."""
        await session.ready()

        assert fake_page.handlers

    @pytest.mark.asyncio
    async def test_initialization_failure_is_final(self, test_settings):
        """A failed launch should fail every caller with InitializationError."""
        engine = FakeEngine(fail_with=RuntimeError("no browser installed"))
        session = Session(test_settings, engine)

        results = await asyncio.gather(
            ops.title(session),
            ops.url(session),
            return_exceptions=True,
        )

        assert all(isinstance(r, InitializationError) for r in results)
        with pytest.raises(InitializationError, match="no browser installed"):
            await session.ready()
        assert engine.launches == 1
        assert session.is_ready is False
        await session.close()

    @pytest.mark.asyncio
    async def test_close_after_failed_launch_shuts_engine_down(self, test_settings):
        """Whatever a failed launch left behind should still be shut down."""
        engine = FakeEngine(fail_with=RuntimeError("no browser installed"))
        session = Session(test_settings, engine)

        with pytest.raises(InitializationError):
            await session.ready()
        await session.close()

        assert engine.shutdowns == 1
        assert engine.page.closed is False

    @pytest.mark.asyncio
    async def test_cancelled_caller_does_not_cancel_launch(self, test_settings):
        """Cancelling one waiter should leave the shared launch running."""
        engine = FakeEngine(launch_delay=0.05)
        session = Session(test_settings, engine)

        waiter = asyncio.create_task(session.ready())
        await asyncio.sleep(0.01)
        waiter.cancel()

        await session.ready()

        assert session.is_ready is True
        assert engine.launches == 1
        await session.close()

    @pytest.mark.asyncio
    async def test_page_before_ready_raises(self, session):
        """Accessing the page before readiness should raise."""
        with pytest.raises(BrowserError):
            session.page


class TestSessionClose:
    """Tests for session shutdown."""

    @pytest.mark.asyncio
    async def test_close_shuts_down_engine(self, session, fake_engine, fake_page):
        """Closing should close the page and stop the engine."""
        await session.ready()
        await session.close()

        assert fake_page.closed is True
        assert fake_engine.shutdowns == 1
        assert session.closed is True

    @pytest.mark.asyncio
    async def test_close_twice(self, session, fake_engine):
        """Closing twice should be a no-op."""
        await session.ready()
        await session.close()
        await session.close()

        assert fake_engine.shutdowns == 1

    @pytest.mark.asyncio
    async def test_close_before_ready_never_launches(self, session, fake_engine):
        """Closing an unused session should not start the browser."""
        await session.close()

        assert fake_engine.launches == 0
        assert fake_engine.shutdowns == 0

    @pytest.mark.asyncio
    async def test_operation_after_close_raises(self, session):
        """Operations on a closed session should raise BrowserError."""
        await session.ready()
        await session.close()

        with pytest.raises(BrowserError, match="closed"):
            await ops.title(session)

    @pytest.mark.asyncio
    async def test_ready_after_close_raises(self, session):
        """A closed session should not launch."""
        await session.close()

        with pytest.raises(BrowserError):
            await session.ready()


class TestOperationQueue:
    """Tests for FIFO admission of engine operations."""

    @pytest.mark.asyncio
    async def test_queue_admits_one_at_a_time(self):
        """Only one block should be admitted at a time."""
        queue = OperationQueue()
        order = []

        async def job(name: str):
            async with queue.admit():
                order.append(f"{name}:start")
                await asyncio.sleep(0.01)
                order.append(f"{name}:end")

        await asyncio.gather(job("a"), job("b"), job("c"))

        assert order == [
            "a:start", "a:end",
            "b:start", "b:end",
            "c:start", "c:end",
        ]

    @pytest.mark.asyncio
    async def test_queue_reentrant(self):
        """A nested admit in the same task should pass straight through."""
        queue = OperationQueue()

        async with queue.admit():
            assert queue.busy is True
            async with queue.admit():
                assert queue.pending == 0

        assert queue.busy is False

    @pytest.mark.asyncio
    async def test_queue_pending_count(self):
        """Waiting operations should be counted."""
        queue = OperationQueue()
        release = asyncio.Event()

        async def holder():
            async with queue.admit():
                await release.wait()

        async def waiter():
            async with queue.admit():
                pass

        tasks = [asyncio.create_task(holder()), asyncio.create_task(waiter())]
        await asyncio.sleep(0.01)

        assert queue.busy is True
        assert queue.pending == 1

        release.set()
        await asyncio.gather(*tasks)
        assert queue.pending == 0

    @pytest.mark.asyncio
    async def test_disabled_queue_does_not_serialize(self):
        """A disabled queue should admit everything immediately."""
        queue = OperationQueue(enabled=False)
        order = []

        async def job(name: str):
            async with queue.admit():
                order.append(f"{name}:start")
                await asyncio.sleep(0.01)
                order.append(f"{name}:end")

        await asyncio.gather(job("a"), job("b"))

        assert order[:2] == ["a:start", "b:start"]

    @pytest.mark.asyncio
    async def test_concurrent_operations_serialized(self, test_settings):
        """Concurrently issued operations should not overlap on the page."""
        page = TrackingPage()
        session = Session(test_settings, FakeEngine(page))

        await asyncio.gather(*(
            ops.evaluate(session, f"() => {i}") for i in range(4)
        ))

        assert page.max_in_flight == 1
        assert [args[0] for args in page.calls_to("evaluate")] == [
            f"() => {i}" for i in range(4)
        ]
        await session.close()

    @pytest.mark.asyncio
    async def test_concurrent_operations_overlap_when_disabled(self, test_settings):
        """Without serialization concurrent operations may overlap."""
        settings = test_settings.model_copy(deep=True)
        settings.session.serialize_operations = False
        page = TrackingPage()
        session = Session(settings, FakeEngine(page))

        await asyncio.gather(*(
            ops.evaluate(session, f"() => {i}") for i in range(4)
        ))

        assert page.max_in_flight > 1
        await session.close()

    @pytest.mark.asyncio
    async def test_nested_operation_does_not_deadlock(self, session, fake_page):
        """value() calls exists() while admitted; it must not block itself."""
        fake_page.evaluate_results = [None, 1]

        result = await asyncio.wait_for(ops.value(session, "#name"), timeout=1)

        assert result == ""

    @pytest.mark.asyncio
    async def test_sequential_operations_keep_issue_order(self, session, fake_page):
        """Awaited operations should reach the engine in issue order."""
        await ops.open_url(session, "https://example.com")
        await ops.click(session, "#go")
        await ops.back(session)
        await ops.title(session)

        assert fake_page.methods == ["open", "evaluate", "go_back", "evaluate"]
