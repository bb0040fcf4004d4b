"""
Polling wait engine.

Evaluates a predicate in the page context (or reads a session flag)
on a fixed interval until it produces the expected value or the
deadline passes. Ticks run strictly one after another, and a tick still
in flight at the deadline is cancelled.
"""

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from page_pilot.core.exceptions import WaitTimeoutError
from page_pilot.utils.logging import get_logger

if TYPE_CHECKING:
    from page_pilot.session.session import Session

logger = get_logger(__name__)


class WaitState(str, Enum):
    """Lifecycle of a single wait call."""

    PENDING = "pending"
    MATCHED = "matched"
    TIMED_OUT = "timed_out"


@dataclass
class WaitDescriptor:
    """
    One call to the wait engine.

    Created per call and never reused; once MATCHED or TIMED_OUT the
    state no longer changes.
    """

    predicate: str | None
    expected: Any
    interval_ms: int
    timeout_ms: int
    args: tuple[Any, ...] = ()
    started_at: float = field(default_factory=time.monotonic)
    state: WaitState = WaitState.PENDING
    ticks: int = 0

    @property
    def elapsed_ms(self) -> float:
        return (time.monotonic() - self.started_at) * 1000

    @property
    def remaining_s(self) -> float:
        return (self.timeout_ms - self.elapsed_ms) / 1000

    def finish(self, state: WaitState) -> None:
        if self.state is not WaitState.PENDING:
            raise RuntimeError(f"Wait already finished as {self.state.value}")
        self.state = state


def strictly_equal(actual: Any, expected: Any) -> bool:
    """
    Compare a page-context result with an expected value without coercion.

    Booleans only match booleans; ints and floats compare as one number
    type, as page-context numbers do; everything else must share a type.
    """
    if isinstance(actual, bool) or isinstance(expected, bool):
        return actual is expected
    if isinstance(actual, (int, float)) and isinstance(expected, (int, float)):
        return actual == expected
    return type(actual) is type(expected) and actual == expected


class WaitEngine:
    """Bounded polling against one session."""

    def __init__(self, session: "Session") -> None:
        self._session = session

    async def wait_for(
        self,
        predicate: str,
        expected: Any,
        *args: Any,
        timeout_ms: int | None = None,
        interval_ms: int | None = None,
    ) -> None:
        """
        Poll ``predicate(*args)`` in the page until it returns ``expected``.

        Args:
            predicate: Page-context function source
            expected: Value the predicate must return
            *args: Serializable arguments bound to the predicate
            timeout_ms: Override of the session timeout
            interval_ms: Override of the session poll interval

        Raises:
            WaitTimeoutError: If no tick matched before the deadline
        """
        await self._session.ready()
        descriptor = self._describe(predicate, expected, args, timeout_ms, interval_ms)

        async def tick() -> Any:
            async with self._session.operation("waitFor") as page:
                return await page.evaluate(predicate, *args)

        await self._run(descriptor, tick)

    async def wait_for_next_page(
        self,
        timeout_ms: int | None = None,
        interval_ms: int | None = None,
    ) -> None:
        """
        Wait until the engine reports the next load finished.

        The flag is raised at call time, before readiness, so a load that
        finishes while the session is still starting is not missed.

        Raises:
            WaitTimeoutError: If no load finished before the deadline
        """
        self._session.waiting_for_next_page = True
        await self._session.ready()
        descriptor = self._describe(None, False, (), timeout_ms, interval_ms)

        async def tick() -> bool:
            return self._session.waiting_for_next_page

        await self._run(descriptor, tick)

    def _describe(
        self,
        predicate: str | None,
        expected: Any,
        args: tuple[Any, ...],
        timeout_ms: int | None,
        interval_ms: int | None,
    ) -> WaitDescriptor:
        options = self._session.options
        return WaitDescriptor(
            predicate=predicate,
            expected=expected,
            args=args,
            interval_ms=interval_ms if interval_ms is not None else options.poll_interval_ms,
            timeout_ms=timeout_ms if timeout_ms is not None else options.timeout_ms,
        )

    async def _run(
        self,
        descriptor: WaitDescriptor,
        tick: Callable[[], Awaitable[Any]],
    ) -> None:
        while descriptor.remaining_s > 0:
            try:
                result = await asyncio.wait_for(tick(), timeout=descriptor.remaining_s)
            except asyncio.TimeoutError:
                break

            descriptor.ticks += 1
            if strictly_equal(result, descriptor.expected):
                descriptor.finish(WaitState.MATCHED)
                logger.debug(f"Wait matched after {descriptor.ticks} tick(s)")
                return

            await asyncio.sleep(
                max(0.0, min(descriptor.interval_ms / 1000, descriptor.remaining_s)))

        descriptor.finish(WaitState.TIMED_OUT)
        logger.debug(f"Wait timed out after {descriptor.ticks} tick(s)")
        await self._session.events.fire_timeout()

        what = "next page" if descriptor.predicate is None else "predicate"
        raise WaitTimeoutError(
            f"Timeout occurred while waiting for {what}",
            timeout_ms=descriptor.timeout_ms,
            elapsed_ms=descriptor.elapsed_ms,
        )
