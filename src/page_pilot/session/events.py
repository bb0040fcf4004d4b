"""
Event bridge between engine callback slots and user callbacks.

The engine calls ``emit`` for every native event. Session state the
bridge owns (the target URL and the next-page flag) is updated
synchronously, in the order the engine emits. User callbacks then run
one at a time on a dispatcher task in that same order, whether they are
plain functions or coroutines.

Dialog callbacks (alert, confirm, prompt) are the exception. The page is
blocked until they answer, so they run at once on their own task, inside
the admission of the operation the dialog interrupted, and are given
``session.timeout_ms`` to answer before the dialog is dismissed.
"""

import asyncio
import functools
import inspect
from typing import TYPE_CHECKING, Any, Callable

from page_pilot.core.exceptions import UnsupportedEventError
from page_pilot.engine.base import EventKind, PageCapability
from page_pilot.session.queue import borrow_admission, clear_admission
from page_pilot.utils.logging import get_logger

if TYPE_CHECKING:
    from page_pilot.session.session import Session

logger = get_logger(__name__)

EventCallback = Callable[..., Any]


def resolve_event_kind(event: EventKind | str) -> EventKind:
    """
    Map an event name onto the supported vocabulary.

    Raises:
        UnsupportedEventError: If the name is not a known event kind
    """
    try:
        return EventKind(event)
    except ValueError:
        raise UnsupportedEventError(
            str(event),
            supported=[kind.value for kind in EventKind],
        ) from None


async def invoke_callback(callback: EventCallback, *args: Any) -> Any:
    """Call a sync or async callback and return its result."""
    result = callback(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


class EventBridge:
    """
    Registry of user callbacks plus ordered delivery of engine events.

    At most one callback is registered per event kind; registering again
    replaces the previous callback.
    """

    def __init__(self, session: "Session") -> None:
        self._session = session
        self._callbacks: dict[EventKind, EventCallback] = {}
        self._queue: asyncio.Queue | None = None
        self._dispatcher: asyncio.Task | None = None
        self._answering: set[asyncio.Task] = set()

    def attach(self, page: PageCapability) -> None:
        """Install the bridge on every engine-emitted slot of the page."""
        for kind in EventKind:
            if kind.engine_emitted:
                page.set_handler(kind, functools.partial(self.emit, kind))

    def register(self, kind: EventKind, callback: EventCallback | None) -> None:
        """Register (or with None, remove) the callback for an event kind."""
        if callback is None:
            self._callbacks.pop(kind, None)
        else:
            self._callbacks[kind] = callback

        if kind is EventKind.TAB_CREATED:
            self._session.on_tab_created = callback

        logger.debug(f".on {kind.value} set.")

    def emit(self, kind: EventKind, *args: Any) -> "asyncio.Future[Any]":
        """
        Deliver one engine event.

        Args:
            kind: Event kind raised by the engine
            *args: Engine arguments, normalized to the kind's argument shape

        Returns:
            Future resolving to the callback's return value, or None when
            no callback is registered, the callback failed or a dialog
            went unanswered
        """
        args = self._normalize(kind, args)
        self._apply_side_effects(kind, args)

        loop = asyncio.get_running_loop()
        callback = self._callbacks.get(kind)
        if callback is None:
            future = loop.create_future()
            future.set_result(None)
            return future

        if kind.is_dialog:
            task = loop.create_task(self._answer(kind, callback, args))
            self._answering.add(task)
            task.add_done_callback(self._answering.discard)
            return task

        future = loop.create_future()
        self._ensure_dispatcher().put_nowait((kind, callback, args, future))
        return future

    async def fire_timeout(self) -> None:
        """
        Invoke the timeout callback, if any, from the waiting task.

        Runs inline rather than on the dispatcher so a wait started from
        inside another callback cannot block on its own queue position.
        """
        callback = self._callbacks.get(EventKind.TIMEOUT)
        if callback is None:
            return
        try:
            await invoke_callback(callback)
        except Exception:
            logger.exception("timeout callback failed")

    async def drain(self) -> None:
        """Wait until every queued and answering callback has run."""
        if self._answering:
            await asyncio.wait(set(self._answering))
        if self._queue is not None:
            await self._queue.join()

    async def close(self) -> None:
        """Stop the dispatcher; undelivered callbacks are dropped."""
        tasks = list(self._answering)
        if self._dispatcher is not None:
            tasks.append(self._dispatcher)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        self._answering.clear()
        self._dispatcher = None
        self._queue = None

    @staticmethod
    def _normalize(kind: EventKind, args: tuple[Any, ...]) -> tuple[Any, ...]:
        arity = len(kind.arguments)
        if len(args) >= arity:
            return tuple(args[:arity])
        return tuple(args) + (None,) * (arity - len(args))

    def _apply_side_effects(self, kind: EventKind, args: tuple[Any, ...]) -> None:
        if kind is EventKind.URL_CHANGED:
            self._session.target_url = args[0]
        elif kind is EventKind.LOAD_FINISHED:
            self._session.waiting_for_next_page = False

    async def _answer(
        self,
        kind: EventKind,
        callback: EventCallback,
        args: tuple[Any, ...],
    ) -> Any:
        borrow_admission(self._session.queue)
        timeout_ms = self._session.options.timeout_ms
        try:
            return await asyncio.wait_for(
                invoke_callback(callback, *args), timeout_ms / 1000)
        except asyncio.TimeoutError:
            logger.warning(f"{kind.value} callback did not answer within {timeout_ms}ms")
        except Exception:
            logger.exception(f"{kind.value} callback failed")
        return None

    def _ensure_dispatcher(self) -> asyncio.Queue:
        if self._queue is None:
            self._queue = asyncio.Queue()
        if self._dispatcher is None or self._dispatcher.done():
            self._dispatcher = asyncio.get_running_loop().create_task(
                self._dispatch(self._queue))
        return self._queue

    async def _dispatch(self, queue: asyncio.Queue) -> None:
        clear_admission()
        while True:
            kind, callback, args, future = await queue.get()
            try:
                result = await invoke_callback(callback, *args)
            except Exception:
                logger.exception(f"{kind.value} callback failed")
                result = None
            if not future.done():
                future.set_result(result)
            queue.task_done()
