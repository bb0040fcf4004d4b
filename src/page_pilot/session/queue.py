"""
Per-session operation queue.

Admits engine operations one at a time in FIFO order. An operation that
calls other operations (``value`` checks ``exists`` which counts through
``evaluate``) is already admitted and passes straight through, so
nesting never deadlocks.
"""

import asyncio
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import AsyncIterator

# Queue currently admitted in this task context, if any
_admitted: ContextVar["OperationQueue | None"] = ContextVar(
    "page_pilot_admitted_queue", default=None)


def clear_admission() -> None:
    """
    Forget any admission inherited by the current task.

    Tasks copy their creator's context, so long-lived tasks spawned from
    inside an operation (the event dispatcher) call this first.
    """
    _admitted.set(None)


def borrow_admission(queue: "OperationQueue") -> None:
    """
    Run the rest of the current task inside the operation ``queue`` has admitted.

    A page dialog stalls whichever operation is in flight until it is
    answered, so the answering callback acts on that operation's behalf.
    Does nothing while the queue is idle.
    """
    if queue.busy:
        _admitted.set(queue)


class OperationQueue:
    """
    FIFO admission with a single in-flight operation.

    asyncio.Lock wakes waiters in the order they started waiting, which
    gives first-come first-served admission.

    Example:
        >>> queue = OperationQueue()
        >>> async with queue.admit():
        ...     await page.evaluate("() => document.title")
    """

    def __init__(self, enabled: bool = True) -> None:
        self.enabled = enabled
        self._lock = asyncio.Lock()
        self._waiting = 0

    @asynccontextmanager
    async def admit(self) -> AsyncIterator[None]:
        """Hold the queue for the duration of the block."""
        if not self.enabled or _admitted.get() is self:
            yield
            return

        self._waiting += 1
        try:
            await self._lock.acquire()
        finally:
            self._waiting -= 1

        token = _admitted.set(self)
        try:
            yield
        finally:
            _admitted.reset(token)
            self._lock.release()

    @property
    def pending(self) -> int:
        """Number of operations waiting for admission."""
        return self._waiting

    @property
    def busy(self) -> bool:
        """Whether an operation is currently admitted."""
        return self._lock.locked()
