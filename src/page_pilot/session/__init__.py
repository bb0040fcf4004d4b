"""
Session module for page-pilot.

Provides the asynchronous core every operation runs through:
- Session handle with a memoized readiness gate
- FIFO operation queue
- Event bridge from engine callback slots to user callbacks
- Polling wait engine
"""

from page_pilot.session.session import Session
from page_pilot.session.queue import OperationQueue
from page_pilot.session.events import EventBridge, resolve_event_kind
from page_pilot.session.wait import (
    WaitEngine,
    WaitDescriptor,
    WaitState,
    strictly_equal,
)

__all__ = [
    "Session",
    "OperationQueue",
    "EventBridge",
    "resolve_event_kind",
    "WaitEngine",
    "WaitDescriptor",
    "WaitState",
    "strictly_equal",
]
