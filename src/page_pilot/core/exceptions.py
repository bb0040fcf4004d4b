"""
Exceptions raised by page-pilot.

Everything derives from PagePilotError, so callers can catch the whole
family at once or pick out one failure mode:

    PagePilotError
    ├── ConfigurationError
    │   └── UnsupportedEventError
    ├── InputValidationError
    └── BrowserError
        ├── InitializationError
        ├── EngineCallError
        │   └── CookieError
        └── WaitTimeoutError
"""

from typing import Any


class PagePilotError(Exception):
    """
    Root of the page-pilot exception family.

    Attributes:
        message: What went wrong
        details: Structured context, rendered after the message by str()
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = dict(details) if details else {}

    def __str__(self) -> str:
        if not self.details:
            return self.message
        context = ", ".join(f"{key}={value!r}" for key, value in self.details.items())
        return f"{self.message} ({context})"

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, details={self.details!r})"


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(PagePilotError):
    """Settings could not be loaded, or a value failed validation."""


class UnsupportedEventError(ConfigurationError):
    """
    Event name outside the supported event vocabulary.

    Raised by ``on()`` before the engine is contacted.
    """

    def __init__(
        self,
        event: str,
        supported: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        details["event"] = event
        if supported:
            details["supported"] = ", ".join(supported)
        super().__init__(f"Unsupported event type: {event}", details)
        self.event = event


# =============================================================================
# Validation Errors
# =============================================================================


class InputValidationError(PagePilotError):
    """
    Caller-supplied argument rejected before any engine request.

    Raised when:
    - An image format is not one of PNG, GIF or JPEG
    - An upload path does not exist
    """

    def __init__(
        self,
        message: str,
        argument: str | None = None,
        value: Any = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if argument:
            details["argument"] = argument
            details["value"] = value
        super().__init__(message, details)
        self.argument = argument
        self.value = value


# =============================================================================
# Browser Errors
# =============================================================================


class BrowserError(PagePilotError):
    """The browser engine failed or refused a request."""


class InitializationError(BrowserError):
    """
    The browser session never became ready.

    Fatal for the session: every pending and future operation
    fails with this same error. Initialization is not retried.
    """

    pass


class EngineCallError(BrowserError):
    """
    An engine request reported an error.

    Engine adapters raise this at the capability boundary; operations
    let it propagate to the caller unmodified.
    """

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if operation:
            details["operation"] = operation
        super().__init__(message, details)
        self.operation = operation


class CookieError(EngineCallError):
    """
    One or more cookies could not be added while replacing the cookie set.

    Every addition is attempted; all failures are reported together.

    Attributes:
        failures: List of (cookie, error) pairs
    """

    def __init__(
        self,
        message: str,
        failures: list[tuple[dict[str, Any], Exception]] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.failures = failures or []
        details = details or {}
        if self.failures:
            details["failed"] = [
                cookie.get("name") for cookie, _ in self.failures]
        super().__init__(message, operation="cookies", details=details)


class WaitTimeoutError(BrowserError):
    """
    A bounded wait exceeded its deadline.

    Raised by wait_for, wait_for_selector and wait_for_next_page after
    the registered timeout callback (if any) has been invoked.
    """

    def __init__(
        self,
        message: str,
        timeout_ms: int | None = None,
        elapsed_ms: float | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if timeout_ms is not None:
            details["timeout_ms"] = timeout_ms
        if elapsed_ms is not None:
            details["elapsed_ms"] = round(elapsed_ms)
        super().__init__(message, details)
        self.timeout_ms = timeout_ms
        self.elapsed_ms = elapsed_ms
