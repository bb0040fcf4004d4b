"""
Logging for page-pilot.

Every module logs through a child of the ``page_pilot`` logger. Nothing
is printed until ``setup_logging`` installs handlers, so applications
embedding the library keep control of their own logging.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import TYPE_CHECKING, Any, MutableMapping

if TYPE_CHECKING:
    from page_pilot.config.settings import LoggingSettings

ROOT_LOGGER_NAME = "page_pilot"

_configured = False


def _build_handlers(settings: "LoggingSettings") -> list[logging.Handler]:
    handlers: list[logging.Handler] = []

    if settings.log_to_console:
        handlers.append(logging.StreamHandler(sys.stderr))

    if settings.file_path is not None:
        settings.file_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(RotatingFileHandler(
            settings.file_path,
            maxBytes=settings.max_file_size_mb * 1024 * 1024,
            backupCount=settings.backup_count,
            encoding="utf-8",
        ))

    formatter = logging.Formatter(settings.format, datefmt=settings.date_format)
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def setup_logging(
    settings: "LoggingSettings | None" = None,
    level: str | None = None,
) -> logging.Logger:
    """
    Install console and file handlers on the package logger.

    Only the first call has an effect until ``reset_logging``.

    Args:
        settings: Logging configuration; defaults to LoggingSettings()
        level: Level name that takes precedence over settings.level

    Returns:
        The package logger
    """
    global _configured

    root = logging.getLogger(ROOT_LOGGER_NAME)
    if _configured:
        return root

    if settings is None:
        from page_pilot.config.settings import LoggingSettings
        settings = LoggingSettings()

    root.setLevel((level or settings.level).upper())
    for handler in _build_handlers(settings):
        root.addHandler(handler)
    root.propagate = False

    _configured = True
    return root


def get_logger(name: str | None = None) -> logging.Logger:
    """
    Return the package logger, or a child of it for ``name``.

    Names outside the package are nested under it, so
    ``get_logger("tests")`` gives ``page_pilot.tests``.
    """
    if not name or name == ROOT_LOGGER_NAME:
        return logging.getLogger(ROOT_LOGGER_NAME)
    if name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def reset_logging() -> None:
    """Remove installed handlers and allow ``setup_logging`` to run again."""
    global _configured

    root = logging.getLogger(ROOT_LOGGER_NAME)
    while root.handlers:
        handler = root.handlers[0]
        root.removeHandler(handler)
        handler.close()
    root.setLevel(logging.NOTSET)
    root.propagate = True
    _configured = False


class LoggerAdapter(logging.LoggerAdapter):
    """
    Appends ``[key=value]`` pairs to each message.

    Example:
        >>> log = LoggerAdapter(get_logger(__name__), {"session": "a1b2c3d4"})
        >>> log.debug(".title()")  # .title() [session=a1b2c3d4]
    """

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        if not self.extra:
            return msg, kwargs
        suffix = " ".join(f"[{key}={value}]" for key, value in self.extra.items())
        return f"{msg} {suffix}", kwargs


def get_logger_with_context(name: str | None = None, **context: Any) -> LoggerAdapter:
    """Return a logger for ``name`` that tags every message with ``context``."""
    return LoggerAdapter(get_logger(name), context)
