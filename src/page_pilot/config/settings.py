"""
Configuration models for page-pilot.

Defaults suit one headless page driven from a single event loop.
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class BrowserSettings(BaseModel):
    """How the engine launches the browser and sets up the page."""

    browser_type: Literal["chromium", "firefox", "webkit"] = Field(
        default="chromium",
        description="Playwright browser to launch",
    )
    headless: bool = Field(default=True, description="Launch without a window")
    user_agent: str | None = Field(
        default=None,
        description="User-Agent header override; the engine default when unset",
    )
    viewport_width: int = Field(default=1280, ge=320, le=3840)
    viewport_height: int = Field(default=720, ge=240, le=2160)
    ignore_https_errors: bool = Field(
        default=False,
        description="Accept invalid TLS certificates",
    )
    load_images: bool = Field(default=True, description="Fetch image resources")
    javascript_enabled: bool = Field(default=True, description="Run page scripts")
    navigation_timeout_ms: int = Field(
        default=60000,
        ge=1000,
        le=300000,
        description="Engine-side limit on a single open() in milliseconds",
    )


class SessionSettings(BaseModel):
    """Readiness gate, wait engine and operation queue configuration."""

    timeout_ms: int = Field(
        default=5000,
        ge=1,
        le=600000,
        description="Default timeout for polling waits in milliseconds",
    )
    poll_interval_ms: int = Field(
        default=50,
        ge=1,
        le=60000,
        description="Delay between poll ticks in milliseconds",
    )
    serialize_operations: bool = Field(
        default=True,
        description="Admit one engine operation at a time, in FIFO order",
    )
    screenshot_grace_ms: int = Field(
        default=1500,
        ge=0,
        le=60000,
        description=(
            "Delay after a render request for engines that do not "
            "acknowledge render completion"
        ),
    )


class LoggingSettings(BaseModel):
    """Handlers installed by setup_logging."""

    level: LogLevel = "INFO"
    format: str = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
    date_format: str = "%H:%M:%S"
    log_to_console: bool = Field(default=True, description="Write records to stderr")
    file_path: Path | None = Field(
        default=None,
        description="Rotating log file; parent directories are created",
    )
    max_file_size_mb: int = Field(default=10, ge=1, le=100)
    backup_count: int = Field(default=3, ge=0, le=10)


class Settings(BaseModel):
    """
    Root configuration.

    See ``page_pilot.config.loader`` for how files, environment variables
    and overrides are layered into it.
    """

    model_config = ConfigDict(extra="forbid", validate_default=True)

    browser: BrowserSettings = Field(default_factory=BrowserSettings)
    session: SessionSettings = Field(default_factory=SessionSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
