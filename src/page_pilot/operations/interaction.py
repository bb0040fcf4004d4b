"""
Interaction operations: input simulation, rendering and form helpers.
"""

import asyncio
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

from page_pilot.core.exceptions import InputValidationError
from page_pilot.engine.base import IMAGE_FORMATS, MODIFIER_KEYS
from page_pilot.operations.information import evaluate, value
from page_pilot.session import Session
from page_pilot.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_PAPER_SIZE = {
    "format": "Letter",
    "orientation": "portrait",
    "margin": "0.5in",
}

_FOCUS_FN = """
(selector) => {
    if (window.jQuery) {
        window.jQuery(selector).focus();
    } else {
        document.querySelector(selector).focus();
    }
}
"""

_BLUR_FN = """
(selector) => {
    if (window.jQuery) {
        window.jQuery(selector).blur();
    } else {
        var element = document.querySelector(selector);
        if (element) element.blur();
    }
}
"""


@dataclass
class TypeOptions:
    """
    Options for ``type_text``.

    Attributes:
        reset: Clear the field before typing
        event_type: Key event sent per character (keypress, keydown, keyup)
        keep_focus: Leave the element focused afterwards instead of blurring it
        modifiers: Modifier keys joined by ``+``, e.g. ``"ctrl+shift"``
    """

    reset: bool = False
    event_type: str = "keypress"
    keep_focus: bool = False
    modifiers: str | None = None

    _ALIASES = {"eventType": "event_type", "keepFocus": "keep_focus"}

    @classmethod
    def merge(cls, options: "TypeOptions | dict[str, Any] | None") -> "TypeOptions":
        """Merge caller options over the defaults."""
        if options is None:
            return cls()
        if isinstance(options, cls):
            return options

        accepted = {f.name for f in fields(cls)}
        merged: dict[str, Any] = {}
        for key, option in options.items():
            name = cls._ALIASES.get(key, key)
            if name in accepted:
                merged[name] = option
            else:
                logger.warning(f"Ignoring unknown type() option: {key}")
        return cls(**merged)


def compute_modifier(modifiers: str | None) -> int:
    """
    Combine ``+``-separated modifier names into a bitmask.

    Unknown names are logged and contribute nothing.

    Example:
        >>> compute_modifier("ctrl+shift") == 0x04000000 | 0x02000000
        True
    """
    if not modifiers:
        return 0

    mask = 0
    for key in modifiers.split("+"):
        bit = MODIFIER_KEYS.get(key)
        if bit is None:
            logger.warning(f"{key} is not a supported key modifier")
            continue
        mask |= bit
    return mask


async def click(session: Session, selector: str) -> None:
    """Dispatch a click event on the first element matching ``selector``."""
    await evaluate(
        session,
        """
        (selector) => {
            var element = window.jQuery
                ? window.jQuery(selector).get(0)
                : document.querySelector(selector);
            if (window.jQuery && !element) return;
            var event = document.createEvent("MouseEvent");
            event.initEvent("click", true, true);
            element.dispatchEvent(event);
        }
        """,
        selector,
    )


async def screenshot(
    session: Session,
    path: str | Path,
    top: float | None = None,
    left: float | None = None,
    width: float | None = None,
    height: float | None = None,
) -> None:
    """
    Save a screenshot to disk.

    The clip rectangle is applied only when all four geometry values are
    truthy, and the previous clip is restored afterwards.

    For engines that acknowledge renders this returns once the file is
    written. Otherwise it waits ``session.screenshot_grace_ms`` after the
    request, which makes completion likely but not guaranteed.
    """
    clip = bool(top and left and width and height)

    async with session.operation("screenshot") as page:
        previous_clip = None
        if clip:
            previous_clip = await page.get("clipRect")
            await page.set(
                "clipRect",
                {"top": top, "left": left, "width": width, "height": height},
            )

        try:
            await page.render(str(path))
            if not page.render_acknowledged:
                await asyncio.sleep(session.options.screenshot_grace_ms / 1000)
        finally:
            if clip:
                await page.set("clipRect", previous_clip)


async def screenshot_base64(session: Session, fmt: str) -> str:
    """
    Render the page to a base64 encoded image.

    Args:
        session: Session to run against
        fmt: One of PNG, GIF or JPEG

    Raises:
        InputValidationError: If fmt is not supported; nothing is sent to the engine
    """
    if fmt not in IMAGE_FORMATS:
        logger.debug(f".screenshotBase64() with type {fmt} not supported.")
        raise InputValidationError(
            "screenshotBase64 type must be PNG, GIF, or JPEG.",
            argument="fmt",
            value=fmt,
        )

    async with session.operation("screenshotBase64") as page:
        return await page.render_base64(fmt)


async def pdf(
    session: Session,
    path: str | Path,
    paper_size: dict[str, Any] | None = None,
) -> None:
    """
    Save the page as a pdf.

    Args:
        session: Session to run against
        path: Output file
        paper_size: format (A3, A4, A5, Legal, Letter, Tabloid), orientation
            (portrait or landscape) and margin; defaults to Letter,
            portrait, 0.5in
    """
    async with session.operation("pdf") as page:
        await page.set("paperSize", paper_size or dict(DEFAULT_PAPER_SIZE))
        await page.render(str(path), {"format": "pdf", "quality": "100"})
        logger.debug(f".pdf() saved to {path}")


async def inject_js(session: Session, path: str | Path) -> bool:
    """Inject a javascript file into the page."""
    async with session.operation("injectJs") as page:
        return await page.inject_js(str(path))


async def select(session: Session, selector: str, option: Any) -> None:
    """Select a value in a select element."""
    await value(session, selector, option)


async def clear(session: Session, selector: str) -> None:
    """Clear an input field."""
    await value(session, selector, "")


async def keyboard_event(
    session: Session,
    event_type: str = "keypress",
    key: str | None = None,
    modifier: int = 0,
) -> None:
    """Fire a key event."""
    async with session.operation("keyboardEvent") as page:
        await page.send_event(event_type, key, None, None, modifier)


async def mouse_event(
    session: Session,
    event_type: str = "click",
    x: float | None = None,
    y: float | None = None,
    button: str = "left",
) -> None:
    """Fire a mouse event at a page position."""
    async with session.operation("mouseEvent") as page:
        await page.send_event(event_type, x, y, button)


async def type_text(
    session: Session,
    selector: str,
    text: str,
    options: TypeOptions | dict[str, Any] | None = None,
) -> None:
    """
    Type text into an element one key event per character.

    The element is focused first; characters are sent strictly in order,
    each carrying the same modifier mask.

    Args:
        session: Session to run against
        selector: Element to type into
        text: Characters to send
        options: TypeOptions or a dict merged over the defaults
    """
    opts = TypeOptions.merge(options)
    modifier = compute_modifier(opts.modifiers)

    async with session.operation("type") as page:
        if opts.reset:
            await value(session, selector, "")

        await page.evaluate(_FOCUS_FN, selector)
        for char in text:
            await page.send_event(opts.event_type, char, None, None, modifier)

        if not opts.keep_focus:
            await page.evaluate(_BLUR_FN, selector)


async def upload(session: Session, selector: str, path: str | Path) -> None:
    """
    Upload a file through a file input.

    Raises:
        InputValidationError: If path does not exist; nothing is sent to the engine
    """
    if not Path(path).exists():
        logger.debug(".upload() file path not valid.")
        raise InputValidationError(
            "File path for upload is not valid.",
            argument="path",
            value=str(path),
        )

    async with session.operation("upload") as page:
        await page.upload_file(selector, str(path))
        logger.debug(f".upload() {path} into {selector}")


async def manipulate(session: Session, fn: str, *args: Any) -> None:
    """Run a function in the page for its side effects only."""
    await evaluate(session, fn, *args)
