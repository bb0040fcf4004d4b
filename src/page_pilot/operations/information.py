"""
Read operations evaluated inside the page context.

Every read sends a function to the page and returns its result; no DOM
state is mirrored locally. Selectors always travel as bound arguments.
"""

from typing import Any

from page_pilot.session import Session

# Marks "no value passed" for getters that also act as setters
UNSET: Any = object()


async def evaluate(session: Session, fn: str, *args: Any) -> Any:
    """
    Run a function in the page context and return its result.

    Args:
        session: Session to run against
        fn: Page-context function source, e.g. ``"(a, b) => a + b"``
        *args: JSON-serializable arguments passed to fn

    Returns:
        The function's return value as deserialized by the engine

    Raises:
        EngineCallError: If the engine reports an evaluation failure
    """
    async with session.operation("evaluate") as page:
        return await page.evaluate(fn, *args)


async def url(session: Session) -> str:
    """Get the url of the current page."""
    return await evaluate(session, "() => document.location.href")


async def title(session: Session) -> str:
    """Get the title of the current page."""
    return await evaluate(session, "() => document.title")


async def count(session: Session, selector: str) -> int:
    """Count the elements matching ``selector``."""
    return await evaluate(
        session,
        """
        (selector) => {
            var matches = window.jQuery
                ? window.jQuery(selector)
                : document.querySelectorAll(selector);
            return matches.length;
        }
        """,
        selector,
    )


async def exists(session: Session, selector: str) -> bool:
    """Whether ``selector`` matches at least one element."""
    return await count(session, selector) > 0


async def html(session: Session, selector: str | None = None) -> str:
    """Inner HTML of the first element matching ``selector``, or of the document."""
    return await evaluate(
        session,
        """
        (selector) => {
            if (selector) {
                return window.jQuery
                    ? window.jQuery(selector).html()
                    : document.querySelector(selector).innerHTML;
            }
            return window.jQuery
                ? window.jQuery("html").html()
                : document.documentElement.innerHTML;
        }
        """,
        selector,
    )


async def text(session: Session, selector: str | None = None) -> str:
    """Text content of the first element matching ``selector``, or of the body."""
    return await evaluate(
        session,
        """
        (selector) => {
            if (selector) {
                return window.jQuery
                    ? window.jQuery(selector).text()
                    : document.querySelector(selector).textContent;
            }
            return window.jQuery
                ? window.jQuery("body").text()
                : document.querySelector("body").textContent;
        }
        """,
        selector,
    )


async def attribute(session: Session, selector: str, name: str) -> str | None:
    """Value of attribute ``name`` on the first element matching ``selector``."""
    return await evaluate(
        session,
        """
        (selector, name) => window.jQuery
            ? window.jQuery(selector).attr(name)
            : document.querySelector(selector).getAttribute(name)
        """,
        selector,
        name,
    )


async def css_property(session: Session, selector: str, prop: str) -> str:
    """Computed value of css property ``prop`` for ``selector``."""
    return await evaluate(
        session,
        """
        (selector, prop) => window.jQuery
            ? window.jQuery(selector).css(prop)
            : getComputedStyle(document.querySelector(selector))[prop]
        """,
        selector,
        prop,
    )


async def width(session: Session, selector: str) -> int:
    """Rendered width of an element in pixels."""
    return await evaluate(
        session,
        """
        (selector) => window.jQuery
            ? window.jQuery(selector).width()
            : document.querySelector(selector).offsetWidth
        """,
        selector,
    )


async def height(session: Session, selector: str) -> int:
    """Rendered height of an element in pixels."""
    return await evaluate(
        session,
        """
        (selector) => window.jQuery
            ? window.jQuery(selector).height()
            : document.querySelector(selector).offsetHeight
        """,
        selector,
    )


async def value(session: Session, selector: str, new_value: Any = UNSET) -> Any:
    """
    Get or set the value of a form element.

    Getting: a missing value on a present element reads as ``""``, while
    an absent element yields the engine's raw ``None``.

    Setting: assigns the value and dispatches a ``change`` event.

    Args:
        session: Session to run against
        selector: Element selector
        new_value: Value to assign; omit to read

    Returns:
        The current value when reading, None when writing
    """
    async with session.operation("value"):
        if new_value is UNSET:
            current = await evaluate(
                session,
                """
                (selector) => {
                    if (window.jQuery) {
                        var val = window.jQuery(selector).val();
                        return val === undefined ? null : val;
                    }
                    var element = document.querySelector(selector);
                    if (!element || element.value === undefined) return null;
                    return element.value;
                }
                """,
                selector,
            )
            if current is None:
                return "" if await exists(session, selector) else current
            return current

        await evaluate(
            session,
            """
            (selector, value) => {
                if (window.jQuery) {
                    window.jQuery(selector).val(value).change();
                    return;
                }
                var element = document.querySelector(selector);
                var event = document.createEvent("HTMLEvents");
                element.value = value;
                event.initEvent("change", true, true);
                element.dispatchEvent(event);
            }
            """,
            selector,
            new_value,
        )
        return None


async def visible(session: Session, selector: str) -> bool:
    """Whether an element is present and has a non-zero rendered size."""
    result = await evaluate(
        session,
        """
        (selector) => {
            if (window.jQuery) {
                return window.jQuery(selector).is(":visible");
            }
            var element = document.querySelector(selector);
            return element ? (element.offsetWidth > 0 && element.offsetHeight > 0) : false;
        }
        """,
        selector,
    )
    return bool(result)
