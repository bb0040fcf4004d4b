"""
Operation layer for page-pilot.

Stateless async functions, each taking the Session as first argument:
- navigation: opening pages, history, page settings, cookies
- interaction: clicks, typing, input events, rendering, uploads
- information: page-context reads
- waiting: event registration and bounded waits
"""

from page_pilot.operations.information import (
    UNSET,
    attribute,
    count,
    css_property,
    evaluate,
    exists,
    height,
    html,
    text,
    title,
    url,
    value,
    visible,
    width,
)
from page_pilot.operations.interaction import (
    TypeOptions,
    clear,
    click,
    compute_modifier,
    inject_js,
    keyboard_event,
    manipulate,
    mouse_event,
    pdf,
    screenshot,
    screenshot_base64,
    select,
    type_text,
    upload,
)
from page_pilot.operations.navigation import (
    authentication,
    back,
    cookies,
    forward,
    headers,
    open_url,
    post,
    reload,
    scroll_to,
    switch_to_child_frame,
    user_agent,
    viewport,
    zoom,
)
from page_pilot.operations.waiting import (
    on,
    wait,
    wait_for,
    wait_for_next_page,
    wait_for_selector,
)

__all__ = [
    # Information
    "UNSET",
    "attribute",
    "count",
    "css_property",
    "evaluate",
    "exists",
    "height",
    "html",
    "text",
    "title",
    "url",
    "value",
    "visible",
    "width",
    # Interaction
    "TypeOptions",
    "clear",
    "click",
    "compute_modifier",
    "inject_js",
    "keyboard_event",
    "manipulate",
    "mouse_event",
    "pdf",
    "screenshot",
    "screenshot_base64",
    "select",
    "type_text",
    "upload",
    # Navigation
    "authentication",
    "back",
    "cookies",
    "forward",
    "headers",
    "open_url",
    "post",
    "reload",
    "scroll_to",
    "switch_to_child_frame",
    "user_agent",
    "viewport",
    "zoom",
    # Waiting
    "on",
    "wait",
    "wait_for",
    "wait_for_next_page",
    "wait_for_selector",
]
