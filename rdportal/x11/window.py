"""X11 parent window lookup for portal dialogs"""

import logging
from typing import Optional

from Xlib import display as xdisplay
from Xlib.error import DisplayError

from rdportal.common.types import WindowIdentifier

logger = logging.getLogger(__name__)


def focusedWindowIdentifier_get(display_name: Optional[str] = None) -> WindowIdentifier:
    """
    Identify the X11 window that currently has input focus

    Args:
        display_name: X11 display name (e.g., ':0'), None for $DISPLAY

    Returns:
        "x11:<xid>" identifier, or the empty identifier when no X display is
        reachable or no real window has focus
    """
    try:
        connection = xdisplay.Display(display_name)
    except (DisplayError, OSError) as e:
        logger.debug(f"No X11 display for parent window lookup: {e}")
        return WindowIdentifier()

    try:
        focus = connection.get_input_focus().focus
        # PointerRoot and None are plain ints, not window objects
        if isinstance(focus, int):
            return WindowIdentifier()
        if focus.id == connection.screen().root.id:
            return WindowIdentifier()
        return WindowIdentifier.x11(focus.id)
    finally:
        connection.close()
