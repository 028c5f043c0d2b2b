"""State- and capability-gated input emitters of an active session.

Notifications are fire-and-forget: there is no request object and no
response. Each event is checked against the session before it is sent and
dropped when the session is not ACTIVE or its device kind was not granted.
Touch slot lifecycle is broker-side state and is not tracked here; `stream`
is the caller's screen-cast stream node id, passed through untouched.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from rdportal.common.errors import CapabilityDeniedError, InvalidStateError
from rdportal.common.types import Axis, DeviceType, KeyState, ObjectPath

if TYPE_CHECKING:
    from rdportal.remote.session import RemoteDesktopSession

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingEvent:
    """Input notification awaiting its legality check"""
    device: DeviceType
    method: str
    args: tuple
    session_handle: Optional[ObjectPath]


class InputChannel:
    """Keyboard, pointer and touch emitters bound to one session"""

    def __init__(self, session: "RemoteDesktopSession") -> None:
        self._session = session
        self._lock = threading.Lock()

    def _emit(self, device: DeviceType, method: str, *args) -> None:
        """
        Check and transmit one event, preserving call order

        Raises:
            InvalidStateError: Unless the session is ACTIVE
            CapabilityDeniedError: If device was not granted
        """
        with self._lock:
            event = PendingEvent(device, method, args, self._session.handle)
            try:
                self._session.event_admit(event)
            except (InvalidStateError, CapabilityDeniedError):
                logger.debug(f"Dropped {method}{args}")
                raise
            getattr(self._session.portal, method)(event.session_handle, *args)

    # =========================================================================
    # Keyboard
    # =========================================================================

    def notify_keyboard_keycode(self, keycode: int, state: KeyState) -> None:
        """Press or release an evdev keycode"""
        self._emit(DeviceType.KEYBOARD, "notify_keyboard_keycode", keycode, KeyState(state))

    def notify_keyboard_keysym(self, keysym: int, state: KeyState) -> None:
        """Press or release an X11 keysym"""
        self._emit(DeviceType.KEYBOARD, "notify_keyboard_keysym", keysym, KeyState(state))

    def key_tap(self, keycode: int) -> None:
        """Press and release an evdev keycode"""
        self.notify_keyboard_keycode(keycode, KeyState.PRESSED)
        self.notify_keyboard_keycode(keycode, KeyState.RELEASED)

    # =========================================================================
    # Pointer
    # =========================================================================

    def notify_pointer_motion(self, dx: float, dy: float) -> None:
        """Relative motion in logical coordinates"""
        self._emit(DeviceType.POINTER, "notify_pointer_motion", float(dx), float(dy))

    def notify_pointer_motion_absolute(self, stream: int, x: float, y: float) -> None:
        """Absolute position in the coordinate space of a screen-cast stream"""
        self._emit(DeviceType.POINTER, "notify_pointer_motion_absolute", stream, float(x), float(y))

    def notify_pointer_button(self, button: int, state: KeyState) -> None:
        """Press or release an evdev button code (BTN_LEFT, ...)"""
        self._emit(DeviceType.POINTER, "notify_pointer_button", button, KeyState(state))

    def button_click(self, button: int) -> None:
        """Press and release an evdev button code"""
        self.notify_pointer_button(button, KeyState.PRESSED)
        self.notify_pointer_button(button, KeyState.RELEASED)

    def notify_pointer_axis(self, dx: float, dy: float) -> None:
        """Smooth scroll, deltas in the same units as pointer motion"""
        self._emit(DeviceType.POINTER, "notify_pointer_axis", float(dx), float(dy))

    def notify_pointer_axis_discrete(self, axis: Axis, steps: int) -> None:
        """Scroll wheel clicks along one axis"""
        self._emit(DeviceType.POINTER, "notify_pointer_axis_discrete", Axis(axis), int(steps))

    # =========================================================================
    # Touchscreen
    # =========================================================================

    def notify_touch_down(self, stream: int, slot: int, x: float, y: float) -> None:
        self._emit(DeviceType.TOUCHSCREEN, "notify_touch_down", stream, slot, float(x), float(y))

    def notify_touch_motion(self, stream: int, slot: int, x: float, y: float) -> None:
        self._emit(DeviceType.TOUCHSCREEN, "notify_touch_motion", stream, slot, float(x), float(y))

    def notify_touch_up(self, slot: int) -> None:
        self._emit(DeviceType.TOUCHSCREEN, "notify_touch_up", slot)
