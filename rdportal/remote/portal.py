"""Typed proxy of the org.freedesktop.portal.RemoteDesktop interface."""

from __future__ import annotations

from typing import Callable

from rdportal.bus.backend import PortalBus
from rdportal.common.settings import settings
from rdportal.common.types import Axis, CapabilitySet, KeyState, ObjectPath, WindowIdentifier
from rdportal.remote.options import CreateSessionOptions, SelectDevicesOptions, StartOptions
from rdportal.request.correlator import RequestCorrelator, RequestHandle
from rdportal.request.token import new_token


class RemoteDesktopPortal:
    """Raw RemoteDesktop calls, without session state checks.

    CreateSession, SelectDevices and Start are correlated and return a
    RequestHandle. Notify* calls are fire-and-forget. Applications normally
    go through RemoteDesktopSession, which enforces call order and grants.
    """

    def __init__(
        self,
        bus: PortalBus,
        correlator: RequestCorrelator,
        object_path: str = settings.PORTAL_OBJECT_PATH,
    ) -> None:
        """
        Initialize portal proxy.

        Args:
            bus: Connected portal bus
            correlator: Correlator sharing the same bus
            object_path: Object exposing the RemoteDesktop interface
        """
        self._bus: PortalBus = bus
        self._correlator: RequestCorrelator = correlator
        self._object_path: str = object_path

    @property
    def correlator(self) -> RequestCorrelator:
        return self._correlator

    def _call(self, method: str, signature: str, args: tuple, reply_signature: str) -> tuple:
        return self._bus.method_call(
            self._object_path,
            settings.REMOTE_DESKTOP_INTERFACE,
            method,
            signature,
            args,
            reply_signature,
        )

    # =========================================================================
    # Correlated calls
    # =========================================================================

    def create_session(self, options: CreateSessionOptions) -> RequestHandle:
        """Issue CreateSession; the response carries `session_handle`."""
        token = options.handle_token or new_token()
        session_token = options.session_handle_token or new_token()
        packed = options.options_pack(token, session_token)

        def _invoke() -> ObjectPath:
            (path,) = self._call("CreateSession", "(a{sv})", (packed,), "(o)")
            return ObjectPath(path)

        return self._correlator.submit(token, _invoke)

    def select_devices(self, session_handle: ObjectPath, options: SelectDevicesOptions) -> RequestHandle:
        """Issue SelectDevices for a created session."""
        token = options.handle_token or new_token()
        packed = options.options_pack(token)

        def _invoke() -> ObjectPath:
            (path,) = self._call("SelectDevices", "(oa{sv})", (session_handle, packed), "(o)")
            return ObjectPath(path)

        return self._correlator.submit(token, _invoke)

    def start(
        self,
        session_handle: ObjectPath,
        parent_window: WindowIdentifier,
        options: StartOptions,
    ) -> RequestHandle:
        """Issue Start; the response carries the granted `devices` bitmask."""
        token = options.handle_token or new_token()
        packed = options.options_pack(token)

        def _invoke() -> ObjectPath:
            (path,) = self._call("Start", "(osa{sv})", (session_handle, str(parent_window), packed), "(o)")
            return ObjectPath(path)

        return self._correlator.submit(token, _invoke)

    # =========================================================================
    # Fire-and-forget input notifications
    # =========================================================================

    def _notify(self, method: str, signature: str, session_handle: ObjectPath, *args) -> None:
        # The options mapping carries no documented keys and is always empty
        self._call(method, signature, (session_handle, {}) + args, "()")

    def notify_keyboard_keycode(self, session_handle: ObjectPath, keycode: int, state: KeyState) -> None:
        self._notify("NotifyKeyboardKeycode", "(oa{sv}iu)", session_handle, int(keycode), int(state))

    def notify_keyboard_keysym(self, session_handle: ObjectPath, keysym: int, state: KeyState) -> None:
        self._notify("NotifyKeyboardKeysym", "(oa{sv}iu)", session_handle, int(keysym), int(state))

    def notify_pointer_motion(self, session_handle: ObjectPath, dx: float, dy: float) -> None:
        self._notify("NotifyPointerMotion", "(oa{sv}dd)", session_handle, float(dx), float(dy))

    def notify_pointer_motion_absolute(
        self, session_handle: ObjectPath, stream: int, x: float, y: float
    ) -> None:
        self._notify("NotifyPointerMotionAbsolute", "(oa{sv}udd)", session_handle, int(stream), float(x), float(y))

    def notify_pointer_button(self, session_handle: ObjectPath, button: int, state: KeyState) -> None:
        self._notify("NotifyPointerButton", "(oa{sv}iu)", session_handle, int(button), int(state))

    def notify_pointer_axis(self, session_handle: ObjectPath, dx: float, dy: float) -> None:
        self._notify("NotifyPointerAxis", "(oa{sv}dd)", session_handle, float(dx), float(dy))

    def notify_pointer_axis_discrete(self, session_handle: ObjectPath, axis: Axis, steps: int) -> None:
        self._notify("NotifyPointerAxisDiscrete", "(oa{sv}ui)", session_handle, int(axis), int(steps))

    def notify_touch_down(self, session_handle: ObjectPath, stream: int, slot: int, x: float, y: float) -> None:
        self._notify("NotifyTouchDown", "(oa{sv}uudd)", session_handle, int(stream), int(slot), float(x), float(y))

    def notify_touch_motion(self, session_handle: ObjectPath, stream: int, slot: int, x: float, y: float) -> None:
        self._notify("NotifyTouchMotion", "(oa{sv}uudd)", session_handle, int(stream), int(slot), float(x), float(y))

    def notify_touch_up(self, session_handle: ObjectPath, slot: int) -> None:
        self._notify("NotifyTouchUp", "(oa{sv}u)", session_handle, int(slot))

    # =========================================================================
    # Properties and session objects
    # =========================================================================

    @property
    def available_device_types(self) -> CapabilitySet:
        """Device kinds the broker can ever offer"""
        bits = self._bus.property_get(settings.REMOTE_DESKTOP_INTERFACE, "AvailableDeviceTypes")
        return CapabilitySet.from_bits(int(bits))

    @property
    def version(self) -> int:
        """RemoteDesktop interface version implemented by the broker"""
        return int(self._bus.property_get(settings.REMOTE_DESKTOP_INTERFACE, "version"))

    def session_close(self, session_handle: ObjectPath) -> None:
        """Close a session object on the broker."""
        self._bus.method_call(session_handle, settings.SESSION_INTERFACE, "Close", "()", ())

    def sessionClosed_subscribe(
        self, session_handle: ObjectPath, callback: Callable[[tuple], None]
    ) -> int:
        """Subscribe to the broker-emitted Session.Closed signal."""
        return self._bus.signal_subscribe(settings.SESSION_INTERFACE, "Closed", session_handle, callback)

    def signal_unsubscribe(self, subscription_id: int) -> None:
        self._bus.signal_unsubscribe(subscription_id)
