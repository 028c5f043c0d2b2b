"""Portal bus backend on top of Gio's D-Bus client."""

from __future__ import annotations

import logging
import threading
from typing import Any, Optional

from gi.repository import Gio, GLib

from rdportal.bus.backend import SignalCallback
from rdportal.common.errors import TransportError
from rdportal.common.settings import settings

logger = logging.getLogger(__name__)


class GioPortalBus:
    """PortalBus backed by a Gio.DBusConnection.

    Signals are dispatched by a GLib main loop running in a daemon thread, so
    Response callbacks never run on the thread that is waiting for them.
    """

    def __init__(
        self,
        bus_name: str = settings.PORTAL_BUS_NAME,
        object_path: str = settings.PORTAL_OBJECT_PATH,
        call_timeout_ms: int = settings.DEFAULT_CALL_TIMEOUT_MS,
    ) -> None:
        """
        Initialize Gio bus backend.

        Args:
            bus_name: Well-known name of the portal broker
            object_path: Object exposing the portal interfaces
            call_timeout_ms: Timeout for the synchronous part of each call
        """
        self._bus_name: str = bus_name
        self._object_path: str = object_path
        self._call_timeout_ms: int = call_timeout_ms
        self._connection: Optional[Gio.DBusConnection] = None
        self._loop: Optional[GLib.MainLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._subscriptions: set[int] = set()
        self._lock = threading.Lock()

    def connection_establish(self) -> None:
        """Connect to the session bus and start the dispatch thread."""
        if self._connection is not None:
            return
        try:
            self._connection = Gio.bus_get_sync(Gio.BusType.SESSION, None)
        except GLib.Error as e:
            raise TransportError(f"Cannot connect to session bus: {e.message}") from e

        self._loop = GLib.MainLoop()
        self._thread = threading.Thread(target=self._loop.run, name="rdportal-bus", daemon=True)
        self._thread.start()
        logger.debug(f"Connected to session bus as {self._connection.get_unique_name()}")

    def connection_close(self) -> None:
        """Drop all subscriptions and stop the dispatch thread."""
        if self._connection is None:
            return
        with self._lock:
            subscriptions = list(self._subscriptions)
            self._subscriptions.clear()
        for subscription_id in subscriptions:
            self._connection.signal_unsubscribe(subscription_id)

        if self._loop is not None:
            self._loop.quit()
        if self._thread is not None:
            self._thread.join(timeout=1.0)
        self._loop = None
        self._thread = None
        self._connection = None
        logger.debug("Bus connection closed")

    def _connection_get(self) -> Gio.DBusConnection:
        if self._connection is None:
            raise TransportError("Bus connection not established")
        return self._connection

    def uniqueName_get(self) -> str:
        """Unique bus name of this connection."""
        return self._connection_get().get_unique_name()

    @staticmethod
    def _argument_pack(value: Any) -> Any:
        """Pack `{key: (signature, value)}` option dicts into a{sv} form."""
        if isinstance(value, dict):
            return {key: GLib.Variant(sig, item) for key, (sig, item) in value.items()}
        return value

    def method_call(
        self,
        object_path: str,
        interface: str,
        method: str,
        signature: str,
        args: tuple,
        reply_signature: str | None = None,
    ) -> tuple:
        """
        Invoke a broker method synchronously.

        Args:
            object_path: Target object
            interface: Target interface
            method: Method name
            signature: Tuple signature of args, e.g. "(oa{sv})"
            args: Call arguments
            reply_signature: Expected reply signature, or None to skip the check

        Returns:
            Unpacked reply tuple

        Raises:
            TransportError: If the call fails
        """
        connection = self._connection_get()
        parameters = None
        if args:
            parameters = GLib.Variant(signature, tuple(self._argument_pack(a) for a in args))
        reply_type = GLib.VariantType.new(reply_signature) if reply_signature else None
        try:
            reply = connection.call_sync(
                self._bus_name,
                object_path,
                interface,
                method,
                parameters,
                reply_type,
                Gio.DBusCallFlags.NONE,
                self._call_timeout_ms,
                None,
            )
        except GLib.Error as e:
            raise TransportError(f"{interface}.{method} failed: {e.message}") from e
        if reply is None:
            return ()
        return reply.unpack()

    def property_get(self, interface: str, name: str) -> Any:
        """Read a property of the portal object via org.freedesktop.DBus.Properties."""
        (value,) = self.method_call(
            self._object_path,
            settings.PROPERTIES_INTERFACE,
            "Get",
            "(ss)",
            (interface, name),
            "(v)",
        )
        return value

    def signal_subscribe(
        self,
        interface: str,
        member: str,
        object_path: str,
        callback: SignalCallback,
    ) -> int:
        """
        Subscribe to a broker signal on one object.

        Returns:
            Subscription id for signal_unsubscribe
        """
        connection = self._connection_get()

        def _dispatch(_connection, _sender, path, _interface, signal_name, parameters, *_user_data):
            try:
                callback(parameters.unpack())
            except Exception:
                logger.exception(f"Signal handler for {signal_name} on {path} failed")

        subscription_id: int = connection.signal_subscribe(
            self._bus_name,
            interface,
            member,
            object_path,
            None,
            Gio.DBusSignalFlags.NONE,
            _dispatch,
        )
        with self._lock:
            self._subscriptions.add(subscription_id)
        return subscription_id

    def signal_unsubscribe(self, subscription_id: int) -> None:
        """Remove a signal subscription."""
        with self._lock:
            if subscription_id not in self._subscriptions:
                return
            self._subscriptions.discard(subscription_id)
        if self._connection is not None:
            self._connection.signal_unsubscribe(subscription_id)
