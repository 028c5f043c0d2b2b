"""Bus backend protocol consumed by the portal layers."""

from __future__ import annotations

from typing import Any, Callable, Protocol

SignalCallback = Callable[[tuple], None]
"""Receives the unpacked signal parameters"""

OptionValue = tuple[str, Any]
"""Option value tagged with its D-Bus signature, e.g. ("s", "token")"""


class PortalBus(Protocol):
    """Abstract message bus connection to the portal broker.

    Option mappings (`a{sv}` arguments) are passed as plain dicts of
    `{key: (signature, value)}`; packing them into the wire format is the
    backend's job. Failures to deliver a call raise TransportError.
    """

    def connection_establish(self) -> None:
        """Connect to the bus and start dispatching signals."""

    def connection_close(self) -> None:
        """Stop dispatching and drop the connection."""

    def uniqueName_get(self) -> str:
        """Unique bus name of this connection (":1.42")."""

    def method_call(
        self,
        object_path: str,
        interface: str,
        method: str,
        signature: str,
        args: tuple,
        reply_signature: str | None = None,
    ) -> tuple:
        """Invoke a method on the broker and return the unpacked reply tuple."""

    def property_get(self, interface: str, name: str) -> Any:
        """Read a property of the broker's portal object."""

    def signal_subscribe(
        self,
        interface: str,
        member: str,
        object_path: str,
        callback: SignalCallback,
    ) -> int:
        """Subscribe to a broker signal emitted on object_path."""

    def signal_unsubscribe(self, subscription_id: int) -> None:
        """Remove a subscription returned by signal_subscribe."""
