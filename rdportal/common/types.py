"""Common types and data structures for rdportal"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Iterable, Iterator, NewType

from rdportal.common.errors import BrokerError, RequestCancelledError

logger = logging.getLogger(__name__)

ObjectPath = NewType("ObjectPath", str)
"""Opaque reference to a broker-side request or session object"""


class DeviceType(Enum):
    """Remote-controllable device kinds (portal bit values)"""
    KEYBOARD = 1
    POINTER = 2
    TOUCHSCREEN = 4


class KeyState(IntEnum):
    """Key or button state as understood by the portal"""
    RELEASED = 0
    PRESSED = 1


class Axis(IntEnum):
    """Axis of a discrete scroll event"""
    VERTICAL = 0
    HORIZONTAL = 1


class SessionState(Enum):
    """Lifecycle of a remote desktop session"""
    UNOPENED = "unopened"
    CREATED = "created"
    DEVICES_SELECTED = "devices_selected"
    ACTIVE = "active"
    CLOSED = "closed"


@dataclass(frozen=True)
class CapabilitySet:
    """Immutable set of device kinds, requested or granted"""
    devices: frozenset[DeviceType] = field(default_factory=frozenset)

    @classmethod
    def of(cls, *devices: DeviceType) -> "CapabilitySet":
        """Build a set from explicit device kinds"""
        return cls(frozenset(devices))

    @classmethod
    def all(cls) -> "CapabilitySet":
        """Every device kind the portal knows about"""
        return cls(frozenset(DeviceType))

    @classmethod
    def from_bits(cls, bits: int) -> "CapabilitySet":
        """
        Decode a portal device bitmask

        Args:
            bits: Bitmask as sent by the broker

        Returns:
            Capability set; unknown bits are dropped
        """
        devices = frozenset(d for d in DeviceType if bits & d.value)
        known = sum(d.value for d in devices)
        if bits & ~known:
            logger.warning(f"Ignoring unknown device type bits: {bits & ~known:#x}")
        return cls(devices)

    @classmethod
    def from_names(cls, names: Iterable[str]) -> "CapabilitySet":
        """
        Parse device kind names such as "keyboard" or "pointer"

        Raises:
            ValueError: If a name is not a known device kind
        """
        devices = set()
        for name in names:
            token = name.strip().upper()
            if not token:
                continue
            try:
                devices.add(DeviceType[token])
            except KeyError:
                supported = ", ".join(d.name.lower() for d in DeviceType)
                raise ValueError(f"Unknown device type '{name}'. Supported: {supported}.") from None
        return cls(frozenset(devices))

    def to_bits(self) -> int:
        """Encode as portal device bitmask"""
        bits = 0
        for device in self.devices:
            bits |= device.value
        return bits

    def union(self, other: "CapabilitySet") -> "CapabilitySet":
        return CapabilitySet(self.devices | other.devices)

    def intersection(self, other: "CapabilitySet") -> "CapabilitySet":
        return CapabilitySet(self.devices & other.devices)

    def difference(self, other: "CapabilitySet") -> "CapabilitySet":
        return CapabilitySet(self.devices - other.devices)

    def issubset(self, other: "CapabilitySet") -> bool:
        return self.devices <= other.devices

    def is_empty(self) -> bool:
        return not self.devices

    __or__ = union
    __and__ = intersection
    __sub__ = difference

    def __contains__(self, device: object) -> bool:
        return device in self.devices

    def __iter__(self) -> Iterator[DeviceType]:
        return iter(sorted(self.devices, key=lambda d: d.value))

    def __len__(self) -> int:
        return len(self.devices)

    def __str__(self) -> str:
        if not self.devices:
            return "{}"
        return "{" + ", ".join(d.name.lower() for d in self) + "}"


@dataclass(frozen=True)
class WindowIdentifier:
    """Parent window for portal dialogs

    "x11:<xid>" under X11, "wayland:<handle>" for an xdg_foreign handle,
    empty when the application has no suitable window.
    """
    value: str = ""

    @classmethod
    def x11(cls, xid: int) -> "WindowIdentifier":
        return cls(f"x11:{xid:x}")

    @classmethod
    def wayland(cls, handle: str) -> "WindowIdentifier":
        return cls(f"wayland:{handle}")

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Response:
    """Terminal outcome of a correlated portal request"""
    code: int
    results: dict = field(default_factory=dict)
    path: ObjectPath | None = None

    SUCCESS = 0
    CANCELLED = 1
    OTHER = 2

    def isSuccess_check(self) -> bool:
        """Check if the broker reported success"""
        return self.code == Response.SUCCESS

    def isCancelled_check(self) -> bool:
        """Check if the user dismissed the dialog"""
        return self.code == Response.CANCELLED

    def unwrap(self) -> dict:
        """
        Return results of a successful response

        Returns:
            Results mapping sent by the broker

        Raises:
            RequestCancelledError: If the user dismissed the dialog
            BrokerError: For any other non-zero response code
        """
        if self.code == Response.SUCCESS:
            return self.results
        if self.code == Response.CANCELLED:
            raise RequestCancelledError(self.path)
        raise BrokerError(self.code, self.path)
