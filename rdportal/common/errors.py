"""Error taxonomy for portal requests and remote desktop sessions

Local errors (InvalidTokenError, InvalidStateError, CapabilityDeniedError)
are raised before any broker contact. RequestCancelledError, BrokerError and
RequestTimeoutError are terminal outcomes of a correlated request.
TransportError means a call never reached the broker. Nothing is retried.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from rdportal.common.types import CapabilitySet, DeviceType, SessionState


class PortalError(Exception):
    """Base class for every rdportal failure"""


class InvalidTokenError(PortalError, ValueError):
    """Caller-supplied handle token is not a valid object path segment"""

    def __init__(self, token: str) -> None:
        self.token = token
        super().__init__(
            f"Invalid handle token {token!r}: must be non-empty and contain only "
            f"ASCII letters, digits and '_'"
        )


class InvalidStateError(PortalError):
    """Operation issued outside its legal session state"""

    def __init__(
        self,
        operation: str,
        current: "SessionState",
        required: tuple["SessionState", ...],
        detail: Optional[str] = None,
    ) -> None:
        self.operation = operation
        self.current = current
        self.required = required
        expected = " or ".join(state.value for state in required)
        message = f"Cannot {operation}: session is {current.value}, requires {expected}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class CapabilityDeniedError(PortalError):
    """Device kind is not in the granted (or available) capability set"""

    def __init__(self, device: "DeviceType", granted: "CapabilitySet", source: str = "granted") -> None:
        self.device = device
        self.granted = granted
        super().__init__(
            f"Device type {device.name.lower()} not in {source} set {granted}"
        )


class RequestCancelledError(PortalError):
    """User dismissed the consent dialog, or the request was abandoned"""

    def __init__(self, path: Optional[str] = None) -> None:
        self.path = path
        super().__init__(f"Request {path or '<unknown>'} was cancelled")


class BrokerError(PortalError):
    """Broker ended a request with a non-cancel failure code"""

    def __init__(self, code: int, path: Optional[str] = None) -> None:
        self.code = code
        self.path = path
        super().__init__(f"Request {path or '<unknown>'} failed with response code {code}")


class TransportError(PortalError):
    """Call could not be delivered to the broker"""


class RequestTimeoutError(PortalError):
    """No response arrived within the configured timeout"""

    def __init__(self, path: str, timeout: float) -> None:
        self.path = path
        self.timeout = timeout
        super().__init__(f"No response for request {path} within {timeout:g}s")
