"""Pytest configuration and shared fixtures for rdportal tests

This module provides a scripted in-memory portal broker (FakePortalBus) and
fixtures wiring it to the correlator, portal proxy and session.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Generator, Optional

import pytest

from rdportal.common.settings import settings
from rdportal.common.types import ObjectPath
from rdportal.remote.portal import RemoteDesktopPortal
from rdportal.remote.session import RemoteDesktopSession
from rdportal.request.correlator import RequestCorrelator
from rdportal.request.token import HandleToken, requestPath_get

CORRELATED_METHODS = ("CreateSession", "SelectDevices", "Start")


@dataclass
class FakeCall:
    """One recorded method call"""
    object_path: str
    interface: str
    method: str
    args: tuple


class FakePortalBus:
    """In-memory PortalBus that plays the broker.

    Correlated calls answer with the request path derived from their
    handle_token and, unless the method is listed in `deferred`, emit the
    scripted Response before the call returns (the fastest possible broker).
    """

    UNIQUE_NAME = ":1.42"

    def __init__(self) -> None:
        self.calls: list[FakeCall] = []
        self.property_reads: list[str] = []
        self.properties: dict[str, Any] = {"AvailableDeviceTypes": 7, "version": 2}
        self.property_error: Optional[Exception] = None
        self.responses: dict[str, tuple[int, dict]] = {
            "CreateSession": (0, {"session_handle": "/session/abc"}),
            "SelectDevices": (0, {}),
            "Start": (0, {"devices": 3}),
        }
        self.deferred: set[str] = set()
        self.path_overrides: dict[str, str] = {}
        self.failures: dict[str, Exception] = {}
        self.connected = False
        self.call_event = threading.Event()
        self._subscriptions: dict[int, tuple[str, str, str, Callable[[tuple], None]]] = {}
        self._next_subscription = 1
        self._lock = threading.Lock()

    def connection_establish(self) -> None:
        self.connected = True

    def connection_close(self) -> None:
        self.connected = False

    def uniqueName_get(self) -> str:
        return self.UNIQUE_NAME

    def method_call(
        self,
        object_path: str,
        interface: str,
        method: str,
        signature: str,
        args: tuple,
        reply_signature: Optional[str] = None,
    ) -> tuple:
        self.calls.append(FakeCall(object_path, interface, method, args))
        self.call_event.set()
        if method in self.failures:
            raise self.failures[method]
        if method not in CORRELATED_METHODS:
            return ()

        token = HandleToken(args[-1]["handle_token"][1])
        path = self.path_overrides.get(method) or requestPath_get(self.UNIQUE_NAME, token)
        if method not in self.deferred:
            code, results = self.responses[method]
            self.response_emit(path, code, results)
        return (path,)

    def property_get(self, interface: str, name: str) -> Any:
        self.property_reads.append(name)
        if self.property_error is not None:
            raise self.property_error
        return self.properties[name]

    def signal_subscribe(self, interface, member, object_path, callback) -> int:
        with self._lock:
            subscription_id = self._next_subscription
            self._next_subscription += 1
            self._subscriptions[subscription_id] = (interface, member, object_path, callback)
        return subscription_id

    def signal_unsubscribe(self, subscription_id: int) -> None:
        with self._lock:
            self._subscriptions.pop(subscription_id, None)

    # Test helpers

    def signal_emit(self, interface: str, member: str, object_path: str, parameters: tuple) -> None:
        with self._lock:
            callbacks = [
                cb for (iface, name, path, cb) in self._subscriptions.values()
                if (iface, name, path) == (interface, member, object_path)
            ]
        for callback in callbacks:
            callback(parameters)

    def response_emit(self, path: str, code: int, results: Optional[dict] = None) -> None:
        self.signal_emit(settings.REQUEST_INTERFACE, "Response", path, (code, results or {}))

    def subscriptions_get(self, object_path: Optional[str] = None) -> list[tuple[str, str, str]]:
        with self._lock:
            return [
                (iface, member, path) for (iface, member, path, _cb) in self._subscriptions.values()
                if object_path is None or path == object_path
            ]

    def calls_named(self, method: str) -> list[FakeCall]:
        return [call for call in self.calls if call.method == method]

    def requestPath_get(self, token: str) -> ObjectPath:
        return requestPath_get(self.UNIQUE_NAME, HandleToken(token))


@pytest.fixture
def fake_bus() -> FakePortalBus:
    """Connected fake broker"""
    bus = FakePortalBus()
    bus.connection_establish()
    return bus


@pytest.fixture
def correlator(fake_bus: FakePortalBus) -> RequestCorrelator:
    return RequestCorrelator(fake_bus, response_timeout=5.0)


@pytest.fixture
def portal(fake_bus: FakePortalBus, correlator: RequestCorrelator) -> RemoteDesktopPortal:
    return RemoteDesktopPortal(fake_bus, correlator)


@pytest.fixture
def session(portal: RemoteDesktopPortal) -> Generator[RemoteDesktopSession, None, None]:
    """Unopened session; closed after the test"""
    remote_session = RemoteDesktopSession(portal, response_timeout=5.0)
    yield remote_session
    remote_session.close()


@pytest.fixture
def reset_settings() -> Generator[None, None, None]:
    """Reset settings singleton configuration between tests"""
    settings._config = None
    yield
    settings._config = None


@pytest.fixture(autouse=True)
def setup_logging(caplog):
    """Setup logging for tests"""
    caplog.set_level(logging.DEBUG)
