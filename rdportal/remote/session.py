"""Remote desktop session state machine

A session walks UNOPENED -> CREATED -> DEVICES_SELECTED -> ACTIVE and ends
in CLOSED. Each setup step is a correlated portal call that blocks until the
broker responds; calls made from the wrong state fail with InvalidStateError
before anything is sent. Any failed step (cancelled dialog, broker error,
transport error, timeout) closes the session and records the error.

Usage:
    with RemoteDesktopSession(portal) as session:
        session.create()
        session.select_devices(CapabilitySet.of(DeviceType.KEYBOARD, DeviceType.POINTER))
        granted = session.start()
        session.input.notify_pointer_motion(10.0, 0.0)
"""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from typing import Callable, Optional

from rdportal.common.errors import (
    CapabilityDeniedError,
    InvalidStateError,
    PortalError,
    RequestCancelledError,
    TransportError,
)
from rdportal.common.types import (
    CapabilitySet,
    ObjectPath,
    SessionState,
    WindowIdentifier,
)
from rdportal.remote.channel import InputChannel, PendingEvent
from rdportal.remote.options import CreateSessionOptions, SelectDevicesOptions, StartOptions
from rdportal.remote.portal import RemoteDesktopPortal
from rdportal.request.correlator import RequestHandle

logger = logging.getLogger(__name__)


class RemoteDesktopSession:
    """Client side of one RemoteDesktop portal session.

    A session has a single owner: only one setup call may be in flight, a
    concurrent one fails with InvalidStateError. close() is always legal,
    idempotent, and may be called from any thread.
    """

    def __init__(self, portal: RemoteDesktopPortal, response_timeout: Optional[float] = None) -> None:
        """
        Initialize an unopened session

        Args:
            portal: RemoteDesktop proxy to drive
            response_timeout: Seconds to wait for each dialog; None waits forever
        """
        self._portal: RemoteDesktopPortal = portal
        self._response_timeout: Optional[float] = response_timeout

        self._state: SessionState = SessionState.UNOPENED
        self._handle: Optional[ObjectPath] = None
        self._requested: CapabilitySet = CapabilitySet()
        self._granted: CapabilitySet = CapabilitySet()
        self._available: Optional[CapabilitySet] = None
        self._version: Optional[int] = None
        self._error: Optional[PortalError] = None

        self._pending: Optional[RequestHandle] = None
        self._closed_subscription: Optional[int] = None

        self._state_lock = threading.RLock()
        self._transition_lock = threading.Lock()
        self._input = InputChannel(self)

    # =========================================================================
    # Read-only view
    # =========================================================================

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def handle(self) -> Optional[ObjectPath]:
        """Session object path, set once create() succeeds"""
        return self._handle

    @property
    def requested(self) -> CapabilitySet:
        return self._requested

    @property
    def granted(self) -> CapabilitySet:
        """Devices the user granted; empty until start() succeeds"""
        return self._granted

    @property
    def error(self) -> Optional[PortalError]:
        """Error that closed the session, if any"""
        return self._error

    @property
    def available_device_types(self) -> Optional[CapabilitySet]:
        """Broker's AvailableDeviceTypes as read during create(), or None"""
        return self._available

    @property
    def portal_version(self) -> Optional[int]:
        return self._version

    @property
    def portal(self) -> RemoteDesktopPortal:
        return self._portal

    @property
    def input(self) -> InputChannel:
        """Emitters for keyboard, pointer and touch events"""
        return self._input

    def __repr__(self) -> str:
        return f"RemoteDesktopSession({self._handle!r}, {self._state.value}, granted={self._granted})"

    # =========================================================================
    # Transitions
    # =========================================================================

    def create(self, options: Optional[CreateSessionOptions] = None) -> "RemoteDesktopSession":
        """
        Create the broker-side session (UNOPENED -> CREATED)

        Args:
            options: Optional request and session handle tokens

        Returns:
            self

        Raises:
            InvalidStateError: If the session was already created or closed
            RequestCancelledError, BrokerError, TransportError, RequestTimeoutError:
                The session is closed with the error recorded
        """
        options = options or CreateSessionOptions()
        self._transition_begin("create session", SessionState.UNOPENED)
        try:
            self._capabilities_probe()
            results = self._request_run("create session", lambda: self._portal.create_session(options))

            session_handle = results.get("session_handle")
            if not session_handle:
                error = TransportError("CreateSession response carries no session_handle")
                self._close(error=error)
                raise error
            handle = ObjectPath(str(session_handle))

            with self._state_lock:
                if self._state is SessionState.CLOSED:
                    closed_meanwhile = True
                else:
                    closed_meanwhile = False
                    self._handle = handle
                    self._state = SessionState.CREATED
                    self._closed_subscription = self._portal.sessionClosed_subscribe(
                        handle, self._brokerClosed_handle
                    )
            if closed_meanwhile:
                self._brokerSession_release(handle)
                raise RequestCancelledError(handle)
        finally:
            self._transition_lock.release()

        logger.info(f"Remote desktop session created: {handle}")
        return self

    def select_devices(
        self,
        requested: CapabilitySet,
        options: Optional[SelectDevicesOptions] = None,
    ) -> None:
        """
        Ask for control of the given device kinds (CREATED -> DEVICES_SELECTED)

        Args:
            requested: Non-empty set of device kinds
            options: Optional request handle token; `types` is taken from requested

        Raises:
            InvalidStateError: Unless the session is CREATED
            ValueError: If requested is empty
            CapabilityDeniedError: If the broker never offers a requested kind
            RequestCancelledError, BrokerError, TransportError, RequestTimeoutError:
                The session is closed with the error recorded
        """
        self._transition_begin("select devices", SessionState.CREATED)
        try:
            if requested.is_empty():
                raise ValueError("select_devices requires at least one device type")
            if self._available is not None:
                unavailable = requested.difference(self._available)
                if not unavailable.is_empty():
                    raise CapabilityDeniedError(next(iter(unavailable)), self._available, source="available")

            options = replace(options or SelectDevicesOptions(), types=requested)
            handle = self._handle
            assert handle is not None
            self._request_run("select devices", lambda: self._portal.select_devices(handle, options))
            self._transition_commit(
                SessionState.DEVICES_SELECTED, handle, requested=requested
            )
        finally:
            self._transition_lock.release()

        logger.info(f"Devices selected for {handle}: {requested}")

    def start(
        self,
        parent_window: Optional[WindowIdentifier] = None,
        options: Optional[StartOptions] = None,
    ) -> CapabilitySet:
        """
        Present the consent dialog and activate the session (DEVICES_SELECTED -> ACTIVE)

        An empty grant still activates the session; every input event is then
        rejected with CapabilityDeniedError.

        Args:
            parent_window: Window the dialog is placed over
            options: Optional request handle token

        Returns:
            Granted device kinds, always a subset of the requested ones

        Raises:
            InvalidStateError: Unless devices were selected
            RequestCancelledError, BrokerError, TransportError, RequestTimeoutError:
                The session is closed with the error recorded
        """
        parent_window = parent_window or WindowIdentifier()
        options = options or StartOptions()
        self._transition_begin("start session", SessionState.DEVICES_SELECTED)
        try:
            handle = self._handle
            assert handle is not None
            results = self._request_run(
                "start session", lambda: self._portal.start(handle, parent_window, options)
            )

            offered = CapabilitySet.from_bits(int(results.get("devices", 0)))
            granted = offered.intersection(self._requested)
            if granted != offered:
                logger.warning(
                    f"Broker granted {offered.difference(self._requested)} beyond requested "
                    f"{self._requested}; ignoring"
                )
            self._transition_commit(SessionState.ACTIVE, handle, granted=granted)
        finally:
            self._transition_lock.release()

        if granted.is_empty():
            logger.warning(f"Session {handle} is active but no devices were granted")
        else:
            logger.info(f"Session {handle} started with {granted}")
        return granted

    def close(self) -> None:
        """Close the session; closing a closed session does nothing"""
        self._close()

    def __enter__(self) -> "RemoteDesktopSession":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    # =========================================================================
    # Internals
    # =========================================================================

    def _transition_begin(self, operation: str, required: SessionState) -> None:
        """Check the state and take the transition lock, or raise InvalidStateError"""
        with self._state_lock:
            if self._state is not required:
                raise InvalidStateError(operation, self._state, (required,))
            if not self._transition_lock.acquire(blocking=False):
                raise InvalidStateError(
                    operation, self._state, (required,), detail="another call is in flight"
                )

    def _transition_commit(self, new_state: SessionState, path: ObjectPath, **fields) -> None:
        """Apply a successful transition unless the session closed meanwhile"""
        with self._state_lock:
            if self._state is SessionState.CLOSED:
                raise RequestCancelledError(path)
            for name, value in fields.items():
                setattr(self, f"_{name}", value)
            self._state = new_state

    def _capabilities_probe(self) -> None:
        """Read AvailableDeviceTypes and version; failures only disable the pre-check"""
        try:
            self._available = self._portal.available_device_types
            self._version = self._portal.version
        except PortalError as e:
            logger.warning(f"Could not read RemoteDesktop properties: {e}")
            return
        logger.debug(
            f"RemoteDesktop portal version {self._version}, available devices {self._available}"
        )

    def _request_run(self, operation: str, submit: Callable[[], RequestHandle]) -> dict:
        """
        Submit a correlated call and wait for its results

        Raises:
            PortalError: After closing the session with the error recorded
        """
        try:
            handle = submit()
            with self._state_lock:
                closed = self._state is SessionState.CLOSED
                if not closed:
                    self._pending = handle
            if closed:
                handle.abandon()

            response = handle.result(self._response_timeout)
            with self._state_lock:
                self._pending = None
            return response.unwrap()
        except PortalError as e:
            logger.warning(f"Failed to {operation}: {e}")
            self._close(error=e)
            raise

    def _close(self, error: Optional[PortalError] = None, broker_initiated: bool = False) -> None:
        with self._state_lock:
            if self._state is SessionState.CLOSED:
                return
            previous = self._state
            self._state = SessionState.CLOSED
            if error is not None:
                self._error = error
            pending, self._pending = self._pending, None
            subscription, self._closed_subscription = self._closed_subscription, None
            handle = self._handle

        if pending is not None:
            pending.abandon()
        if subscription is not None:
            self._portal.signal_unsubscribe(subscription)
        if handle is not None and not broker_initiated:
            self._brokerSession_release(handle)
        logger.info(f"Remote desktop session {handle or '<unopened>'} closed (was {previous.value})")

    def _brokerSession_release(self, handle: ObjectPath) -> None:
        try:
            self._portal.session_close(handle)
        except PortalError as e:
            logger.warning(f"Failed to close session {handle}: {e}")

    def _brokerClosed_handle(self, _parameters: tuple) -> None:
        """Signal handler for Session.Closed"""
        logger.info(f"Broker closed session {self._handle}")
        self._close(broker_initiated=True)

    def event_admit(self, event: PendingEvent) -> None:
        """
        Check that an input event may be transmitted

        Raises:
            InvalidStateError: Unless the session is ACTIVE
            CapabilityDeniedError: If the event's device kind was not granted
        """
        with self._state_lock:
            if self._state is not SessionState.ACTIVE:
                raise InvalidStateError(f"send {event.method}", self._state, (SessionState.ACTIVE,))
            if event.device not in self._granted:
                raise CapabilityDeniedError(event.device, self._granted)
