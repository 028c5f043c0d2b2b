"""Correlation of portal calls with their asynchronous Response signals.

A correlated portal call returns the object path of a Request right away; the
outcome arrives later as an `org.freedesktop.portal.Request.Response` signal
on that path. The correlator subscribes to the signal before the call is made
(the path is predictable from the handle token), keeps one pending slot per
path, and delivers exactly one Response to each slot.

Slots are held weakly. When the application drops a pending handle, its
subscription is removed and the broker-side Request is closed.
"""

from __future__ import annotations

import logging
import threading
import weakref
from typing import Callable, Optional

from rdportal.bus.backend import PortalBus
from rdportal.common.errors import PortalError, RequestTimeoutError, TransportError
from rdportal.common.settings import settings
from rdportal.common.types import ObjectPath, Response
from rdportal.request.token import HandleToken, requestPath_get

logger = logging.getLogger(__name__)

ResponseCallback = Callable[[Response], None]


class RequestHandle:
    """Reference to a pending portal request.

    Resolves exactly once, with the broker's Response or with a local
    cancellation when the request is abandoned.
    """

    def __init__(self, correlator: "RequestCorrelator", token: HandleToken, path: ObjectPath) -> None:
        self.token: HandleToken = token
        self.path: ObjectPath = path
        self._correlator = correlator
        self._subscription_id: Optional[int] = None
        self._finalizer: Optional[weakref.finalize] = None
        self._response: Optional[Response] = None
        self._callbacks: list[ResponseCallback] = []
        self._event = threading.Event()
        self._lock = threading.Lock()

    def done(self) -> bool:
        """Check if a terminal response was delivered"""
        return self._event.is_set()

    def result(self, timeout: Optional[float] = None) -> Response:
        """Block until the response arrives (see RequestCorrelator.await_result)"""
        return self._correlator.await_result(self, timeout)

    def add_done_callback(self, callback: ResponseCallback) -> None:
        """Run callback once with the response (see RequestCorrelator.on_result)"""
        self._correlator.on_result(self, callback)

    def abandon(self) -> None:
        """Give up on the request (see RequestCorrelator.abandon)"""
        self._correlator.abandon(self)

    def _deliver(self, response: Response) -> bool:
        """
        Store the terminal response and run callbacks

        Returns:
            False if a response was already delivered
        """
        with self._lock:
            if self._response is not None:
                return False
            self._response = response
            callbacks = self._callbacks
            self._callbacks = []
        self._event.set()
        for callback in callbacks:
            _callback_run(callback, response)
        return True

    def __repr__(self) -> str:
        state = "done" if self.done() else "pending"
        return f"RequestHandle({self.path!r}, {state})"


def _callback_run(callback: ResponseCallback, response: Response) -> None:
    try:
        callback(response)
    except Exception:
        logger.exception(f"Response callback for {response.path} failed")


class RequestCorrelator:
    """Tracks in-flight portal requests keyed by their object path"""

    def __init__(self, bus: PortalBus, response_timeout: Optional[float] = None) -> None:
        """
        Initialize correlator

        Args:
            bus: Connected portal bus
            response_timeout: Default seconds to wait for a response; None waits forever
        """
        self._bus: PortalBus = bus
        self._response_timeout: Optional[float] = response_timeout
        self._pending: weakref.WeakValueDictionary[ObjectPath, RequestHandle] = weakref.WeakValueDictionary()
        self._lock = threading.Lock()

    @property
    def pending_count(self) -> int:
        """Number of requests still waiting for a response"""
        with self._lock:
            return len(self._pending)

    def submit(self, token: HandleToken, call: Callable[[], ObjectPath]) -> RequestHandle:
        """
        Perform a correlated call

        Args:
            token: Handle token the call passes as its `handle_token` option
            call: Performs the bus call and returns the Request object path

        Returns:
            Handle of the pending request

        Raises:
            TransportError: If the call could not be delivered
        """
        predicted = requestPath_get(self._bus.uniqueName_get(), token)
        handle = RequestHandle(self, token, predicted)
        self._handle_register(handle)

        try:
            path = call()
        except PortalError:
            self._handle_forget(handle)
            raise
        except Exception as e:
            self._handle_forget(handle)
            raise TransportError(f"Request {predicted} could not be submitted: {e}") from e

        if path != predicted:
            # Brokers predating handle_token pick their own path
            logger.debug(f"Broker moved request {predicted} to {path}")
            self._handle_forget(handle)
            handle.path = path
            if not handle.done():
                self._handle_register(handle)

        logger.debug(f"Submitted request {handle.path}")
        return handle

    def _handle_register(self, handle: RequestHandle) -> None:
        path = handle.path
        with self._lock:
            self._pending[path] = handle
        subscription_id = self._bus.signal_subscribe(
            settings.REQUEST_INTERFACE,
            "Response",
            path,
            lambda parameters: self._response_deliver(path, parameters),
        )
        handle._subscription_id = subscription_id
        # Must not reference the handle, or it would never be collected
        finalizer = weakref.finalize(handle, self._dropped_release, path, subscription_id)
        finalizer.atexit = False
        handle._finalizer = finalizer

    def _handle_forget(self, handle: RequestHandle) -> bool:
        """Remove the pending slot and its subscription; False if already gone"""
        with self._lock:
            removed = self._pending.pop(handle.path, None) is handle
        self._subscription_drop(handle)
        return removed

    def _subscription_drop(self, handle: RequestHandle) -> None:
        finalizer, handle._finalizer = handle._finalizer, None
        if finalizer is not None:
            finalizer.detach()
        subscription_id, handle._subscription_id = handle._subscription_id, None
        if subscription_id is not None:
            self._bus.signal_unsubscribe(subscription_id)

    def _dropped_release(self, path: ObjectPath, subscription_id: int) -> None:
        """Clean up after a pending handle was garbage collected"""
        # The weak slot in _pending is already dead and removes itself
        logger.debug(f"Pending request {path} was dropped; closing it")
        self._bus.signal_unsubscribe(subscription_id)
        self._request_close(path)

    def _request_close(self, path: ObjectPath) -> None:
        """Best-effort Request.Close; the broker may have finished already"""
        try:
            self._bus.method_call(path, settings.REQUEST_INTERFACE, "Close", "()", ())
        except PortalError as e:
            logger.warning(f"Failed to close request {path}: {e}")

    @staticmethod
    def _response_parse(path: ObjectPath, parameters: tuple) -> Response:
        try:
            code, results = parameters
            return Response(code=int(code), results=dict(results), path=path)
        except (TypeError, ValueError) as e:
            logger.warning(f"Malformed response for request {path}: {parameters!r} ({e})")
            return Response(code=Response.OTHER, path=path)

    def _response_deliver(self, path: ObjectPath, parameters: tuple) -> None:
        """Signal handler for Request.Response"""
        response = self._response_parse(path, parameters)
        with self._lock:
            handle = self._pending.pop(path, None)
        if handle is None:
            logger.warning(f"Ignoring response for unknown or completed request {path}")
            return
        self._subscription_drop(handle)

        if not handle._deliver(response):
            logger.warning(f"Ignoring duplicate response for request {path}")
            return
        logger.debug(f"Request {path} completed with response code {response.code}")

    def await_result(self, handle: RequestHandle, timeout: Optional[float] = None) -> Response:
        """
        Block until the request's response arrives

        Args:
            handle: Pending request
            timeout: Seconds to wait; defaults to the correlator's timeout

        Returns:
            Terminal response

        Raises:
            RequestTimeoutError: If nothing arrived in time; the request is abandoned
        """
        if timeout is None:
            timeout = self._response_timeout
        if not handle._event.wait(timeout):
            self.abandon(handle)
            raise RequestTimeoutError(handle.path, timeout)
        assert handle._response is not None
        return handle._response

    def on_result(self, handle: RequestHandle, callback: ResponseCallback) -> None:
        """
        Run callback exactly once with the request's response

        Runs immediately on the calling thread if the response already arrived,
        otherwise on the bus dispatch thread.
        """
        with handle._lock:
            response = handle._response
            if response is None:
                handle._callbacks.append(callback)
                return
        _callback_run(callback, response)

    def abandon(self, handle: RequestHandle) -> None:
        """
        Abandon a pending request

        Closes the broker-side Request object (best effort, the broker may have
        finished already) and releases waiters with a cancelled response.
        """
        if not self._handle_forget(handle) and handle.done():
            return

        self._request_close(handle.path)

        if handle._deliver(Response(code=Response.CANCELLED, path=handle.path)):
            logger.debug(f"Abandoned request {handle.path}")
