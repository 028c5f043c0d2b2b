"""RemoteDesktop portal: proxy, session state machine and input channel."""

from rdportal.remote.channel import InputChannel, PendingEvent
from rdportal.remote.options import CreateSessionOptions, SelectDevicesOptions, StartOptions
from rdportal.remote.portal import RemoteDesktopPortal
from rdportal.remote.session import RemoteDesktopSession

__all__ = [
    "CreateSessionOptions",
    "InputChannel",
    "PendingEvent",
    "RemoteDesktopPortal",
    "RemoteDesktopSession",
    "SelectDevicesOptions",
    "StartOptions",
]
