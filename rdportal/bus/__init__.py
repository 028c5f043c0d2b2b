"""Bus backends connecting rdportal to the portal broker."""

from rdportal.bus.backend import OptionValue, PortalBus, SignalCallback
from rdportal.bus.factory import portalBus_create

__all__ = [
    "OptionValue",
    "PortalBus",
    "SignalCallback",
    "portalBus_create",
]
