"""Bus backend factory functions."""

from __future__ import annotations

from rdportal.bus.backend import PortalBus
from rdportal.common.config import PortalConfig


def portalBus_create(portal_config: PortalConfig) -> PortalBus:
    """
    Create the bus backend named in the portal configuration.

    Args:
        portal_config: Portal section of the loaded configuration

    Returns:
        Unconnected PortalBus; call connection_establish() before use

    Raises:
        ValueError: If the backend name is not supported
    """
    backend = portal_config.backend.lower()

    if backend == "gio":
        from rdportal.bus.gio_bus import GioPortalBus

        return GioPortalBus(
            bus_name=portal_config.bus_name,
            object_path=portal_config.object_path,
            call_timeout_ms=portal_config.call_timeout_ms,
        )

    raise ValueError(f"Unsupported bus backend '{portal_config.backend}'. Supported: gio.")
