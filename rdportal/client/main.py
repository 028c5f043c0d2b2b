"""rdportal session runner: negotiate a session and emit the requested input"""

import argparse
import logging
from pathlib import Path
from typing import Optional

from rdportal.bus import PortalBus, portalBus_create
from rdportal.client.client_logging import logging_setup
from rdportal.common.config import Config, ConfigLoader
from rdportal.common.keycodes import evdevCode_get, keysymFromName_get
from rdportal.common.settings import settings
from rdportal.common.types import CapabilitySet, KeyState, WindowIdentifier
from rdportal.remote import InputChannel, RemoteDesktopPortal, RemoteDesktopSession
from rdportal.request import RequestCorrelator

logger = logging.getLogger(__name__)


def config_resolve(args: argparse.Namespace) -> Config:
    """
    Load configuration with command-line overrides applied

    Args:
        args: Parsed CLI args

    Returns:
        Effective configuration
    """
    config_path: Optional[Path] = Path(args.config) if args.config else None
    return ConfigLoader.configWithOverrides_load(
        config_path,
        devices=args.devices,
        response_timeout=args.timeout,
        log_level=getattr(args, "log_level", None),
    )


def parentWindow_resolve(args: argparse.Namespace) -> WindowIdentifier:
    """
    Pick the parent window for the consent dialog

    Args:
        args: Parsed CLI args

    Returns:
        Explicit --parent-window, the focused X11 window with --x11-parent,
        otherwise the empty identifier
    """
    if args.parent_window:
        return WindowIdentifier(args.parent_window)
    if args.x11_parent:
        from rdportal.x11.window import focusedWindowIdentifier_get

        return focusedWindowIdentifier_get(args.display)
    return WindowIdentifier()


def actions_run(channel: InputChannel, args: argparse.Namespace) -> int:
    """
    Emit the input events requested on the command line, in a fixed order

    Args:
        channel: Input channel of an active session
        args: Parsed CLI args

    Returns:
        Number of actions performed
    """
    performed = 0
    if args.key:
        channel.key_tap(evdevCode_get(args.key, "KEY_"))
        performed += 1
    if args.keysym:
        keysym = keysymFromName_get(args.keysym)
        channel.notify_keyboard_keysym(keysym, KeyState.PRESSED)
        channel.notify_keyboard_keysym(keysym, KeyState.RELEASED)
        performed += 1
    if args.move:
        dx, dy = args.move
        channel.notify_pointer_motion(dx, dy)
        performed += 1
    if args.click:
        channel.button_click(evdevCode_get(args.click, "BTN_"))
        performed += 1
    if args.scroll:
        dx, dy = args.scroll
        channel.notify_pointer_axis(dx, dy)
        performed += 1
    return performed


def probe_print(portal: RemoteDesktopPortal) -> None:
    """Print what the broker offers without opening a session"""
    print(f"RemoteDesktop portal version: {portal.version}")
    print(f"Available device types: {portal.available_device_types}")


def session_run(args: argparse.Namespace, bus: Optional[PortalBus] = None) -> None:
    """
    Run one remote desktop session from CLI arguments

    Args:
        args: Parsed CLI args
        bus: Bus to use instead of the configured backend
    """
    config = config_resolve(args)
    settings.initialize(config)
    logging_setup(config.logging)

    if bus is None:
        bus = portalBus_create(config.portal)
    bus.connection_establish()
    try:
        timeout = config.portal.response_timeout_seconds
        correlator = RequestCorrelator(bus, response_timeout=timeout)
        portal = RemoteDesktopPortal(bus, correlator, object_path=config.portal.object_path)

        if args.probe:
            probe_print(portal)
            return

        requested = CapabilitySet.from_names(config.session.devices)
        parent_window = parentWindow_resolve(args)
        logger.debug(f"Requesting {requested} with parent window {parent_window.value!r}")

        with RemoteDesktopSession(portal, response_timeout=timeout) as session:
            session.create()
            session.select_devices(requested)
            granted = session.start(parent_window)
            print(f"Granted devices: {granted}")
            performed = actions_run(session.input, args)
            logger.info(f"Performed {performed} input action(s)")
    finally:
        bus.connection_close()
