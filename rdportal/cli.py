"""rdportal command-line interface"""

import argparse
import sys
from typing import NoReturn

from rdportal import __version__
from rdportal.common.errors import PortalError


def arguments_parse(argv: list[str] | None = None) -> argparse.Namespace:
    """
    Parse command line arguments

    Args:
        argv: Argument list, defaults to sys.argv[1:]

    Returns:
        Parsed CLI arguments.
    """
    parser = argparse.ArgumentParser(
        prog="rdportal",
        description="Control the desktop through the xdg-desktop-portal RemoteDesktop interface",
    )

    parser.add_argument("--version", action="version", version=f"rdportal {__version__}")

    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to config file (default: search standard locations)",
    )

    parser.add_argument(
        "--devices",
        type=str,
        default=None,
        help="Comma-separated device types to request: keyboard,pointer,touchscreen (overrides config)",
    )

    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds to wait for each consent dialog (overrides config; default: forever)",
    )

    parser.add_argument(
        "--probe",
        action="store_true",
        help="Only print the portal version and available device types",
    )

    # Parent window for the consent dialog
    parser.add_argument(
        "--parent-window",
        type=str,
        default=None,
        help="Parent window identifier, e.g. x11:3a00004 or wayland:HANDLE",
    )

    parser.add_argument(
        "--x11-parent",
        action="store_true",
        help="Use the focused X11 window as dialog parent",
    )

    parser.add_argument(
        "--display", type=str, default=None, help="X11 display name for --x11-parent"
    )

    # Input actions, performed once the session is active
    parser.add_argument(
        "--key", type=str, default=None, help="Tap an evdev key, e.g. KEY_ENTER or enter"
    )

    parser.add_argument(
        "--keysym", type=str, default=None, help="Tap an X11 keysym, e.g. Return"
    )

    parser.add_argument(
        "--move",
        type=float,
        nargs=2,
        metavar=("DX", "DY"),
        default=None,
        help="Move the pointer by a relative offset",
    )

    parser.add_argument(
        "--click", type=str, default=None, help="Click an evdev button, e.g. BTN_LEFT or left"
    )

    parser.add_argument(
        "--scroll",
        type=float,
        nargs=2,
        metavar=("DX", "DY"),
        default=None,
        help="Smooth-scroll by a relative amount",
    )

    parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging (overrides config)"
    )

    parser.add_argument(
        "--info", action="store_true", help="Enable info logging (overrides config)"
    )

    parser.add_argument(
        "--warning", action="store_true", help="Enable warning logging (overrides config)"
    )

    parser.add_argument(
        "--error", action="store_true", help="Enable error logging (overrides config)"
    )

    parser.add_argument(
        "--critical", action="store_true", help="Enable critical logging (overrides config)"
    )

    return parser.parse_args(argv)


def logLevelOverride_get(args: argparse.Namespace) -> str | None:
    """
    Resolve explicit log level override flags.

    Args:
        args: Parsed CLI args.

    Returns:
        Selected log level or None.
    """
    if args.critical:
        return "CRITICAL"
    if args.error:
        return "ERROR"
    if args.warning:
        return "WARNING"
    if args.info:
        return "INFO"
    if args.debug:
        return "DEBUG"
    return None


def main() -> NoReturn:
    """Main entry point for the rdportal command"""
    args = arguments_parse()
    setattr(args, "log_level", logLevelOverride_get(args))

    try:
        from rdportal.client.main import session_run

        session_run(args)
        sys.exit(0)

    except KeyboardInterrupt:
        print("\nShutting down...")
        sys.exit(0)
    except PortalError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
