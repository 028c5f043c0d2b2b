"""
rdportal: Remote Desktop portal client
Negotiate keyboard, pointer and touch control through xdg-desktop-portal
"""

import subprocess
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path


def _version_resolve() -> str:
    """Installed distribution version, tagged with the commit in a source checkout"""
    try:
        base = version("rdportal")
    except PackageNotFoundError:
        base = "0.0.0"

    checkout = Path(__file__).resolve().parent.parent
    if not (checkout / ".git").exists():
        return base
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--short=7", "HEAD"],
            cwd=checkout,
            capture_output=True,
            text=True,
            timeout=1,
        )
    except (OSError, subprocess.TimeoutExpired):
        return base
    if result.returncode != 0:
        return base
    return f"{base}+g{result.stdout.strip()}"


__version__ = _version_resolve()
