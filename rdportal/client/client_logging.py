"""
Client logging policy.

Portal responses arrive on the bus dispatch thread while the caller blocks on
its own thread, so at DEBUG the thread name is part of every record. Records
are tagged with the rdportal version after the timestamp.
"""

from __future__ import annotations

import logging

from rdportal import __version__
from rdportal.common.config import LoggingConfig

__all__ = [
    "logging_setup",
    "logFormat_build",
    "logLevel_resolve",
]


def logLevel_resolve(name: str) -> int:
    """
    Map a configured level name to its logging constant.

    Raises:
        ValueError: If the name is not a standard logging level.
    """
    level = logging.getLevelName(name.strip().upper())
    if not isinstance(level, int):
        raise ValueError(
            f"Unknown log level '{name}'. Supported: DEBUG, INFO, WARNING, ERROR, CRITICAL."
        )
    return level


def logFormat_build(log_format: str, level: int) -> str:
    """
    Derive the effective record format.

    Args:
        log_format:
            Configured format string.
        level:
            Resolved logging level.

    Returns:
        Format with the version after `%(asctime)s` and, at DEBUG, the
        thread name before `%(message)s`.
    """
    effective = log_format.replace("%(asctime)s", f"%(asctime)s [v{__version__}]")
    if level <= logging.DEBUG and "%(threadName)s" not in effective:
        effective = effective.replace("%(message)s", "[%(threadName)s] %(message)s")
    return effective


def logging_setup(logging_config: LoggingConfig) -> None:
    """
    Configure root handlers from the logging section of the config.

    Args:
        logging_config:
            Level, format and optional log file.

    Raises:
        ValueError: If the configured level is unknown.
    """
    level = logLevel_resolve(logging_config.level)
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if logging_config.file:
        handlers.append(logging.FileHandler(logging_config.file))

    logging.basicConfig(
        level=level,
        format=logFormat_build(logging_config.format, level),
        handlers=handlers,
        force=True,
    )
