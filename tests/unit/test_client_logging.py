"""Unit tests for client logging setup."""

from __future__ import annotations

import logging

import pytest

from rdportal import __version__
from rdportal.client.client_logging import logFormat_build, logLevel_resolve, logging_setup
from rdportal.common.config import LoggingConfig


@pytest.fixture
def restore_root_logger():
    """Restore root handlers and level after logging_setup reconfigures them."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)


class TestLogLevelResolve:
    """Tests for level name resolution."""

    @pytest.mark.parametrize("name,expected", [("debug", logging.DEBUG), (" Warning ", logging.WARNING)])
    def test_known_levels(self, name: str, expected: int) -> None:
        """Level names are case-insensitive."""
        assert logLevel_resolve(name) == expected

    def test_unknown_level(self) -> None:
        """Unknown names raise ValueError instead of failing inside logging."""
        with pytest.raises(ValueError, match="Unknown log level 'verbose'"):
            logLevel_resolve("verbose")


class TestLogFormat:
    """Tests for the effective record format."""

    def test_version_after_timestamp(self) -> None:
        """Version tag follows the asctime field."""
        assert logFormat_build("%(asctime)s - %(message)s", logging.INFO) == (
            f"%(asctime)s [v{__version__}] - %(message)s"
        )

    def test_thread_name_at_debug(self) -> None:
        """DEBUG records name the thread, so bus-thread responses stand out."""
        assert logFormat_build("%(levelname)s %(message)s", logging.DEBUG) == (
            "%(levelname)s [%(threadName)s] %(message)s"
        )

    def test_thread_name_not_duplicated(self) -> None:
        """Formats already naming the thread are kept."""
        log_format = "%(threadName)s %(message)s"
        assert logFormat_build(log_format, logging.DEBUG) == log_format


class TestLoggingSetup:
    """Tests for handler configuration."""

    def test_level_and_file_handler(self, tmp_path, restore_root_logger) -> None:
        """Level is applied and a file handler is added when requested."""
        log_file = tmp_path / "rdportal.log"
        logging_setup(LoggingConfig(level="warning", file=str(log_file), format="%(levelname)s %(message)s"))

        root = restore_root_logger
        assert root.level == logging.WARNING
        assert any(isinstance(h, logging.FileHandler) for h in root.handlers)

        logging.getLogger("rdportal.test").warning("written")
        for handler in root.handlers:
            handler.flush()
        assert "WARNING written" in log_file.read_text()

    def test_unknown_level_leaves_logging_untouched(self, restore_root_logger) -> None:
        """A bad level fails before any handler is replaced."""
        handlers = list(restore_root_logger.handlers)
        with pytest.raises(ValueError):
            logging_setup(LoggingConfig(level="loud"))
        assert restore_root_logger.handlers == handlers
