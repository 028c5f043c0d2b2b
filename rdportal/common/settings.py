"""Application settings singleton - single source of truth for configuration

This module provides a singleton Settings class that consolidates:
1. Portal protocol constants (D-Bus names, interfaces, object path prefixes)
2. Application constants (token format, default timeouts)
3. Runtime configuration from config.yml

Usage:
    from rdportal.common.settings import settings

    # Initialize once at startup with loaded config
    config = ConfigLoader.config_load()
    settings.initialize(config)

    # Use anywhere in the application
    bus.signal_subscribe(settings.REQUEST_INTERFACE, "Response", path, callback)
"""

from typing import Optional

from rdportal.common.config import Config


class Settings:
    """Singleton settings manager combining config.yml and portal constants"""

    _instance: Optional["Settings"] = None

    def __new__(cls) -> "Settings":
        """Ensure only one Settings instance exists"""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        """Initialize settings singleton (only runs once)"""
        if hasattr(self, "_initialized"):
            return
        self._initialized = True
        self._config: Optional[Config] = None

    def initialize(self, config: Config) -> None:
        """
        Initialize with loaded configuration

        Args:
            config: Loaded configuration
        """
        self._config = config

    # =========================================================================
    # Portal Protocol Constants
    # =========================================================================

    PORTAL_BUS_NAME: str = "org.freedesktop.portal.Desktop"
    PORTAL_OBJECT_PATH: str = "/org/freedesktop/portal/desktop"

    REMOTE_DESKTOP_INTERFACE: str = "org.freedesktop.portal.RemoteDesktop"
    REQUEST_INTERFACE: str = "org.freedesktop.portal.Request"
    SESSION_INTERFACE: str = "org.freedesktop.portal.Session"
    PROPERTIES_INTERFACE: str = "org.freedesktop.DBus.Properties"

    REQUEST_PATH_PREFIX: str = "/org/freedesktop/portal/desktop/request"
    SESSION_PATH_PREFIX: str = "/org/freedesktop/portal/desktop/session"
    """Brokers place request and session objects under these prefixes,
    followed by the caller's escaped unique name and the handle token.
    """

    # =========================================================================
    # Client Constants
    # =========================================================================

    TOKEN_PREFIX: str = "rdportal"
    """Prefix of generated handle tokens (overridable via session.token_prefix)"""

    TOKEN_RANDOM_HEX_DIGITS: int = 8
    """Random hex digits appended to each generated token"""

    DEFAULT_CALL_TIMEOUT_MS: int = 5000
    """Timeout for the synchronous part of a bus call (milliseconds)"""

    # =========================================================================
    # Runtime Configuration Access
    # =========================================================================

    @property
    def config(self) -> Config:
        """
        Get loaded configuration object

        Raises:
            RuntimeError: If settings were never initialized
        """
        if self._config is None:
            raise RuntimeError("Settings not initialized. Call settings.initialize(config) first.")
        return self._config

    @property
    def token_prefix(self) -> str:
        """Configured token prefix, or the built-in default"""
        if self._config is None:
            return self.TOKEN_PREFIX
        return self._config.session.token_prefix


# Global singleton instance
settings = Settings()
"""Global settings singleton instance

Import this anywhere in the application:
    from rdportal.common.settings import settings
"""
