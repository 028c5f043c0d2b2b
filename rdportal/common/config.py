"""Configuration file loading and management"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml


@dataclass
class PortalConfig:
    """Broker connection settings"""
    backend: str = "gio"
    bus_name: str = "org.freedesktop.portal.Desktop"
    object_path: str = "/org/freedesktop/portal/desktop"
    call_timeout_ms: int = 5000
    response_timeout_seconds: Optional[float] = None  # None waits for the user indefinitely


@dataclass
class SessionConfig:
    """Remote desktop session defaults"""
    devices: List[str] = field(default_factory=lambda: ["keyboard", "pointer"])
    token_prefix: str = "rdportal"


@dataclass
class LoggingConfig:
    """Logging configuration settings"""
    level: str = "INFO"
    file: Optional[str] = None
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class Config:
    """Complete application configuration"""
    portal: PortalConfig
    session: SessionConfig
    logging: LoggingConfig

    @staticmethod
    def default() -> "Config":
        """Configuration used when no file is found"""
        return Config(portal=PortalConfig(), session=SessionConfig(), logging=LoggingConfig())


class ConfigLoader:
    """Loads and parses configuration from YAML files"""

    DEFAULT_CONFIG_PATHS = [
        "config.yml",
        "~/.config/rdportal/config.yml",
        "/etc/rdportal/config.yml",
    ]

    @staticmethod
    def configFile_find() -> Optional[Path]:
        """
        Find configuration file in standard locations

        Returns:
            Path to config file, or None if not found
        """
        for config_path in ConfigLoader.DEFAULT_CONFIG_PATHS:
            path = Path(config_path).expanduser().resolve()
            if path.exists() and path.is_file():
                return path
        return None

    @staticmethod
    def yaml_load(file_path: Path) -> Dict[str, Any]:
        """
        Load YAML configuration file

        Args:
            file_path: Path to YAML file

        Returns:
            Parsed configuration dictionary

        Raises:
            FileNotFoundError: If file does not exist
            yaml.YAMLError: If file is not valid YAML
        """
        with open(file_path, "r") as f:
            data = yaml.safe_load(f)

        if not isinstance(data, dict):
            raise ValueError(f"Config file {file_path} must contain a YAML dictionary")

        return data

    @staticmethod
    def config_parse(data: Dict[str, Any]) -> Config:
        """
        Parse configuration dictionary into Config object

        Missing sections and keys fall back to the dataclass defaults.

        Args:
            data: Raw configuration dictionary

        Returns:
            Parsed Config object

        Raises:
            ValueError: If a section is not a mapping or a value has the wrong shape
        """
        defaults = Config.default()

        portal_data = ConfigLoader._section_get(data, "portal")
        portal = PortalConfig(
            backend=portal_data.get("backend", defaults.portal.backend),
            bus_name=portal_data.get("bus_name", defaults.portal.bus_name),
            object_path=portal_data.get("object_path", defaults.portal.object_path),
            call_timeout_ms=int(portal_data.get("call_timeout_ms", defaults.portal.call_timeout_ms)),
            response_timeout_seconds=portal_data.get(
                "response_timeout_seconds", defaults.portal.response_timeout_seconds
            ),
        )
        if portal.response_timeout_seconds is not None:
            portal.response_timeout_seconds = float(portal.response_timeout_seconds)

        session_data = ConfigLoader._section_get(data, "session")
        devices = session_data.get("devices", defaults.session.devices)
        if isinstance(devices, str):
            devices = [d.strip() for d in devices.split(",")]
        if not isinstance(devices, list):
            raise ValueError("session.devices must be a list of device type names")
        session = SessionConfig(
            devices=[str(d) for d in devices],
            token_prefix=session_data.get("token_prefix", defaults.session.token_prefix),
        )

        logging_data = ConfigLoader._section_get(data, "logging")
        logging = LoggingConfig(
            level=logging_data.get("level", defaults.logging.level),
            file=logging_data.get("file"),
            format=logging_data.get("format", defaults.logging.format),
        )

        return Config(portal=portal, session=session, logging=logging)

    @staticmethod
    def _section_get(data: Dict[str, Any], name: str) -> Dict[str, Any]:
        section = data.get(name) or {}
        if not isinstance(section, dict):
            raise ValueError(f"Config section '{name}' must be a mapping")
        return section

    @staticmethod
    def config_load(file_path: Optional[Path] = None) -> Config:
        """
        Load configuration from file

        Args:
            file_path: Optional path to config file. If None, searches standard
                locations and falls back to built-in defaults.

        Returns:
            Parsed Config object

        Raises:
            FileNotFoundError: If an explicit config file does not exist
            ValueError: If config file is invalid
        """
        if file_path is None:
            file_path = ConfigLoader.configFile_find()
            if file_path is None:
                return Config.default()

        data = ConfigLoader.yaml_load(file_path)
        return ConfigLoader.config_parse(data)

    @staticmethod
    def configWithOverrides_load(
        file_path: Optional[Path] = None,
        **overrides: Any
    ) -> Config:
        """
        Load configuration and apply command-line overrides

        Args:
            file_path: Optional path to config file
            **overrides: Key-value pairs to override config values

        Returns:
            Config object with overrides applied

        Example:
            config = ConfigLoader.configWithOverrides_load(
                devices="keyboard,pointer",
                log_level="DEBUG",
            )
        """
        config = ConfigLoader.config_load(file_path)

        if overrides.get("backend") is not None:
            config.portal.backend = overrides["backend"]
        if overrides.get("response_timeout") is not None:
            config.portal.response_timeout_seconds = float(overrides["response_timeout"])

        devices = overrides.get("devices")
        if devices is not None:
            config.session.devices = [d.strip() for d in devices.split(",") if d.strip()]

        if overrides.get("log_level") is not None:
            config.logging.level = overrides["log_level"]
        if overrides.get("log_file") is not None:
            config.logging.file = overrides["log_file"]

        return config
