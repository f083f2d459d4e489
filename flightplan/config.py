"""
Configuration management for flightplan.

Loads an optional YAML file holding destinations and logging settings.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from flightplan.errors import ConfigError

CONFIG_ENV_VAR = "FLIGHTPLAN_CONFIG"


class FlightplanConfig:
    """Complete flightplan configuration."""

    def __init__(self, raw_config: Optional[Dict[str, Any]] = None, config_path: Optional[Path] = None):
        self.config_path = config_path
        self.raw_config = raw_config or {}

        destinations = self.raw_config.get("destinations", {})
        if not isinstance(destinations, dict):
            raise ConfigError("'destinations' must be a mapping of name to host(s)")
        self.destinations: Dict[str, Any] = destinations

        # Logging
        self.logging = self.raw_config.get("logging", {}) or {}

    @classmethod
    def from_file(cls, config_path: Path) -> "FlightplanConfig":
        """Load and parse a YAML configuration file."""
        if not config_path.exists():
            raise ConfigError(f"Configuration file not found: {config_path}")

        try:
            with open(config_path, "r") as f:
                raw = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML syntax in {config_path}: {e}")

        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise ConfigError(f"Configuration file {config_path} must contain a mapping")

        return cls(raw, config_path)

    def get_log_level(self) -> str:
        """Get logging level."""
        return str(self.logging.get("level", "INFO")).upper()

    def get_log_format(self) -> str:
        """Get log format (structured or pretty)."""
        return self.logging.get("format", "pretty")

    def get_log_file(self) -> Optional[Path]:
        """Get log file path, if file logging is configured."""
        log_file = self.logging.get("file")
        return Path(log_file) if log_file else None

    def has_destinations(self) -> bool:
        return bool(self.destinations)

    def __repr__(self) -> str:
        return f"FlightplanConfig(path={self.config_path}, destinations={list(self.destinations)})"


def load_config(config_path: Optional[Path] = None) -> FlightplanConfig:
    """
    Load flightplan configuration.

    Args:
        config_path: Path to a YAML config file. Falls back to $FLIGHTPLAN_CONFIG,
            then to an empty configuration.

    Returns:
        FlightplanConfig instance

    Raises:
        ConfigError: If the file is missing or invalid
    """
    if config_path is None:
        env_path = os.environ.get(CONFIG_ENV_VAR)
        if not env_path:
            return FlightplanConfig()
        config_path = Path(env_path)

    return FlightplanConfig.from_file(Path(config_path))
