"""Configuration file loading and management"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
DEFAULT_LAYOUT_FILE = "~/.config/edidrr/layout.conf"


@dataclass
class DisplayConfig:
    """Display backend settings"""
    name: Optional[str]
    pixels_per_millimeter: int


@dataclass
class LayoutSettingsConfig:
    """Layout resolution settings"""
    rate_tolerance_hz: float
    layout_file: str


@dataclass
class LoggingConfig:
    """Logging configuration settings"""
    level: str
    file: Optional[str]
    format: str


@dataclass
class Config:
    """Complete application configuration"""
    display: DisplayConfig
    layout: LayoutSettingsConfig
    logging: LoggingConfig


class ConfigLoader:
    """Loads and parses configuration from YAML files"""

    DEFAULT_CONFIG_PATHS = [
        "edidrr.yml",
        "~/.config/edidrr/config.yml",
        "/etc/edidrr/config.yml",
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
            ValueError: If the document is not a mapping
        """
        with open(file_path, "r") as f:
            data = yaml.safe_load(f)

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {file_path} must contain a YAML dictionary")

        return data

    @staticmethod
    def config_parse(data: Dict[str, Any]) -> Config:
        """
        Parse configuration dictionary into Config object

        Every section and key is optional; missing values take defaults.

        Args:
            data: Raw configuration dictionary

        Returns:
            Parsed Config object

        Raises:
            ValueError: If a value is out of range
        """
        # Deferred import: settings imports this module
        from edidrr.common.settings import Settings

        display_data = data.get("display") or {}
        display = DisplayConfig(
            name=display_data.get("name"),
            pixels_per_millimeter=int(
                display_data.get("pixels_per_millimeter", Settings.DEFAULT_PIXELS_PER_MILLIMETER)
            ),
        )
        if display.pixels_per_millimeter <= 0:
            raise ValueError(
                f"display.pixels_per_millimeter must be positive, got {display.pixels_per_millimeter}"
            )

        layout_data = data.get("layout") or {}
        layout = LayoutSettingsConfig(
            rate_tolerance_hz=float(
                layout_data.get("rate_tolerance_hz", Settings.DEFAULT_RATE_TOLERANCE_HZ)
            ),
            layout_file=layout_data.get("layout_file", DEFAULT_LAYOUT_FILE),
        )
        if layout.rate_tolerance_hz < 0:
            raise ValueError(
                f"layout.rate_tolerance_hz must not be negative, got {layout.rate_tolerance_hz}"
            )

        logging_data = data.get("logging") or {}
        logging = LoggingConfig(
            level=logging_data.get("level", "WARNING"),
            file=logging_data.get("file"),
            format=logging_data.get("format", DEFAULT_LOG_FORMAT),
        )

        return Config(display=display, layout=layout, logging=logging)

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
                return ConfigLoader.config_parse({})

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
                display=":1",
                log_level="DEBUG"
            )
        """
        config = ConfigLoader.config_load(file_path)

        if overrides.get("display") is not None:
            config.display.name = overrides["display"]
        if overrides.get("log_level") is not None:
            config.logging.level = overrides["log_level"]
        if overrides.get("rate_tolerance_hz") is not None:
            config.layout.rate_tolerance_hz = overrides["rate_tolerance_hz"]

        return config
