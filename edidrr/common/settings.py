"""Application settings singleton - single source of truth for constants

This module provides a singleton Settings class that consolidates:
1. Format constants (EDID block size, digest size)
2. Layout tuning defaults (refresh-rate tolerance, physical size ratio)
3. Runtime configuration from the YAML config file

Usage:
    from edidrr.common.settings import settings

    # Initialize once at startup with loaded config
    config = ConfigLoader.config_load()
    settings.initialize(config)

    # Use anywhere in the CLI layer
    tolerance = settings.config.layout.rate_tolerance_hz
"""

from typing import Optional

from edidrr.common.config import Config


class Settings:
    """Singleton settings manager combining the config file and constants

    The engine modules take their tunables as explicit arguments; only the
    command-line layer reads runtime configuration from here.
    """

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
            config: Loaded application configuration
        """
        self._config = config

    # =========================================================================
    # EDID Constants
    # =========================================================================

    EDID_MIN_SIZE: int = 128
    """Size of the EDID base block in bytes

    Blobs shorter than this cannot be decoded and yield an unavailable identity.
    """

    EDID_DIGEST_SIZE: int = 32
    """Size of the SHA-256 identity digest in bytes"""

    EDID_FETCH_LONGS: int = 256
    """Number of 32-bit units requested in the first EDID property read

    Covers the base block plus extension blocks on common displays; longer
    blobs are re-read using the reported bytes_after.
    """

    # =========================================================================
    # Layout Constants
    # =========================================================================

    DEFAULT_RATE_TOLERANCE_HZ: float = 1.0
    """Refresh-rate tolerance for mode matching (Hz)

    Absorbs rounding between the rate stored in a layout file and the rate
    computed from the mode timings (59.94 vs 60.0) while still telling
    50/60/75/120/144 Hz apart.
    """

    DEFAULT_PIXELS_PER_MILLIMETER: int = 3
    """Ratio used to derive the reported physical screen size"""

    # =========================================================================
    # Pointer Constants
    # =========================================================================

    COORDINATE_MATRIX_PROPERTY: str = "Coordinate Transformation Matrix"
    """XInput device property holding the 3x3 pointer transform"""

    FLOAT_TYPE_ATOM: str = "FLOAT"
    """Atom naming the property type of the transform matrix"""

    # =========================================================================
    # Runtime Configuration Access
    # =========================================================================

    @property
    def config(self) -> Config:
        """
        Get loaded configuration object

        Raises:
            RuntimeError: If settings were not initialized
        """
        if self._config is None:
            raise RuntimeError("Settings not initialized. Call settings.initialize(config) first.")
        return self._config


# Global singleton instance
settings = Settings()
"""Global settings singleton instance

Import this anywhere in the application:
    from edidrr.common.settings import settings
"""
