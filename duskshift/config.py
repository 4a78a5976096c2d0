"""
Configuration management with environment variable support.

All settings can be overridden via environment variables, and most of
them again via command line flags (see duskshift.main).
Automatically loads .env file if present.
"""

import os
from pathlib import Path
from typing import Callable, Literal, Optional, Union
from dotenv import load_dotenv

# Load .env file from project root (one level up from duskshift/)
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)


def _env_number(name: str, cast: Callable[[str], Union[int, float]], default=None):
    """
    Read a numeric environment variable.

    Returns the default when unset or empty. An unparsable value is returned
    as the raw string so duskshift.settings rejects it as ConfigurationError.
    """
    value = os.getenv(name)
    if not value:
        return default
    try:
        return cast(value)
    except ValueError:
        return value


# Bounds for parameters
MIN_LAT: float = -90.0
MAX_LAT: float = 90.0
MIN_LON: float = -180.0
MAX_LON: float = 180.0
MIN_TEMP: int = 1000
MAX_TEMP: int = 9999
MIN_GAMMA: float = 0.1
MAX_GAMMA: float = 10.0

# Default values for parameters
DEFAULT_DAY_TEMP: int = 5500
DEFAULT_NIGHT_TEMP: int = 3700
DEFAULT_GAMMA: float = 1.0

# Logging configuration
LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = os.getenv("LOG_LEVEL", "INFO")

# Mock display mode (for running without an X server)
MOCK_MODE: bool = os.getenv("MOCK_MODE", "false").lower() == "true"

# Location, no default (must be set here or with -l LAT:LON)
LATITUDE: Optional[float] = _env_number("LATITUDE", float)
LONGITUDE: Optional[float] = _env_number("LONGITUDE", float)

# Color temperature in Kelvin
DAY_TEMP: int = _env_number("DAY_TEMP", int, DEFAULT_DAY_TEMP)
NIGHT_TEMP: int = _env_number("NIGHT_TEMP", int, DEFAULT_NIGHT_TEMP)

# Gamma correction, "R:G:B" or a single value for all channels
GAMMA: str = os.getenv("GAMMA", str(DEFAULT_GAMMA))

# Display backend
METHOD: Literal["randr", "vidmode"] = os.getenv("METHOD", "randr").lower()
SCREEN: int = _env_number("SCREEN", int, -1)  # -1 = default screen

# Scheduler behaviour
ONE_SHOT: bool = os.getenv("ONE_SHOT", "false").lower() == "true"
INITIAL_TRANSITION: bool = os.getenv("INITIAL_TRANSITION", "true").lower() == "true"
RESTORE_ON_EXIT: bool = os.getenv("RESTORE_ON_EXIT", "true").lower() == "true"

# Status API configuration
STATUS_API_ENABLED: bool = os.getenv("STATUS_API_ENABLED", "false").lower() == "true"
STATUS_API_HOST: str = os.getenv("STATUS_API_HOST", "127.0.0.1")
STATUS_API_PORT: int = int(os.getenv("STATUS_API_PORT", "8765"))
