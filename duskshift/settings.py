"""
Validated, immutable settings for one run.

Raw values (environment, command line) are checked against the bounds in
duskshift.config once, before the scheduler starts. Nothing downstream
re-validates or mutates them.
"""

from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from duskshift.config import (
    MIN_LAT, MAX_LAT, MIN_LON, MAX_LON, MIN_TEMP, MAX_TEMP, MIN_GAMMA, MAX_GAMMA,
    DEFAULT_DAY_TEMP, DEFAULT_NIGHT_TEMP, DEFAULT_GAMMA,
)


class ConfigurationError(ValueError):
    """Raised when settings are missing or out of range."""


class Mode(str, Enum):
    """Scheduler operating mode."""
    CONTINUOUS = "continuous"  # Re-apply temperature until stopped
    ONE_SHOT = "one-shot"  # Apply once and exit


class GeoCoordinate(BaseModel):
    model_config = ConfigDict(frozen=True)

    latitude: float = Field(..., ge=MIN_LAT, le=MAX_LAT, allow_inf_nan=False, description="Latitude in degrees")
    longitude: float = Field(..., ge=MIN_LON, le=MAX_LON, allow_inf_nan=False, description="Longitude in degrees")


class TemperatureSetting(BaseModel):
    model_config = ConfigDict(frozen=True)

    day: int = Field(DEFAULT_DAY_TEMP, ge=MIN_TEMP, le=MAX_TEMP, description="Daytime color temperature (K)")
    night: int = Field(DEFAULT_NIGHT_TEMP, ge=MIN_TEMP, le=MAX_TEMP, description="Night color temperature (K)")


class GammaAdjustment(BaseModel):
    model_config = ConfigDict(frozen=True)

    red: float = Field(DEFAULT_GAMMA, ge=MIN_GAMMA, le=MAX_GAMMA, allow_inf_nan=False)
    green: float = Field(DEFAULT_GAMMA, ge=MIN_GAMMA, le=MAX_GAMMA, allow_inf_nan=False)
    blue: float = Field(DEFAULT_GAMMA, ge=MIN_GAMMA, le=MAX_GAMMA, allow_inf_nan=False)

    def as_tuple(self) -> tuple[float, float, float]:
        return (self.red, self.green, self.blue)


class Settings(BaseModel):
    """Everything the scheduler and display backend need for one run."""
    model_config = ConfigDict(frozen=True)

    location: GeoCoordinate
    temperatures: TemperatureSetting = Field(default_factory=TemperatureSetting)
    gamma: GammaAdjustment = Field(default_factory=GammaAdjustment)
    method: Literal["randr", "vidmode"] = "randr"
    screen: int = Field(-1, ge=-1, description="X screen number, -1 for the default screen")
    mode: Mode = Mode.CONTINUOUS
    initial_transition: bool = True


def parse_gamma(value: str) -> GammaAdjustment:
    """
    Parse a gamma string into a GammaAdjustment.

    Format: "R:G:B" or a single value used for all channels.

    Raises:
        ConfigurationError: If the string is malformed or out of range
    """
    parts = [part.strip() for part in str(value).split(":")]
    if len(parts) not in (1, 3):
        raise ConfigurationError(f"Gamma must be a single value or R:G:B, got '{value}'")

    try:
        channels = [float(part) for part in parts]
    except ValueError:
        raise ConfigurationError(f"Invalid gamma value '{value}'")

    if len(channels) == 1:
        channels = channels * 3

    try:
        return GammaAdjustment(red=channels[0], green=channels[1], blue=channels[2])
    except ValidationError as e:
        raise ConfigurationError(
            f"Gamma value must be between {MIN_GAMMA:.1f} and {MAX_GAMMA:.1f} ({_describe(e)})"
        ) from e


def build_settings(
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
    day_temp: int = DEFAULT_DAY_TEMP,
    night_temp: int = DEFAULT_NIGHT_TEMP,
    gamma: Optional[GammaAdjustment] = None,
    method: str = "randr",
    screen: int = -1,
    one_shot: bool = False,
    initial_transition: bool = True,
) -> Settings:
    """
    Validate raw values and build immutable Settings.

    Raises:
        ConfigurationError: If any value is missing or out of range
    """
    if latitude is None or longitude is None:
        raise ConfigurationError("Latitude and longitude must be set")

    try:
        return Settings(
            location=GeoCoordinate(latitude=latitude, longitude=longitude),
            temperatures=TemperatureSetting(day=day_temp, night=night_temp),
            gamma=gamma if gamma is not None else GammaAdjustment(),
            method=str(method).lower(),
            screen=screen,
            mode=Mode.ONE_SHOT if one_shot else Mode.CONTINUOUS,
            initial_transition=initial_transition,
        )
    except ValidationError as e:
        raise ConfigurationError(_describe(e)) from e


def _describe(error: ValidationError) -> str:
    messages = []
    for err in error.errors():
        location = ".".join(str(part) for part in err["loc"])
        messages.append(f"{location}: {err['msg']}" if location else err["msg"])
    return "; ".join(messages)
