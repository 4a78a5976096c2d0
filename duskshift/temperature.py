"""
Mapping of solar elevation to a target color temperature.

Below civil twilight the night temperature applies, above TRANSITION_HIGH
the day temperature applies, and in between the two are blended linearly.
"""

from enum import Enum

from duskshift.lighting_math import lerp
from duskshift.solar import SOLAR_CIVIL_TWILIGHT_ELEV

# Angular elevation of the sun (degrees) at which the color temperature
# transition period starts and ends.
TRANSITION_LOW = SOLAR_CIVIL_TWILIGHT_ELEV
TRANSITION_HIGH = 3.0


class Period(str, Enum):
    """Time of day as seen from the sun's elevation."""
    NIGHT = "night"
    TRANSITION = "transition"
    DAYTIME = "daytime"


def classify_period(elevation: float) -> Period:
    if elevation < TRANSITION_LOW:
        return Period.NIGHT
    if elevation < TRANSITION_HIGH:
        return Period.TRANSITION
    return Period.DAYTIME


def day_fraction(elevation: float) -> float:
    """
    Fraction of the way from night to day (0.0-1.0).

    0.0 below TRANSITION_LOW, 1.0 at or above TRANSITION_HIGH.
    """
    period = classify_period(elevation)
    if period is Period.NIGHT:
        return 0.0
    if period is Period.DAYTIME:
        return 1.0
    return (TRANSITION_LOW - elevation) / (TRANSITION_LOW - TRANSITION_HIGH)


def map_temperature(elevation: float, day_temp: int, night_temp: int) -> int:
    """
    Target color temperature for a solar elevation.

    Args:
        elevation: Solar elevation in degrees
        day_temp: Color temperature at daytime (K)
        night_temp: Color temperature at night (K)

    Returns:
        Color temperature in Kelvin
    """
    period = classify_period(elevation)
    if period is Period.NIGHT:
        return night_temp
    if period is Period.DAYTIME:
        return day_temp
    return round(lerp(night_temp, day_temp, day_fraction(elevation)))
