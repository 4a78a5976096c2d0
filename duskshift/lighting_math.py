"""
Mathematical helpers for color temperature and gamma ramps.
"""

import math

# Color temperature of the display's native (uncorrected) white
NEUTRAL_TEMP = 6500

RAMP_MAX = 65535


def lerp(a: float, b: float, t: float) -> float:
    """Linear interpolation."""
    return a + (b - a) * t


def clamp(value: float, minimum: float, maximum: float) -> float:
    return max(minimum, min(maximum, value))


def _blackbody_rgb(temperature: float) -> tuple[float, float, float]:
    """
    Approximate blackbody color (0-255 per channel).

    Tanner Helland's curve fit, valid for roughly 1000K-40000K.
    """
    t = temperature / 100.0

    if t <= 66:
        red = 255.0
        green = 99.4708025861 * math.log(t) - 161.1195681661
    else:
        red = 329.698727446 * ((t - 60) ** -0.1332047592)
        green = 288.1221695283 * ((t - 60) ** -0.0755148492)

    if t >= 66:
        blue = 255.0
    elif t <= 19:
        blue = 0.0
    else:
        blue = 138.5177312231 * math.log(t - 10) - 305.0447927307

    return (clamp(red, 0, 255), clamp(green, 0, 255), clamp(blue, 0, 255))


_NEUTRAL_RGB = _blackbody_rgb(NEUTRAL_TEMP)


def kelvin_to_whitepoint(temperature: float) -> tuple[float, float, float]:
    """
    Per-channel multipliers (0.0-1.0) for a color temperature.

    Normalized so that NEUTRAL_TEMP maps to exactly (1.0, 1.0, 1.0).
    """
    rgb = _blackbody_rgb(temperature)
    return tuple(
        clamp(channel / neutral, 0.0, 1.0)
        for channel, neutral in zip(rgb, _NEUTRAL_RGB)
    )


def build_gamma_ramp(size: int, gamma: float, whitepoint: float) -> list[int]:
    """Generate one channel of a 16-bit gamma ramp."""
    return [
        int(pow(i / size, 1.0 / gamma) * RAMP_MAX * whitepoint)
        for i in range(size)
    ]


def build_gamma_ramps(
    size: int,
    temperature: int,
    gamma: tuple[float, float, float],
) -> tuple[list[int], list[int], list[int]]:
    """
    Build red, green and blue gamma ramps for a color temperature.

    Args:
        size: Number of entries per ramp (as reported by the X server)
        temperature: Color temperature in Kelvin
        gamma: Additional (red, green, blue) gamma correction

    Returns:
        Tuple of three lists with values in 0-65535
    """
    whitepoint = kelvin_to_whitepoint(temperature)
    red, green, blue = (
        build_gamma_ramp(size, channel_gamma, channel_white)
        for channel_gamma, channel_white in zip(gamma, whitepoint)
    )
    return red, green, blue
