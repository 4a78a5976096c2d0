"""
Solar elevation calculation using Astral.
"""

from datetime import datetime

from astral import LocationInfo
from astral.sun import elevation

# Elevation of the sun at the end of civil twilight (degrees)
SOLAR_CIVIL_TWILIGHT_ELEV = -6.0


def solar_elevation(when: datetime, latitude: float, longitude: float) -> float:
    """
    Angular elevation of the sun above the horizon in degrees.

    Geometric elevation, without atmospheric refraction. Naive datetimes
    are taken as UTC.
    """
    location = LocationInfo(latitude=latitude, longitude=longitude)
    return elevation(location.observer, when, with_refraction=False)
