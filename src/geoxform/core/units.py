"""Angle conversion and geographic range checks.

All projection formulas work in radians and metres internally. Geographic
coordinates enter and leave the library in decimal degrees.
"""

from __future__ import annotations

import math

import numpy as np

from .errors import OutOfDomainError

# Valid geographic ranges in degrees
LONGITUDE_MIN = -180.0
LONGITUDE_MAX = 180.0
LATITUDE_MIN = -90.0
LATITUDE_MAX = 90.0

# Slack accepted around the range limits
ANGLE_EPS = 1.0e-6


def deg_to_rad(value: float | int) -> float:
    """Convert degrees to radians."""
    return float(value) * math.pi / 180.0


def rad_to_deg(value: float | int) -> float:
    """Convert radians to degrees."""
    return float(value) * 180.0 / math.pi


def latitude_to_radians(value: float, edge: bool = True) -> float:
    """Convert a latitude parameter to radians after checking its range.

    Args:
        value: Latitude in degrees
        edge: If True the poles themselves are accepted

    Raises:
        OutOfDomainError: If the latitude is outside [-90, 90] (or the open interval)
    """
    ok = LATITUDE_MIN <= value <= LATITUDE_MAX if edge else LATITUDE_MIN < value < LATITUDE_MAX
    if not ok:
        raise OutOfDomainError(f"Latitude {value}° is out of range")
    return math.radians(value)


def longitude_to_radians(value: float, edge: bool = True) -> float:
    """Convert a longitude parameter to radians after checking its range.

    Raises:
        OutOfDomainError: If the longitude is outside [-180, 180]
    """
    ok = (
        LONGITUDE_MIN <= value <= LONGITUDE_MAX
        if edge
        else LONGITUDE_MIN < value < LONGITUDE_MAX
    )
    if not ok:
        raise OutOfDomainError(f"Longitude {value}° is out of range")
    return math.radians(value)


def geographic_out_of_range(lon: np.ndarray, lat: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Flag longitudes and latitudes outside the valid range.

    NaN values are not flagged.

    Returns:
        Boolean masks (bad_longitude, bad_latitude)
    """
    with np.errstate(invalid="ignore"):
        bad_lon = (lon < LONGITUDE_MIN - ANGLE_EPS) | (lon > LONGITUDE_MAX + ANGLE_EPS)
        bad_lat = (lat < LATITUDE_MIN - ANGLE_EPS) | (lat > LATITUDE_MAX + ANGLE_EPS)
    return bad_lon, bad_lat


__all__ = [
    "LONGITUDE_MIN",
    "LONGITUDE_MAX",
    "LATITUDE_MIN",
    "LATITUDE_MAX",
    "ANGLE_EPS",
    "deg_to_rad",
    "rad_to_deg",
    "latitude_to_radians",
    "longitude_to_radians",
    "geographic_out_of_range",
]
