"""
Great-circle helpers for waypoint routes.

Distances are in metres and bearings in degrees clockwise from north.
"""

import math

from .constants import EARTH_RADIUS_METERS, METERS_PER_DEGREE
from .models import Waypoint


__all__ = [
    'distance_meters',
    'initial_bearing_degrees',
    'interpolate',
    'offset_equirectangular',
    'normalize_bearing',
]


def normalize_bearing(bearing: float) -> float:
    """Wrap a bearing into [0, 360)."""
    bearing = bearing % 360.0
    # -1e-17 % 360 rounds to 360.0
    return 0.0 if bearing >= 360.0 else bearing


def distance_meters(a: Waypoint, b: Waypoint) -> float:
    """
    Calculate the great circle distance between two waypoints.

    Args:
        a, b: Waypoints in decimal degrees

    Returns:
        Distance in metres (haversine formula)
    """
    lat1_rad = math.radians(a.latitude)
    lat2_rad = math.radians(b.latitude)
    dlat = lat2_rad - lat1_rad
    dlon = math.radians(b.longitude - a.longitude)

    h = (math.sin(dlat / 2) ** 2 +
         math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))

    return EARTH_RADIUS_METERS * c


def initial_bearing_degrees(a: Waypoint, b: Waypoint) -> float:
    """
    Calculate the initial bearing from waypoint a to waypoint b.

    Returns:
        Bearing in degrees (0-360). Coincident points yield 0.0.
    """
    if a.latitude == b.latitude and a.longitude == b.longitude:
        return 0.0

    lat1_rad = math.radians(a.latitude)
    lat2_rad = math.radians(b.latitude)
    dlon = math.radians(b.longitude - a.longitude)

    y = math.sin(dlon) * math.cos(lat2_rad)
    x = (math.cos(lat1_rad) * math.sin(lat2_rad) -
         math.sin(lat1_rad) * math.cos(lat2_rad) * math.cos(dlon))

    return normalize_bearing(math.degrees(math.atan2(y, x)))


def interpolate(a: Waypoint, b: Waypoint, fraction: float) -> Waypoint:
    """Linear interpolation in lat/lon space, fine at the few-metre scale of a segment."""
    return Waypoint(
        a.latitude + (b.latitude - a.latitude) * fraction,
        a.longitude + (b.longitude - a.longitude) * fraction,
    )


def offset_equirectangular(point: Waypoint, bearing: float, meters: float) -> Waypoint:
    """
    Move a point by a distance along a bearing with a flat-earth step.

    Both axes use the same metres-per-degree constant, so eastward steps are
    too short by a factor of cos(latitude). Acceptable for a decorative
    random walk near the mid-latitudes; not a geodetic computation.
    """
    degrees = meters / METERS_PER_DEGREE
    bearing_rad = math.radians(bearing)
    return Waypoint(
        point.latitude + degrees * math.cos(bearing_rad),
        point.longitude + degrees * math.sin(bearing_rad),
    )
