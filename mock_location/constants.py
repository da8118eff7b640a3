"""
Physical constants and simulation defaults shared across the package.
"""

from enum import Enum


EARTH_RADIUS_METERS = 6371000.0

# Metres per degree used by the equirectangular step of the procedural path.
# No cos(latitude) correction is applied to longitude.
METERS_PER_DEGREE = 111320.0

# Segments shorter than this are treated as duplicate waypoints
MIN_SEGMENT_METERS = 1e-6

DEFAULT_START_LATITUDE = 39.0851850966623
DEFAULT_START_LONGITUDE = 121.80852250614294
DEFAULT_INITIAL_SPEED = 0.1

DEFAULT_CHANNELS = ("gps", "network")


class RouteKind(str, Enum):
    """Route source variants."""
    FIXED = "fixed"
    PROCEDURAL = "procedural"


class OutputFormat(str, Enum):
    """Line formats understood by stream sinks."""
    JSON = "json"
    NMEA = "nmea"
