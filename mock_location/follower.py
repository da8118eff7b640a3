"""
Path follower: advances a fractional position along route segments.
"""

import logging
import random
from datetime import datetime
from typing import Any, Dict, Optional

from .constants import MIN_SEGMENT_METERS
from .errors import PerTickError
from .geodesy import distance_meters, initial_bearing_degrees, interpolate, normalize_bearing
from .models import FollowerState, LocationSample, Waypoint
from .routes import RouteSource

logger = logging.getLogger(__name__)

# Fractions this close to 1.0 count as a finished segment
FRACTION_EPSILON = 1e-9


class PathFollower:
    """
    Walks a route source segment by segment.

    State is a (segment_index, fraction) pair. Each call to ``next_sample``
    converts ``speed * dt`` into progress along the current segment, rolls
    over into following segments as needed and interpolates the position.
    """

    def __init__(self, route: RouteSource, stationary_speed: float = 0.01,
                 stationary_jitter_degrees: float = 5e-6, accuracy: float = 3.0,
                 rng: Optional[random.Random] = None):
        self.route = route
        self.stationary_speed = stationary_speed
        self.stationary_jitter_degrees = stationary_jitter_degrees
        self.accuracy = accuracy
        self.state = FollowerState()
        self.laps_completed = 0
        self.distance_traveled = 0.0
        self._random = rng or random.Random()
        self._position: Waypoint = route.start

    @property
    def segment_index(self) -> int:
        return self.state.segment_index

    @property
    def fraction(self) -> float:
        return self.state.fraction

    @property
    def position(self) -> Waypoint:
        """Last interpolated position on the route."""
        return self._position

    def reset(self):
        self.route.reset()
        self.state.reset()
        self.laps_completed = 0
        self.distance_traveled = 0.0
        self._position = self.route.start

    def _skip_limit(self) -> int:
        if self.route.is_cyclic:
            return len(self.route)
        # A procedural walk never produces repeated points; guard anyway
        return 1000

    def _advance_segment(self):
        nxt = self.route.next_index(self.state.segment_index)
        if self.route.is_cyclic and nxt == 0:
            self.laps_completed += 1
        self.state.segment_index = nxt
        self.route.release_before(nxt)

    def _current_segment(self):
        """
        Return (start, end, length) of the current segment, stepping over
        zero-length segments without consuming any travel distance. A fraction
        carried into a skipped segment moves on to the next one.
        """
        for _ in range(self._skip_limit() + 1):
            start, end = self.route.segment(self.state.segment_index)
            length = distance_meters(start, end)
            if length > MIN_SEGMENT_METERS:
                return start, end, length
            logger.debug("Skipping zero-length segment %d", self.state.segment_index)
            self._advance_segment()
        raise PerTickError("Route has no segment with a non-zero length",
                           details={'segment_index': self.state.segment_index})

    def advance(self, speed: float, dt: float) -> Waypoint:
        """Move ``speed * dt`` metres along the route and return the new position."""
        start, end, length = self._current_segment()
        travel = max(0.0, speed) * max(0.0, dt)
        self.distance_traveled += travel
        self.state.fraction += travel / length

        while self.state.fraction >= 1.0 - FRACTION_EPSILON:
            self.state.fraction = max(0.0, self.state.fraction - 1.0)
            self._advance_segment()
            start, end, length = self._current_segment()

        self._position = interpolate(start, end, self.state.fraction)
        return self._position

    def bearing(self) -> float:
        """Initial bearing of the current segment."""
        start, end, _ = self._current_segment()
        return initial_bearing_degrees(start, end)

    def stationary_sample(self, timestamp: Optional[datetime] = None) -> LocationSample:
        """
        Sample at the current position with a tiny random offset and a random
        bearing, emulating receiver drift while standing still. Each offset is
        drawn around the last route position, so the drift does not accumulate.
        """
        jitter = self.stationary_jitter_degrees
        return LocationSample.at(
            self._position.latitude + self._random.uniform(-jitter, jitter),
            self._position.longitude + self._random.uniform(-jitter, jitter),
            speed=0.0,
            bearing=normalize_bearing(self._random.uniform(0.0, 360.0)),
            accuracy=self.accuracy,
            timestamp=timestamp,
        )

    def next_sample(self, speed: float, dt: float,
                    timestamp: Optional[datetime] = None) -> LocationSample:
        """Advance by one tick and return the raw (unsmoothed) sample."""
        if speed < self.stationary_speed:
            return self.stationary_sample(timestamp)

        position = self.advance(speed, dt)
        return LocationSample.at(
            position.latitude,
            position.longitude,
            speed=speed,
            bearing=self.bearing(),
            accuracy=self.accuracy,
            timestamp=timestamp,
        )

    def get_status(self) -> Dict[str, Any]:
        return {
            "segment_index": self.state.segment_index,
            "fraction": self.state.fraction,
            "laps_completed": self.laps_completed,
            "distance_traveled_m": self.distance_traveled,
            "position": self._position.as_tuple(),
        }
