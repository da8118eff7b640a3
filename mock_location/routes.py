"""
Route sources consumed by the path follower.

A route source maps a segment index to waypoints. Fixed paths are closed
loops indexed modulo their length; procedural paths are open random walks
generated lazily in batches as the follower approaches the end of the buffer.
"""

import logging
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .constants import (
    DEFAULT_START_LATITUDE, DEFAULT_START_LONGITUDE, MIN_SEGMENT_METERS, RouteKind,
)
from .errors import InvalidRouteError
from .geodesy import distance_meters, normalize_bearing, offset_equirectangular
from .models import Waypoint

logger = logging.getLogger(__name__)


__all__ = [
    'RouteSource',
    'FixedPath',
    'ProceduralPath',
    'RouteConfig',
    'validate_waypoints',
]


def validate_waypoints(waypoints: Sequence[Waypoint]) -> List[Waypoint]:
    """
    Check that a fixed route can be followed.

    Raises:
        InvalidRouteError: fewer than 2 entries, or every entry is the same point
    """
    points = list(waypoints)
    if len(points) < 2:
        raise InvalidRouteError(
            "At least 2 waypoints are required", details={'count': len(points)})
    for point in points:
        if not (-90.0 <= point.latitude <= 90.0 and -180.0 <= point.longitude <= 180.0):
            raise InvalidRouteError(
                f"Waypoint out of range: {point.latitude}, {point.longitude}")
    total = sum(distance_meters(points[i], points[(i + 1) % len(points)])
                for i in range(len(points)))
    if total < MIN_SEGMENT_METERS:
        raise InvalidRouteError(
            "Route needs at least 2 distinct waypoints", details={'count': len(points)})
    return points


class RouteSource(ABC):
    """
    Abstract base class for route sources.

    Indices are absolute segment indices as tracked by the follower. Segment
    ``i`` runs from ``waypoint_at(i)`` to ``waypoint_at(next_index(i))``.
    """

    is_cyclic = False

    @abstractmethod
    def waypoint_at(self, index: int) -> Waypoint:
        """Return the waypoint at an index."""

    @abstractmethod
    def next_index(self, index: int) -> int:
        """Index of the segment following ``index``."""

    @abstractmethod
    def reset(self):
        """Return the route to its initial state for a new run."""

    @abstractmethod
    def get_status(self) -> Dict[str, Any]:
        """Status information for display/debugging."""

    def ensure_available(self, index: int) -> bool:
        """
        Make sure ``waypoint_at(index)`` can be served.

        Returns:
            True if new waypoints had to be generated
        """
        return False

    def release_before(self, index: int):
        """Hint that waypoints before ``index`` will not be requested again."""

    def segment(self, index: int) -> Tuple[Waypoint, Waypoint]:
        self.ensure_available(self.next_index(index))
        return self.waypoint_at(index), self.waypoint_at(self.next_index(index))

    @property
    def start(self) -> Waypoint:
        return self.waypoint_at(0)


class FixedPath(RouteSource):
    """
    Closed loop over a fixed list of waypoints; after the last waypoint the
    route returns to the first one and repeats forever.
    """

    is_cyclic = True

    def __init__(self, waypoints: Sequence[Waypoint]):
        self.waypoints: Tuple[Waypoint, ...] = tuple(validate_waypoints(waypoints))

    def __len__(self) -> int:
        return len(self.waypoints)

    def waypoint_at(self, index: int) -> Waypoint:
        return self.waypoints[index % len(self.waypoints)]

    def next_index(self, index: int) -> int:
        return (index + 1) % len(self.waypoints)

    def reset(self):
        pass

    def total_distance_meters(self) -> float:
        """Length of one full lap including the closing segment."""
        n = len(self.waypoints)
        return sum(distance_meters(self.waypoints[i], self.waypoints[(i + 1) % n])
                   for i in range(n))

    def get_status(self) -> Dict[str, Any]:
        return {
            "type": RouteKind.FIXED.value,
            "total_waypoints": len(self.waypoints),
            "lap_distance_m": self.total_distance_meters(),
        }


class ProceduralPath(RouteSource):
    """
    Open-ended route generated by a correlated random walk.

    At every step the walk turns by U(-max_turn_angle, +max_turn_angle)
    degrees with probability ``turn_probability`` and then advances
    ``segment_length`` metres with an equirectangular step. Waypoints are
    produced in batches only when the follower needs one beyond the buffer.
    """

    def __init__(self, start: Waypoint, seed: Optional[int] = None,
                 segment_length: float = 3.0, turn_probability: float = 0.2,
                 max_turn_angle: float = 30.0, batch_size: int = 50,
                 initial_batch: int = 100, initial_bearing: float = 0.0):
        if segment_length <= 0:
            raise InvalidRouteError("segment_length must be positive",
                                    details={'segment_length': segment_length})
        if not 0.0 <= turn_probability <= 1.0:
            raise InvalidRouteError("turn_probability must be within [0, 1]",
                                    details={'turn_probability': turn_probability})
        if max_turn_angle < 0:
            raise InvalidRouteError("max_turn_angle cannot be negative",
                                    details={'max_turn_angle': max_turn_angle})
        if batch_size < 1 or initial_batch < 1:
            raise InvalidRouteError("batch sizes must be at least 1")
        if not -90.0 <= start.latitude <= 90.0:
            raise InvalidRouteError(f"Start latitude out of range: {start.latitude}")

        self.origin = start
        self.seed = seed
        self.segment_length = segment_length
        self.turn_probability = turn_probability
        self.max_turn_angle = max_turn_angle
        self.batch_size = batch_size
        self.initial_batch = initial_batch
        self.initial_bearing = initial_bearing

        self.active_seed: Optional[int] = None
        self._random: Optional[random.Random] = None
        self._buffer: List[Waypoint] = []
        self._offset = 0
        self._bearing = initial_bearing
        self._batches_generated = 0
        self.reset()

    def reset(self):
        # An unseeded path draws a new seed every run
        self.active_seed = self.seed if self.seed is not None else random.getrandbits(64)
        self._random = random.Random(self.active_seed)
        self._buffer = [self.origin]
        self._offset = 0
        self._bearing = self.initial_bearing
        self._batches_generated = 0
        self._extend(self.initial_batch)

    def _extend(self, count: int):
        last = self._buffer[-1] if self._buffer else self.origin
        for _ in range(count):
            if self._random.random() < self.turn_probability:
                turn = self._random.uniform(-self.max_turn_angle, self.max_turn_angle)
                self._bearing = normalize_bearing(self._bearing + turn)
            last = offset_equirectangular(last, self._bearing, self.segment_length)
            self._buffer.append(last)
        self._batches_generated += 1
        logger.debug("Generated %d procedural waypoints (buffer %d, offset %d)",
                     count, len(self._buffer), self._offset)

    @property
    def buffered(self) -> int:
        """Number of waypoints currently held."""
        return len(self._buffer)

    @property
    def start(self) -> Waypoint:
        return self.origin

    def ensure_available(self, index: int) -> bool:
        extended = False
        while index >= self._offset + len(self._buffer):
            self._extend(self.batch_size)
            extended = True
        return extended

    def waypoint_at(self, index: int) -> Waypoint:
        if index < self._offset:
            raise IndexError(f"Waypoint {index} was already released (offset {self._offset})")
        self.ensure_available(index)
        return self._buffer[index - self._offset]

    def next_index(self, index: int) -> int:
        return index + 1

    def release_before(self, index: int):
        drop = index - self._offset
        if drop > 0:
            del self._buffer[:drop]
            self._offset = index

    def get_status(self) -> Dict[str, Any]:
        return {
            "type": RouteKind.PROCEDURAL.value,
            "seed": self.active_seed,
            "segment_length_m": self.segment_length,
            "turn_probability": self.turn_probability,
            "max_turn_angle": self.max_turn_angle,
            "buffered_waypoints": len(self._buffer),
            "released_waypoints": self._offset,
            "batches_generated": self._batches_generated,
        }


@dataclass(frozen=True)
class RouteConfig:
    """Route description handed to ``Simulator.start``."""
    kind: RouteKind = RouteKind.PROCEDURAL
    waypoints: Tuple[Waypoint, ...] = ()
    seed: Optional[int] = None
    segment_length: float = 3.0
    turn_probability: float = 0.2
    max_turn_angle: float = 30.0
    batch_size: int = 50
    start_latitude: Optional[float] = None
    start_longitude: Optional[float] = None
    metadata: Dict[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def fixed(cls, waypoints: Sequence[Waypoint], **kwargs) -> 'RouteConfig':
        return cls(kind=RouteKind.FIXED, waypoints=tuple(waypoints), **kwargs)

    @classmethod
    def procedural(cls, start_latitude: float = DEFAULT_START_LATITUDE,
                   start_longitude: float = DEFAULT_START_LONGITUDE,
                   seed: Optional[int] = None, **kwargs) -> 'RouteConfig':
        return cls(kind=RouteKind.PROCEDURAL, start_latitude=start_latitude,
                   start_longitude=start_longitude, seed=seed, **kwargs)

    def build(self) -> RouteSource:
        """
        Create the route source, failing fast on an unusable route.

        Raises:
            InvalidRouteError: empty, single-point or otherwise malformed route
        """
        if self.kind == RouteKind.FIXED:
            return FixedPath(self.waypoints)
        if self.kind == RouteKind.PROCEDURAL:
            lat = DEFAULT_START_LATITUDE if self.start_latitude is None else self.start_latitude
            lon = DEFAULT_START_LONGITUDE if self.start_longitude is None else self.start_longitude
            return ProceduralPath(
                Waypoint(lat, lon),
                seed=self.seed,
                segment_length=self.segment_length,
                turn_probability=self.turn_probability,
                max_turn_angle=self.max_turn_angle,
                batch_size=self.batch_size,
            )
        raise InvalidRouteError(f"Unknown route kind: {self.kind!r}")
