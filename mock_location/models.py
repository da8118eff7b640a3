"""
Data structures for simulated location output.
"""

import math
from collections import deque
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional


@dataclass(frozen=True)
class Waypoint:
    """A fixed geographic anchor point of a route."""
    latitude: float
    longitude: float

    @classmethod
    def from_lon_lat(cls, pair) -> 'Waypoint':
        """Build from a (longitude, latitude) pair, the GeoJSON order."""
        lon, lat = pair[0], pair[1]
        return cls(float(lat), float(lon))

    def as_tuple(self):
        return self.latitude, self.longitude


def synthetic_altitude(latitude: float, longitude: float) -> float:
    """Gently rolling terrain derived from position, in metres."""
    return 50.0 + 5.0 * math.sin(latitude * 100) + 5.0 * math.cos(longitude * 100)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class LocationSample:
    """One simulated position fix."""
    latitude: float
    longitude: float
    speed: float                        # m/s
    bearing: float                      # degrees, [0, 360)
    altitude: float = 0.0               # metres
    accuracy: float = 3.0               # metres
    timestamp: datetime = field(default_factory=_utcnow)
    bearing_accuracy: float = 1.0       # degrees
    speed_accuracy: float = 0.5         # m/s
    vertical_accuracy: float = 2.0      # metres

    @classmethod
    def at(cls, latitude: float, longitude: float, speed: float, bearing: float,
           accuracy: float = 3.0, timestamp: Optional[datetime] = None) -> 'LocationSample':
        """Create a sample with altitude derived from its position."""
        return cls(
            latitude=latitude,
            longitude=longitude,
            speed=speed,
            bearing=bearing,
            altitude=synthetic_altitude(latitude, longitude),
            accuracy=accuracy,
            timestamp=timestamp or _utcnow(),
        )

    @property
    def position(self) -> Waypoint:
        return Waypoint(self.latitude, self.longitude)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['timestamp'] = self.timestamp.isoformat()
        return data


class LocationHistory:
    """
    Bounded FIFO of the most recent samples, oldest evicted first.

    Only used to smooth the reported bearing.
    """

    def __init__(self, max_size: int = 5):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self._samples = deque(maxlen=max_size)

    def push(self, sample: LocationSample):
        self._samples.append(sample)

    def clear(self):
        self._samples.clear()

    def last(self) -> Optional[LocationSample]:
        return self._samples[-1] if self._samples else None

    def bearings(self) -> List[float]:
        return [s.bearing for s in self._samples]

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[LocationSample]:
        return iter(self._samples)


@dataclass
class FollowerState:
    """Position of the follower along its route."""
    segment_index: int = 0
    fraction: float = 0.0

    def reset(self):
        self.segment_index = 0
        self.fraction = 0.0
