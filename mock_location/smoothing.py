"""
Bearing smoothing and cosmetic sensor noise.
"""

import math
import random
from typing import Optional, Sequence

from .geodesy import normalize_bearing


def smoothed_bearing(bearings: Sequence[float]) -> float:
    """
    Weighted circular mean of a bearing history, oldest first.

    Entry ``i`` of ``n`` is weighted ``(i + 1) / n`` so recent headings
    dominate. The mean is taken on unit vectors, so 350° and 10° average to
    0° rather than 180°. An empty history yields 0.0; a history whose vectors
    cancel out yields the latest bearing.
    """
    n = len(bearings)
    if n == 0:
        return 0.0

    sin_sum = 0.0
    cos_sum = 0.0
    for i, bearing in enumerate(bearings):
        weight = (i + 1) / n
        angle = math.radians(bearing)
        sin_sum += weight * math.sin(angle)
        cos_sum += weight * math.cos(angle)

    if math.hypot(sin_sum, cos_sum) < 1e-12:
        return normalize_bearing(bearings[-1])
    return normalize_bearing(math.degrees(math.atan2(sin_sum, cos_sum)))


def jitter_speed(speed: float, fraction: float = 0.05,
                 rng: Optional[random.Random] = None) -> float:
    """Scale a speed by a random factor in [1 - fraction, 1 + fraction]."""
    rng = rng or random
    return max(0.0, speed * rng.uniform(1.0 - fraction, 1.0 + fraction))


def jitter_bearing(bearing: float, degrees: float = 1.5,
                   rng: Optional[random.Random] = None) -> float:
    """Offset a bearing by a random amount in [-degrees, +degrees]."""
    rng = rng or random
    return normalize_bearing(bearing + rng.uniform(-degrees, degrees))
