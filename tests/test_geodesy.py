import math

import pytest

from mock_location.constants import METERS_PER_DEGREE
from mock_location.geodesy import (
    distance_meters, initial_bearing_degrees, interpolate, normalize_bearing,
    offset_equirectangular,
)
from mock_location.models import Waypoint


PAIRS = [
    (Waypoint(0.0, 0.0), Waypoint(0.0, 1.0)),
    (Waypoint(39.0851, 121.8085), Waypoint(39.0852, 121.8087)),
    (Waypoint(-33.86, 151.21), Waypoint(51.5, -0.12)),
    (Waypoint(89.9, 10.0), Waypoint(89.9, -170.0)),
]


@pytest.mark.parametrize("a,b", PAIRS)
def test_distance_is_symmetric_and_positive(a, b):
    assert distance_meters(a, b) == pytest.approx(distance_meters(b, a))
    assert distance_meters(a, b) > 0


def test_distance_of_coincident_points_is_zero():
    p = Waypoint(12.5, -3.25)
    assert distance_meters(p, p) == 0.0


def test_one_degree_along_equator():
    expected = 6371000.0 * math.pi / 180
    assert distance_meters(Waypoint(0, 0), Waypoint(0, 1)) == pytest.approx(expected, rel=1e-9)


@pytest.mark.parametrize("target,expected", [
    (Waypoint(1.0, 0.0), 0.0),
    (Waypoint(0.0, 1.0), 90.0),
    (Waypoint(-1.0, 0.0), 180.0),
    (Waypoint(0.0, -1.0), 270.0),
])
def test_initial_bearing_cardinal_directions(target, expected):
    assert initial_bearing_degrees(Waypoint(0.0, 0.0), target) == pytest.approx(expected, abs=1e-9)


def test_initial_bearing_of_coincident_points_defaults_to_zero():
    p = Waypoint(45.0, 7.0)
    assert initial_bearing_degrees(p, p) == 0.0


def test_bearings_stay_in_range():
    for a, b in PAIRS:
        for bearing in (initial_bearing_degrees(a, b), initial_bearing_degrees(b, a)):
            assert 0.0 <= bearing < 360.0


def test_normalize_bearing_wraps_into_range():
    assert normalize_bearing(370.0) == pytest.approx(10.0)
    assert normalize_bearing(-90.0) == pytest.approx(270.0)
    assert 0.0 <= normalize_bearing(-1e-17) < 360.0


def test_interpolate_midpoint():
    mid = interpolate(Waypoint(0.0, 0.0), Waypoint(2.0, 4.0), 0.5)
    assert mid == Waypoint(1.0, 2.0)


def test_equirectangular_offset_uses_flat_degree_conversion():
    origin = Waypoint(39.0, 121.0)
    north = offset_equirectangular(origin, 0.0, 3.0)
    assert north.latitude - origin.latitude == pytest.approx(3.0 / METERS_PER_DEGREE)
    assert north.longitude == pytest.approx(origin.longitude)

    # longitude is not scaled by cos(latitude)
    east = offset_equirectangular(origin, 90.0, 3.0)
    assert east.longitude - origin.longitude == pytest.approx(3.0 / METERS_PER_DEGREE)
    assert east.latitude == pytest.approx(origin.latitude)
