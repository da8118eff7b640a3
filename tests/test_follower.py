import random

import pytest

from mock_location.follower import PathFollower
from mock_location.geodesy import distance_meters
from mock_location.models import Waypoint
from mock_location.routes import FixedPath, ProceduralPath


def test_unit_square_one_segment_per_tick_returns_to_start(unit_square):
    follower = PathFollower(FixedPath(unit_square))
    speed = distance_meters(unit_square[0], unit_square[1])

    follower.advance(speed, 1.0)
    assert follower.segment_index == 1

    for _ in range(3):
        follower.advance(speed, 1.0)

    assert follower.segment_index == 0
    assert follower.fraction == pytest.approx(0.0, abs=1e-3)
    assert follower.laps_completed == 1


def test_index_stays_in_range_over_many_laps(small_loop):
    follower = PathFollower(FixedPath(small_loop))
    rng = random.Random(7)
    for _ in range(2000):
        follower.advance(rng.uniform(0.0, 30.0), 1.0)
        assert 0 <= follower.segment_index < len(small_loop)
        assert 0.0 <= follower.fraction < 1.0
    assert follower.laps_completed > 10


def test_zero_length_segments_do_not_stall():
    a = Waypoint(39.0, 121.0)
    b = Waypoint(39.0001, 121.0)
    follower = PathFollower(FixedPath([a, a, b, b]))

    before = follower.position
    follower.advance(1.0, 1.0)

    assert follower.position != before
    assert follower.segment_index == 1
    assert follower.fraction > 0.0


def test_rollover_across_zero_length_segment_keeps_carried_distance():
    a = Waypoint(0.0, 0.0)
    b = Waypoint(0.001, 0.0)
    c = Waypoint(0.001, 0.001)
    follower = PathFollower(FixedPath([a, b, b, c]))

    position = follower.advance(1.5 * distance_meters(a, b), 1.0)

    assert follower.segment_index == 2
    assert follower.fraction == pytest.approx(0.5, abs=1e-9)
    assert position.latitude == pytest.approx(0.001)
    assert position.longitude == pytest.approx(0.0005)


def test_advance_interpolates_along_segment():
    a = Waypoint(0.0, 0.0)
    b = Waypoint(0.001, 0.0)
    follower = PathFollower(FixedPath([a, b]))
    length = distance_meters(a, b)

    position = follower.advance(length / 4, 1.0)

    assert follower.fraction == pytest.approx(0.25)
    assert position.latitude == pytest.approx(0.00025)
    assert follower.bearing() == pytest.approx(0.0)


def test_next_sample_reports_speed_and_segment_bearing():
    a = Waypoint(0.0, 0.0)
    b = Waypoint(0.0, 0.001)
    follower = PathFollower(FixedPath([a, b]))

    sample = follower.next_sample(0.5, 1.0)

    assert sample.speed == 0.5
    assert sample.bearing == pytest.approx(90.0)
    assert sample.accuracy == 3.0


def test_stationary_sample_jitters_in_place(small_loop):
    follower = PathFollower(FixedPath(small_loop), rng=random.Random(3))
    origin = follower.position

    for _ in range(20):
        sample = follower.next_sample(0.0, 1.0)
        assert sample.speed == 0.0
        assert abs(sample.latitude - origin.latitude) <= 5e-6
        assert abs(sample.longitude - origin.longitude) <= 5e-6
        assert 0.0 <= sample.bearing < 360.0

    assert follower.segment_index == 0
    assert follower.fraction == 0.0


def test_follows_procedural_path_with_bounded_buffer():
    route = ProceduralPath(Waypoint(39.0, 121.0), seed=11, turn_probability=0.0)
    follower = PathFollower(route)

    for _ in range(1000):
        follower.advance(1.0, 1.0)

    # 1000 m at just under 3 m per northward segment
    assert follower.segment_index == pytest.approx(333, abs=2)
    assert route.buffered <= 201
    assert follower.distance_traveled == pytest.approx(1000.0)


def test_reset_returns_to_start(small_loop):
    follower = PathFollower(FixedPath(small_loop))
    follower.advance(15.0, 1.0)
    follower.reset()

    assert follower.segment_index == 0
    assert follower.fraction == 0.0
    assert follower.position == small_loop[0]
    assert follower.laps_completed == 0
