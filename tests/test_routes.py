import pytest

from mock_location.constants import RouteKind
from mock_location.errors import InvalidRouteError
from mock_location.geodesy import distance_meters, initial_bearing_degrees
from mock_location.models import Waypoint
from mock_location.routes import FixedPath, ProceduralPath, RouteConfig, validate_waypoints


START = Waypoint(39.0851850966623, 121.80852250614294)


def test_fixed_path_indexes_cyclically(unit_square):
    path = FixedPath(unit_square)
    assert path.waypoint_at(0) == unit_square[0]
    assert path.waypoint_at(5) == unit_square[1]
    assert path.next_index(3) == 0
    assert path.segment(3) == (unit_square[3], unit_square[0])


@pytest.mark.parametrize("waypoints", [
    [],
    [Waypoint(1.0, 1.0)],
    [Waypoint(1.0, 1.0), Waypoint(1.0, 1.0), Waypoint(1.0, 1.0)],
])
def test_fixed_path_rejects_degenerate_routes(waypoints):
    with pytest.raises(InvalidRouteError):
        FixedPath(waypoints)


def test_fixed_path_rejects_out_of_range_coordinates():
    with pytest.raises(InvalidRouteError):
        validate_waypoints([Waypoint(95.0, 0.0), Waypoint(0.0, 0.0)])


def test_fixed_path_accepts_duplicate_consecutive_points():
    a, b = Waypoint(10.0, 10.0), Waypoint(10.001, 10.0)
    path = FixedPath([a, a, b])
    assert len(path) == 3


def test_fixed_path_status_reports_lap_length(unit_square):
    status = FixedPath(unit_square).get_status()
    assert status["type"] == "fixed"
    assert status["total_waypoints"] == 4
    assert status["lap_distance_m"] == pytest.approx(4 * 111195, rel=1e-3)


def test_procedural_path_is_reproducible_with_seed():
    a = ProceduralPath(START, seed=42)
    b = ProceduralPath(START, seed=42)
    assert [a.waypoint_at(i) for i in range(60)] == [b.waypoint_at(i) for i in range(60)]


def test_procedural_path_starts_at_start_point():
    path = ProceduralPath(START, seed=1)
    assert path.waypoint_at(0) == START
    assert path.start == START


def test_procedural_path_walks_straight_north_without_turns():
    path = ProceduralPath(START, seed=3, turn_probability=0.0)
    for i in range(10):
        a, b = path.segment(i)
        assert initial_bearing_degrees(a, b) == pytest.approx(0.0, abs=1e-6)
        assert distance_meters(a, b) == pytest.approx(3.0, rel=1e-2)


def test_procedural_path_turns_stay_within_max_angle():
    # on the equator the degree grid is square, so geodesic headings match the walk's
    path = ProceduralPath(Waypoint(0.0, 10.0), seed=11, turn_probability=1.0,
                          max_turn_angle=30.0)
    bearings = []
    for i in range(200):
        a, b = path.segment(i)
        bearings.append(initial_bearing_degrees(a, b))

    deltas = [abs((b - a + 180.0) % 360.0 - 180.0) for a, b in zip(bearings, bearings[1:])]
    assert max(deltas) <= 30.0 + 1e-3
    assert any(d > 1e-3 for d in deltas)


def test_procedural_path_extends_lazily_in_batches():
    path = ProceduralPath(START, seed=5, batch_size=50, initial_batch=100)
    assert path.buffered == 101

    assert path.ensure_available(100) is False
    assert path.ensure_available(101) is True
    assert path.buffered == 151

    path.waypoint_at(260)
    assert path.buffered == 301


def test_procedural_path_releases_consumed_waypoints():
    path = ProceduralPath(START, seed=5)
    path.waypoint_at(300)
    path.release_before(250)

    assert path.buffered < 150
    assert path.waypoint_at(250) is not None
    with pytest.raises(IndexError):
        path.waypoint_at(10)


def test_procedural_path_reset_restarts_from_origin():
    path = ProceduralPath(START, seed=9)
    first = [path.waypoint_at(i) for i in range(20)]
    path.waypoint_at(400)
    path.release_before(300)

    path.reset()

    assert [path.waypoint_at(i) for i in range(20)] == first


def test_unseeded_procedural_path_draws_new_seed_per_run():
    path = ProceduralPath(START)
    seeds = {path.active_seed}
    for _ in range(3):
        path.reset()
        seeds.add(path.active_seed)
    assert len(seeds) > 1


@pytest.mark.parametrize("kwargs", [
    {"segment_length": 0.0},
    {"turn_probability": 1.5},
    {"max_turn_angle": -1.0},
    {"batch_size": 0},
])
def test_procedural_path_rejects_bad_parameters(kwargs):
    with pytest.raises(InvalidRouteError):
        ProceduralPath(START, **kwargs)


def test_route_config_builds_fixed_path(unit_square):
    route = RouteConfig.fixed(unit_square).build()
    assert isinstance(route, FixedPath)
    assert route.waypoints == tuple(unit_square)


def test_route_config_builds_procedural_path():
    config = RouteConfig.procedural(10.0, 20.0, seed=7, segment_length=5.0)
    route = config.build()
    assert isinstance(route, ProceduralPath)
    assert config.kind == RouteKind.PROCEDURAL
    assert route.start == Waypoint(10.0, 20.0)
    assert route.segment_length == 5.0
    assert route.active_seed == 7


def test_route_config_fails_fast_on_single_point():
    with pytest.raises(InvalidRouteError):
        RouteConfig.fixed([Waypoint(0.0, 0.0)]).build()
