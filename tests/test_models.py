import math
from datetime import datetime, timezone

from mock_location.models import FollowerState, LocationHistory, LocationSample, Waypoint


def _sample(bearing):
    return LocationSample.at(1.0, 2.0, speed=0.5, bearing=bearing)


def test_history_evicts_oldest_first():
    history = LocationHistory(5)
    for bearing in range(7):
        history.push(_sample(float(bearing)))

    assert len(history) == 5
    assert history.bearings() == [2.0, 3.0, 4.0, 5.0, 6.0]
    assert history.last().bearing == 6.0


def test_history_clear():
    history = LocationHistory(3)
    history.push(_sample(1.0))
    history.clear()
    assert len(history) == 0
    assert history.last() is None


def test_sample_altitude_follows_position():
    sample = LocationSample.at(39.08, 121.80, speed=0.0, bearing=0.0)
    expected = 50.0 + 5.0 * math.sin(39.08 * 100) + 5.0 * math.cos(121.80 * 100)
    assert sample.altitude == expected
    assert 40.0 <= sample.altitude <= 60.0


def test_sample_to_dict_is_serializable():
    ts = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)
    data = LocationSample.at(1.0, 2.0, speed=0.3, bearing=45.0, timestamp=ts).to_dict()
    assert data["timestamp"] == "2024-05-01T12:00:00+00:00"
    assert data["latitude"] == 1.0
    assert data["accuracy"] == 3.0


def test_waypoint_from_lon_lat_pair():
    assert Waypoint.from_lon_lat([121.8, 39.0]) == Waypoint(39.0, 121.8)


def test_follower_state_reset():
    state = FollowerState(4, 0.7)
    state.reset()
    assert (state.segment_index, state.fraction) == (0, 0.0)
