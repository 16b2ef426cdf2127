import pytest

from flightlog.config import config
from flightlog.geo import distance_between, estimate_duration, haversine_distance


def test_distance_to_self_is_zero():
    assert haversine_distance(40.6398, -73.7789, 40.6398, -73.7789) == 0


def test_jfk_to_lax_distance(airports):
    distance = distance_between(airports['JFK'], airports['LAX'])
    assert 3950 < distance < 4000


def test_distance_is_symmetric(airports):
    there = distance_between(airports['CDG'], airports['LHR'])
    back = distance_between(airports['LHR'], airports['CDG'])
    assert there == pytest.approx(back)


def test_estimate_duration_adds_overhead():
    expected = 800 / config.estimator.cruise_speed_kmh * 3600 + config.estimator.overhead_minutes * 60
    assert estimate_duration(800) == round(expected)


def test_estimate_duration_zero_distance():
    assert estimate_duration(0) == 0


def test_estimate_duration_grows_with_distance():
    assert estimate_duration(5000) > estimate_duration(500) > 0
