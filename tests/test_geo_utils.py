import math

import pytest

from utils.geo_utils import haversine_km, is_valid_coordinate, total_distance_km


def test_distance_between_identical_points_is_zero():
    assert haversine_km((12.97, 77.59), (12.97, 77.59)) == 0.0


def test_one_degree_of_longitude_on_the_equator():
    assert haversine_km((0.0, 0.0), (0.0, 1.0)) == pytest.approx(111.19, abs=0.5)


def test_one_degree_of_latitude_on_the_equator():
    assert haversine_km((0.0, 0.0), (1.0, 0.0)) == pytest.approx(111.19, abs=0.5)


def test_distance_is_commutative():
    a, b = (12.9716, 77.5946), (19.0760, 72.8777)
    assert haversine_km(a, b) == haversine_km(b, a)


@pytest.mark.parametrize("a, b", [
    ((-74.6, -180.0), (74.6, 0.0)),
    ((0.0, 0.0), (0.0, 180.0)),
    ((90.0, 0.0), (-90.0, 0.0)),
])
def test_antipodal_points_are_half_the_circumference(a, b):
    assert haversine_km(a, b) == pytest.approx(math.pi * 6371.0, rel=1e-6)


def test_antipodal_sweep_never_raises():
    for tenths in range(-895, 900, 7):
        lat = tenths / 10
        for lon in range(-180, 1, 15):
            distance = haversine_km((lat, float(lon)), (-lat, float(lon + 180)))
            assert distance == pytest.approx(math.pi * 6371.0, rel=1e-6)


def test_total_distance_of_short_sequences_is_zero():
    assert total_distance_km([]) == 0.0
    assert total_distance_km([(10.0, 10.0)]) == 0.0


def test_total_distance_sums_consecutive_legs():
    points = [(0.0, 0.0), (1.0, 0.0), (1.0, 0.0), (2.0, 0.0)]
    assert total_distance_km(points) == pytest.approx(2 * haversine_km((0.0, 0.0), (1.0, 0.0)))


@pytest.mark.parametrize("lat, lon", [
    (91.0, 0.0),
    (0.0, -180.5),
    (None, 10.0),
    ("12.9", 77.5),
    (True, 10.0),
    (math.nan, 0.0),
    (0.0, math.inf),
])
def test_invalid_coordinates_are_rejected(lat, lon):
    assert not is_valid_coordinate(lat, lon)


def test_boundary_coordinates_are_valid():
    assert is_valid_coordinate(-90, 180)
    assert is_valid_coordinate(90.0, -180.0)
