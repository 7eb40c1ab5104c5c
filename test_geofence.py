import math

import pytest

from conftest import HQ_LAT, HQ_LNG, POINT_500M_NORTH
from core.exceptions import InvalidCoordinate
from utils.geofence import distance_meters, is_within_radius, validate_coordinate

PAIRS = [
    ((HQ_LAT, HQ_LNG), POINT_500M_NORTH),
    ((0.0, 0.0), (0.0, 180.0)),
    ((51.5074, -0.1278), (40.7128, -74.0060)),
    ((-33.8688, 151.2093), (35.6762, 139.6503)),
    ((89.9, 10.0), (-89.9, -170.0)),
]


@pytest.mark.parametrize("a,b", PAIRS)
def test_distance_is_symmetric(a, b):
    assert distance_meters(*a, *b) == distance_meters(*b, *a)


@pytest.mark.parametrize("point", [p for pair in PAIRS for p in pair])
def test_distance_to_self_is_zero(point):
    assert distance_meters(*point, *point) == pytest.approx(0.0, abs=1e-6)


def test_distance_matches_known_values():
    assert distance_meters(HQ_LAT, HQ_LNG, *POINT_500M_NORTH) == pytest.approx(500.0, abs=0.5)
    # London -> New York is roughly 5,570 km
    assert distance_meters(51.5074, -0.1278, 40.7128, -74.0060) == pytest.approx(5_570_000, rel=0.01)
    # Half the circumference for antipodal points on the equator
    assert distance_meters(0.0, 0.0, 0.0, 180.0) == pytest.approx(math.pi * 6371000)


def test_distance_is_never_negative():
    for a, b in PAIRS:
        assert distance_meters(*a, *b) >= 0


def test_within_radius_is_boundary_inclusive():
    d = distance_meters(HQ_LAT, HQ_LNG, *POINT_500M_NORTH)
    assert is_within_radius(*POINT_500M_NORTH, HQ_LAT, HQ_LNG, d)
    assert not is_within_radius(*POINT_500M_NORTH, HQ_LAT, HQ_LNG, d - 1e-6)


@pytest.mark.parametrize(
    "lat,lng",
    [
        (None, 77.0),
        (12.0, None),
        (90.0001, 0.0),
        (-91, 0.0),
        (0.0, 180.5),
        (0.0, -181),
        (float("nan"), 0.0),
        (0.0, float("inf")),
        ("north", 0.0),
    ],
)
def test_validate_coordinate_rejects_invalid(lat, lng):
    with pytest.raises(InvalidCoordinate):
        validate_coordinate(lat, lng)


def test_validate_coordinate_accepts_extremes_and_strings():
    assert validate_coordinate(90, -180) == (90.0, -180.0)
    assert validate_coordinate("12.5", "77.25") == (12.5, 77.25)
