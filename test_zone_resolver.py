from datetime import datetime, timedelta, timezone

import pytest

from conftest import HQ_LAT, HQ_LNG, POINT_500M_NORTH
from models.attendance_record import GeofenceStatus
from models.geofence_zone import GeofenceZone
from services.zone_resolver import resolve
from utils.geofence import distance_meters

CREATED = datetime(2026, 1, 1, tzinfo=timezone.utc)


def zone(id, name, lat=HQ_LAT, lng=HQ_LNG, radius=100.0, created_at=CREATED):
    return GeofenceZone(
        id=id, name=name, latitude=lat, longitude=lng, radius_meters=radius, created_at=created_at
    )


def test_empty_candidate_set_is_unknown():
    result = resolve(HQ_LAT, HQ_LNG, [])
    assert result.status == GeofenceStatus.UNKNOWN
    assert result.nearest_zone is None
    assert result.distance_meters is None
    assert result.zone_name is None


def test_point_at_center_is_inside():
    result = resolve(HQ_LAT, HQ_LNG, [zone(1, "HQ")])
    assert result.status == GeofenceStatus.INSIDE
    assert result.zone_name == "HQ"
    assert result.distance_meters == pytest.approx(0.0, abs=1e-6)


def test_point_500m_away_is_outside_with_nearest_zone():
    result = resolve(*POINT_500M_NORTH, [zone(1, "HQ")])
    assert result.status == GeofenceStatus.OUTSIDE
    assert result.zone_name == "HQ"
    assert result.distance_meters == pytest.approx(500.0, abs=1.0)


def test_boundary_is_inside_and_just_beyond_is_not():
    d = distance_meters(*POINT_500M_NORTH, HQ_LAT, HQ_LNG)

    on_edge = resolve(*POINT_500M_NORTH, [zone(1, "HQ", radius=d)])
    assert on_edge.status == GeofenceStatus.INSIDE

    beyond = resolve(*POINT_500M_NORTH, [zone(1, "HQ", radius=d - 1e-6)])
    assert beyond.status == GeofenceStatus.OUTSIDE


def test_inside_picks_closest_containing_zone():
    big_far = zone(1, "Campus", lat=HQ_LAT + 0.002, radius=1000.0)
    small_near = zone(2, "Lobby", radius=50.0)
    result = resolve(HQ_LAT, HQ_LNG, [big_far, small_near])
    assert result.status == GeofenceStatus.INSIDE
    assert result.zone_name == "Lobby"


def test_containing_zone_wins_over_closer_non_containing_zone():
    # Tiny zone centered 30 m away does not contain the point; a large one 200 m away does
    tiny_close = zone(1, "Kiosk", lat=HQ_LAT + 0.00027, radius=5.0)
    large = zone(2, "Park", lat=HQ_LAT - 0.0018, radius=400.0)
    result = resolve(HQ_LAT, HQ_LNG, [tiny_close, large])
    assert result.status == GeofenceStatus.INSIDE
    assert result.zone_name == "Park"


def test_outside_picks_globally_nearest_zone():
    near = zone(1, "Near", lat=HQ_LAT + 0.01, radius=10.0)
    far = zone(2, "Far", lat=HQ_LAT + 0.05, radius=10.0)
    result = resolve(HQ_LAT, HQ_LNG, [far, near])
    assert result.status == GeofenceStatus.OUTSIDE
    assert result.zone_name == "Near"


def test_distance_ties_go_to_earliest_created_zone():
    later = zone(1, "Later", created_at=CREATED + timedelta(days=1))
    earlier = zone(2, "Earlier", created_at=CREATED)
    assert resolve(HQ_LAT, HQ_LNG, [later, earlier]).zone_name == "Earlier"
    assert resolve(HQ_LAT, HQ_LNG, [earlier, later]).zone_name == "Earlier"


def test_same_creation_time_ties_go_to_lowest_id():
    a = zone(7, "Seven")
    b = zone(3, "Three")
    assert resolve(*POINT_500M_NORTH, [a, b]).zone_name == "Three"


def test_resolution_is_deterministic():
    zones = [zone(1, "A", lat=HQ_LAT + 0.01), zone(2, "B", lat=HQ_LAT - 0.01)]
    first = resolve(HQ_LAT, HQ_LNG, zones)
    for _ in range(5):
        assert resolve(HQ_LAT, HQ_LNG, list(reversed(zones))) == first
