from datetime import timedelta

import pytest
from sqlmodel import select

from conftest import COMPANY_ADMIN, EMPLOYEE, HQ_LAT, HQ_LNG, PLATFORM_ADMIN, T0
from core.auth_context import AuthContext
from core.exceptions import InvalidCoordinate, InvalidZone, Unauthorized, ZoneNotFound
from models.employee_geofence import EmployeeGeofenceAssignment
from models.geofence_zone import GeofenceZone
from services.assignment_service import AssignmentService
from services.attendance_service import AttendanceService
from services.zone_service import ZoneService

OTHER_ADMIN = AuthContext(employee_id="admin-9", company_id="globex", is_admin=True)


def test_company_admin_creates_company_zone(session):
    zone = ZoneService.create_zone(
        session, COMPANY_ADMIN, name="  Warehouse ", latitude=HQ_LAT, longitude=HQ_LNG, radius_meters=150
    )
    assert zone.id is not None
    assert zone.name == "Warehouse"
    assert zone.company_id == "acme"
    assert zone.is_active is True
    assert zone.radius_meters == 150.0


def test_platform_admin_creates_global_zone(session):
    zone = ZoneService.create_zone(
        session, PLATFORM_ADMIN, name="HQ", latitude=HQ_LAT, longitude=HQ_LNG, radius_meters=100, is_global=True
    )
    assert zone.company_id is None


def test_company_admin_cannot_create_global_zone(session):
    with pytest.raises(Unauthorized):
        ZoneService.create_zone(
            session, COMPANY_ADMIN, name="HQ", latitude=HQ_LAT, longitude=HQ_LNG, radius_meters=100, is_global=True
        )


def test_employee_cannot_create_zone(session):
    with pytest.raises(Unauthorized):
        ZoneService.create_zone(session, EMPLOYEE, name="HQ", latitude=HQ_LAT, longitude=HQ_LNG, radius_meters=100)


@pytest.mark.parametrize(
    "overrides,error",
    [
        ({"name": ""}, InvalidZone),
        ({"name": "   "}, InvalidZone),
        ({"radius_meters": 0}, InvalidZone),
        ({"radius_meters": -10}, InvalidZone),
        ({"radius_meters": float("inf")}, InvalidZone),
        ({"radius_meters": float("nan")}, InvalidZone),
        ({"radius_meters": None}, InvalidZone),
        ({"radius_meters": "wide"}, InvalidZone),
        ({"latitude": 91.0}, InvalidCoordinate),
        ({"longitude": -200.0}, InvalidCoordinate),
    ],
)
def test_create_zone_validates_fields(session, overrides, error):
    fields = dict(name="Warehouse", latitude=HQ_LAT, longitude=HQ_LNG, radius_meters=150.0)
    fields.update(overrides)
    with pytest.raises(error):
        ZoneService.create_zone(session, COMPANY_ADMIN, **fields)
    assert session.exec(select(GeofenceZone)).all() == []


def test_list_zones_is_scoped_to_company_plus_global(session, make_zone):
    make_zone(name="HQ")
    make_zone(name="Acme Yard", company_id="acme")
    make_zone(name="Globex Plant", company_id="globex")
    make_zone(name="Acme Old", company_id="acme", is_active=False)

    assert [z.name for z in ZoneService.list_zones(session, "acme")] == ["Acme Old", "Acme Yard", "HQ"]
    assert [z.name for z in ZoneService.list_zones(session, "acme", active_only=True)] == ["Acme Yard", "HQ"]
    assert [z.name for z in ZoneService.list_zones(session, None)] == ["HQ"]


def test_visible_zones_are_global_plus_assigned_and_active(session, make_zone):
    hq = make_zone(name="HQ", created_at=T0 - timedelta(days=2))
    yard = make_zone(name="Yard", company_id="acme", created_at=T0 - timedelta(days=1))
    make_zone(name="Other", company_id="acme")
    closed = make_zone(name="Closed", company_id="acme", is_active=False)
    AssignmentService.assign_zone(session, COMPANY_ADMIN, "emp-1", yard.id)
    AssignmentService.assign_zone(session, COMPANY_ADMIN, "emp-1", closed.id)

    visible = ZoneService.visible_zones_for_employee(session, "emp-1")

    assert [z.id for z in visible] == [hq.id, yard.id]
    assert [z.id for z in ZoneService.visible_zones_for_employee(session, "emp-2")] == [hq.id]


def test_update_zone_changes_only_given_fields(session, make_zone):
    zone = make_zone(name="Yard", company_id="acme")

    updated = ZoneService.update_zone(session, COMPANY_ADMIN, zone.id, {"radius_meters": 250.0, "name": None})

    assert updated.radius_meters == 250.0
    assert updated.name == "Yard"
    assert updated.updated_at is not None


def test_update_zone_validates_merged_fields(session, make_zone):
    zone = make_zone(name="Yard", company_id="acme")
    with pytest.raises(InvalidZone):
        ZoneService.update_zone(session, COMPANY_ADMIN, zone.id, {"radius_meters": 0})
    session.refresh(zone)
    assert zone.radius_meters == 100.0


def test_update_zone_rejects_infinite_radius(session, make_zone):
    zone = make_zone(name="Yard", company_id="acme")
    with pytest.raises(InvalidZone):
        ZoneService.update_zone(session, COMPANY_ADMIN, zone.id, {"radius_meters": float("inf")})


def test_update_zone_enforces_ownership(session, make_zone):
    ours = make_zone(name="Yard", company_id="acme")
    global_zone = make_zone(name="HQ")

    with pytest.raises(Unauthorized):
        ZoneService.update_zone(session, OTHER_ADMIN, ours.id, {"name": "Mine"})
    with pytest.raises(Unauthorized):
        ZoneService.update_zone(session, COMPANY_ADMIN, global_zone.id, {"name": "Mine"})

    assert ZoneService.update_zone(session, PLATFORM_ADMIN, global_zone.id, {"name": "Main HQ"}).name == "Main HQ"


def test_update_missing_zone_fails(session):
    with pytest.raises(ZoneNotFound):
        ZoneService.update_zone(session, COMPANY_ADMIN, 404, {"name": "x"})


def test_delete_unreferenced_zone_removes_it_and_its_assignments(session, make_zone):
    zone = make_zone(name="Yard", company_id="acme")
    AssignmentService.assign_zone(session, COMPANY_ADMIN, "emp-1", zone.id, make_primary=True)
    zone_id = zone.id

    assert ZoneService.delete_zone(session, COMPANY_ADMIN, zone_id) == "deleted"

    assert session.get(GeofenceZone, zone_id) is None
    assert session.exec(select(EmployeeGeofenceAssignment)).all() == []
    with pytest.raises(ZoneNotFound):
        ZoneService.get_zone(session, zone_id)


def test_delete_referenced_zone_deactivates_it(session, make_zone):
    zone = make_zone(name="HQ")
    AttendanceService.check_in(session, "emp-1", HQ_LAT, HQ_LNG, timestamp=T0)

    assert ZoneService.is_referenced(session, zone.id)
    assert ZoneService.delete_zone(session, PLATFORM_ADMIN, zone.id) == "deactivated"

    kept = ZoneService.get_zone(session, zone.id)
    assert kept.is_active is False
    assert ZoneService.visible_zones_for_employee(session, "emp-1") == []


def test_delete_requires_ownership(session, make_zone):
    zone = make_zone(name="Yard", company_id="acme")
    with pytest.raises(Unauthorized):
        ZoneService.delete_zone(session, OTHER_ADMIN, zone.id)
    with pytest.raises(Unauthorized):
        ZoneService.delete_zone(session, EMPLOYEE, zone.id)
