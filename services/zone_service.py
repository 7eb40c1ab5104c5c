import logging
import math
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import or_
from sqlmodel import Session, select

from core.auth_context import AuthContext
from core.exceptions import InvalidZone, Unauthorized, ZoneNotFound
from db.session import store_errors
from models.attendance_record import AttendanceRecord
from models.employee_geofence import EmployeeGeofenceAssignment
from models.geofence_zone import GeofenceZone
from utils.geofence import validate_coordinate

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("name", "latitude", "longitude", "radius_meters", "description", "is_active")


def validate_zone_fields(name: Optional[str], latitude, longitude, radius_meters) -> None:
    if not name or not str(name).strip():
        raise InvalidZone("Zone name is required")
    validate_coordinate(latitude, longitude)
    try:
        radius = float(radius_meters)
    except (TypeError, ValueError):
        raise InvalidZone(f"Invalid radius_meters: {radius_meters!r}")
    # Rejects inf and nan as well as non-positive radii
    if not (math.isfinite(radius) and radius > 0):
        raise InvalidZone("radius_meters must be a finite number greater than 0")


class ZoneService:

    @staticmethod
    def get_zone(session: Session, zone_id: int) -> GeofenceZone:
        with store_errors(session):
            zone = session.get(GeofenceZone, zone_id)
        if not zone:
            raise ZoneNotFound(f"Geofence zone {zone_id} not found")
        return zone

    @staticmethod
    def list_zones(
        session: Session,
        company_id: Optional[str],
        active_only: bool = False,
    ) -> List[GeofenceZone]:
        """Global zones plus the company's own zones, ordered by name."""
        statement = select(GeofenceZone)
        if company_id is None:
            statement = statement.where(GeofenceZone.company_id.is_(None))
        else:
            statement = statement.where(
                or_(GeofenceZone.company_id.is_(None), GeofenceZone.company_id == company_id)
            )
        if active_only:
            statement = statement.where(GeofenceZone.is_active.is_(True))

        with store_errors(session):
            return list(session.exec(statement.order_by(GeofenceZone.name, GeofenceZone.id)).all())

    @staticmethod
    def visible_zones_for_employee(session: Session, employee_id: str) -> List[GeofenceZone]:
        """Active global zones unioned with the employee's active assigned zones."""
        assigned_ids = select(EmployeeGeofenceAssignment.zone_id).where(
            EmployeeGeofenceAssignment.employee_id == employee_id
        )
        statement = (
            select(GeofenceZone)
            .where(GeofenceZone.is_active.is_(True))
            .where(or_(GeofenceZone.company_id.is_(None), GeofenceZone.id.in_(assigned_ids)))
            .order_by(GeofenceZone.created_at, GeofenceZone.id)
        )
        with store_errors(session):
            return list(session.exec(statement).all())

    @staticmethod
    def create_zone(
        session: Session,
        auth: AuthContext,
        *,
        name: str,
        latitude: float,
        longitude: float,
        radius_meters: float,
        description: Optional[str] = None,
        is_active: bool = True,
        is_global: bool = False,
    ) -> GeofenceZone:
        if not auth.is_admin:
            raise Unauthorized()
        if is_global and auth.company_id is not None:
            raise Unauthorized("Only platform administrators can create global zones")
        validate_zone_fields(name, latitude, longitude, radius_meters)

        zone = GeofenceZone(
            name=name.strip(),
            latitude=float(latitude),
            longitude=float(longitude),
            radius_meters=float(radius_meters),
            description=description,
            is_active=is_active,
            company_id=None if is_global else auth.company_id,
        )
        with store_errors(session):
            session.add(zone)
            session.commit()
            session.refresh(zone)

        logger.info(
            "Admin %s created geofence zone %s (%s) for company %s",
            auth.employee_id, zone.id, zone.name, zone.company_id or "<global>",
        )
        return zone

    @staticmethod
    def _require_mutable(auth: AuthContext, zone: GeofenceZone) -> None:
        # Company admins own their company's zones; global zones belong to platform admins
        if not auth.is_admin or zone.company_id != auth.company_id:
            raise Unauthorized("Geofence zone does not belong to your company")

    @staticmethod
    def update_zone(session: Session, auth: AuthContext, zone_id: int, changes: dict) -> GeofenceZone:
        zone = ZoneService.get_zone(session, zone_id)
        ZoneService._require_mutable(auth, zone)

        updates = {k: v for k, v in changes.items() if k in UPDATABLE_FIELDS and v is not None}
        merged = {field: updates.get(field, getattr(zone, field)) for field in UPDATABLE_FIELDS}
        validate_zone_fields(merged["name"], merged["latitude"], merged["longitude"], merged["radius_meters"])

        for field, value in updates.items():
            setattr(zone, field, value.strip() if field == "name" else value)
        zone.updated_at = datetime.now(timezone.utc)

        with store_errors(session):
            session.add(zone)
            session.commit()
            session.refresh(zone)

        logger.info("Admin %s updated geofence zone %s: %s", auth.employee_id, zone.id, sorted(updates))
        return zone

    @staticmethod
    def is_referenced(session: Session, zone_id: int) -> bool:
        statement = (
            select(AttendanceRecord.id)
            .where(
                or_(
                    AttendanceRecord.check_in_zone_id == zone_id,
                    AttendanceRecord.check_out_zone_id == zone_id,
                )
            )
            .limit(1)
        )
        with store_errors(session):
            return session.exec(statement).first() is not None

    @staticmethod
    def delete_zone(session: Session, auth: AuthContext, zone_id: int) -> str:
        """
        Hard delete an unreferenced zone (its assignments go with it), or
        soft-disable a zone that historical attendance records point at.

        Returns "deleted" or "deactivated".
        """
        zone = ZoneService.get_zone(session, zone_id)
        ZoneService._require_mutable(auth, zone)

        if ZoneService.is_referenced(session, zone_id):
            zone.is_active = False
            zone.updated_at = datetime.now(timezone.utc)
            with store_errors(session):
                session.add(zone)
                session.commit()
            logger.info("Admin %s deactivated referenced geofence zone %s", auth.employee_id, zone_id)
            return "deactivated"

        with store_errors(session):
            assignments = session.exec(
                select(EmployeeGeofenceAssignment).where(EmployeeGeofenceAssignment.zone_id == zone_id)
            ).all()
            for assignment in assignments:
                session.delete(assignment)
            session.flush()
            session.delete(zone)
            session.commit()
        logger.info("Admin %s deleted geofence zone %s", auth.employee_id, zone_id)
        return "deleted"
