import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple, Union

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from core.auth_context import AuthContext
from core.exceptions import (
    AssignmentNotFound,
    InvalidAttendanceMode,
    StoreUnavailable,
    Unauthorized,
)
from db.session import store_errors
from models.attendance_mode import AttendanceMode, AttendanceModeSetting
from models.employee_geofence import EmployeeGeofenceAssignment
from models.geofence_zone import GeofenceZone
from services.zone_service import ZoneService

logger = logging.getLogger(__name__)

# Concurrent writers for the same employee collide on the unique indexes; the loser retries
MAX_UPSERT_ATTEMPTS = 3


def parse_attendance_mode(mode: Union[str, AttendanceMode, None]) -> AttendanceMode:
    try:
        return AttendanceMode(mode)
    except ValueError:
        raise InvalidAttendanceMode(
            f"Invalid attendance mode {mode!r}; expected 'geofencing' or 'location_tracking'"
        )


class AssignmentService:

    # --- Attendance mode ---

    @staticmethod
    def get_attendance_mode(session: Session, employee_id: str) -> AttendanceMode:
        with store_errors(session):
            setting = session.get(AttendanceModeSetting, employee_id)
        return setting.attendance_mode if setting else AttendanceMode.GEOFENCING

    @staticmethod
    def set_attendance_mode(
        session: Session, employee_id: str, mode: Union[str, AttendanceMode]
    ) -> AttendanceModeSetting:
        """Idempotent; applies from the next check-in/out, past records are left as they are."""
        mode = parse_attendance_mode(mode)

        for attempt in range(1, MAX_UPSERT_ATTEMPTS + 1):
            try:
                with store_errors(session):
                    setting = session.get(AttendanceModeSetting, employee_id)
                    if setting is None:
                        setting = AttendanceModeSetting(employee_id=employee_id, attendance_mode=mode)
                    elif setting.attendance_mode == mode:
                        return setting
                    else:
                        setting.attendance_mode = mode
                        setting.updated_at = datetime.now(timezone.utc)
                    session.add(setting)
                    session.commit()
                    session.refresh(setting)
                logger.info("Attendance mode for employee %s set to %s", employee_id, mode.value)
                return setting
            except IntegrityError:
                session.rollback()
                logger.warning(
                    "Concurrent attendance mode write for employee %s (attempt %d)", employee_id, attempt
                )
        raise StoreUnavailable("Could not save attendance mode, please retry")

    # --- Employee <-> zone assignments ---

    @staticmethod
    def assign_zone(
        session: Session,
        auth: AuthContext,
        employee_id: str,
        zone_id: int,
        make_primary: bool = False,
    ) -> EmployeeGeofenceAssignment:
        """
        Upsert the (employee, zone) assignment with is_primary = make_primary.

        Promoting a zone demotes the previous primary in the same transaction, so
        an employee never ends up with two primaries.
        """
        if not auth.is_admin:
            raise Unauthorized()
        zone = ZoneService.get_zone(session, zone_id)
        if zone.company_id is not None and zone.company_id != auth.company_id:
            raise Unauthorized("Geofence zone does not belong to your company")

        for attempt in range(1, MAX_UPSERT_ATTEMPTS + 1):
            try:
                with store_errors(session):
                    assignment = AssignmentService._upsert(session, employee_id, zone_id, make_primary)
                    session.commit()
                    session.refresh(assignment)
                logger.info(
                    "Admin %s assigned zone %s to employee %s (primary=%s)",
                    auth.employee_id, zone_id, employee_id, make_primary,
                )
                return assignment
            except IntegrityError:
                session.rollback()
                logger.warning(
                    "Concurrent assignment write for employee %s (attempt %d)", employee_id, attempt
                )
        raise StoreUnavailable("Could not save zone assignment, please retry")

    @staticmethod
    def _upsert(
        session: Session, employee_id: str, zone_id: int, make_primary: bool
    ) -> EmployeeGeofenceAssignment:
        # Lock the employee's rows (no-op on SQLite) so concurrent promotions serialize
        rows = session.exec(
            select(EmployeeGeofenceAssignment)
            .where(EmployeeGeofenceAssignment.employee_id == employee_id)
            .with_for_update()
        ).all()

        if make_primary:
            for row in rows:
                if row.is_primary and row.zone_id != zone_id:
                    row.is_primary = False
                    session.add(row)
            # Demotion must reach the database before the promotion
            session.flush()

        assignment = next((row for row in rows if row.zone_id == zone_id), None)
        if assignment is None:
            assignment = EmployeeGeofenceAssignment(
                employee_id=employee_id, zone_id=zone_id, is_primary=make_primary
            )
        else:
            assignment.is_primary = make_primary
        session.add(assignment)
        session.flush()
        return assignment

    @staticmethod
    def remove_zone_assignment(
        session: Session, auth: AuthContext, employee_id: str, zone_id: int
    ) -> dict:
        """
        Delete the assignment. Removing the primary leaves the employee without
        one; nothing is promoted automatically and the caller is told so.
        """
        if not auth.is_admin:
            raise Unauthorized()

        with store_errors(session):
            # Ownership is checked before existence
            zone = session.get(GeofenceZone, zone_id)
            if zone is not None and zone.company_id is not None and zone.company_id != auth.company_id:
                raise Unauthorized("Zone does not belong to your company")

            assignment = session.exec(
                select(EmployeeGeofenceAssignment)
                .where(EmployeeGeofenceAssignment.employee_id == employee_id)
                .where(EmployeeGeofenceAssignment.zone_id == zone_id)
            ).first()
            if assignment is None:
                raise AssignmentNotFound(
                    f"Employee {employee_id} is not assigned to geofence zone {zone_id}"
                )

            primary_removed = assignment.is_primary
            session.delete(assignment)
            session.commit()

        if primary_removed:
            logger.warning(
                "Primary zone %s removed from employee %s; employee now has no primary zone",
                zone_id, employee_id,
            )
        else:
            logger.info("Admin %s removed zone %s from employee %s", auth.employee_id, zone_id, employee_id)
        return {"employee_id": employee_id, "zone_id": zone_id, "primary_removed": primary_removed}

    @staticmethod
    def list_employee_zones(
        session: Session, employee_id: str
    ) -> List[Tuple[EmployeeGeofenceAssignment, GeofenceZone]]:
        """Assigned zones, primary first, then by zone name."""
        statement = (
            select(EmployeeGeofenceAssignment, GeofenceZone)
            .join(GeofenceZone, GeofenceZone.id == EmployeeGeofenceAssignment.zone_id)
            .where(EmployeeGeofenceAssignment.employee_id == employee_id)
            .order_by(EmployeeGeofenceAssignment.is_primary.desc(), GeofenceZone.name)
        )
        with store_errors(session):
            return [(assignment, zone) for assignment, zone in session.exec(statement).all()]

    @staticmethod
    def primary_zone(session: Session, employee_id: str) -> Optional[GeofenceZone]:
        statement = (
            select(GeofenceZone)
            .join(EmployeeGeofenceAssignment, GeofenceZone.id == EmployeeGeofenceAssignment.zone_id)
            .where(EmployeeGeofenceAssignment.employee_id == employee_id)
            .where(EmployeeGeofenceAssignment.is_primary.is_(True))
        )
        with store_errors(session):
            return session.exec(statement).first()
