import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from core import config
from core.exceptions import (
    AlreadyCheckedIn,
    InvalidCheckoutTime,
    NotCheckedIn,
    OutsideGeofence,
    StoreUnavailable,
)
from db.session import store_errors
from models.attendance_mode import AttendanceMode
from models.attendance_record import AttendanceRecord, GeofenceStatus
from services.assignment_service import AssignmentService
from services.zone_resolver import UNKNOWN, ZoneResolution, resolve
from services.zone_service import ZoneService
from utils.datetime_helpers import to_utc, utc_now
from utils.geofence import validate_coordinate
from utils.timezone_helpers import reporting_day_bounds

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeofenceResult:
    status: GeofenceStatus
    zone_id: Optional[int]
    zone_name: Optional[str]
    distance_meters: Optional[float]
    mode: AttendanceMode
    # Hard signal for geofencing-mode employees who are not inside; never set in location_tracking
    flagged: bool

    @classmethod
    def from_resolution(cls, resolution: ZoneResolution, mode: AttendanceMode) -> "GeofenceResult":
        return cls(
            status=resolution.status,
            zone_id=resolution.zone_id,
            zone_name=resolution.zone_name,
            distance_meters=resolution.distance_meters,
            mode=mode,
            flagged=mode == AttendanceMode.GEOFENCING and resolution.status != GeofenceStatus.INSIDE,
        )


@dataclass(frozen=True)
class CheckInResult:
    record: AttendanceRecord
    geofence: GeofenceResult


@dataclass(frozen=True)
class CheckOutResult:
    record: AttendanceRecord
    geofence: GeofenceResult
    duration_seconds: float


class AttendanceService:
    """
    Check-in/check-out state machine.

    An employee is CHECKED_IN exactly when an attendance record with no check_out
    exists for them; that state is never stored anywhere else. The partial unique
    index on open records and the conditional check-out update make concurrent
    requests for one employee serialize at the database.
    """

    @staticmethod
    def open_record(session: Session, employee_id: str) -> Optional[AttendanceRecord]:
        with store_errors(session):
            return session.exec(
                select(AttendanceRecord)
                .where(AttendanceRecord.employee_id == employee_id)
                .where(AttendanceRecord.check_out.is_(None))
            ).first()

    @staticmethod
    def _evaluate(session: Session, employee_id: str, lat: float, lng: float) -> GeofenceResult:
        mode = AssignmentService.get_attendance_mode(session, employee_id)
        try:
            zones = ZoneService.visible_zones_for_employee(session, employee_id)
        except StoreUnavailable:
            # Never guess inside/outside when zones cannot be loaded
            logger.warning("Could not load geofence zones for employee %s; status unknown", employee_id)
            return GeofenceResult.from_resolution(UNKNOWN, mode)
        return GeofenceResult.from_resolution(resolve(lat, lng, zones), mode)

    @staticmethod
    def _enforce(geofence: GeofenceResult) -> None:
        if config.GEOFENCE_ENFORCEMENT != "block" or not geofence.flagged:
            return
        if geofence.status == GeofenceStatus.UNKNOWN:
            raise OutsideGeofence("No geofence zone is available to verify your location")
        raise OutsideGeofence(
            f"You must be within an assigned geofence zone to punch. "
            f"Nearest zone '{geofence.zone_name}' is {geofence.distance_meters:.0f}m away."
        )

    @staticmethod
    def check_in(
        session: Session,
        employee_id: str,
        latitude: float,
        longitude: float,
        timestamp: Optional[datetime] = None,
        photo_ref: Optional[str] = None,
    ) -> CheckInResult:
        lat, lng = validate_coordinate(latitude, longitude)
        check_in_time = to_utc(timestamp) if timestamp else utc_now()

        if AttendanceService.open_record(session, employee_id):
            raise AlreadyCheckedIn()

        geofence = AttendanceService._evaluate(session, employee_id, lat, lng)
        AttendanceService._enforce(geofence)

        record = AttendanceRecord(
            employee_id=employee_id,
            attendance_mode=geofence.mode,
            check_in=check_in_time,
            check_in_lat=lat,
            check_in_lng=lng,
            check_in_geofence_status=geofence.status,
            check_in_zone_id=geofence.zone_id,
            check_in_distance_meters=geofence.distance_meters,
            check_in_photo_ref=photo_ref,
        )
        try:
            with store_errors(session):
                session.add(record)
                session.commit()
                session.refresh(record)
        except IntegrityError:
            # Lost the race against a concurrent check-in for the same employee
            session.rollback()
            raise AlreadyCheckedIn()

        logger.info(
            "Employee %s checked in (record %s, %s, zone=%s, distance=%s, mode=%s)",
            employee_id, record.id, geofence.status.value, geofence.zone_name,
            geofence.distance_meters, geofence.mode.value,
        )
        return CheckInResult(record=record, geofence=geofence)

    @staticmethod
    def check_out(
        session: Session,
        employee_id: str,
        latitude: float,
        longitude: float,
        timestamp: Optional[datetime] = None,
        photo_ref: Optional[str] = None,
    ) -> CheckOutResult:
        lat, lng = validate_coordinate(latitude, longitude)
        check_out_time = to_utc(timestamp) if timestamp else utc_now()

        record = AttendanceService.open_record(session, employee_id)
        if record is None:
            raise NotCheckedIn()

        check_in_time = to_utc(record.check_in)
        if check_out_time <= check_in_time:
            raise InvalidCheckoutTime(
                f"Check-out time {check_out_time.isoformat()} must be later than "
                f"check-in time {check_in_time.isoformat()}"
            )

        geofence = AttendanceService._evaluate(session, employee_id, lat, lng)
        AttendanceService._enforce(geofence)

        statement = (
            update(AttendanceRecord)
            .where(AttendanceRecord.id == record.id)
            .where(AttendanceRecord.check_out.is_(None))
            .values(
                check_out=check_out_time,
                check_out_lat=lat,
                check_out_lng=lng,
                check_out_geofence_status=geofence.status,
                check_out_zone_id=geofence.zone_id,
                check_out_distance_meters=geofence.distance_meters,
                check_out_photo_ref=photo_ref,
            )
        )
        with store_errors(session):
            result = session.connection().execute(statement)
            if result.rowcount == 0:
                # A concurrent check-out closed the record first
                session.rollback()
                raise NotCheckedIn()
            session.commit()
            session.refresh(record)

        duration_seconds = (check_out_time - check_in_time).total_seconds()
        logger.info(
            "Employee %s checked out (record %s, %s, zone=%s, duration=%.0fs)",
            employee_id, record.id, geofence.status.value, geofence.zone_name, duration_seconds,
        )
        return CheckOutResult(record=record, geofence=geofence, duration_seconds=duration_seconds)

    @staticmethod
    def status(
        session: Session, employee_id: str, now: Optional[datetime] = None
    ) -> Optional[AttendanceRecord]:
        """Most recent record whose check-in falls on today's reporting day, if any."""
        start, end = reporting_day_bounds(now or utc_now(), config.ATTENDANCE_TIMEZONE)
        with store_errors(session):
            return session.exec(
                select(AttendanceRecord)
                .where(AttendanceRecord.employee_id == employee_id)
                .where(AttendanceRecord.check_in >= start)
                .where(AttendanceRecord.check_in < end)
                .order_by(AttendanceRecord.check_in.desc(), AttendanceRecord.id.desc())
                .limit(1)
            ).first()
