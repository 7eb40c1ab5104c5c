from datetime import datetime
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, field_serializer
from sqlmodel import Session

from core import config
from core.auth_context import AuthContext
from core.deps import get_auth_context
from core.exceptions import Unauthorized
from db.session import get_session
from models.attendance_mode import AttendanceMode
from models.attendance_record import AttendanceRecord, GeofenceStatus
from models.geofence_zone import GeofenceZone
from services.assignment_service import AssignmentService
from services.attendance_service import AttendanceService, GeofenceResult
from services.history_service import HistoryService
from services.zone_service import ZoneService
from utils.datetime_helpers import format_utc_datetime

router = APIRouter()


# --- Pydantic Models for Request Payloads ---


# Defines the Structure of Data for a Check In / Check Out Call
class PunchRequest(BaseModel):
    # Optional here so a missing coordinate surfaces as InvalidCoordinate, not a schema error
    latitude: float | None = None
    longitude: float | None = None
    timestamp: datetime | None = None
    # Admins may punch on behalf of an employee (kiosk); everyone else punches for themselves
    employee_id: str | None = None
    # Opaque reference to a photo captured at punch time; stored, never interpreted
    photo_ref: str | None = None


# --- Pydantic Models for Responses ---


class AttendanceRecordRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    employee_id: str
    attendance_mode: AttendanceMode
    check_in: datetime
    check_in_lat: float
    check_in_lng: float
    check_in_geofence_status: GeofenceStatus
    check_in_zone_id: Optional[int] = None
    check_in_distance_meters: Optional[float] = None
    check_in_photo_ref: Optional[str] = None
    check_out: Optional[datetime] = None
    check_out_lat: Optional[float] = None
    check_out_lng: Optional[float] = None
    check_out_geofence_status: Optional[GeofenceStatus] = None
    check_out_zone_id: Optional[int] = None
    check_out_distance_meters: Optional[float] = None
    check_out_photo_ref: Optional[str] = None

    @field_serializer("check_in", "check_out")
    def serialize_timestamps(self, dt: Optional[datetime]) -> Optional[str]:
        """Ensure timestamps are formatted as UTC with Z suffix"""
        return format_utc_datetime(dt)


class GeofenceRead(BaseModel):
    status: GeofenceStatus
    zone_id: Optional[int] = None
    zone_name: Optional[str] = None
    distance_meters: Optional[float] = None
    mode: AttendanceMode
    flagged: bool

    @classmethod
    def from_result(cls, result: GeofenceResult) -> "GeofenceRead":
        return cls(
            status=result.status,
            zone_id=result.zone_id,
            zone_name=result.zone_name,
            distance_meters=round(result.distance_meters, 2) if result.distance_meters is not None else None,
            mode=result.mode,
            flagged=result.flagged,
        )


class CheckInResponse(BaseModel):
    message: str
    attendance: AttendanceRecordRead
    geofence: GeofenceRead


class DurationRead(BaseModel):
    minutes: int
    hours: float


class CheckOutResponse(CheckInResponse):
    duration_seconds: float
    duration: DurationRead


class AttendanceStatsRead(BaseModel):
    total_days: int
    complete_days: int
    inside_checkins: int
    outside_checkins: int


class AttendanceStatusResponse(BaseModel):
    today: Optional[AttendanceRecordRead] = None
    stats: AttendanceStatsRead
    timezone: str


class AttendanceHistoryResponse(BaseModel):
    records: List[AttendanceRecordRead]


class VisibleZoneRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    latitude: float
    longitude: float
    radius_meters: float
    description: Optional[str] = None
    is_primary: bool = False


def to_record_read(record: AttendanceRecord) -> AttendanceRecordRead:
    return AttendanceRecordRead.model_validate(record)


def _punch_employee_id(data: PunchRequest, auth: AuthContext) -> str:
    if data.employee_id and data.employee_id != auth.employee_id:
        if not auth.is_admin:
            raise Unauthorized("You can only punch for yourself")
        return data.employee_id
    return auth.employee_id


def _check_can_view(auth: AuthContext, employee_id: str) -> None:
    if not auth.can_view_employee(employee_id):
        raise Unauthorized("You can only view your own attendance")


# --- API Endpoints ---


# Check In Endpoint
@router.post("/check-in", response_model=CheckInResponse)
def check_in(
    data: PunchRequest,
    session: Annotated[Session, Depends(get_session)],
    auth: Annotated[AuthContext, Depends(get_auth_context)],
):
    result = AttendanceService.check_in(
        session,
        employee_id=_punch_employee_id(data, auth),
        latitude=data.latitude,
        longitude=data.longitude,
        timestamp=data.timestamp,
        photo_ref=data.photo_ref,
    )
    return CheckInResponse(
        message="Checked in successfully",
        attendance=to_record_read(result.record),
        geofence=GeofenceRead.from_result(result.geofence),
    )


# Check Out Endpoint
@router.post("/check-out", response_model=CheckOutResponse)
def check_out(
    data: PunchRequest,
    session: Annotated[Session, Depends(get_session)],
    auth: Annotated[AuthContext, Depends(get_auth_context)],
):
    result = AttendanceService.check_out(
        session,
        employee_id=_punch_employee_id(data, auth),
        latitude=data.latitude,
        longitude=data.longitude,
        timestamp=data.timestamp,
        photo_ref=data.photo_ref,
    )
    duration_minutes = round(result.duration_seconds / 60)
    return CheckOutResponse(
        message="Checked out successfully",
        attendance=to_record_read(result.record),
        geofence=GeofenceRead.from_result(result.geofence),
        duration_seconds=result.duration_seconds,
        duration=DurationRead(minutes=duration_minutes, hours=round(duration_minutes / 60, 2)),
    )


@router.get("/status/{employee_id}", response_model=AttendanceStatusResponse)
def get_attendance_status(
    employee_id: str,
    session: Annotated[Session, Depends(get_session)],
    auth: Annotated[AuthContext, Depends(get_auth_context)],
):
    _check_can_view(auth, employee_id)

    today = AttendanceService.status(session, employee_id)
    stats = HistoryService.stats(session, employee_id, days=config.STATUS_STATS_DAYS)
    return AttendanceStatusResponse(
        today=to_record_read(today) if today else None,
        stats=AttendanceStatsRead(**stats.as_dict()),
        timezone=config.ATTENDANCE_TIMEZONE,
    )


@router.get("/history/{employee_id}", response_model=AttendanceHistoryResponse)
def get_attendance_history(
    employee_id: str,
    session: Annotated[Session, Depends(get_session)],
    auth: Annotated[AuthContext, Depends(get_auth_context)],
    days: Annotated[int, Query(ge=1, le=3660)] = config.DEFAULT_HISTORY_DAYS,
):
    _check_can_view(auth, employee_id)

    records = HistoryService.history(session, employee_id, since_days=days)
    return AttendanceHistoryResponse(records=[to_record_read(r) for r in records])


# Zones the caller is evaluated against (global + assigned, active only)
@router.get("/geofence/zones", response_model=List[VisibleZoneRead])
def get_my_geofence_zones(
    session: Annotated[Session, Depends(get_session)],
    auth: Annotated[AuthContext, Depends(get_auth_context)],
):
    zones: List[GeofenceZone] = ZoneService.visible_zones_for_employee(session, auth.employee_id)
    primary = AssignmentService.primary_zone(session, auth.employee_id)
    primary_id = primary.id if primary else None
    return [
        VisibleZoneRead.model_validate(zone).model_copy(update={"is_primary": zone.id == primary_id})
        for zone in zones
    ]
