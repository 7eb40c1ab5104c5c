from datetime import datetime
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, field_serializer
from sqlmodel import Session

from core.auth_context import AuthContext
from core.deps import require_admin
from db.session import get_session
from models.attendance_mode import AttendanceMode
from services.assignment_service import AssignmentService
from utils.datetime_helpers import format_utc_datetime

router = APIRouter()


# --- Pydantic Models ---


class ZoneAssignmentRequest(BaseModel):
    zone_id: int
    is_primary: bool = False


class ZoneAssignmentRead(BaseModel):
    employee_id: str
    zone_id: int
    is_primary: bool
    assigned_at: datetime

    @field_serializer("assigned_at")
    def serialize_assigned_at(self, dt: datetime) -> Optional[str]:
        return format_utc_datetime(dt)


class EmployeeZoneRead(BaseModel):
    zone_id: int
    name: str
    latitude: float
    longitude: float
    radius_meters: float
    description: Optional[str] = None
    is_active: bool
    is_primary: bool


class ZoneAssignmentRemoved(BaseModel):
    message: str
    employee_id: str
    zone_id: int
    # Removing the primary leaves no primary; the admin decides whether to pick a new one
    primary_removed: bool


class AttendanceModeRequest(BaseModel):
    # Plain string so an unknown mode surfaces as InvalidAttendanceMode
    attendance_mode: str


class AttendanceModeRead(BaseModel):
    employee_id: str
    attendance_mode: AttendanceMode


# --- API Endpoints ---


@router.post("/{employee_id}/geofence", response_model=ZoneAssignmentRead)
def assign_employee_zone(
    employee_id: str,
    data: ZoneAssignmentRequest,
    session: Annotated[Session, Depends(get_session)],
    admin: Annotated[AuthContext, Depends(require_admin)],
):
    assignment = AssignmentService.assign_zone(
        session, admin, employee_id, data.zone_id, make_primary=data.is_primary
    )
    return ZoneAssignmentRead(
        employee_id=assignment.employee_id,
        zone_id=assignment.zone_id,
        is_primary=assignment.is_primary,
        assigned_at=assignment.assigned_at,
    )


@router.get("/{employee_id}/geofence", response_model=List[EmployeeZoneRead])
def list_employee_zones(
    employee_id: str,
    session: Annotated[Session, Depends(get_session)],
    admin: Annotated[AuthContext, Depends(require_admin)],
):
    return [
        EmployeeZoneRead(
            zone_id=zone.id,
            name=zone.name,
            latitude=zone.latitude,
            longitude=zone.longitude,
            radius_meters=zone.radius_meters,
            description=zone.description,
            is_active=zone.is_active,
            is_primary=assignment.is_primary,
        )
        for assignment, zone in AssignmentService.list_employee_zones(session, employee_id)
        # Other companies' zones stay hidden
        if zone.company_id is None or zone.company_id == admin.company_id
    ]


@router.delete("/{employee_id}/geofence/{zone_id}", response_model=ZoneAssignmentRemoved)
def remove_employee_zone(
    employee_id: str,
    zone_id: int,
    session: Annotated[Session, Depends(get_session)],
    admin: Annotated[AuthContext, Depends(require_admin)],
):
    result = AssignmentService.remove_zone_assignment(session, admin, employee_id, zone_id)
    message = "Employee removed from geofence zone"
    if result["primary_removed"]:
        message += "; employee has no primary zone until a new one is assigned"
    return ZoneAssignmentRemoved(message=message, **result)


@router.get("/{employee_id}/attendance-mode", response_model=AttendanceModeRead)
def get_attendance_mode(
    employee_id: str,
    session: Annotated[Session, Depends(get_session)],
    admin: Annotated[AuthContext, Depends(require_admin)],
):
    mode = AssignmentService.get_attendance_mode(session, employee_id)
    return AttendanceModeRead(employee_id=employee_id, attendance_mode=mode)


@router.put("/{employee_id}/attendance-mode", response_model=AttendanceModeRead)
def set_attendance_mode(
    employee_id: str,
    data: AttendanceModeRequest,
    session: Annotated[Session, Depends(get_session)],
    admin: Annotated[AuthContext, Depends(require_admin)],
):
    setting = AssignmentService.set_attendance_mode(session, employee_id, data.attendance_mode)
    return AttendanceModeRead(employee_id=employee_id, attendance_mode=setting.attendance_mode)
