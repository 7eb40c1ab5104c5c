from typing import Annotated, Dict, List

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlmodel import Session

from api.attendance_routes import AttendanceRecordRead, to_record_read
from core import config
from core.auth_context import AuthContext
from core.deps import require_admin
from db.session import get_session
from services.history_service import HistoryService

router = APIRouter()

MAX_EMPLOYEES_PER_REPORT = 500


class AttendanceReportRequest(BaseModel):
    # Employee enumeration belongs to the employee directory; callers pass the ids
    employee_ids: List[str] = Field(min_length=1, max_length=MAX_EMPLOYEES_PER_REPORT)
    days: int = Field(default=config.DEFAULT_HISTORY_DAYS, ge=1, le=3660)


class AttendanceReportResponse(BaseModel):
    days: int
    results: Dict[str, List[AttendanceRecordRead]]


@router.post("/history", response_model=AttendanceReportResponse)
def get_attendance_report(
    data: AttendanceReportRequest,
    session: Annotated[Session, Depends(get_session)],
    admin: Annotated[AuthContext, Depends(require_admin)],
):
    histories = HistoryService.history_for_employees(session, data.employee_ids, since_days=data.days)
    return AttendanceReportResponse(
        days=data.days,
        results={
            employee_id: [to_record_read(r) for r in records]
            for employee_id, records in histories.items()
        },
    )
