from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional

from sqlmodel import Session, select

from db.session import store_errors
from models.attendance_record import AttendanceRecord, GeofenceStatus
from utils.datetime_helpers import utc_now


@dataclass(frozen=True)
class AttendanceStats:
    total_days: int
    complete_days: int
    inside_checkins: int
    outside_checkins: int

    def as_dict(self) -> dict:
        return asdict(self)


class HistoryService:

    @staticmethod
    def history(
        session: Session,
        employee_id: str,
        since_days: int,
        now: Optional[datetime] = None,
    ) -> List[AttendanceRecord]:
        """Records checked in within the last since_days days, most recent first."""
        if since_days < 1:
            raise ValueError("since_days must be at least 1")

        window_start = (now or utc_now()) - timedelta(days=since_days)
        with store_errors(session):
            return list(
                session.exec(
                    select(AttendanceRecord)
                    .where(AttendanceRecord.employee_id == employee_id)
                    .where(AttendanceRecord.check_in >= window_start)
                    .order_by(AttendanceRecord.check_in.desc(), AttendanceRecord.id.desc())
                ).all()
            )

    @staticmethod
    def history_for_employees(
        session: Session,
        employee_ids: Iterable[str],
        since_days: int,
        now: Optional[datetime] = None,
    ) -> Dict[str, List[AttendanceRecord]]:
        # Fan-out bounded by the caller's list; employee enumeration lives elsewhere
        now = now or utc_now()
        results: Dict[str, List[AttendanceRecord]] = {}
        for employee_id in dict.fromkeys(employee_ids):
            results[employee_id] = HistoryService.history(session, employee_id, since_days, now=now)
        return results

    @staticmethod
    def stats(
        session: Session,
        employee_id: str,
        days: int = 7,
        now: Optional[datetime] = None,
    ) -> AttendanceStats:
        records = HistoryService.history(session, employee_id, days, now=now)
        return AttendanceStats(
            total_days=len(records),
            complete_days=sum(1 for r in records if r.check_out is not None),
            inside_checkins=sum(1 for r in records if r.check_in_geofence_status == GeofenceStatus.INSIDE),
            outside_checkins=sum(1 for r in records if r.check_in_geofence_status == GeofenceStatus.OUTSIDE),
        )
