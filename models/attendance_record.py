from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, text
from sqlmodel import Field, Index, SQLModel

from models.attendance_mode import AttendanceMode


class GeofenceStatus(str, Enum):
    INSIDE = "inside"
    OUTSIDE = "outside"
    UNKNOWN = "unknown"


# One row per check-in/check-out cycle; rows are never deleted
class AttendanceRecord(SQLModel, table=True):
    __tablename__ = "attendance_record"

    __table_args__ = (
        Index("ix_attendance_record_employee_id", "employee_id"),
        # Composite index for history queries (employee + time window)
        Index("ix_attendance_record_employee_id_check_in", "employee_id", "check_in"),
        # Exactly one open record per employee; makes concurrent check-ins collide
        Index(
            "ux_attendance_record_open",
            "employee_id",
            unique=True,
            postgresql_where=text("check_out IS NULL"),
            sqlite_where=text("check_out IS NULL"),
        ),
        Index("ix_attendance_record_check_in_zone_id", "check_in_zone_id"),
        Index("ix_attendance_record_check_out_zone_id", "check_out_zone_id"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    employee_id: str
    attendance_mode: AttendanceMode = Field(default=AttendanceMode.GEOFENCING)

    check_in: datetime = Field(sa_type=DateTime(timezone=True))
    check_in_lat: float
    check_in_lng: float
    check_in_geofence_status: GeofenceStatus
    check_in_zone_id: Optional[int] = Field(default=None)
    check_in_distance_meters: Optional[float] = Field(default=None)
    check_in_photo_ref: Optional[str] = Field(default=None)

    check_out: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    check_out_lat: Optional[float] = Field(default=None)
    check_out_lng: Optional[float] = Field(default=None)
    check_out_geofence_status: Optional[GeofenceStatus] = Field(default=None)
    check_out_zone_id: Optional[int] = Field(default=None)
    check_out_distance_meters: Optional[float] = Field(default=None)
    check_out_photo_ref: Optional[str] = Field(default=None)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_type=DateTime(timezone=True),
    )
