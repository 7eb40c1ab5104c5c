from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel


class AttendanceMode(str, Enum):
    GEOFENCING = "geofencing"
    LOCATION_TRACKING = "location_tracking"


# Employees without a row are in GEOFENCING mode
class AttendanceModeSetting(SQLModel, table=True):
    __tablename__ = "attendance_mode_setting"

    employee_id: str = Field(primary_key=True)
    attendance_mode: AttendanceMode = Field(default=AttendanceMode.GEOFENCING)
    updated_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_type=DateTime(timezone=True),
    )
