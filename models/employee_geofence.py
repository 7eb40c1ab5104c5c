from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, UniqueConstraint, text
from sqlmodel import Field, Index, SQLModel


class EmployeeGeofenceAssignment(SQLModel, table=True):
    __tablename__ = "employee_geofence_assignment"

    __table_args__ = (
        UniqueConstraint("employee_id", "zone_id", name="uq_employee_geofence_assignment"),
        Index("ix_employee_geofence_assignment_employee_id", "employee_id"),
        # At most one primary zone per employee
        Index(
            "ux_employee_geofence_assignment_primary",
            "employee_id",
            unique=True,
            postgresql_where=text("is_primary"),
            sqlite_where=text("is_primary = 1"),
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    employee_id: str
    zone_id: int = Field(foreign_key="geofence_zone.id")
    is_primary: bool = Field(default=False)
    assigned_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_type=DateTime(timezone=True),
    )
