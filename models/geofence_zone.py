from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import Field, Index, SQLModel


# Circular geofence (center + radius); company_id = None means the zone is global
class GeofenceZone(SQLModel, table=True):
    __tablename__ = "geofence_zone"

    __table_args__ = (
        Index("ix_geofence_zone_company_id", "company_id"),
        Index("ix_geofence_zone_is_active", "is_active"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(..., description="Human-friendly zone name")
    latitude: float = Field(..., description="Latitude of zone center")
    longitude: float = Field(..., description="Longitude of zone center")
    radius_meters: float = Field(..., description="Allowed check-in radius in meters")
    description: Optional[str] = Field(default=None)
    is_active: bool = Field(default=True)
    company_id: Optional[str] = Field(default=None)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_type=DateTime(timezone=True),
    )
    updated_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
