from datetime import datetime
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict, field_serializer
from sqlmodel import Session

from core.auth_context import AuthContext
from core.deps import require_admin
from db.session import get_session
from services.zone_service import ZoneService
from utils.datetime_helpers import format_utc_datetime

# --- Router Definition ---
router = APIRouter()


# --- Pydantic Data Models ---
# Range and radius checks live in ZoneService so they surface as typed errors


# Base model: Common fields required or used by other zone models
class ZoneBase(BaseModel):
    name: str
    latitude: float
    longitude: float
    radius_meters: float
    description: Optional[str] = None


# Create model: Data needed when creating a NEW zone via POST
class ZoneCreate(ZoneBase):
    is_active: bool = True
    # Only platform admins (no company) may create zones visible to every company
    is_global: bool = False


# Update model: Defines fields that CAN be updated via PUT (all optional)
class ZoneUpdate(BaseModel):
    name: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    radius_meters: Optional[float] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None


# Read model: Defines how zone data should look when sent back in responses
class ZoneRead(ZoneBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    is_active: bool
    company_id: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    @field_serializer("created_at", "updated_at")
    def serialize_timestamps(self, dt: Optional[datetime]) -> Optional[str]:
        return format_utc_datetime(dt)


class ZoneDeleteResponse(BaseModel):
    message: str
    zone_id: int
    result: str  # "deleted" or "deactivated"


# --- API Endpoints ---


# Endpoint: List zones visible to the admin's company (global + company scoped)
@router.get("/zones", response_model=List[ZoneRead])
def list_zones(
    session: Annotated[Session, Depends(get_session)],
    admin: Annotated[AuthContext, Depends(require_admin)],
):
    zones = ZoneService.list_zones(session, admin.company_id)
    return [ZoneRead.model_validate(zone) for zone in zones]


# Endpoint: Create a New Zone
@router.post("/zones", response_model=ZoneRead, status_code=status.HTTP_201_CREATED)
def create_zone(
    zone_in: ZoneCreate,
    session: Annotated[Session, Depends(get_session)],
    admin: Annotated[AuthContext, Depends(require_admin)],
):
    zone = ZoneService.create_zone(session, admin, **zone_in.model_dump())
    return ZoneRead.model_validate(zone)


# Endpoint: Update an Existing Zone (partial)
@router.put("/zones/{zone_id}", response_model=ZoneRead)
def update_zone(
    zone_id: int,
    zone_in: ZoneUpdate,
    session: Annotated[Session, Depends(get_session)],
    admin: Annotated[AuthContext, Depends(require_admin)],
):
    zone = ZoneService.update_zone(session, admin, zone_id, zone_in.model_dump(exclude_unset=True))
    return ZoneRead.model_validate(zone)


# Endpoint: Delete a Zone (soft-disabled when attendance records reference it)
@router.delete("/zones/{zone_id}", response_model=ZoneDeleteResponse)
def delete_zone(
    zone_id: int,
    session: Annotated[Session, Depends(get_session)],
    admin: Annotated[AuthContext, Depends(require_admin)],
):
    result = ZoneService.delete_zone(session, admin, zone_id)
    message = (
        "Geofence zone deleted"
        if result == "deleted"
        else "Geofence zone is referenced by attendance records and was deactivated"
    )
    return ZoneDeleteResponse(message=message, zone_id=zone_id, result=result)
