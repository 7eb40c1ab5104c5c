from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional

from models.attendance_record import GeofenceStatus
from models.geofence_zone import GeofenceZone
from utils.datetime_helpers import to_utc
from utils.geofence import distance_meters


@dataclass(frozen=True)
class ZoneResolution:
    status: GeofenceStatus
    nearest_zone: Optional[GeofenceZone] = None
    distance_meters: Optional[float] = None

    @property
    def zone_id(self) -> Optional[int]:
        return self.nearest_zone.id if self.nearest_zone else None

    @property
    def zone_name(self) -> Optional[str]:
        return self.nearest_zone.name if self.nearest_zone else None


UNKNOWN = ZoneResolution(status=GeofenceStatus.UNKNOWN)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _creation_key(zone: GeofenceZone) -> tuple:
    created_at = to_utc(zone.created_at) if zone.created_at else None
    # Zones without a timestamp sort after dated ones
    return (created_at is None, created_at or _EPOCH, zone.id if zone.id is not None else 0)


def resolve(lat: float, lng: float, candidate_zones: Iterable[GeofenceZone]) -> ZoneResolution:
    """
    Evaluate a validated coordinate against the zones visible to an employee.

    inside:  the containing zone (distance <= radius) with the smallest distance.
    outside: the nearest zone overall.
    unknown: no candidate zones at all; callers must not treat this as a pass.

    Ties on distance go to the earliest-created zone (then lowest id). Pure: no
    clock, no I/O, same input gives the same output.
    """
    measured = [
        (distance_meters(lat, lng, zone.latitude, zone.longitude), _creation_key(zone), zone)
        for zone in candidate_zones
    ]
    if not measured:
        return UNKNOWN

    containing = [m for m in measured if m[0] <= m[2].radius_meters]
    if containing:
        distance, _, zone = min(containing, key=lambda m: (m[0], m[1]))
        return ZoneResolution(GeofenceStatus.INSIDE, zone, distance)

    distance, _, zone = min(measured, key=lambda m: (m[0], m[1]))
    return ZoneResolution(GeofenceStatus.OUTSIDE, zone, distance)
