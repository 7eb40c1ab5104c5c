# utils/geofence.py

import math
from math import atan2, cos, radians, sin, sqrt

from core.exceptions import InvalidCoordinate

EARTH_RADIUS_METERS = 6371000  # mean Earth radius


def validate_coordinate(lat, lng) -> tuple[float, float]:
    """Reject missing, non-numeric, non-finite or out-of-range coordinates."""
    if lat is None or lng is None:
        raise InvalidCoordinate("latitude and longitude are required")
    try:
        lat, lng = float(lat), float(lng)
    except (TypeError, ValueError):
        raise InvalidCoordinate(f"Invalid coordinate: ({lat!r}, {lng!r})")

    if not (math.isfinite(lat) and math.isfinite(lng)):
        raise InvalidCoordinate(f"Invalid coordinate: ({lat}, {lng})")
    if not -90.0 <= lat <= 90.0:
        raise InvalidCoordinate(f"Latitude {lat} is outside [-90, 90]")
    if not -180.0 <= lng <= 180.0:
        raise InvalidCoordinate(f"Longitude {lng} is outside [-180, 180]")
    return lat, lng


def distance_meters(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle (haversine) distance in meters. Inputs must already be validated."""
    φ1, φ2 = radians(lat1), radians(lat2)
    Δφ = radians(lat2 - lat1)
    Δλ = radians(lng2 - lng1)

    a = sin(Δφ / 2) ** 2 + cos(φ1) * cos(φ2) * sin(Δλ / 2) ** 2
    # Rounding can push a a hair past 1 for antipodal points
    a = min(1.0, max(0.0, a))
    c = 2 * atan2(sqrt(a), sqrt(1 - a))
    return EARTH_RADIUS_METERS * c


def is_within_radius(
    lat: float,
    lng: float,
    center_lat: float,
    center_lng: float,
    radius_m: float
) -> bool:
    # Boundary inclusive
    return distance_meters(lat, lng, center_lat, center_lng) <= radius_m
