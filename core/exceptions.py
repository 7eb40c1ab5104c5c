"""
Typed errors raised by the attendance geofence engine.

Every error carries the HTTP status the API layer answers with and a stable
machine-readable ``code``. Only ``StoreUnavailable`` is retryable; everything
else is permanent for the given input and is surfaced to the user unchanged.
"""

from typing import Optional


class AttendanceError(Exception):
    status_code = 400
    code = "attendance_error"
    retryable = False

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.__class__.__doc__ or self.code
        super().__init__(self.detail)


class InvalidCoordinate(AttendanceError):
    """Latitude/longitude missing or outside the valid range."""

    code = "invalid_coordinate"


class InvalidZone(AttendanceError):
    """Geofence zone definition is invalid."""

    code = "invalid_zone"


class InvalidAttendanceMode(AttendanceError):
    """Attendance mode must be 'geofencing' or 'location_tracking'."""

    code = "invalid_attendance_mode"


class AlreadyCheckedIn(AttendanceError):
    """Already checked in. Please check out first."""

    status_code = 409
    code = "already_checked_in"


class NotCheckedIn(AttendanceError):
    """No active check-in found. Please check in first."""

    status_code = 409
    code = "not_checked_in"


class InvalidCheckoutTime(AttendanceError):
    """Check-out time must be later than check-in time."""

    code = "invalid_checkout_time"


class OutsideGeofence(AttendanceError):
    """You must be within an assigned geofence zone to punch."""

    status_code = 403
    code = "outside_geofence"


class ZoneNotFound(AttendanceError):
    """Geofence zone not found."""

    status_code = 404
    code = "zone_not_found"


class AssignmentNotFound(AttendanceError):
    """Assignment not found."""

    status_code = 404
    code = "assignment_not_found"


class Unauthorized(AttendanceError):
    """User doesn't have sufficient privileges for this action."""

    status_code = 403
    code = "unauthorized"


class StoreUnavailable(AttendanceError):
    """Attendance store is temporarily unavailable. Please retry."""

    status_code = 503
    code = "store_unavailable"
    retryable = True
