from .attendance_mode import AttendanceMode, AttendanceModeSetting
from .attendance_record import AttendanceRecord, GeofenceStatus
from .employee_geofence import EmployeeGeofenceAssignment
from .geofence_zone import GeofenceZone
