"""
Timezone utilities for the attendance reporting day.

All timestamps are stored in UTC; "today" is resolved against one configured
IANA timezone (ATTENDANCE_TIMEZONE) so that status and statistics agree.
"""

from datetime import date, datetime
from datetime import time as datetime_time
from datetime import timedelta, timezone
from typing import Tuple, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from utils.datetime_helpers import to_utc


def from_utc_to_local(utc_dt: datetime, tz: str) -> datetime:
    """
    Convert UTC datetime to local datetime in the specified timezone.

    Args:
        utc_dt: UTC datetime (naive values are treated as UTC)
        tz: IANA timezone string (e.g., 'UTC', 'Asia/Kolkata')

    Returns:
        datetime: Local datetime in the specified timezone
    """
    return to_utc(utc_dt).astimezone(ZoneInfo(tz))


def local_start_of_day(date_or_dt: Union[date, datetime], tz: str) -> datetime:
    """
    Get the start of day (00:00:00) in the specified timezone, expressed in UTC.
    """
    if isinstance(date_or_dt, datetime):
        local_date = from_utc_to_local(date_or_dt, tz).date()
    else:
        local_date = date_or_dt

    local_start = datetime.combine(local_date, datetime_time.min, tzinfo=ZoneInfo(tz))
    return local_start.astimezone(timezone.utc)


def reporting_day_bounds(utc_ref: datetime, tz: str) -> Tuple[datetime, datetime]:
    """
    Half-open [start, end) UTC bounds of the local calendar day containing utc_ref.

    Using the next day's midnight as the exclusive end keeps DST days (23h/25h) exact.
    """
    local_date = from_utc_to_local(utc_ref, tz).date()
    start = local_start_of_day(local_date, tz)
    end = local_start_of_day(local_date + timedelta(days=1), tz)
    return start, end


def validate_timezone(tz: str) -> bool:
    """
    Validate if the timezone string is a valid IANA timezone.
    """
    try:
        ZoneInfo(tz)
        return True
    except (ZoneInfoNotFoundError, ValueError):
        return False
