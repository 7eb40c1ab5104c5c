from datetime import datetime, timezone
from typing import Optional

def format_utc_datetime(dt: Optional[datetime]) -> Optional[str]:
    """
    Format a datetime object to an ISO 8601 string with 'Z' suffix.

    If the datetime is naive, it is assumed to be in UTC and is made aware.
    If it is timezone-aware, it is converted to UTC.
    
    Args:
        dt: A datetime object or None
        
    Returns:
        An ISO 8601 formatted string with 'Z' suffix, or None if the input is None.
    """
    if dt is None:
        return None

    dt = to_utc(dt)

    # Format to ISO string and replace the +00:00 suffix with 'Z'.
    iso_string = dt.isoformat()
    
    if iso_string.endswith('+00:00'):
        return iso_string.replace('+00:00', 'Z')
    
    return iso_string


def to_utc(dt: datetime) -> datetime:
    """Naive datetimes are taken as UTC (SQLite hands them back naive); aware ones are converted."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
