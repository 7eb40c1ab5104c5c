import os

from dotenv import load_dotenv

from utils.timezone_helpers import validate_timezone

# Load environment variables from .env file, if it exists
load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "t", "yes")


# --- Database ---
DATABASE_URL = os.getenv("DATABASE_URL")
DB_HOST = os.getenv("DB_HOST")
DB_PORT = os.getenv("DB_PORT", "5432")  # Default PostgreSQL port
DB_NAME = os.getenv("DB_NAME")
DB_USER = os.getenv("DB_USER")
DB_PASSWORD = os.getenv("DB_PASSWORD")
INSTANCE_CONNECTION_NAME = os.getenv("INSTANCE_CONNECTION_NAME")  # For Cloud SQL Proxy
DB_ECHO = _env_bool("DB_ECHO", "False")

# Store calls must never hang; these bound how long we wait on the pool and on PostgreSQL
DB_POOL_TIMEOUT_SECONDS = float(os.getenv("DB_POOL_TIMEOUT_SECONDS", "5"))
DB_CONNECT_TIMEOUT_SECONDS = int(os.getenv("DB_CONNECT_TIMEOUT_SECONDS", "5"))
DB_STATEMENT_TIMEOUT_MS = int(os.getenv("DB_STATEMENT_TIMEOUT_MS", "5000"))

# --- Attendance ---
# Single reporting-day policy for "today": one IANA timezone for the whole deployment
ATTENDANCE_TIMEZONE = os.getenv("ATTENDANCE_TIMEZONE", "UTC")

# "flag": outside check-ins are recorded and flagged; "block": geofencing-mode employees must be inside
ENFORCEMENT_MODES = ("flag", "block")
GEOFENCE_ENFORCEMENT = os.getenv("GEOFENCE_ENFORCEMENT", "flag").strip().lower()

DEFAULT_HISTORY_DAYS = int(os.getenv("DEFAULT_HISTORY_DAYS", "30"))
STATUS_STATS_DAYS = int(os.getenv("STATUS_STATS_DAYS", "7"))

# --- Auth ---
ADMIN_ROLES = [
    role.strip()
    for role in os.getenv("ADMIN_ROLES", "owner,admin").split(",")
    if role.strip()
]

# --- HTTP ---
DEV_DOMAIN = os.getenv("DEV_DOMAIN", "http://localhost:5173")
PRODUCTION_DOMAIN = os.getenv("PRODUCTION_DOMAIN")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def validate_settings() -> None:
    """Fail at start-up on attendance settings that would otherwise misbehave per request."""
    if not validate_timezone(ATTENDANCE_TIMEZONE):
        raise ValueError(f"ATTENDANCE_TIMEZONE {ATTENDANCE_TIMEZONE!r} is not a known IANA timezone")
    if GEOFENCE_ENFORCEMENT not in ENFORCEMENT_MODES:
        raise ValueError(
            f"GEOFENCE_ENFORCEMENT {GEOFENCE_ENFORCEMENT!r} must be one of {', '.join(ENFORCEMENT_MODES)}"
        )
