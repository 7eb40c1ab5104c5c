import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlmodel import SQLModel

import models  # noqa: F401  (registers every table with SQLModel.metadata)
from api.admin_attendance_routes import router as admin_attendance_router
from api.admin_employee_geofence_routes import router as admin_employee_geofence_router
from api.admin_geofence_routes import router as admin_geofence_router
from api.attendance_routes import router as attendance_router
from core import config
from core.exceptions import AttendanceError
from db.session import engine

# This file is the control center of the whole application

# Configure logging
logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)

# Construct the list of allowed origins, always including both dev and production
allowed_origins_list = [
    config.DEV_DOMAIN,
    config.PRODUCTION_DOMAIN,
    "http://localhost:3000",  # Additional fallback for React dev
    "http://127.0.0.1:5173",  # Additional fallback for Vite dev
]

# Remove any None values and duplicates
allowed_origins_list = sorted(set(origin for origin in allowed_origins_list if origin))

logger.info("CORS: Allowing origins: %s", allowed_origins_list)


# When We Start, Create the DB Tables if they don't exist
@asynccontextmanager
async def lifespan(app: FastAPI):
    config.validate_settings()
    SQLModel.metadata.create_all(engine)
    logger.info(
        "Attendance geofence engine ready (timezone=%s, enforcement=%s)",
        config.ATTENDANCE_TIMEZONE, config.GEOFENCE_ENFORCEMENT,
    )
    yield


# Starts Fast API Up; Init
app = FastAPI(title="Attendance Geofence Engine", lifespan=lifespan)

# Allow requests from your React dev server & production
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Typed engine errors become JSON with a stable code; only StoreUnavailable is retryable
@app.exception_handler(AttendanceError)
async def attendance_error_handler(request: Request, exc: AttendanceError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    else:
        logger.info("%s %s rejected (%s): %s", request.method, request.url.path, exc.code, exc.detail)

    headers = {"Retry-After": "1"} if exc.retryable else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "code": exc.code, "retryable": exc.retryable},
        headers=headers,
    )


app.include_router(attendance_router, prefix="/attendance", tags=["Attendance"])
app.include_router(admin_geofence_router, prefix="/admin/geofence", tags=["Admin", "Geofence"])
app.include_router(
    admin_employee_geofence_router, prefix="/admin/employees", tags=["Admin", "Geofence Assignments"]
)
app.include_router(admin_attendance_router, prefix="/admin/attendance", tags=["Admin", "Attendance Reports"])
