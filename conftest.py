import os

# Tests always run against in-memory SQLite, never a configured PostgreSQL
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("ATTENDANCE_TIMEZONE", "UTC")

from datetime import datetime, timezone  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402

import models  # noqa: E402,F401
from core import config  # noqa: E402
from core.auth_context import AuthContext  # noqa: E402
from core.deps import get_auth_context  # noqa: E402
from db.session import get_session  # noqa: E402
from main import app  # noqa: E402
from models.geofence_zone import GeofenceZone  # noqa: E402

HQ_LAT, HQ_LNG = 12.9716, 77.5946

# 500 m due north of HQ along the meridian
POINT_500M_NORTH = (HQ_LAT + 0.0044966, HQ_LNG)

T0 = datetime(2026, 10, 18, 9, 0, tzinfo=timezone.utc)

EMPLOYEE = AuthContext(employee_id="emp-1", company_id="acme", is_admin=False)
COMPANY_ADMIN = AuthContext(employee_id="admin-1", company_id="acme", is_admin=True)
PLATFORM_ADMIN = AuthContext(employee_id="root", company_id=None, is_admin=True)


@pytest.fixture(autouse=True)
def default_settings(monkeypatch):
    monkeypatch.setattr(config, "ATTENDANCE_TIMEZONE", "UTC")
    monkeypatch.setattr(config, "GEOFENCE_ENFORCEMENT", "flag")


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def make_zone(session):
    def _make_zone(name="HQ", latitude=HQ_LAT, longitude=HQ_LNG, radius_meters=100.0, **kwargs):
        zone = GeofenceZone(
            name=name,
            latitude=latitude,
            longitude=longitude,
            radius_meters=radius_meters,
            **kwargs,
        )
        session.add(zone)
        session.commit()
        session.refresh(zone)
        return zone

    return _make_zone


@pytest.fixture
def caller():
    # Mutable holder so a test can switch who is calling mid-test
    return {"auth": EMPLOYEE}


@pytest.fixture
def client(engine, caller):
    def override_get_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_auth_context] = lambda: caller["auth"]
    yield TestClient(app)
    app.dependency_overrides.clear()
