"""
Shared fixtures: a throwaway SQLite database, the FastAPI app and a few
row factories. DATABASE_URL must be set before `database` is imported.
"""
import datetime
import os
import tempfile

_DB_DIR = tempfile.mkdtemp(prefix="fleet-reports-")
os.environ["DATABASE_URL"] = "sqlite:///" + os.path.join(_DB_DIR, "test.db")
os.environ["FLEET_AGGREGATION_MODE"] = "dynamic"
os.environ.setdefault("SECRET_KEY", "test-secret")

import pytest
from fastapi.testclient import TestClient

import main
from auth_utils import get_current_user
from database import Base, SessionLocal, engine
from models import DeviceReport, Sensor, Ship, ShipSensorOverride, User
from routers.settings import logo_cache
from seed import DEFAULT_SENSORS, seed_defaults


ALL_DEFAULT_CODES = [code for code, _ in DEFAULT_SENSORS]


# ============================================================================
# Database
# ============================================================================


@pytest.fixture(autouse=True)
def fresh_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed_defaults(db)
        db.commit()
    finally:
        db.close()
    logo_cache.invalidate()
    yield
    logo_cache.invalidate()


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


# ============================================================================
# HTTP clients
# ============================================================================


def _fake_admin():
    return User(id=1, name="Admin", email="admin@example.com", hashed_password="x")


@pytest.fixture
def client():
    main.app.dependency_overrides[get_current_user] = _fake_admin
    with TestClient(main.app) as c:
        yield c
    main.app.dependency_overrides.clear()


@pytest.fixture
def anon_client():
    main.app.dependency_overrides.clear()
    with TestClient(main.app) as c:
        yield c


# ============================================================================
# Factories
# ============================================================================


def make_ship(db, name, code=""):
    ship = Ship(name=name, code=code)
    db.add(ship)
    db.commit()
    db.refresh(ship)
    return ship


def make_report(db, code, ship_name, sensors=None, report_date=None, created_at=None, **legacy):
    row = DeviceReport(
        code=code,
        report_date=report_date or datetime.date(2025, 12, 1),
        ship_name=ship_name,
        sensors_data=dict(sensors or {}),
        **legacy,
    )
    if created_at is not None:
        row.created_at = created_at
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def make_override(db, ship_id, sensor_code, is_active):
    db.add(ShipSensorOverride(ship_id=ship_id, sensor_code=sensor_code, is_active=is_active))
    db.commit()


def set_sensor_active(db, code, is_active):
    db.query(Sensor).filter(Sensor.code == code).update({"is_active": is_active})
    db.commit()


def sensors_with_offline(*offline):
    """All seven default channels online except the given codes."""
    return {c: c not in offline for c in ALL_DEFAULT_CODES}
