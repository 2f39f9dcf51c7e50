# seed.py
"""
Schema bootstrap and idempotent seed data.

Runs once at startup:
- creates missing tables
- adds sensors_data to report tables created before the dynamic registry
- copies ship names found in reports into fms_ships
- seeds the seven default sensors, the FMS project and the logo config row
- optional sample reports when SEED_SAMPLE=true
"""
import os
from datetime import date

from sqlalchemy import inspect, text
from sqlalchemy.exc import SQLAlchemyError

from database import Base, SessionLocal, engine
from models import AppConfig, DeviceReport, Project, Sensor, Ship
from utils.logo_cache import DEFAULT_LOGO_PATH, LOGO_CONFIG_KEY

DEFAULT_SENSORS = [
    ("device_condition", "Device Condition"),
    ("gps", "GPS"),
    ("rpm_me_port", "RPM ME Port"),
    ("rpm_me_stbd", "RPM ME Stbd"),
    ("flowmeter_input", "Flowmeter Input"),
    ("flowmeter_output", "Flowmeter Output"),
    ("flowmeter_bunker", "Flowmeter Bunker"),
]

DEFAULT_PROJECT = ("FMS", "Fuel Monitoring System")

_ALL_ON = {code: True for code, _ in DEFAULT_SENSORS}
_RPM_FLOW_DOWN = dict(
    _ALL_ON,
    rpm_me_port=False,
    rpm_me_stbd=False,
    flowmeter_input=False,
)

SAMPLE_REPORTS = [
    ("FMS Dec 2025", date(2025, 12, 1), "TB CELEBES SEJATI 01", _ALL_ON),
    ("FMS Dec 2025", date(2025, 12, 1), "TB ENTEBE MEGASTAR 63", _RPM_FLOW_DOWN),
    ("FMS Dec 2025", date(2025, 12, 1), "TB ENTEBE MEGASTAR 67", _RPM_FLOW_DOWN),
]


def ensure_sensors_column() -> None:
    """Older databases have fms_device_reports without sensors_data."""
    cols = {c["name"] for c in inspect(engine).get_columns(DeviceReport.__tablename__)}
    if "sensors_data" in cols:
        return

    col_type = "JSONB" if engine.dialect.name == "postgresql" else "JSON"
    with engine.begin() as conn:
        conn.execute(text(
            f"ALTER TABLE {DeviceReport.__tablename__} "
            f"ADD COLUMN sensors_data {col_type} DEFAULT '{{}}'"
        ))
    print("✅ Added column sensors_data to fms_device_reports")


def seed_defaults(db) -> None:
    existing = {c for (c,) in db.query(Sensor.code).all()}
    for order, (code, name) in enumerate(DEFAULT_SENSORS, start=1):
        if code not in existing:
            db.add(Sensor(code=code, name=name, is_active=True, display_order=order))

    code, name = DEFAULT_PROJECT
    if not db.query(Project.id).filter(Project.code == code).first():
        db.add(Project(code=code, name=name, is_active=True))

    if not db.query(AppConfig.key).filter(AppConfig.key == LOGO_CONFIG_KEY).first():
        db.add(AppConfig(key=LOGO_CONFIG_KEY, value=DEFAULT_LOGO_PATH))

    db.flush()


def migrate_ship_names(db) -> None:
    known = {n for (n,) in db.query(Ship.name).all()}
    names = db.query(DeviceReport.ship_name).distinct().all()
    for (name,) in names:
        if name and name not in known:
            db.add(Ship(name=name))
            known.add(name)
    db.flush()


def seed_samples(db) -> None:
    for code, report_date, ship_name, sensors in SAMPLE_REPORTS:
        exists = (
            db.query(DeviceReport.id)
            .filter(DeviceReport.code == code, DeviceReport.ship_name == ship_name)
            .first()
        )
        if not exists:
            db.add(DeviceReport(
                code=code,
                report_date=report_date,
                ship_name=ship_name,
                sensors_data=dict(sensors),
            ))
    db.flush()


def run_migrations(with_samples: bool | None = None) -> None:
    if with_samples is None:
        with_samples = (os.getenv("SEED_SAMPLE") or "").strip().lower() == "true"

    Base.metadata.create_all(bind=engine)
    ensure_sensors_column()

    db = SessionLocal()
    try:
        if with_samples:
            seed_samples(db)
        migrate_ship_names(db)
        seed_defaults(db)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        print("❌ Migration failed:", e)
        raise
    finally:
        db.close()

    print("✅ migration: ok")
