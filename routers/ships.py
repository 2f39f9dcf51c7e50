# routers/ships.py
from fastapi import APIRouter, Depends, Form, HTTPException
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from typing import Optional
from datetime import date

from database import get_db
from models import Project, Sensor, Ship, ShipSensorOverride, User
from auth_utils import get_current_user
from routers.reports import DEFAULT_PROJECT_CODE
from routers.settings import flash, logo_cache, redirect_with
from utils.report_codes import default_report_code
from utils.sensor_config import next_override_value
from utils.ship_sensors import get_ship, load_effective_sensors, ship_config

router = APIRouter(tags=["Ships"])


def _ship_to_dict(s: Ship) -> dict:
    return {
        "id": s.id,
        "name": s.name,
        "code": s.code or "",
        "created_at": s.created_at.isoformat() if s.created_at else None,
    }


def _get_ship_or_404(db: Session, ship_id: int) -> Ship:
    ship = get_ship(db, ship_id)
    if not ship:
        raise HTTPException(status_code=404, detail="Ship not found")
    return ship


# =========================================================
# 🚢 SHIP LIST
# =========================================================
@router.get("/settings/ships")
def ships_page(
    success: Optional[str] = None,
    error: Optional[str] = None,
    db: Session = Depends(get_db),
):
    rows = db.query(Ship).order_by(Ship.name.asc()).all()
    return {
        "ships": [_ship_to_dict(s) for s in rows],
        "logo": logo_cache.get(db),
        **flash(success, error),
    }


@router.post("/settings/ships")
def create_ship(
    name: str = Form(""),
    code: str = Form(""),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    name = (name or "").strip()
    code = (code or "").strip()
    if not name:
        raise HTTPException(status_code=400, detail="Name is required")

    if db.query(Ship.id).filter(Ship.name == name).first():
        return redirect_with("/settings/ships", error=f"Ship {name} already exists")

    try:
        db.add(Ship(name=name, code=code))
        db.commit()
    except IntegrityError:
        db.rollback()
        return redirect_with("/settings/ships", error=f"Ship {name} already exists")
    except SQLAlchemyError as e:
        print("❌ CREATE SHIP ERROR:", e)
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Error: {e}")

    return redirect_with("/settings/ships", success="Ship added 🚢")


# =========================================================
# 📡 PER-SHIP SENSOR CONFIG
# =========================================================
@router.get("/settings/ships/{ship_id}")
def ship_config_page(
    ship_id: int,
    success: Optional[str] = None,
    error: Optional[str] = None,
    db: Session = Depends(get_db),
):
    ship = _get_ship_or_404(db, ship_id)
    return {
        "ship": _ship_to_dict(ship),
        "sensors": [s.as_dict() for s in ship_config(db, ship.id)],
        **flash(success, error),
    }


@router.post("/settings/ships/{ship_id}/toggle")
def toggle_ship_sensor(
    ship_id: int,
    sensor_code: str = Form(""),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ship = _get_ship_or_404(db, ship_id)

    sensor_code = (sensor_code or "").strip()
    if not sensor_code:
        raise HTTPException(status_code=400, detail="sensor_code is required")

    # Writes must target a registry sensor; reads tolerate orphaned rows
    sensor = db.query(Sensor).filter(Sensor.code == sensor_code).first()
    if not sensor:
        raise HTTPException(status_code=404, detail="Sensor not found")

    row = (
        db.query(ShipSensorOverride)
        .filter(ShipSensorOverride.ship_id == ship.id)
        .filter(ShipSensorOverride.sensor_code == sensor_code)
        .first()
    )

    new_status = next_override_value(bool(sensor.is_active), row.is_active if row else None)
    if row is None:
        db.add(ShipSensorOverride(ship_id=ship.id, sensor_code=sensor_code, is_active=new_status))
    else:
        row.is_active = new_status

    try:
        db.commit()
    except SQLAlchemyError as e:
        print("❌ TOGGLE SHIP SENSOR ERROR:", e)
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Error: {e}")

    return redirect_with(f"/settings/ships/{ship.id}", success="Sensor configuration updated 📡")


# =========================================================
# 📝 REPORT FORM SUPPORT
# =========================================================
@router.get("/api/form-sensors")
def form_sensors(
    ship_id: Optional[int] = None,
    db: Session = Depends(get_db),
):
    if ship_id is not None:
        _get_ship_or_404(db, ship_id)

    return {
        "ship_id": ship_id,
        "sensors": [{"code": s.code, "name": s.name} for s in load_effective_sensors(db, ship_id)],
    }


@router.get("/input")
def input_form(db: Session = Depends(get_db)):
    ships = db.query(Ship).order_by(Ship.name.asc()).all()
    projects = (
        db.query(Project)
        .filter(Project.is_active.is_(True))
        .order_by(Project.name.asc())
        .all()
    )
    today = date.today()

    return {
        "default_code": default_report_code(DEFAULT_PROJECT_CODE, today),
        "default_date": today.isoformat(),
        "ships": [{"id": s.id, "name": s.name} for s in ships],
        "projects": [{"code": p.code, "name": p.name} for p in projects],
        "logo": logo_cache.get(db),
    }
