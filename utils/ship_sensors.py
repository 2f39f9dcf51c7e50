# utils/ship_sensors.py
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from models import Sensor, Ship, ShipSensorOverride
from utils.sensor_config import (
    ShipSensorStatus,
    resolve_effective_sensors,
    ship_sensor_statuses,
)


def load_overrides(db: Session, ship_id: int) -> Dict[str, bool]:
    rows = (
        db.query(ShipSensorOverride)
        .filter(ShipSensorOverride.ship_id == ship_id)
        .all()
    )
    return {r.sensor_code: bool(r.is_active) for r in rows}


def load_all_overrides(db: Session) -> Dict[int, Dict[str, bool]]:
    out: Dict[int, Dict[str, bool]] = {}
    for r in db.query(ShipSensorOverride).all():
        out.setdefault(r.ship_id, {})[r.sensor_code] = bool(r.is_active)
    return out


def list_registry(db: Session) -> List[Sensor]:
    return db.query(Sensor).order_by(Sensor.display_order.asc(), Sensor.id.asc()).all()


def active_registry(db: Session) -> List[Sensor]:
    return (
        db.query(Sensor)
        .filter(Sensor.is_active.is_(True))
        .order_by(Sensor.display_order.asc(), Sensor.id.asc())
        .all()
    )


def ship_config(db: Session, ship_id: int) -> List[ShipSensorStatus]:
    """All registry sensors with global/effective/override flags for one ship."""
    return ship_sensor_statuses(list_registry(db), load_overrides(db, ship_id))


def load_effective_sensors(db: Session, ship_id: Optional[int] = None) -> List[ShipSensorStatus]:
    """
    Sensors a report form should present for `ship_id`.
    Without a ship this is simply the globally active set.
    """
    if ship_id is None:
        return resolve_effective_sensors(list_registry(db), {})
    return resolve_effective_sensors(list_registry(db), load_overrides(db, ship_id))


def get_ship(db: Session, ship_id: int) -> Optional[Ship]:
    return db.query(Ship).filter(Ship.id == ship_id).first()
