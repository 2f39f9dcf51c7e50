# routers/batch.py
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from typing import Dict, List, Optional
from datetime import date

from database import get_db
from models import DeviceReport, Project, Ship
from routers.settings import logo_cache
from utils.report_codes import PERIOD_INPUT_FORMAT, compose_report_code, parse_period, period_label
from utils.sensor_config import ship_sensor_statuses
from utils.ship_sensors import list_registry, load_all_overrides

router = APIRouter(prefix="/batch-input", tags=["Batch Input"])


# ===============================
# 📦 Request Schema
# ===============================
class BatchShipEntry(BaseModel):
    ship_id: int
    selected: bool = False
    sensors: Dict[str, bool] = {}


class BatchSubmitBody(BaseModel):
    report_period: str                   # YYYY-MM
    project_code: Optional[str] = None
    ships: List[BatchShipEntry] = []


def _fail(status_code: int, ship: str, error: str):
    raise HTTPException(status_code=status_code, detail={"error": error, "ship": ship})


# ===============================
# 🧮 Matrix (ships x sensors)
# ===============================
@router.get("")
def batch_input_page(db: Session = Depends(get_db)):
    registry = list_registry(db)
    overrides = load_all_overrides(db)
    ships = db.query(Ship).order_by(Ship.name.asc()).all()

    per_ship = {s.id: ship_sensor_statuses(registry, overrides.get(s.id, {})) for s in ships}

    # a column shows when the sensor is globally active or enabled for some ship
    used = {st.code for statuses in per_ship.values() for st in statuses if st.ship_active}
    columns = [s for s in registry if s.is_active or s.code in used]
    column_codes = {c.code for c in columns}

    rows = []
    for s in ships:
        rows.append({
            "id": s.id,
            "name": s.name,
            "code": s.code or "",
            "config": {st.code: st.ship_active for st in per_ship[s.id] if st.code in column_codes},
        })

    projects = (
        db.query(Project)
        .filter(Project.is_active.is_(True))
        .order_by(Project.name.asc())
        .all()
    )

    return {
        "columns": [{"code": c.code, "name": c.name} for c in columns],
        "ships": rows,
        "projects": [{"code": p.code, "name": p.name} for p in projects],
        "current_period": date.today().strftime(PERIOD_INPUT_FORMAT),
        "logo": logo_cache.get(db),
    }


# ===============================
# 💾 Submit (all-or-nothing)
# ===============================
@router.post("")
def batch_submit(body: BatchSubmitBody, db: Session = Depends(get_db)):
    if not (body.report_period or "").strip():
        raise HTTPException(status_code=400, detail="Report period is required")

    period = parse_period(body.report_period)
    if period is None:
        raise HTTPException(status_code=400, detail="Invalid report period (expected YYYY-MM)")

    label = period_label(period)
    project_code = (body.project_code or "").strip()

    selected = [e for e in body.ships if e.selected]
    ships = {
        s.id: s
        for s in db.query(Ship).filter(Ship.id.in_([e.ship_id for e in selected])).all()
    } if selected else {}

    registry = list_registry(db)
    overrides = load_all_overrides(db)

    created: List[DeviceReport] = []
    for entry in sorted(selected, key=lambda e: (ships[e.ship_id].name if e.ship_id in ships else "")):
        ship = ships.get(entry.ship_id)
        if ship is None:
            db.rollback()
            _fail(400, str(entry.ship_id), "Ship not found")

        code = compose_report_code(project_code, ship.code, label)

        # Sensors the form presented for this ship; unchecked ones are offline
        effective = [
            st for st in ship_sensor_statuses(registry, overrides.get(ship.id, {}))
            if st.ship_active
        ]
        status = {st.code: bool(entry.sensors.get(st.code, False)) for st in effective}

        try:
            duplicate = (
                db.query(DeviceReport.id)
                .filter(DeviceReport.code == code)
                .filter(DeviceReport.ship_name == ship.name)
                .first()
            )
            if duplicate:
                db.rollback()
                _fail(409, ship.name, f"A report for {code} already exists")

            row = DeviceReport(
                code=code,
                report_date=period,
                ship_name=ship.name,
                sensors_data=status,
            )
            db.add(row)
            db.flush()
            created.append(row)
        except SQLAlchemyError as e:
            print("❌ BATCH INSERT ERROR:", ship.name, e)
            db.rollback()
            _fail(500, ship.name, f"Failed to save report: {e}")

    try:
        db.commit()
    except SQLAlchemyError as e:
        print("❌ BATCH COMMIT ERROR:", e)
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Commit Error: {e}")

    return {
        "ok": True,
        "count": len(created),
        "message": f"Batch saved: {len(created)} reports ✅",
        "report_ids": [r.id for r in created],
        "codes": sorted({r.code for r in created}),
    }
