# routers/dashboard.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from typing import Optional
from datetime import datetime

from database import get_db
from models import DeviceReport
from routers.reports import mode_or_400, get_report_or_404, report_to_dict
from routers.settings import logo_cache
from utils.aggregator import chart_data, summarize_all
from utils.ship_sensors import active_registry
from utils.trouble import resolve_alert, trouble_count, trouble_reports

router = APIRouter(tags=["Dashboard"])

LATEST_REPORTS_LIMIT = 10
CHART_CODES_LIMIT = 10


# =========================
# 📊 DASHBOARD
# =========================
@router.get("/")
@router.get("/dashboard", include_in_schema=False)
def dashboard(
    mode: Optional[str] = None,
    db: Session = Depends(get_db),
):
    mode = mode_or_400(mode)

    try:
        summaries = summarize_all(db, mode)
        latest = (
            db.query(DeviceReport)
            .order_by(DeviceReport.created_at.desc(), DeviceReport.id.desc())
            .limit(LATEST_REPORTS_LIMIT)
            .all()
        )
        trouble = trouble_reports(db)
        sensors = active_registry(db)
    except SQLAlchemyError as e:
        print("❌ DASHBOARD ERROR:", e)
        raise HTTPException(status_code=500, detail=f"Error: {e}")

    return {
        "mode": mode,
        "summaries": [s.as_dict() for s in summaries],
        "codes": [s.code for s in summaries],
        "latest_reports": [report_to_dict(r) for r in latest],
        "trouble_reports": [report_to_dict(r) for r in trouble],
        "sensors": [{"code": s.code, "name": s.name} for s in sensors],
        "current_year": datetime.now().year,
        "logo": logo_cache.get(db),
    }


# =========================
# 📈 CHART DATA
# =========================
@router.get("/api/dashboard-data")
def dashboard_data(
    mode: Optional[str] = None,
    db: Session = Depends(get_db),
):
    mode = mode_or_400(mode)
    try:
        summaries = summarize_all(db, mode, limit=CHART_CODES_LIMIT)
    except SQLAlchemyError as e:
        print("❌ DASHBOARD DATA ERROR:", e)
        raise HTTPException(status_code=500, detail=str(e))

    return {"mode": mode, **chart_data(summaries)}


# =========================
# 🔔 NOTIFICATIONS
# =========================
@router.get("/api/notification-count")
def notification_count(db: Session = Depends(get_db)):
    try:
        return {"count": trouble_count(db)}
    except SQLAlchemyError as e:
        print("❌ NOTIFICATION COUNT ERROR:", e)
        raise HTTPException(status_code=500, detail=str(e))


# =========================
# ✅ RESOLVE ALERT
# POST /api/resolve-alert/{id}?sensor=gps
# =========================
@router.post("/api/resolve-alert/{report_id}")
def resolve_alert_route(
    report_id: int,
    sensor: Optional[str] = None,
    db: Session = Depends(get_db),
):
    sensor = (sensor or "").strip()
    if not sensor:
        raise HTTPException(status_code=400, detail="Sensor code is required")

    row = get_report_or_404(db, report_id)

    # only channels the report already carries; a new key would change its totals
    if sensor not in row.sensor_map():
        raise HTTPException(status_code=400, detail="Sensor not on this report")

    resolve_alert(row, sensor)

    try:
        db.commit()
        db.refresh(row)
    except SQLAlchemyError as e:
        print("❌ RESOLVE ALERT ERROR:", e)
        db.rollback()
        raise HTTPException(status_code=500, detail="Failed to update")

    return {"success": True, "report": report_to_dict(row)}
