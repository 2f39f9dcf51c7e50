# routers/reports.py
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from typing import Dict, Optional
from datetime import date, datetime
import os

from database import get_db
from models import DeviceReport, Project, Sensor, Ship
from utils.pagination import build_page_meta
from utils.report_codes import compose_report_code, default_report_code, parse_period, period_label
from utils.aggregator import code_filter, list_codes, normalize_mode, project_period_filter, summarize
from utils.ship_sensors import active_registry

router = APIRouter(tags=["Device Reports"])

PER_PAGE = 20
DEFAULT_PROJECT_CODE = (os.getenv("DEFAULT_PROJECT_CODE") or "FMS").strip().upper()


# =========================
# 📦 Schemas
# =========================
class CreateReportBody(BaseModel):
    code: Optional[str] = None
    project_code: Optional[str] = None
    report_period: Optional[str] = None   # YYYY-MM
    report_date: Optional[str] = None     # YYYY-MM-DD

    # ship_id wins over ship_name when both are given
    ship_id: Optional[int] = None
    ship_name: Optional[str] = None

    sensors: Dict[str, bool] = {}


class UpdateFieldBody(BaseModel):
    field: str
    value: bool


# =========================
# 🔧 helpers
# =========================
def _norm(s: Optional[str]) -> str:
    return (s or "").strip()


def _parse_page(page: Optional[str]) -> int:
    try:
        n = int(page or 1)
    except (TypeError, ValueError):
        return 1
    return n if n >= 1 else 1


def _parse_date(s: str) -> Optional[date]:
    try:
        return datetime.strptime(s, "%Y-%m-%d").date()
    except ValueError:
        return None


def mode_or_400(mode: Optional[str]) -> str:
    try:
        return normalize_mode(mode)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def get_report_or_404(db: Session, report_id: int) -> DeviceReport:
    row = db.query(DeviceReport).filter(DeviceReport.id == report_id).first()
    if not row:
        raise HTTPException(status_code=404, detail="Report not found")
    return row


def report_to_dict(r: DeviceReport) -> dict:
    """
    Shape used by every table/list on the frontend.
    `sensors` is the effective map (legacy rows read through their columns).
    """
    return {
        "id": r.id,
        "code": r.code,
        "report_date": r.report_date.isoformat() if r.report_date else None,
        "ship_name": r.ship_name,
        "sensors": r.sensor_map(),
        "legacy": r.legacy_values(),
        "totals": r.totals().as_dict(),
        "created_at": r.created_at.isoformat() if r.created_at else None,
        "updated_at": r.updated_at.isoformat() if r.updated_at else None,
    }


# =========================
# ✅ LIST (paginated, one period code)
# =========================
@router.get("/reports")
def list_reports(
    code: Optional[str] = None,
    page: Optional[str] = None,
    db: Session = Depends(get_db),
):
    code = _norm(code) or default_report_code(DEFAULT_PROJECT_CODE)
    page = _parse_page(page)
    offset = (page - 1) * PER_PAGE

    try:
        total_records = db.query(DeviceReport).filter(DeviceReport.code == code).count()
        rows = (
            db.query(DeviceReport)
            .filter(DeviceReport.code == code)
            .order_by(DeviceReport.ship_name.asc(), DeviceReport.id.asc())
            .offset(offset)
            .limit(PER_PAGE)
            .all()
        )
    except SQLAlchemyError as e:
        print("❌ LIST REPORTS ERROR:", e)
        raise HTTPException(status_code=500, detail=f"Error: {e}")

    return {
        "code": code,
        "reports": [report_to_dict(r) for r in rows],
        "pagination": build_page_meta(page, PER_PAGE, total_records, len(rows)),
    }


# =========================
# ✅ CREATE (single ship)
# =========================
@router.post("/reports")
def create_report(body: CreateReportBody, db: Session = Depends(get_db)):
    ship_name = _norm(body.ship_name)
    ship_code = ""

    if body.ship_id is not None:
        ship = db.query(Ship).filter(Ship.id == body.ship_id).first()
        if not ship:
            raise HTTPException(status_code=404, detail="Ship not found")
        ship_name = ship.name
        ship_code = ship.code or ""

    code = _norm(body.code)
    if not code and _norm(body.project_code):
        period = parse_period(body.report_period)
        if period is not None:
            code = compose_report_code(body.project_code, ship_code, period_label(period))

    report_date_str = _norm(body.report_date)
    if not code or not report_date_str or not ship_name:
        raise HTTPException(status_code=400, detail="Code, date, and ship name are required")

    report_date = _parse_date(report_date_str)
    if report_date is None:
        raise HTTPException(status_code=400, detail="Invalid date format")

    sensors = {_norm(k): bool(v) for k, v in body.sensors.items() if _norm(k)}

    row = DeviceReport(
        code=code,
        report_date=report_date,
        ship_name=ship_name,
        sensors_data=sensors,
    )

    try:
        db.add(row)
        db.commit()
        db.refresh(row)
    except SQLAlchemyError as e:
        print("❌ CREATE REPORT ERROR:", e)
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Error: {e}")

    return {
        "ok": True,
        "message": "Report created",
        "report": report_to_dict(row),
    }


# =========================
# ✅ UPDATE one sensor field in place
# =========================
@router.put("/reports/{report_id}")
def update_report_field(
    report_id: int,
    body: UpdateFieldBody,
    db: Session = Depends(get_db),
):
    field = _norm(body.field)
    row = get_report_or_404(db, report_id)

    known = {c for (c,) in db.query(Sensor.code).all()}
    if field not in known and field not in row.sensor_map():
        raise HTTPException(status_code=400, detail="invalid field")

    row.set_sensor(field, body.value)

    try:
        db.commit()
        db.refresh(row)
    except SQLAlchemyError as e:
        print("❌ UPDATE REPORT ERROR:", e)
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Error: {e}")

    return {"ok": True, "updated": field, "report": report_to_dict(row)}


# =========================
# ✅ DELETE
# =========================
@router.delete("/reports/{report_id}")
def delete_report(report_id: int, db: Session = Depends(get_db)):
    row = get_report_or_404(db, report_id)

    try:
        db.delete(row)
        db.commit()
    except SQLAlchemyError as e:
        print("❌ DELETE REPORT ERROR:", e)
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Error: {e}")

    return {"ok": True, "deleted_id": report_id}


# =========================
# 📊 REKAP (one period summary)
# =========================
@router.get("/rekap")
def rekap(
    code: Optional[str] = None,
    mode: Optional[str] = None,
    db: Session = Depends(get_db),
):
    code = _norm(code) or default_report_code(DEFAULT_PROJECT_CODE)
    mode = mode_or_400(mode)

    try:
        summary = summarize(db, code, code_filter(code), mode)
    except SQLAlchemyError as e:
        print("❌ REKAP ERROR QUERY:", e)
        raise HTTPException(status_code=500, detail=f"Error: {e}")

    return summary.as_dict()


# =========================
# 📅 MONTHLY REPORT
# ?code=<exact>  or  ?project=FMS&date=2025-12
# =========================
@router.get("/report")
def monthly_report(
    code: Optional[str] = None,
    project: Optional[str] = None,
    date: Optional[str] = None,
    mode: Optional[str] = None,
    db: Session = Depends(get_db),
):
    mode = mode_or_400(mode)
    project = _norm(project).upper()
    code = _norm(code)

    period = parse_period(date)
    if project and period is not None:
        label = period_label(period)
        title = f"{project} * {label}"
        criterion = project_period_filter(project, label)
    elif code:
        title = code
        criterion = code_filter(code)
    else:
        label = period_label(datetime.now().date())
        title = f"{DEFAULT_PROJECT_CODE} * {label}"
        criterion = project_period_filter(DEFAULT_PROJECT_CODE, label)

    try:
        rows = (
            db.query(DeviceReport)
            .filter(criterion)
            .order_by(DeviceReport.report_date.asc(), DeviceReport.ship_name.asc())
            .all()
        )
        summary = summarize(db, title, criterion, mode)
        codes = list_codes(db)
        sensors = active_registry(db)
        projects = (
            db.query(Project.code)
            .filter(Project.is_active.is_(True))
            .order_by(Project.code.asc())
            .all()
        )
    except SQLAlchemyError as e:
        print("❌ MONTHLY REPORT ERROR:", e)
        raise HTTPException(status_code=500, detail=f"Error: {e}")

    return {
        "code": title,
        "current_project": project or None,
        "summary": summary.as_dict(),
        "reports": [report_to_dict(r) for r in rows],
        "codes": codes,
        "sensors": [{"code": s.code, "name": s.name} for s in sensors],
        "projects": [p[0] for p in projects],
    }
