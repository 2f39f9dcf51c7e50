# routers/settings.py

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import RedirectResponse
from sqlalchemy import func
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from cloudinary.uploader import upload as cld_upload
from typing import Optional
from urllib.parse import urlencode
import os

from database import get_db
from models import Project, Sensor, User
from auth_utils import get_current_user
from cloudinary_config import LOGO_FOLDER, LOGO_PUBLIC_ID, init_cloudinary
from utils.logo_cache import LogoCache
from utils.sensor_config import unique_sensor_code
from utils.ship_sensors import list_registry

router = APIRouter(prefix="/settings", tags=["Settings"])

ALLOWED_LOGO_EXTENSIONS = {".png", ".jpg", ".jpeg"}
MAX_LOGO_MB = 5

# Process-wide logo path, owned here; dashboard pages read it through get()
logo_cache = LogoCache()


# =========================
# 🔧 helpers
# =========================
def redirect_with(path: str, success: Optional[str] = None, error: Optional[str] = None) -> RedirectResponse:
    params = {}
    if success:
        params["success"] = success
    if error:
        params["error"] = error
    url = f"{path}?{urlencode(params)}" if params else path
    return RedirectResponse(url=url, status_code=303)


def flash(success: Optional[str], error: Optional[str]) -> dict:
    return {"success": success, "error": error}


# =========================
# 📡 SENSORS
# =========================
@router.get("")
def sensors_page(
    success: Optional[str] = None,
    error: Optional[str] = None,
    db: Session = Depends(get_db),
):
    return {
        "sensors": [
            {
                "id": s.id,
                "code": s.code,
                "name": s.name,
                "is_active": s.is_active,
                "display_order": s.display_order,
            }
            for s in list_registry(db)
        ],
        "logo": logo_cache.get(db),
        **flash(success, error),
    }


@router.post("/sensors")
def create_sensor(
    name: str = Form(""),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    name = (name or "").strip()
    if not name:
        raise HTTPException(status_code=400, detail="Name is required")

    code = unique_sensor_code(name, (c for (c,) in db.query(Sensor.code).all()))
    if not code:
        raise HTTPException(status_code=400, detail="Name must contain letters or digits")

    max_order = db.query(func.coalesce(func.max(Sensor.display_order), 0)).scalar() or 0

    try:
        db.add(Sensor(code=code, name=name, is_active=True, display_order=max_order + 1))
        db.commit()
    except IntegrityError:
        db.rollback()
        return redirect_with("/settings", error=f"Sensor code {code} already exists")
    except SQLAlchemyError as e:
        print("❌ CREATE SENSOR ERROR:", e)
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Error: {e}")

    return redirect_with("/settings", success=f"Sensor {name} added ✅")


@router.post("/sensors/{sensor_id}/toggle")
def toggle_sensor(
    sensor_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    row = db.query(Sensor).filter(Sensor.id == sensor_id).first()
    if not row:
        raise HTTPException(status_code=404, detail="Sensor not found")

    row.is_active = not row.is_active

    try:
        db.commit()
    except SQLAlchemyError as e:
        print("❌ TOGGLE SENSOR ERROR:", e)
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Error: {e}")

    return redirect_with("/settings", success="Sensor status updated 🔄")


# =========================
# 📁 PROJECTS
# =========================
@router.get("/projects")
def projects_page(
    success: Optional[str] = None,
    error: Optional[str] = None,
    db: Session = Depends(get_db),
):
    rows = db.query(Project).order_by(Project.name.asc()).all()
    return {
        "projects": [
            {"id": p.id, "code": p.code, "name": p.name, "is_active": p.is_active}
            for p in rows
        ],
        "logo": logo_cache.get(db),
        **flash(success, error),
    }


@router.post("/projects")
def create_project(
    code: str = Form(""),
    name: str = Form(""),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    code = (code or "").strip().upper()
    name = (name or "").strip()

    if not code or not name:
        return redirect_with("/settings/projects", error="Code and Name are required")

    if db.query(Project.id).filter(Project.code == code).first():
        return redirect_with("/settings/projects", error=f"Project code {code} already exists")

    try:
        db.add(Project(code=code, name=name, is_active=True))
        db.commit()
    except IntegrityError:
        db.rollback()
        return redirect_with("/settings/projects", error=f"Project code {code} already exists")
    except SQLAlchemyError as e:
        print("❌ CREATE PROJECT ERROR:", e)
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Error: {e}")

    return redirect_with("/settings/projects", success="Project added ✅")


# =========================
# 🖼 GENERAL (logo)
# =========================
@router.get("/general")
def general_page(
    success: Optional[str] = None,
    error: Optional[str] = None,
    db: Session = Depends(get_db),
):
    return {"logo": logo_cache.get(db), **flash(success, error)}


@router.post("/logo")
async def update_logo(
    logo: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if logo is None or not logo.filename:
        return redirect_with("/settings/general", error="No file uploaded")

    ext = os.path.splitext(logo.filename)[1].lower()
    if ext not in ALLOWED_LOGO_EXTENSIONS:
        return redirect_with("/settings/general", error="Only PNG or JPG allowed")

    data = await logo.read()
    if len(data) > MAX_LOGO_MB * 1024 * 1024:
        return redirect_with("/settings/general", error=f"File too large (max {MAX_LOGO_MB}MB)")

    try:
        init_cloudinary()
        result = cld_upload(
            data,
            folder=LOGO_FOLDER,
            public_id=LOGO_PUBLIC_ID,
            resource_type="image",
            overwrite=True,
        )
    except Exception as e:
        print("❌ LOGO UPLOAD ERROR:", repr(e))
        return redirect_with("/settings/general", error="Failed to save file")

    url = (result or {}).get("secure_url")
    if not url:
        return redirect_with("/settings/general", error="Failed to save file")

    try:
        logo_cache.set(db, url)
        db.commit()
    except SQLAlchemyError as e:
        print("❌ LOGO CONFIG ERROR:", e)
        db.rollback()
        logo_cache.invalidate()
        return redirect_with("/settings/general", error="DB Update Error")

    return redirect_with("/settings/general", success="Logo updated ✅")
