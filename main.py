from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import os

# ========================================
# 🗄 MODELS + STARTUP MIGRATION
# models must be imported before metadata.create_all runs
# ========================================
import models  # noqa: F401
from seed import run_migrations

run_migrations()


# ========================================
# 🚢 APP
# ========================================
app = FastAPI(title="Fleet Device Status Reports")

cors_origins = [
    o.strip()
    for o in (os.getenv("CORS_ORIGINS") or "http://localhost:5173,http://127.0.0.1:5173").split(",")
    if o.strip()
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ========================================
# 🔌 ROUTERS
# ========================================
from auth_routes import router as auth_router
from routers.dashboard import router as dashboard_router
from routers.reports import router as reports_router
from routers.batch import router as batch_router
from routers.settings import router as settings_router
from routers.ships import router as ships_router
from utils.aggregator import DEFAULT_AGGREGATION_MODE

app.include_router(auth_router)          # /auth/register, /auth/login
app.include_router(dashboard_router)     # /, /dashboard, /api/dashboard-data, alerts
app.include_router(reports_router)       # /reports, /rekap, /report
app.include_router(batch_router)         # /batch-input
app.include_router(settings_router)      # /settings (sensors, projects, logo)
app.include_router(ships_router)         # /settings/ships, /api/form-sensors, /input


# ========================================
# ❤️ HEALTH
# ========================================
@app.get("/healthz")
def healthz():
    return {"ok": True, "aggregation_mode": DEFAULT_AGGREGATION_MODE}
