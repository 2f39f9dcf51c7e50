# utils/aggregator.py
"""
Per-period online/offline aggregation.

Two modes are kept side by side on purpose and callers pick one explicitly:

  dynamic  sums each report's own totals (len(sensors_data) channels per ship)
  legacy   the historical SQL rollup over the seven fixed columns, which
           assumes exactly 7 channels per ship whatever the registry holds
"""
from __future__ import annotations

import os
from dataclasses import dataclass, asdict
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import case, func, or_
from sqlalchemy.orm import Session

from models import DeviceReport
from utils.report_codes import LIKE_ESCAPE, project_period_patterns
from utils.report_totals import LEGACY_SENSOR_CODES, percentages

MODE_DYNAMIC = "dynamic"
MODE_LEGACY = "legacy"
AGGREGATION_MODES = (MODE_DYNAMIC, MODE_LEGACY)

LEGACY_SENSORS_PER_SHIP = len(LEGACY_SENSOR_CODES)

DEFAULT_AGGREGATION_MODE = (os.getenv("FLEET_AGGREGATION_MODE") or MODE_DYNAMIC).strip().lower()


@dataclass
class PeriodSummary:
    code: str
    mode: str
    total_ships: int = 0
    total_devices: int = 0
    total_online: int = 0
    total_offline: int = 0
    online_percent: float = 0.0
    offline_percent: float = 0.0

    def as_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["online_percent"] = round(self.online_percent, 2)
        d["offline_percent"] = round(self.offline_percent, 2)
        return d


def normalize_mode(mode: Optional[str]) -> str:
    m = (mode or DEFAULT_AGGREGATION_MODE).strip().lower()
    if m not in AGGREGATION_MODES:
        raise ValueError(f"unknown aggregation mode: {mode!r}")
    return m


def _summary(code: str, mode: str, ships: int, online: int, offline: int) -> PeriodSummary:
    on_pct, off_pct = percentages(online, offline)
    return PeriodSummary(
        code=code,
        mode=mode,
        total_ships=ships,
        total_devices=online + offline,
        total_online=online,
        total_offline=offline,
        online_percent=on_pct,
        offline_percent=off_pct,
    )


# ----------------------------
# ✅ Filters
# ----------------------------
def code_filter(code: str):
    return DeviceReport.code == code


def project_period_filter(project_code: str, label: str):
    exact, pattern = project_period_patterns(project_code, label)
    return or_(
        DeviceReport.code == exact,
        DeviceReport.code.like(pattern, escape=LIKE_ESCAPE),
    )


# ----------------------------
# ✅ Dynamic (in-process)
# ----------------------------
def summarize_reports(code: str, reports: Iterable[DeviceReport]) -> PeriodSummary:
    ships = online = offline = 0
    for r in reports:
        t = r.totals()
        ships += 1
        online += t.online
        offline += t.offline
    return _summary(code, MODE_DYNAMIC, ships, online, offline)


# ----------------------------
# ✅ Legacy (SQL, fixed 7 per ship)
# ----------------------------
def _legacy_online_expr():
    expr = None
    for name in LEGACY_SENSOR_CODES:
        col = getattr(DeviceReport, name)
        term = case((col.is_(True), 1), else_=0)
        expr = term if expr is None else expr + term
    return expr


def summarize_legacy(db: Session, code: str, criterion) -> PeriodSummary:
    ships, online = (
        db.query(
            func.count(DeviceReport.id),
            func.coalesce(func.sum(_legacy_online_expr()), 0),
        )
        .filter(criterion)
        .one()
    )
    ships = int(ships or 0)
    online = int(online or 0)
    offline = ships * LEGACY_SENSORS_PER_SHIP - online
    return _summary(code, MODE_LEGACY, ships, online, offline)


# ----------------------------
# ✅ Entry points
# ----------------------------
def summarize(db: Session, code: str, criterion, mode: Optional[str] = None) -> PeriodSummary:
    mode = normalize_mode(mode)
    if mode == MODE_LEGACY:
        return summarize_legacy(db, code, criterion)
    rows = db.query(DeviceReport).filter(criterion).all()
    return summarize_reports(code, rows)


def summarize_code(db: Session, code: str, mode: Optional[str] = None) -> PeriodSummary:
    return summarize(db, code, code_filter(code), mode)


def list_codes(db: Session, limit: Optional[int] = None) -> List[str]:
    q = db.query(DeviceReport.code).distinct().order_by(DeviceReport.code.desc())
    if limit:
        q = q.limit(limit)
    return [r[0] for r in q.all()]


def summarize_all(db: Session, mode: Optional[str] = None, limit: Optional[int] = None) -> List[PeriodSummary]:
    mode = normalize_mode(mode)
    return [summarize_code(db, c, mode) for c in list_codes(db, limit)]


def chart_data(summaries: List[PeriodSummary]) -> Dict[str, list]:
    return {
        "labels": [s.code for s in summaries],
        "onlinePercentages": [round(s.online_percent, 2) for s in summaries],
        "offlinePercentages": [round(s.offline_percent, 2) for s in summaries],
        "totalOnline": [s.total_online for s in summaries],
        "totalOffline": [s.total_offline for s in summaries],
    }
