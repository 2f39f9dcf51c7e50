# utils/trouble.py
from typing import List

from sqlalchemy.orm import Session

from models import DeviceReport


def latest_reports_per_ship(db: Session) -> List[DeviceReport]:
    """Most recently created report of every distinct ship, ordered by ship name."""
    rows = (
        db.query(DeviceReport)
        .order_by(
            DeviceReport.ship_name.asc(),
            DeviceReport.created_at.desc(),
            DeviceReport.id.desc(),
        )
        .all()
    )

    latest: List[DeviceReport] = []
    seen = set()
    for r in rows:
        if r.ship_name in seen:
            continue
        seen.add(r.ship_name)
        latest.append(r)
    return latest


def is_in_trouble(report: DeviceReport) -> bool:
    return report.totals().offline > 0


def trouble_reports(db: Session) -> List[DeviceReport]:
    return [r for r in latest_reports_per_ship(db) if is_in_trouble(r)]


def trouble_count(db: Session) -> int:
    return len(trouble_reports(db))


def resolve_alert(report: DeviceReport, sensor_code: str) -> None:
    """
    Force one sensor of `report` online. The legacy column (if the code has
    one) is regenerated from the map in the same flush, so the caller's
    single commit writes both.
    """
    report.set_sensor(sensor_code, True)
