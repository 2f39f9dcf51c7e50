# utils/report_totals.py
from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Dict, Mapping, Optional

# The seven channels that predate the dynamic sensor registry.
# Order matches the legacy table columns.
LEGACY_SENSOR_CODES = (
    "device_condition",
    "gps",
    "rpm_me_port",
    "rpm_me_stbd",
    "flowmeter_input",
    "flowmeter_output",
    "flowmeter_bunker",
)


def to_bool(v: Any) -> bool:
    # Accept True/False, 1/0, "true"/"on"/"1" (JSON column is permissive)
    if isinstance(v, bool):
        return v
    if isinstance(v, (int, float)):
        return v > 0
    s = str(v or "").strip().lower()
    return s in {"1", "true", "on", "yes"}


def percentages(online: int, offline: int) -> tuple[float, float]:
    """(online %, offline %). Both 0.0 when there is nothing to count."""
    total = online + offline
    if total <= 0:
        return 0.0, 0.0
    return online / total * 100, offline / total * 100


@dataclass
class ReportTotals:
    online: int = 0
    offline: int = 0
    online_percent: float = 0.0
    offline_percent: float = 0.0

    @property
    def total(self) -> int:
        return self.online + self.offline

    def as_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["online_percent"] = round(self.online_percent, 2)
        d["offline_percent"] = round(self.offline_percent, 2)
        return d


def calculate_totals(
    sensors_data: Optional[Mapping[str, Any]],
    legacy: Optional[Mapping[str, Any]] = None,
) -> ReportTotals:
    """
    Count online/offline channels of one report.

    The dynamic map wins whenever it has entries; the legacy booleans are
    only consulted for rows written before sensors_data existed.
    """
    if sensors_data:
        values = [to_bool(v) for v in sensors_data.values()]
    else:
        legacy = legacy or {}
        values = [to_bool(legacy.get(c, False)) for c in LEGACY_SENSOR_CODES]

    online = sum(1 for v in values if v)
    offline = len(values) - online
    on_pct, off_pct = percentages(online, offline)

    return ReportTotals(
        online=online,
        offline=offline,
        online_percent=on_pct,
        offline_percent=off_pct,
    )
