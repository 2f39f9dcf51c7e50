# utils/sensor_config.py
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional

_NON_SLUG = re.compile(r"[^a-z0-9]+")


@dataclass(frozen=True)
class SensorRef:
    """
    Weak reference to a registry sensor by code.

    Overrides point at sensors through their code only. The target may be
    renamed away or never have existed; resolve() then returns None and the
    caller skips the override.
    """
    code: str

    def resolve(self, catalog: Mapping[str, Any]) -> Optional[Any]:
        return catalog.get(self.code)


@dataclass
class ShipSensorStatus:
    code: str
    name: str
    global_active: bool
    ship_active: bool
    is_override: bool

    def as_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "name": self.name,
            "global_active": self.global_active,
            "ship_active": self.ship_active,
            "is_override": self.is_override,
        }


def slugify_sensor_code(name: str) -> str:
    # "Engine RPM (Aux)" -> "engine_rpm_aux"
    return _NON_SLUG.sub("_", (name or "").lower()).strip("_")


def unique_sensor_code(name: str, taken: Iterable[str]) -> str:
    """Slug of `name`, suffixed _2, _3, ... until it is not in `taken`."""
    taken = set(taken)
    base = slugify_sensor_code(name)
    code = base
    counter = 1
    while code in taken:
        counter += 1
        code = f"{base}_{counter}"
    return code


def _ordered(sensors: Iterable[Any]) -> List[Any]:
    return sorted(sensors, key=lambda s: (s.display_order or 0, s.id or 0))


def ship_sensor_statuses(
    sensors: Iterable[Any],
    overrides: Mapping[str, bool],
) -> List[ShipSensorStatus]:
    """
    Every registry sensor with its global flag, its effective flag for one
    ship and whether an override row decided it. Display order preserved.

    `overrides` maps sensor_code -> override is_active for that ship.
    """
    ordered = _ordered(sensors)
    catalog = {s.code: s for s in ordered}

    applied: Dict[str, bool] = {}
    for code, active in overrides.items():
        # orphaned overrides (code no longer in the registry) are ignored
        if SensorRef(code).resolve(catalog) is not None:
            applied[code] = bool(active)

    out = []
    for s in ordered:
        is_override = s.code in applied
        out.append(
            ShipSensorStatus(
                code=s.code,
                name=s.name,
                global_active=bool(s.is_active),
                ship_active=applied[s.code] if is_override else bool(s.is_active),
                is_override=is_override,
            )
        )
    return out


def resolve_effective_sensors(
    sensors: Iterable[Any],
    overrides: Mapping[str, bool],
) -> List[ShipSensorStatus]:
    """
    Sensors presented for a ship:
      global active + no override     -> included
      global active + override off    -> excluded
      global inactive + no override   -> excluded
      global inactive + override on   -> included
    """
    return [s for s in ship_sensor_statuses(sensors, overrides) if s.ship_active]


def next_override_value(global_active: bool, current_override: Optional[bool]) -> bool:
    # First toggle flips relative to the global default, later ones flip the row
    if current_override is None:
        return not global_active
    return not current_override
