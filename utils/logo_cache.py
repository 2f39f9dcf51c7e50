# utils/logo_cache.py
from __future__ import annotations

from threading import RLock
from typing import Optional

from sqlalchemy.orm import Session

from models import AppConfig

LOGO_CONFIG_KEY = "company_logo"
DEFAULT_LOGO_PATH = "/static/images/logo-placeholder.png"


class LogoCache:
    """
    Read-through cache of the company logo path.

    fms_app_config stays the source of truth; the cached value is filled on
    first read and overwritten by set().
    """

    def __init__(self, default: str = DEFAULT_LOGO_PATH):
        self._lock = RLock()
        self._value: Optional[str] = None
        self._default = default

    def get(self, db: Session) -> str:
        with self._lock:
            if self._value:
                return self._value

            row = db.query(AppConfig).filter(AppConfig.key == LOGO_CONFIG_KEY).first()
            self._value = (row.value if row else None) or self._default
            return self._value

    def set(self, db: Session, path: str) -> str:
        """Persist `path` (caller commits) and overwrite the cached value."""
        with self._lock:
            row = db.query(AppConfig).filter(AppConfig.key == LOGO_CONFIG_KEY).first()
            if row is None:
                row = AppConfig(key=LOGO_CONFIG_KEY)
                db.add(row)
            row.value = path
            self._value = path
            return path

    def invalidate(self) -> None:
        with self._lock:
            self._value = None
