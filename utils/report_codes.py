# utils/report_codes.py
from datetime import date, datetime
from typing import Optional, Tuple

PERIOD_INPUT_FORMAT = "%Y-%m"      # "2025-12" (form input)
PERIOD_LABEL_FORMAT = "%b %Y"      # "Dec 2025" (inside report codes)
LIKE_ESCAPE = "\\"


def parse_period(period: Optional[str]) -> Optional[date]:
    s = (period or "").strip()
    if not s:
        return None
    try:
        return datetime.strptime(s, PERIOD_INPUT_FORMAT).date()
    except ValueError:
        return None


def period_label(d: date) -> str:
    return d.strftime(PERIOD_LABEL_FORMAT)


def compose_report_code(project_code: Optional[str], ship_code: Optional[str], label: str) -> str:
    """
    "FMS" + "KM01" + "Dec 2025" -> "FMS KM01 Dec 2025".
    Blank parts are dropped, so ships without a code give "FMS Dec 2025".
    """
    parts = [(p or "").strip() for p in (project_code, ship_code, label)]
    return " ".join(p for p in parts if p)


def default_report_code(project_code: str, today: Optional[date] = None) -> str:
    return compose_report_code(project_code, None, period_label(today or date.today()))


def escape_like(s: str) -> str:
    return (
        s.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def project_period_patterns(project_code: str, label: str) -> Tuple[str, str]:
    """
    (exact code, LIKE pattern) matching every report of a project in a month:
    "PROJECT Mon YYYY" or "PROJECT <anything> Mon YYYY".
    """
    project_code = (project_code or "").strip()
    exact = compose_report_code(project_code, None, label)
    pattern = f"{escape_like(project_code)} % {escape_like(label)}"
    return exact, pattern
