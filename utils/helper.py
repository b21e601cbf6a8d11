import calendar
import logging
import math
from datetime import date, datetime, timezone
from typing import Any, Dict, Optional, Tuple

UNKNOWN_EMPLOYEE_ID = "unknown"

STATUS_TEXT = {
    "pending": "待審核",
    "approved": "已核准",
    "rejected": "已拒絕"
}

STATUS_COLOR = {
    "pending": "warning",
    "approved": "success",
    "rejected": "error"
}

MIN_OVERTIME_HOURS = 0.5
MAX_OVERTIME_HOURS = 24


def normalize_employee_id(ref: Any) -> str:
    """
    Collapse any employee reference shape into the canonical string key.

    Accepted shapes, tried in order: a plain string, an embedded employee
    object carrying ``_id``, a Mongo-style ``{"$oid": ...}`` object, and
    anything else, which is stringified. Missing or empty references map to
    ``UNKNOWN_EMPLOYEE_ID`` so grouping always has a key.
    """
    if ref is None:
        return UNKNOWN_EMPLOYEE_ID
    if isinstance(ref, str):
        return ref if ref else UNKNOWN_EMPLOYEE_ID
    if isinstance(ref, dict):
        if ref.get("_id") is not None:
            return normalize_employee_id(ref["_id"])
        if ref.get("$oid") is not None:
            return normalize_employee_id(ref["$oid"])
        return UNKNOWN_EMPLOYEE_ID if not ref else str(ref)
    try:
        key = str(ref)
    except Exception:
        logging.warning(f"Unprintable employee reference of type {type(ref).__name__}")
        return UNKNOWN_EMPLOYEE_ID
    return key if key else UNKNOWN_EMPLOYEE_ID


def embedded_employee(ref: Any) -> Optional[Dict[str, Any]]:
    """Return the reference itself when it is an employee object with a name."""
    if isinstance(ref, dict) and ref.get("name"):
        return ref
    return None


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def parse_record_date(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return _naive_utc(value)
    if isinstance(value, date):
        return datetime.combine(value, datetime.min.time())
    if isinstance(value, str) and value:
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return _naive_utc(datetime.fromisoformat(text))
        except ValueError:
            return None
    return None


def safe_record_date(value: Any, now: Optional[datetime] = None) -> datetime:
    parsed = parse_record_date(value)
    if parsed is None:
        logging.warning(f"Invalid record date {value!r}, using current date instead")
        return now or datetime.now(timezone.utc).replace(tzinfo=None)
    return parsed


def format_date_yyyy_mm_dd(value: date) -> str:
    return f"{value.year}-{value.month:02d}-{value.day:02d}"


def month_date_range(year: int, month: int) -> Tuple[str, str]:
    last_day = calendar.monthrange(year, month)[1]
    return (
        format_date_yyyy_mm_dd(date(year, month, 1)),
        format_date_yyyy_mm_dd(date(year, month, last_day))
    )


def fallback_employee_name(month: int) -> str:
    return f"員工{month:02d}"


def to_hours(value: Any) -> float:
    try:
        hours = float(value)
    except (TypeError, ValueError):
        logging.warning(f"Non-numeric overtime hours {value!r}, counting as 0")
        return 0.0
    if not math.isfinite(hours):
        logging.warning(f"Non-finite overtime hours {value!r}, counting as 0")
        return 0.0
    return hours


def get_status_text(status: str) -> str:
    return STATUS_TEXT.get(status, status)


def get_status_color(status: str) -> str:
    return STATUS_COLOR.get(status, "default")


def validate_overtime_form(form_data: Dict[str, Any]) -> Dict[str, str]:
    errors = {}

    if not form_data.get("employeeId"):
        errors["employeeId"] = "請選擇員工"

    if not form_data.get("date"):
        errors["date"] = "請選擇日期"

    hours = form_data.get("hours")
    if not hours:
        errors["hours"] = "請輸入加班時數"
    else:
        try:
            value = float(hours)
        except (TypeError, ValueError):
            value = None
        if value is None or math.isnan(value) or value <= 0 or value > MAX_OVERTIME_HOURS:
            errors["hours"] = f"加班時數必須在 {MIN_OVERTIME_HOURS} 到 {MAX_OVERTIME_HOURS} 小時之間"

    return errors
