from datetime import date, datetime, timezone

import pytest

from utils.helper import (
    UNKNOWN_EMPLOYEE_ID,
    get_status_color,
    get_status_text,
    month_date_range,
    normalize_employee_id,
    parse_record_date,
    safe_record_date,
    to_hours,
    validate_overtime_form,
)


@pytest.mark.parametrize("ref, expected", [
    ("E1", "E1"),
    ({"_id": "E1", "name": "王小明"}, "E1"),
    ({"$oid": "64f0c2"}, "64f0c2"),
    ({"_id": {"$oid": "64f0c2"}}, "64f0c2"),
    (42, "42"),
    (None, UNKNOWN_EMPLOYEE_ID),
    ("", UNKNOWN_EMPLOYEE_ID),
    ({}, UNKNOWN_EMPLOYEE_ID),
])
def test_normalize_employee_id(ref, expected):
    assert normalize_employee_id(ref) == expected


def test_normalize_is_idempotent():
    refs = ["E1", {"_id": "E1"}, {"$oid": "abc"}, 7, None, {"name": "no id"}]
    for ref in refs:
        key = normalize_employee_id(ref)
        assert key
        assert normalize_employee_id(key) == key


def test_parse_record_date_shapes():
    assert parse_record_date("2025-07-01") == datetime(2025, 7, 1)
    assert parse_record_date("2025-07-01T10:00:00.000Z") == datetime(2025, 7, 1, 10, 0)
    assert parse_record_date(datetime(2025, 7, 1, 18, 0, tzinfo=timezone.utc)) == datetime(2025, 7, 1, 18, 0)
    assert parse_record_date(date(2025, 7, 2)) == datetime(2025, 7, 2)
    assert parse_record_date("31/07/2025") is None
    assert parse_record_date(None) is None


def test_safe_record_date_defaults_to_now():
    now = datetime(2025, 7, 31, 12, 0)
    assert safe_record_date("garbage", now) == now
    assert safe_record_date("2025-07-01", now) == datetime(2025, 7, 1)


def test_safe_record_date_fallback_is_naive_utc():
    before = datetime.now(timezone.utc).replace(tzinfo=None)
    fallback = safe_record_date("garbage")
    after = datetime.now(timezone.utc).replace(tzinfo=None)

    assert fallback.tzinfo is None
    assert before <= fallback <= after
    assert safe_record_date("garbage") > parse_record_date("2025-07-01")


@pytest.mark.parametrize("value", [float("nan"), float("inf"), "-inf"])
def test_to_hours_rejects_non_finite(value):
    assert to_hours(value) == 0.0


def test_month_date_range():
    assert month_date_range(2024, 2) == ("2024-02-01", "2024-02-29")
    assert month_date_range(2025, 12) == ("2025-12-01", "2025-12-31")


def test_validate_overtime_form():
    assert validate_overtime_form({}) == {
        "employeeId": "請選擇員工",
        "date": "請選擇日期",
        "hours": "請輸入加班時數"
    }
    assert validate_overtime_form({"employeeId": "E1", "date": "2025-07-01", "hours": 25})["hours"] == \
        "加班時數必須在 0.5 到 24 小時之間"
    assert "hours" in validate_overtime_form({"employeeId": "E1", "date": "2025-07-01", "hours": "abc"})
    assert validate_overtime_form({"employeeId": "E1", "date": "2025-07-01", "hours": "2.5"}) == {}


def test_status_presentation():
    assert get_status_text("approved") == "已核准"
    assert get_status_text("cancelled") == "cancelled"
    assert get_status_color("pending") == "warning"
    assert get_status_color("cancelled") == "default"
