import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional

from models.schema import EmployeeGroup, MergedRecord, OvertimeReportView, ReportEntry
from utils.helper import normalize_employee_id, parse_record_date, safe_record_date, to_hours
from utils.resolver import (
    EMPLOYEE_RESOLVERS,
    SUMMARY_SEED_RESOLVERS,
    ResolverContext,
    build_employee,
    resolve_employee,
)

OVERTIME_LEAVE_TYPE = "overtime"
SCHEDULE_STATUS = "approved"
DEFAULT_STATUS = "pending"
EMPTY_DESCRIPTION = "-"
UNKNOWN_SHIFT_LABEL = "未知班次"

SHIFT_HOURS = {
    "morning": 3.5,
    "afternoon": 3,
    "evening": 1.5
}

SHIFT_LABELS = {
    "morning": "早班 (08:30-12:00)",
    "afternoon": "中班 (15:00-18:00)",
    "evening": "晚班 (19:00-20:30)"
}

ScheduleMap = Mapping[str, List[Dict[str, Any]]]


def is_schedule_overtime(record: Any) -> bool:
    return (
        isinstance(record, dict)
        and record.get("_id") is not None
        and record.get("leaveType") == OVERTIME_LEAVE_TYPE
    )


def group_schedule_overtime(schedule_records: Optional[Iterable[Any]]) -> Dict[str, List[Dict[str, Any]]]:
    grouped: Dict[str, List[Dict[str, Any]]] = {}
    dropped = 0
    for record in schedule_records or []:
        if not is_schedule_overtime(record):
            if not isinstance(record, dict) or record.get("_id") is None:
                dropped += 1
            continue
        employee_id = normalize_employee_id(record.get("employeeId"))
        grouped.setdefault(employee_id, []).append(record)
    if dropped:
        logging.warning(f"Dropped {dropped} malformed schedule record(s)")
    return grouped


def attach_employee_details(
    overtime_records: Optional[Iterable[Any]],
    employees: Optional[Iterable[Any]]
) -> List[Any]:
    """Replace bare string employee references with a directory snapshot."""
    directory = {}
    for emp in employees or []:
        if isinstance(emp, dict) and emp.get("_id") is not None:
            directory.setdefault(normalize_employee_id(emp["_id"]), emp)

    enriched = []
    for record in overtime_records or []:
        if isinstance(record, dict) and isinstance(record.get("employeeId"), str):
            emp = directory.get(record["employeeId"])
            if emp is not None:
                record = {
                    **record,
                    "employeeId": {
                        "_id": record["employeeId"],
                        "name": emp.get("name"),
                        "position": emp.get("position") or "員工"
                    }
                }
        enriched.append(record)
    return enriched


def _new_group(employee_id: str, context: ResolverContext, month: int, resolvers) -> EmployeeGroup:
    resolved = resolve_employee(employee_id, context, month, resolvers)
    return EmployeeGroup(employee=build_employee(employee_id, resolved))


def seed_groups(
    overtime_records: List[Any],
    schedule_map: ScheduleMap,
    summary_rows: List[Any],
    employees: List[Any],
    month: int,
    include_idle_employees: bool = False
) -> Dict[str, EmployeeGroup]:
    groups: Dict[str, EmployeeGroup] = {}

    for stat in summary_rows:
        if not isinstance(stat, dict) or not stat.get("employeeId"):
            continue
        employee_id = normalize_employee_id(stat["employeeId"])
        if employee_id in groups:
            continue
        context = ResolverContext(employees, schedule_map.get(employee_id, []), summary_rows, overtime_records)
        groups[employee_id] = _new_group(employee_id, context, month, SUMMARY_SEED_RESOLVERS)

    for employee_id, records in schedule_map.items():
        if employee_id in groups:
            continue
        context = ResolverContext(employees, records, summary_rows, overtime_records)
        groups[employee_id] = _new_group(employee_id, context, month, EMPLOYEE_RESOLVERS)

    if include_idle_employees:
        for emp in employees:
            if not isinstance(emp, dict) or emp.get("_id") is None:
                continue
            employee_id = normalize_employee_id(emp["_id"])
            if employee_id in groups:
                continue
            context = ResolverContext(employees, [], summary_rows, overtime_records)
            groups[employee_id] = _new_group(employee_id, context, month, EMPLOYEE_RESOLVERS)

    return groups


def fold_independent_records(
    groups: Dict[str, EmployeeGroup],
    overtime_records: List[Any],
    summary_rows: List[Any],
    employees: List[Any],
    month: int
) -> None:
    for record in overtime_records:
        if not isinstance(record, dict):
            logging.warning(f"Skipping malformed overtime record: {record!r}")
            continue
        employee_id = normalize_employee_id(record.get("employeeId"))
        group = groups.get(employee_id)
        if group is None:
            context = ResolverContext(employees, [], summary_rows, overtime_records)
            group = groups[employee_id] = _new_group(employee_id, context, month, EMPLOYEE_RESOLVERS)

        hours = to_hours(record.get("hours"))
        group.records.append(record)
        group.independent_hours += hours
        group.total_hours += hours

        record_date = parse_record_date(record.get("date"))
        if record_date is None:
            logging.warning(f"Overtime record {record.get('_id')} has invalid date {record.get('date')!r}")
        elif record_date > group.latest_date:
            group.latest_date = record_date


def apply_summary_hours(
    groups: Dict[str, EmployeeGroup],
    schedule_map: ScheduleMap,
    summary_rows: List[Any]
) -> None:
    summary_by_id: Dict[str, Dict[str, Any]] = {}
    for stat in summary_rows:
        if isinstance(stat, dict) and stat.get("employeeId"):
            summary_by_id.setdefault(normalize_employee_id(stat["employeeId"]), stat)

    for employee_id, group in groups.items():
        group.schedule_records = list(schedule_map.get(employee_id, []))

        stat = summary_by_id.get(employee_id)
        if stat is None:
            group.schedule_hours = 0.0
            group.total_hours = group.independent_hours
            continue

        summary_total = to_hours(stat.get("overtimeHours"))
        if summary_total >= group.independent_hours:
            group.schedule_hours = summary_total - group.independent_hours
            group.total_hours = summary_total
        else:
            logging.warning(
                f"Summary total {summary_total} below independent hours "
                f"{group.independent_hours} for employee_id: {employee_id}"
            )
            group.schedule_hours = 0.0
            group.total_hours = group.independent_hours
        group.schedule_record_count = int(to_hours(stat.get("scheduleRecordCount") or 0))


def process_overtime_data(
    overtime_records: Optional[List[Any]],
    schedule_map: Optional[ScheduleMap],
    summary_rows: Optional[List[Any]],
    employees: Optional[List[Any]],
    month: int,
    include_idle_employees: bool = False
) -> Dict[str, EmployeeGroup]:
    """
    Build the per-employee overtime groups for one period.

    Groups are seeded from summary rows, then from schedule-derived records,
    then independent records are folded in and totals are reconciled against
    the summary rows. Missing sources are treated as empty. The returned dict
    is ordered by total hours (descending), ties by employee id.
    """
    overtime_records = list(overtime_records or [])
    summary_rows = list(summary_rows or [])
    employees = list(employees or [])
    normalized_map: Dict[str, List[Dict[str, Any]]] = {}
    for key, records in (schedule_map or {}).items():
        kept = [record for record in records or [] if is_schedule_overtime(record)]
        if kept:
            normalized_map.setdefault(normalize_employee_id(key), []).extend(kept)

    groups = seed_groups(overtime_records, normalized_map, summary_rows, employees, month, include_idle_employees)
    fold_independent_records(groups, overtime_records, summary_rows, employees, month)
    apply_summary_hours(groups, normalized_map, summary_rows)

    ordered = sorted(groups.items(), key=lambda item: (-item[1].total_hours, item[0]))
    return dict(ordered)


def _independent_to_merged(record: Dict[str, Any], now: Optional[datetime]) -> MergedRecord:
    description = record.get("description")
    status = record.get("status")
    return MergedRecord(
        id=f"independent-{record.get('_id')}",
        type="independent",
        date=safe_record_date(record.get("date"), now),
        original_record=record,
        hours=to_hours(record.get("hours")),
        description=str(description) if description else EMPTY_DESCRIPTION,
        status=str(status) if status else DEFAULT_STATUS
    )


def _schedule_to_merged(record: Dict[str, Any], now: Optional[datetime]) -> MergedRecord:
    shift = record.get("shift")
    hours = SHIFT_HOURS.get(shift, 0)
    label = SHIFT_LABELS.get(shift) or (str(shift) if shift else UNKNOWN_SHIFT_LABEL)
    return MergedRecord(
        id=f"schedule-{record.get('_id') or 'unknown'}",
        type="schedule",
        date=safe_record_date(record.get("date"), now),
        original_record=record,
        hours=hours,
        description=label,
        status=SCHEDULE_STATUS,
        shift=str(shift) if shift is not None else None
    )


def generate_merged_records(group: EmployeeGroup, employee_id: str, now: Optional[datetime] = None) -> List[MergedRecord]:
    merged = []
    for record in group.records:
        try:
            merged.append(_independent_to_merged(record, now))
        except (AttributeError, KeyError, TypeError, ValueError):
            logging.exception(f"Skipping overtime record for employee_id: {employee_id}: {record!r}")

    for record in group.schedule_records:
        try:
            merged.append(_schedule_to_merged(record, now))
        except (AttributeError, KeyError, TypeError, ValueError):
            logging.exception(f"Skipping schedule record for employee_id: {employee_id}: {record!r}")

    return sorted(merged, key=lambda item: item.date)


class OvertimeReport:
    """One fetch cycle's worth of grouped overtime, with per-employee timelines cached."""

    def __init__(self, groups: Dict[str, EmployeeGroup], year: int, month: int, errors: Optional[List[str]] = None):
        self.groups = groups
        self.year = year
        self.month = month
        self.errors = list(errors or [])
        self._merged: Dict[str, List[MergedRecord]] = {}

    @classmethod
    def build(
        cls,
        overtime_records: Optional[List[Any]],
        schedule_records: Optional[List[Any]],
        summary_rows: Optional[List[Any]],
        employees: Optional[List[Any]],
        year: int,
        month: int,
        errors: Optional[List[str]] = None,
        include_idle_employees: bool = False
    ) -> "OvertimeReport":
        groups = process_overtime_data(
            attach_employee_details(overtime_records, employees),
            group_schedule_overtime(schedule_records),
            summary_rows,
            employees,
            month,
            include_idle_employees
        )
        return cls(groups, year, month, errors)

    def __contains__(self, employee_id: str) -> bool:
        return employee_id in self.groups

    def __len__(self) -> int:
        return len(self.groups)

    def merged_records(self, employee_id: str) -> List[MergedRecord]:
        if employee_id not in self._merged:
            self._merged[employee_id] = generate_merged_records(self.groups[employee_id], employee_id)
        return self._merged[employee_id]

    def to_view(self) -> OvertimeReportView:
        return OvertimeReportView(
            year=self.year,
            month=self.month,
            groups=[ReportEntry(employee_id=key, group=group) for key, group in self.groups.items()],
            errors=self.errors
        )
