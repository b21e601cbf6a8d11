"""
Employee display-identity resolution.

Each resolver is a pure function ``(employee_id, context) -> Optional[ResolvedEmployee]``.
``resolve_employee`` walks an ordered tuple of them and stops at the first hit,
falling back to a month-stamped placeholder name that is identical across calls.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Sequence

from pydantic import ValidationError

from models.schema import Employee
from utils.helper import UNKNOWN_EMPLOYEE_ID, embedded_employee, fallback_employee_name, normalize_employee_id

DEFAULT_POSITION = "員工"
DEFAULT_DEPARTMENT = "員工"


class ResolvedEmployee(NamedTuple):
    name: str
    employee: Optional[Dict[str, Any]]


@dataclass
class ResolverContext:
    employees: List[Dict[str, Any]] = field(default_factory=list)
    schedule_records: List[Dict[str, Any]] = field(default_factory=list)
    summary_rows: List[Dict[str, Any]] = field(default_factory=list)
    overtime_records: List[Dict[str, Any]] = field(default_factory=list)


Resolver = Callable[[str, ResolverContext], Optional[ResolvedEmployee]]


def from_directory(employee_id: str, context: ResolverContext) -> Optional[ResolvedEmployee]:
    candidates = []
    for emp in context.employees:
        if not isinstance(emp, dict):
            continue
        directory_id = normalize_employee_id(emp.get("_id"))
        if directory_id == UNKNOWN_EMPLOYEE_ID:
            continue
        if directory_id == employee_id:
            return ResolvedEmployee(emp.get("name") or "", emp)
        if directory_id in employee_id:
            candidates.append((directory_id, emp))
    # exact ids first, then the longest id embedded in the reference
    if candidates:
        _, emp = max(candidates, key=lambda candidate: len(candidate[0]))
        return ResolvedEmployee(emp.get("name") or "", emp)
    return None


def from_schedule_records(employee_id: str, context: ResolverContext) -> Optional[ResolvedEmployee]:
    for record in context.schedule_records:
        if not isinstance(record, dict):
            continue
        for key in ("employee", "employeeId"):
            emp = embedded_employee(record.get(key))
            if emp is not None:
                return ResolvedEmployee(emp["name"], emp)
    return None


def from_summary_rows(employee_id: str, context: ResolverContext) -> Optional[ResolvedEmployee]:
    exact = []
    partial = []
    for row in context.summary_rows:
        if not isinstance(row, dict) or not row.get("employeeName"):
            continue
        row_id = normalize_employee_id(row.get("employeeId"))
        if row_id == employee_id:
            exact.append(row)
        elif row_id != UNKNOWN_EMPLOYEE_ID and row_id in employee_id:
            partial.append(row)
    matches = exact + partial
    if matches:
        return ResolvedEmployee(matches[0]["employeeName"], None)
    return None


def from_independent_records(employee_id: str, context: ResolverContext) -> Optional[ResolvedEmployee]:
    for record in context.overtime_records:
        if not isinstance(record, dict):
            continue
        ref = record.get("employeeId")
        emp = embedded_employee(ref)
        if emp is not None and normalize_employee_id(ref) == employee_id:
            return ResolvedEmployee(emp["name"], emp)
    return None


EMPLOYEE_RESOLVERS: Sequence[Resolver] = (
    from_directory,
    from_schedule_records,
    from_summary_rows,
    from_independent_records,
)

# Summary-seeded groups trust the row's own name before anything else.
SUMMARY_SEED_RESOLVERS: Sequence[Resolver] = (
    from_summary_rows,
    from_directory,
    from_independent_records,
)


def resolve_employee(
    employee_id: str,
    context: ResolverContext,
    month: int,
    resolvers: Sequence[Resolver] = EMPLOYEE_RESOLVERS
) -> ResolvedEmployee:
    for resolver in resolvers:
        try:
            found = resolver(employee_id, context)
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            logging.warning(f"{resolver.__name__} failed for employee_id: {employee_id}: {exc}")
            continue
        if found is not None and found.name:
            return found
    return ResolvedEmployee(fallback_employee_name(month), None)


def build_employee(employee_id: str, resolved: ResolvedEmployee) -> Employee:
    if resolved.employee is not None:
        data = dict(resolved.employee)
        data["_id"] = employee_id
        data["name"] = resolved.name
        try:
            return Employee.model_validate(data)
        except ValidationError as exc:
            logging.warning(f"Unusable employee object for employee_id: {employee_id}: {exc.error_count()} errors")
    return Employee.model_validate({
        "_id": employee_id,
        "name": resolved.name,
        "position": DEFAULT_POSITION,
        "department": DEFAULT_DEPARTMENT
    })
