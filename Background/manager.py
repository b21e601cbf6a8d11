import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Dict, List, Optional

from main import OvertimeReport
from models.schema import MutationResult, OvertimeRecordPayload
from utils.client import OvertimeServiceClient, ServiceError
from utils.helper import format_date_yyyy_mm_dd, month_date_range, normalize_employee_id, parse_record_date, validate_overtime_form


@dataclass
class OvertimeSnapshot:
    report: OvertimeReport
    employees: List[Dict[str, Any]]
    overtime_records: List[Any]
    schedule_records: List[Any]
    summary_rows: List[Any]
    errors: List[str]


class OvertimeManager:
    """
    Runs the fetch-and-aggregate cycle for one month and forwards mutations.

    Each successful mutation triggers a full refetch instead of patching the
    current report, so the report always reflects both upstream sources.
    """

    def __init__(self, client: OvertimeServiceClient, year: int, month: int,
                 employee_id: Optional[str] = None, include_idle_employees: bool = False):
        self.client = client
        self.year = year
        self.month = month
        self.employee_id = employee_id
        self.include_idle_employees = include_idle_employees
        self.snapshot: Optional[OvertimeSnapshot] = None

    def _fetch_source(self, fetcher: Callable[[], List[Any]], label: str, errors: List[str]) -> List[Any]:
        try:
            return fetcher()
        except ServiceError as exc:
            logging.error(f"Fetching {label} for {self.year}-{self.month:02d} failed: {exc.message}")
            errors.append(exc.message)
            return []

    def fetch(self) -> OvertimeSnapshot:
        errors: List[str] = []
        start_date, end_date = month_date_range(self.year, self.month)

        employees = self._fetch_source(self.client.get_employees, "employees", errors)
        overtime_records = self._fetch_source(
            lambda: self.client.get_overtime_records(start_date, end_date, employee_id=self.employee_id),
            "overtime records", errors
        )
        summary_rows = self._fetch_source(
            lambda: self.client.get_monthly_stats(self.year, self.month),
            "monthly stats", errors
        )
        schedule_records = self._fetch_source(
            lambda: self.client.get_schedules(start_date, end_date),
            "schedule records", errors
        )

        if self.employee_id:
            summary_rows = [
                stat for stat in summary_rows
                if isinstance(stat, dict) and normalize_employee_id(stat.get("employeeId")) == self.employee_id
            ]
            schedule_records = [
                record for record in schedule_records
                if isinstance(record, dict) and normalize_employee_id(record.get("employeeId")) == self.employee_id
            ]

        report = OvertimeReport.build(
            overtime_records, schedule_records, summary_rows, employees,
            self.year, self.month, errors, self.include_idle_employees
        )
        logging.info(
            f"Overtime report {self.year}-{self.month:02d}: {len(report)} employee(s), "
            f"{len(overtime_records)} independent record(s), {len(errors)} error(s)"
        )
        self.snapshot = OvertimeSnapshot(report, employees, overtime_records, schedule_records, summary_rows, errors)
        return self.snapshot

    @staticmethod
    def _api_data(payload: OvertimeRecordPayload) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if payload.employee_id:
            data["employeeId"] = normalize_employee_id(payload.employee_id)
        if payload.date:
            if isinstance(payload.date, date):
                data["date"] = format_date_yyyy_mm_dd(payload.date)
            else:
                parsed = parse_record_date(payload.date)
                data["date"] = format_date_yyyy_mm_dd(parsed) if parsed else payload.date
        if payload.hours is not None:
            data["hours"] = float(payload.hours)
        if payload.description is not None:
            data["description"] = payload.description
        if payload.status:
            data["status"] = payload.status
        return data

    def _mutate(self, action: Callable[[], Any], success_message: str, label: str) -> MutationResult:
        try:
            action()
        except ServiceError as exc:
            logging.error(f"{label} failed: {exc.message}")
            return MutationResult(success=False, message=exc.message)
        snapshot = self.fetch()
        return MutationResult(success=True, message=success_message, report=snapshot.report.to_view())

    def create_record(self, payload: OvertimeRecordPayload) -> MutationResult:
        errors = validate_overtime_form(payload.model_dump(by_alias=True))
        if errors:
            return MutationResult(success=False, message="表單資料有誤", errors=errors)
        data = self._api_data(payload)
        return self._mutate(lambda: self.client.create_overtime_record(data), "加班記錄創建成功", "Create overtime record")

    def update_record(self, record_id: str, payload: OvertimeRecordPayload) -> MutationResult:
        if payload.hours is not None:
            hours_error = validate_overtime_form({"employeeId": "-", "date": "-", "hours": payload.hours}).get("hours")
            if hours_error:
                return MutationResult(success=False, message="表單資料有誤", errors={"hours": hours_error})
        data = self._api_data(payload)
        return self._mutate(
            lambda: self.client.update_overtime_record(record_id, data),
            "加班記錄更新成功", f"Update overtime record {record_id}"
        )

    def approve_record(self, record_id: str) -> MutationResult:
        return self.update_record(record_id, OvertimeRecordPayload(status="approved"))

    def reject_record(self, record_id: str) -> MutationResult:
        return self.update_record(record_id, OvertimeRecordPayload(status="rejected"))

    def delete_record(self, record_id: str) -> MutationResult:
        return self._mutate(
            lambda: self.client.delete_overtime_record(record_id),
            "加班記錄已刪除", f"Delete overtime record {record_id}"
        )
