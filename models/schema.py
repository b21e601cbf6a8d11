from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Employee(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: str = Field(alias="_id")
    name: str
    position: Optional[str] = None
    department: Optional[str] = None


class EmployeeGroup(CamelModel):
    employee: Employee
    records: List[Dict[str, Any]] = Field(default_factory=list)
    independent_hours: float = 0.0
    schedule_hours: float = 0.0
    total_hours: float = 0.0
    schedule_records: List[Dict[str, Any]] = Field(default_factory=list)
    schedule_record_count: int = 0
    latest_date: datetime = datetime(1970, 1, 1)


class MergedRecord(CamelModel):
    id: str
    type: str
    date: datetime
    original_record: Dict[str, Any]
    hours: float
    description: str
    status: str
    shift: Optional[str] = None


class OvertimeRecordPayload(CamelModel):
    employee_id: Optional[Any] = None
    date: Optional[Any] = None
    hours: Optional[Any] = None
    description: Optional[str] = None
    status: Optional[str] = None


class ReportEntry(CamelModel):
    employee_id: str
    group: EmployeeGroup


class OvertimeReportView(CamelModel):
    year: int
    month: int
    groups: List[ReportEntry]
    errors: List[str] = Field(default_factory=list)


class MutationResult(CamelModel):
    success: bool
    message: str
    errors: Dict[str, str] = Field(default_factory=dict)
    report: Optional[OvertimeReportView] = None
