import logging
from datetime import datetime
from typing import Iterator, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query

from Background.manager import OvertimeManager
from models.schema import MergedRecord, MutationResult, OvertimeRecordPayload, OvertimeReportView
from utils.client import OvertimeServiceClient
from utils.config import get_settings
from utils.logging_config import setup_logging

settings = get_settings()
setup_logging(settings)

app = FastAPI(title="Overtime Reconciliation Service")


def get_client() -> Iterator[OvertimeServiceClient]:
    client = OvertimeServiceClient(get_settings())
    try:
        yield client
    finally:
        client.close()


def get_manager(
    year: Optional[int] = Query(None, ge=2000, le=2100),
    month: Optional[int] = Query(None, ge=1, le=12),
    filter_employee_id: Optional[str] = Query(None, alias="employeeId"),
    client: OvertimeServiceClient = Depends(get_client)
) -> OvertimeManager:
    now = datetime.now()
    return OvertimeManager(client, year or now.year, month or now.month, employee_id=filter_employee_id)


def _mutation_response(result: MutationResult) -> MutationResult:
    if not result.success:
        status_code = 400 if result.errors else 502
        raise HTTPException(status_code=status_code, detail=result.message)
    return result


@app.get("/overtime/report", response_model=OvertimeReportView)
def overtime_report(manager: OvertimeManager = Depends(get_manager)):
    return manager.fetch().report.to_view()


@app.get("/overtime/report/{employee_id}/timeline", response_model=List[MergedRecord])
def overtime_timeline(employee_id: str, manager: OvertimeManager = Depends(get_manager)):
    report = manager.fetch().report
    if employee_id not in report:
        raise HTTPException(status_code=404, detail=f"No overtime data for employee {employee_id}")
    return report.merged_records(employee_id)


@app.post("/overtime-records", response_model=MutationResult)
def create_overtime_record(payload: OvertimeRecordPayload, manager: OvertimeManager = Depends(get_manager)):
    return _mutation_response(manager.create_record(payload))


@app.put("/overtime-records/{record_id}", response_model=MutationResult)
def update_overtime_record(record_id: str, payload: OvertimeRecordPayload,
                           manager: OvertimeManager = Depends(get_manager)):
    return _mutation_response(manager.update_record(record_id, payload))


@app.post("/overtime-records/{record_id}/approve", response_model=MutationResult)
def approve_overtime_record(record_id: str, manager: OvertimeManager = Depends(get_manager)):
    logging.info(f"Approving overtime record {record_id}")
    return _mutation_response(manager.approve_record(record_id))


@app.post("/overtime-records/{record_id}/reject", response_model=MutationResult)
def reject_overtime_record(record_id: str, manager: OvertimeManager = Depends(get_manager)):
    logging.info(f"Rejecting overtime record {record_id}")
    return _mutation_response(manager.reject_record(record_id))


@app.delete("/overtime-records/{record_id}", response_model=MutationResult)
def delete_overtime_record(record_id: str, manager: OvertimeManager = Depends(get_manager)):
    return _mutation_response(manager.delete_record(record_id))
