import json

import httpx
import pytest

from utils.client import OvertimeServiceClient
from utils.config import Settings

BASE_URL = "http://pos.test"


class FakeBackend:
    """In-memory stand-in for the POS backend, served through httpx.MockTransport."""

    def __init__(self):
        self.employees = [
            {"_id": "E1", "name": "王小明", "position": "藥師"},
            {"_id": "E2", "name": "李小華", "position": "店員"}
        ]
        self.overtime_records = [
            {"_id": "r1", "employeeId": "E1", "date": "2025-07-03", "hours": 2, "status": "approved"},
            {"_id": "r2", "employeeId": "E2", "date": "2025-07-08", "hours": 1.5, "status": "pending", "description": "盤點"}
        ]
        self.schedules = [
            {"_id": "s1", "employeeId": {"_id": "E1", "name": "王小明"}, "date": "2025-07-05",
             "shift": "morning", "leaveType": "overtime"},
            {"_id": "s2", "employeeId": "E3", "date": "2025-07-06", "shift": "evening", "leaveType": "overtime"},
            {"_id": "s3", "employeeId": "E2", "date": "2025-07-07", "shift": "afternoon", "leaveType": "sick"}
        ]
        self.monthly_stats = [
            {"employeeId": "E1", "employeeName": "王小明", "overtimeHours": 5.5, "scheduleRecordCount": 1},
            {"employeeId": "E3", "overtimeHours": 1.5, "scheduleRecordCount": 1}
        ]
        self.failures = {}
        self.calls = []

    def fail(self, method, path, status_code, body):
        self.failures[(method, path)] = (status_code, body)

    def handler(self, request: httpx.Request) -> httpx.Response:
        method, path = request.method, request.url.path
        body = json.loads(request.content) if request.content else None
        self.calls.append((method, path, dict(request.url.params), body, request.headers.get("x-auth-token")))

        if (method, path) in self.failures:
            status_code, payload = self.failures[(method, path)]
            return httpx.Response(status_code, json=payload)

        if method == "GET" and path == "/api/employees":
            return httpx.Response(200, json={"employees": self.employees, "total": len(self.employees)})
        if method == "GET" and path == "/api/overtime-records":
            records = self.overtime_records
            employee_id = request.url.params.get("employeeId")
            if employee_id:
                records = [r for r in records if r["employeeId"] == employee_id]
            return httpx.Response(200, json={"success": True, "data": records})
        if method == "GET" and path == "/api/overtime-records/monthly-stats":
            return httpx.Response(200, json=self.monthly_stats)
        if method == "GET" and path == "/api/employee-schedules":
            return httpx.Response(200, json=self.schedules)
        if method == "POST" and path == "/api/overtime-records":
            record = {"_id": f"r{len(self.overtime_records) + 1}", "status": "pending", **body}
            self.overtime_records.append(record)
            return httpx.Response(200, json={"success": True, "data": record})
        if path.startswith("/api/overtime-records/"):
            record_id = path.rsplit("/", 1)[-1]
            record = next((r for r in self.overtime_records if r["_id"] == record_id), None)
            if record is None:
                return httpx.Response(404, json={"msg": "找不到加班記錄"})
            if method == "PUT":
                record.update(body)
                return httpx.Response(200, json={"success": True, "data": record})
            if method == "DELETE":
                self.overtime_records.remove(record)
                return httpx.Response(200, json={"msg": "加班記錄已刪除"})
        return httpx.Response(404, json={"message": "not found"})

    def requests(self, method=None):
        return [call for call in self.calls if method is None or call[0] == method]


@pytest.fixture
def settings():
    return Settings(api_base_url=BASE_URL, api_token="test-token", api_timeout=5.0)


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def client(settings, backend):
    service_client = OvertimeServiceClient(settings, transport=httpx.MockTransport(backend.handler))
    yield service_client
    service_client.close()
