import pytest
from fastapi.testclient import TestClient

from Background.task import app, get_client


@pytest.fixture
def api(client):
    app.dependency_overrides[get_client] = lambda: client
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_report_endpoint(api):
    response = api.get("/overtime/report", params={"year": 2025, "month": 7})

    assert response.status_code == 200
    body = response.json()
    assert body["year"] == 2025
    assert body["errors"] == []
    first = body["groups"][0]
    assert first["employeeId"] == "E1"
    assert first["group"]["totalHours"] == 5.5
    assert first["group"]["scheduleHours"] == 3.5
    assert first["group"]["employee"]["_id"] == "E1"


def test_timeline_endpoint(api):
    response = api.get("/overtime/report/E3/timeline", params={"year": 2025, "month": 7})

    assert response.status_code == 200
    assert response.json()[0]["type"] == "schedule"
    assert response.json()[0]["hours"] == 1.5
    assert response.json()[0]["status"] == "approved"


def test_timeline_unknown_employee(api):
    response = api.get("/overtime/report/E42/timeline", params={"year": 2025, "month": 7})

    assert response.status_code == 404


def test_invalid_month_rejected(api):
    assert api.get("/overtime/report", params={"year": 2025, "month": 13}).status_code == 422


def test_create_invalid_record(api, backend):
    response = api.post("/overtime-records", params={"year": 2025, "month": 7}, json={"employeeId": "E1"})

    assert response.status_code == 400
    assert backend.requests("POST") == []


def test_approve_record(api, backend):
    response = api.post("/overtime-records/r2/approve", params={"year": 2025, "month": 7})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "加班記錄更新成功"
    assert body["errors"] == {}
    assert [entry["employeeId"] for entry in body["report"]["groups"]] == ["E1", "E2", "E3"]
    assert backend.overtime_records[1]["status"] == "approved"


def test_delete_upstream_failure(api):
    response = api.delete("/overtime-records/r99", params={"year": 2025, "month": 7})

    assert response.status_code == 502
    assert response.json()["detail"] == "找不到加班記錄"


def test_report_filtered_by_employee(api, backend):
    response = api.get("/overtime/report", params={"year": 2025, "month": 7, "employeeId": "E1"})

    assert response.status_code == 200
    assert [entry["employeeId"] for entry in response.json()["groups"]] == ["E1"]
    fetch = next(call for call in backend.requests("GET") if call[1] == "/api/overtime-records")
    assert fetch[2]["employeeId"] == "E1"


def test_create_returns_refreshed_report(api, backend):
    response = api.post(
        "/overtime-records",
        params={"year": 2025, "month": 7},
        json={"employeeId": "E1", "date": "2025-07-09", "hours": 2, "description": "盤點"}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "加班記錄創建成功"
    e1 = body["report"]["groups"][0]
    assert e1["employeeId"] == "E1"
    assert e1["group"]["independentHours"] == 4
    assert e1["group"]["totalHours"] == 5.5
    assert e1["group"]["scheduleHours"] == 1.5
