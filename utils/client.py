"""
HTTP client for the upstream POS services the overtime report reads from.

Every failure, transport or application level, is raised as ``ServiceError``
carrying the message the UI should show.
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

from utils.config import Settings, get_settings

OVERTIME_RECORDS_PATH = "/api/overtime-records"
MONTHLY_STATS_PATH = "/api/overtime-records/monthly-stats"
SCHEDULES_PATH = "/api/employee-schedules"
EMPLOYEES_PATH = "/api/employees"


class ServiceError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _error_message(response: httpx.Response, default: str) -> str:
    try:
        body = response.json()
    except ValueError:
        return default
    if isinstance(body, dict):
        return body.get("message") or body.get("msg") or default
    return default


def _unwrap(payload: Any, default_message: str, list_key: Optional[str] = None) -> Any:
    if isinstance(payload, dict) and "success" in payload:
        if not payload.get("success") or payload.get("data") is None:
            raise ServiceError(payload.get("message") or default_message)
        payload = payload["data"]
    if list_key and isinstance(payload, dict):
        payload = payload.get(list_key, payload.get("data"))
    return payload


def _as_list(payload: Any, default_message: str) -> List[Any]:
    if not isinstance(payload, list):
        raise ServiceError(default_message)
    return payload


class OvertimeServiceClient:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.BaseTransport] = None
    ):
        self.settings = settings or get_settings()
        headers = {}
        if self.settings.api_token:
            headers["x-auth-token"] = self.settings.api_token
        self._client = httpx.Client(
            base_url=self.settings.api_base_url,
            headers=headers,
            timeout=self.settings.api_timeout,
            transport=transport
        )

    def __enter__(self) -> "OvertimeServiceClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def _request(self, method: str, path: str, default_message: str, **kwargs) -> Any:
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logging.error(f"{method} {path} failed: {exc}")
            raise ServiceError(default_message) from exc

        if response.is_error:
            message = _error_message(response, default_message)
            logging.error(f"{method} {path} returned {response.status_code}: {message}")
            raise ServiceError(message, response.status_code)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise ServiceError(default_message, response.status_code) from exc

    def get_employees(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        message = "獲取員工列表失敗"
        params = {"limit": limit or self.settings.employee_fetch_limit}
        payload = self._request("GET", EMPLOYEES_PATH, message, params=params)
        return _as_list(_unwrap(payload, message, list_key="employees"), message)

    def get_overtime_records(
        self,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        employee_id: Optional[str] = None,
        status: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        message = "獲取加班記錄失敗"
        params = {
            key: value for key, value in (
                ("startDate", start_date),
                ("endDate", end_date),
                ("employeeId", employee_id),
                ("status", status)
            ) if value
        }
        payload = self._request("GET", OVERTIME_RECORDS_PATH, message, params=params)
        return _as_list(_unwrap(payload, message), message)

    def get_monthly_stats(self, year: int, month: int) -> List[Dict[str, Any]]:
        message = "獲取月度統計失敗"
        params = {"year": str(year), "month": str(month)}
        payload = self._request("GET", MONTHLY_STATS_PATH, message, params=params)
        return _as_list(_unwrap(payload, message), message)

    def get_schedules(self, start_date: str, end_date: str) -> List[Dict[str, Any]]:
        message = "獲取排班記錄失敗"
        params = {"startDate": start_date, "endDate": end_date}
        payload = self._request("GET", SCHEDULES_PATH, message, params=params)
        return _as_list(_unwrap(payload, message), message)

    def create_overtime_record(self, data: Dict[str, Any]) -> Any:
        message = "創建加班記錄失敗"
        return _unwrap(self._request("POST", OVERTIME_RECORDS_PATH, message, json=data), message)

    def update_overtime_record(self, record_id: str, data: Dict[str, Any]) -> Any:
        message = "更新加班記錄失敗"
        path = f"{OVERTIME_RECORDS_PATH}/{record_id}"
        return _unwrap(self._request("PUT", path, message, json=data), message)

    def delete_overtime_record(self, record_id: str) -> None:
        message = "刪除加班記錄失敗"
        self._request("DELETE", f"{OVERTIME_RECORDS_PATH}/{record_id}", message)
