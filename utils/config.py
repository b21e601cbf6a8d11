import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


@dataclass(frozen=True)
class Settings:
    api_base_url: str = "http://localhost:5000"
    api_token: Optional[str] = None
    api_timeout: float = 10.0
    employee_fetch_limit: int = 1000
    log_level: str = "INFO"
    log_format: str = "text"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings(
        api_base_url=os.getenv("OVERTIME_API_BASE_URL", "http://localhost:5000").rstrip("/"),
        api_token=os.getenv("OVERTIME_API_TOKEN") or None,
        api_timeout=float(os.getenv("OVERTIME_API_TIMEOUT", "10")),
        employee_fetch_limit=int(os.getenv("OVERTIME_EMPLOYEE_FETCH_LIMIT", "1000")),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_format=os.getenv("LOG_FORMAT", "text").lower()
    )
