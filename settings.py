from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Tuple


_STORE_NAME_ENV = "READING_STORE_NAME"
_STORE_PATH_ENV = "READING_STORE_PATH"
_STORE_TIMEOUT_ENV = "STORE_TIMEOUT_SECONDS"
_CONNECT_RETRY_ENV = "STORE_CONNECT_RETRY_SECONDS"
_WORKER_COUNT_ENV = "QUERY_WORKER_COUNT"
_QUERY_TIMEOUT_ENV = "QUERY_TIMEOUT_SECONDS"
_HISTORY_LIMIT_ENV = "HISTORY_LIMIT"
_LOG_LEVEL_ENV = "LOG_LEVEL"
_CORS_ORIGINS_ENV = "CORS_ALLOW_ORIGINS"


@dataclass(frozen=True)
class Settings:
    store_name: str
    store_path: Optional[str]
    store_timeout: float
    connect_retry_seconds: float
    query_workers: int
    query_timeout: float
    history_limit: int
    log_level: str
    cors_origins: Tuple[str, ...]


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_positive_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


def _read_csv_env(name: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    value = os.getenv(name)
    if value is None:
        return default
    items = tuple(item.strip() for item in value.split(",") if item.strip())
    return items or default


@lru_cache
def get_settings() -> Settings:
    return Settings(
        store_name=_read_str_env(_STORE_NAME_ENV, "readings"),
        store_path=_read_optional_env(_STORE_PATH_ENV, "./tmp/readings.json"),
        store_timeout=_read_positive_float(_STORE_TIMEOUT_ENV, 5.0),
        connect_retry_seconds=_read_positive_float(_CONNECT_RETRY_ENV, 5.0),
        query_workers=_read_positive_int(_WORKER_COUNT_ENV, 4),
        query_timeout=_read_positive_float(_QUERY_TIMEOUT_ENV, 10.0),
        history_limit=_read_positive_int(_HISTORY_LIMIT_ENV, 48),
        log_level=_read_log_level("INFO"),
        cors_origins=_read_csv_env(_CORS_ORIGINS_ENV, ("*",)),
    )
