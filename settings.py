from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_DATABASE_URL_ENV = "TELEMETRY_DATABASE_URL"
_MOCK_PATH_ENV = "TELEMETRY_MOCK_PERSISTENCE_PATH"
_FILE_LOG_ROOT_ENV = "TELEMETRY_FILE_LOG_ROOT"
_IP_ADDR_FILE_ENV = "TELEMETRY_IP_ADDR_FILE"
_STORAGE_TIMEOUT_ENV = "TELEMETRY_STORAGE_TIMEOUT"
_ADMIN_ROUTES_ENV = "TELEMETRY_ENABLE_ADMIN_ROUTES"
_HOST_ENV = "SERVER_HOST"
_PORT_ENV = "SERVER_PORT"
_LOG_LEVEL_ENV = "LOG_LEVEL"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    database_url: str
    mock_persistence_path: Optional[str]
    file_log_root: str
    ip_addr_file: str
    storage_timeout: float
    enable_admin_routes: bool
    host: str
    port: int
    log_level: str


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


def _read_port(default: int) -> int:
    value = os.getenv(_PORT_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if 0 < parsed < 65536 else default


def _read_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip().lower()
    if candidate in _TRUE_VALUES:
        return True
    if candidate in _FALSE_VALUES:
        return False
    return default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        database_url=_read_str_env(_DATABASE_URL_ENV, "mock://localhost/telemetry"),
        mock_persistence_path=_read_optional_env(_MOCK_PATH_ENV, "./tmp/mock_mongo"),
        file_log_root=_read_str_env(_FILE_LOG_ROOT_ENV, "./tmp/file_log"),
        ip_addr_file=_read_str_env(_IP_ADDR_FILE_ENV, "IP_Addr.txt"),
        storage_timeout=_read_positive_float(_STORAGE_TIMEOUT_ENV, 10.0),
        enable_admin_routes=_read_bool(_ADMIN_ROUTES_ENV, True),
        host=_read_str_env(_HOST_ENV, "0.0.0.0"),
        port=_read_port(8000),
        log_level=_read_log_level("INFO"),
    )
