"""Error taxonomy shared by the storage layer and the HTTP binding."""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorCode(str, Enum):
    """Machine-readable error codes exposed in error responses."""

    BAD_REQUEST = "BAD_REQUEST"
    NOT_FOUND = "NOT_FOUND"
    EXISTS = "EXISTS"
    INTERNAL = "INTERNAL"


class TelemetryError(Exception):
    """Base error for the service.

    ``is_domain`` separates caller mistakes (reported with their own code)
    from faults of the service or its backend (reported as ``INTERNAL``).
    """

    code: ErrorCode = ErrorCode.INTERNAL
    is_domain: bool = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigError(TelemetryError):
    """Raised when the connection string or backend scheme is unusable."""


class DatabaseConnectionError(TelemetryError):
    """Raised when the storage backend cannot be reached."""


class InternalError(TelemetryError):
    """Raised for unexpected faults outside the storage layer."""


class DomainError(TelemetryError):
    is_domain = True


class ValidationError(DomainError):
    """Raised when a required request field is missing or empty."""

    code = ErrorCode.BAD_REQUEST


class NotFoundError(DomainError):
    """Raised when no reading exists for the requested sensor."""

    code = ErrorCode.NOT_FOUND


class ConflictError(DomainError):
    code = ErrorCode.EXISTS


class StorageError(TelemetryError):
    """Backend I/O fault tied to one metric collection."""

    def __init__(self, message: str, metric: Optional[str] = None) -> None:
        super().__init__(message)
        self.metric = metric


class StorageWriteError(StorageError):
    pass


class StorageReadError(StorageError):
    pass
