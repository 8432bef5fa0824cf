"""Mapping from the error taxonomy to HTTP responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.schemas import ErrorResponse
from core.exceptions import ErrorCode, TelemetryError

logger = logging.getLogger(__name__)

INVALID_JSON_MESSAGE = "Invalid JSON: check if body has correct JSON syntax"

_DOMAIN_STATUS = {
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.EXISTS: status.HTTP_409_CONFLICT,
}


def error_payload(exc: Exception) -> ErrorResponse:
    """Translate any exception into the ``{status, code, message}`` body."""
    if isinstance(exc, TelemetryError) and exc.is_domain:
        return ErrorResponse(
            status=_DOMAIN_STATUS.get(exc.code, status.HTTP_400_BAD_REQUEST),
            code=exc.code,
            message=exc.message,
        )
    return ErrorResponse(
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        code=ErrorCode.INTERNAL,
        message=str(exc) or type(exc).__name__,
    )


def _respond(payload: ErrorResponse) -> JSONResponse:
    return JSONResponse(status_code=payload.status, content=jsonable_encoder(payload))


async def handle_telemetry_error(request: Request, exc: TelemetryError) -> JSONResponse:
    payload = error_payload(exc)
    if payload.status >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error(
            exc.message,
            extra={"path": request.url.path, "metric": getattr(exc, "metric", None)},
        )
    return _respond(payload)


async def handle_request_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    if any(error.get("type") == "json_invalid" for error in errors):
        message = INVALID_JSON_MESSAGE
    else:
        message = "; ".join(
            f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}"
            for error in errors
        )
    return _respond(
        ErrorResponse(
            status=status.HTTP_400_BAD_REQUEST,
            code=ErrorCode.BAD_REQUEST,
            message=message,
        )
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error", extra={"path": request.url.path})
    return _respond(error_payload(exc))


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TelemetryError, handle_telemetry_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
