"""HTTP route definitions for the service."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from fastapi.responses import PlainTextResponse
from pymongo.errors import PyMongoError

from app.schemas import IpAddrResponse, LastReadingResponse, WriteResponse
from core.exceptions import InternalError, TelemetryError, ValidationError
from models.records import Metric
from services.telemetry import TelemetryDatabase, build_default_database
from settings import get_settings
from storage.file_log import FileWriter, build_default_file_writer

logger = logging.getLogger(__name__)

router = APIRouter()
admin_router = APIRouter(tags=["admin"])


def get_database() -> TelemetryDatabase:
    return build_default_database()


def get_file_writer() -> FileWriter:
    return build_default_file_writer()


def _is_blank(value: Optional[str]) -> bool:
    return value is None or len(value) == 0


def _add_metric_routes(metric: Metric) -> None:
    prefix = f"/{metric.value}"

    @router.get(
        f"{prefix}/{{sensor_id}}",
        response_model=LastReadingResponse,
        name=f"read_last_{metric.name}",
        summary=f"Latest {metric.name} reading for a sensor.",
    )
    async def read_last(
        sensor_id: str = Path(..., description="Sensor identifier."),
        database: TelemetryDatabase = Depends(get_database),
    ) -> LastReadingResponse:
        if _is_blank(sensor_id):
            raise ValidationError(f"Incorrect url, try like > {prefix}/1")

        reading = await database.read_last(metric, sensor_id)
        return LastReadingResponse(sensorValue=reading.value, seqNum=reading.sequence_number)

    @router.get(
        prefix,
        response_model=WriteResponse,
        status_code=status.HTTP_201_CREATED,
        name=f"write_{metric.name}",
        summary=f"Store a {metric.name} reading.",
    )
    async def write(
        sensor_id: Optional[str] = Query(None, alias="sensorId"),
        value: Optional[str] = Query(None),
        seq_num: Optional[str] = Query(None, alias="seqNum"),
        database: TelemetryDatabase = Depends(get_database),
        file_writer: FileWriter = Depends(get_file_writer),
    ) -> WriteResponse:
        if _is_blank(sensor_id) or _is_blank(value) or _is_blank(seq_num):
            raise ValidationError(
                f"Incorrect url, try like > {prefix}?sensorId=1&value=26&seqNum=0"
            )

        try:
            await file_writer.write_file(metric.value, sensor_id, value)
        except OSError as exc:
            raise InternalError(f"Failed writing {metric.name} side log: {exc}") from exc
        await database.write(metric, sensor_id, value, seq_num)

        return WriteResponse(URL=f"{prefix}?sensorId={sensor_id}&value={value}&seqNum={seq_num}")


for _metric in Metric:
    _add_metric_routes(_metric)


@router.get(
    "/ipAddr",
    response_model=IpAddrResponse,
    summary="Address advertised by this host.",
)
async def get_ip_addr(file_writer: FileWriter = Depends(get_file_writer)) -> IpAddrResponse:
    name = get_settings().ip_addr_file
    try:
        address = await file_writer.read_file(name)
    except OSError as exc:
        raise InternalError(f"Cannot read address file {name!r}: {exc}") from exc
    return IpAddrResponse(ip=address)


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck(database: TelemetryDatabase = Depends(get_database)) -> dict[str, str]:
    return {
        "status": "ok",
        "database": "connected" if database.is_connected else "closed",
    }


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}


# Admin routes answer with a plain-text GOOD or BAD body.
@admin_router.get("/closeDB", response_class=PlainTextResponse, summary="Close the database connection.")
async def close_database(database: TelemetryDatabase = Depends(get_database)) -> PlainTextResponse:
    try:
        await database.close()
    except (TelemetryError, PyMongoError, OSError):
        logger.exception("Closing the database failed", extra={"database": database.database_name})
        return PlainTextResponse("BAD", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
    return PlainTextResponse("GOOD")


@admin_router.get("/clearDB", response_class=PlainTextResponse, summary="Drop every collection.")
async def clear_database(database: TelemetryDatabase = Depends(get_database)) -> PlainTextResponse:
    try:
        await database.clear_all()
    except (TelemetryError, PyMongoError, OSError):
        logger.exception("Clearing the database failed", extra={"database": database.database_name})
        return PlainTextResponse("BAD", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
    return PlainTextResponse("GOOD")
