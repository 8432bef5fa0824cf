"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from pydantic import BaseModel, Field

from core.exceptions import ErrorCode


class LastReadingResponse(BaseModel):
    """Most recent reading stored for a sensor."""

    sensor_value: str = Field(..., alias="sensorValue")
    seq_num: str = Field(..., alias="seqNum")


class WriteResponse(BaseModel):
    """Echo of an accepted write, as the URL that produced it."""

    url: str = Field(..., alias="URL")


class IpAddrResponse(BaseModel):
    ip: str


class ErrorResponse(BaseModel):
    """Body of every JSON error response."""

    status: int = Field(..., ge=400, le=599)
    code: ErrorCode
    message: str
