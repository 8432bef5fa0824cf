from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel

from app.errors import INVALID_JSON_MESSAGE, error_payload, install_error_handlers
from core.exceptions import (
    ConflictError,
    ErrorCode,
    InternalError,
    NotFoundError,
    StorageReadError,
    StorageWriteError,
    ValidationError,
)


@pytest.mark.parametrize(
    ("error", "status", "code"),
    [
        (NotFoundError("missing"), 404, ErrorCode.NOT_FOUND),
        (ConflictError("exists"), 409, ErrorCode.EXISTS),
        (ValidationError("bad"), 400, ErrorCode.BAD_REQUEST),
        (StorageWriteError("write failed for speed", metric="speed"), 500, ErrorCode.INTERNAL),
        (StorageReadError("read failed for distance", metric="distance"), 500, ErrorCode.INTERNAL),
        (InternalError("boom"), 500, ErrorCode.INTERNAL),
        (RuntimeError("unexpected"), 500, ErrorCode.INTERNAL),
    ],
)
def test_error_payload_maps_taxonomy(error: Exception, status: int, code: ErrorCode) -> None:
    payload = error_payload(error)

    assert payload.status == status
    assert payload.code == code
    assert payload.message == str(error)


class Body(BaseModel):
    name: str


def _probe_app() -> FastAPI:
    app = FastAPI()
    install_error_handlers(app)

    @app.post("/echo")
    async def echo(body: Body) -> dict[str, str]:
        return {"name": body.name}

    @app.get("/storage")
    async def storage() -> None:
        raise StorageReadError("Failed reading collection speed", metric="speed")

    @app.get("/crash")
    async def crash() -> None:
        raise RuntimeError("kaboom")

    return app


def test_invalid_json_body_gets_fixed_hint() -> None:
    client = TestClient(_probe_app())

    response = client.post("/echo", content="{not json", headers={"content-type": "application/json"})

    assert response.status_code == 400
    assert response.json() == {"status": 400, "code": "BAD_REQUEST", "message": INVALID_JSON_MESSAGE}


def test_schema_mismatch_is_bad_request() -> None:
    client = TestClient(_probe_app())

    response = client.post("/echo", json={"other": 1})

    assert response.status_code == 400
    assert response.json()["code"] == "BAD_REQUEST"
    assert "name" in response.json()["message"]


def test_storage_error_is_internal_with_metric_in_message() -> None:
    client = TestClient(_probe_app())

    response = client.get("/storage")

    assert response.status_code == 500
    assert response.json() == {
        "status": 500,
        "code": "INTERNAL",
        "message": "Failed reading collection speed",
    }


def test_uncaught_error_becomes_internal() -> None:
    client = TestClient(_probe_app(), raise_server_exceptions=False)

    response = client.get("/crash")

    assert response.status_code == 500
    assert response.json()["code"] == "INTERNAL"
