from __future__ import annotations
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from app.api import admin_router, router
from app.errors import install_error_handlers
from core.exceptions import ConfigError, DatabaseConnectionError, StorageError
from logging_config import configure_logging
from services.telemetry import TelemetryDatabase, build_default_database
from settings import get_settings
from storage.file_log import build_default_file_writer

logger = logging.getLogger(__name__)


async def open_database() -> TelemetryDatabase:
    """Build and initialise the process database; the service cannot run without it."""
    try:
        database = build_default_database()
        await database.init()
    except (ConfigError, DatabaseConnectionError, StorageError) as exc:
        logger.critical("Storage unavailable, exiting", extra={"reason": str(exc)})
        raise SystemExit(1) from exc
    return database


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    database = await open_database()
    try:
        yield
    finally:
        await database.close()
        build_default_database.cache_clear()
        build_default_file_writer.cache_clear()


async def log_requests(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    response = await call_next(request)
    if response.status_code >= 400:
        logger.warning(
            "Request failed",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
            },
        )
    return response


def create_app() -> FastAPI:
    configure_logging()
    settings = get_settings()
    app = FastAPI(
        title="Telemetry Store",
        description="Stores sensor readings per metric and serves the latest value per sensor.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )
    app.middleware("http")(log_requests)
    install_error_handlers(app)
    app.include_router(router)
    if settings.enable_admin_routes:
        app.include_router(admin_router)
    return app


def run() -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run(create_app(), host=settings.host, port=settings.port, log_config=None)


app = create_app()
