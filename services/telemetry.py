"""Lifecycle owner of the storage client and the per-metric stores."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Callable, Dict, Optional, Type

from pymongo.errors import CollectionInvalid, PyMongoError

from core.exceptions import (
    DatabaseConnectionError,
    StorageError,
    StorageReadError,
    StorageWriteError,
)
from datastore.client import open_client
from datastore.connection import ConnectionInfo, parse_connection_string
from models.records import Metric, Reading
from services.metric_store import MetricStore
from settings import get_settings

logger = logging.getLogger(__name__)

SEED_SENSOR_IDS = ("1", "2", "3", "4")
SEED_VALUE = "-1"
SEED_SEQUENCE_NUMBER = "0"

ClientFactory = Callable[[ConnectionInfo], Any]


class TelemetryDatabase:
    """Connects to the backend and exposes write/read-last per metric."""

    def __init__(
        self,
        url: str,
        timeout: Optional[float] = None,
        client_factory: Optional[ClientFactory] = None,
    ) -> None:
        self.connection = parse_connection_string(url)
        self.timeout = timeout
        self._client_factory = client_factory or (
            lambda info: open_client(info, timeout=timeout)
        )
        self._client: Any = None
        self._database: Any = None
        self._stores: Dict[Metric, MetricStore] = {}

    @property
    def database_name(self) -> str:
        return self.connection.database_name

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    async def init(self) -> None:
        """Connect, open the metric collections and seed the default readings.

        Raises ``DatabaseConnectionError`` when the backend is unreachable; the
        caller is expected to stop the process. A second call while connected
        keeps the existing connection.
        """
        if self._client is not None:
            logger.warning("Database already connected", extra={"database": self.database_name})
            return
        client = self._client_factory(self.connection)
        try:
            await client.admin.command("ping")
        except (PyMongoError, OSError) as exc:
            await _close_quietly(client)
            logger.critical(
                "Database failed to connect; check that the server is online and the port is correct",
                extra={"database": self.database_name, "reason": str(exc)},
            )
            raise DatabaseConnectionError(
                f"Cannot connect to {self.connection.server_url}: {exc}"
            ) from exc

        self._client = client
        self._database = client[self.database_name]
        logger.info("Database connected", extra={"database": self.database_name})
        await self._prepare_collections()

    async def close(self) -> None:
        if self._client is not None:
            client, self._client = self._client, None
            self._database = None
            self._stores.clear()
            await client.close()
        logger.info("Database connection closed", extra={"database": self.database_name})

    async def clear_all(self) -> None:
        """Drop every collection of the database, not only the metric ones.

        The metric collections are then recreated with their default readings.
        """
        if self._database is None:
            logger.warning("Clear requested without a connection", extra={"database": self.database_name})
            return
        for name in await self._database.list_collection_names():
            await self._database.drop_collection(name)
            logger.warning(
                "Dropped collection",
                extra={"database": self.database_name, "collection": name},
            )
        await self._prepare_collections()

    def store(self, metric: Metric, error: Type[StorageError] = StorageReadError) -> MetricStore:
        store = self._stores.get(metric)
        if store is None:
            raise error(
                f"Database {self.database_name} is not connected; "
                f"collection {metric.label} is unavailable",
                metric=metric.label,
            )
        return store

    async def write(self, metric: Metric, sensor_id: str, value: str, sequence_number: str) -> None:
        await self.store(metric, StorageWriteError).append(sensor_id, value, sequence_number)

    async def read_last(self, metric: Metric, sensor_id: str) -> Reading:
        return await self.store(metric, StorageReadError).latest(sensor_id)

    async def write_temp(self, sensor_id: str, value: str, sequence_number: str) -> None:
        await self.write(Metric.temperature, sensor_id, value, sequence_number)

    async def write_dist(self, sensor_id: str, value: str, sequence_number: str) -> None:
        await self.write(Metric.distance, sensor_id, value, sequence_number)

    async def write_speed(self, sensor_id: str, value: str, sequence_number: str) -> None:
        await self.write(Metric.speed, sensor_id, value, sequence_number)

    async def read_last_temp(self, sensor_id: str) -> Reading:
        return await self.read_last(Metric.temperature, sensor_id)

    async def read_last_dist(self, sensor_id: str) -> Reading:
        return await self.read_last(Metric.distance, sensor_id)

    async def read_last_speed(self, sensor_id: str) -> Reading:
        return await self.read_last(Metric.speed, sensor_id)

    async def _prepare_collections(self) -> None:
        for metric in Metric:
            collection = await self._open_collection(metric)
            self._stores[metric] = MetricStore(
                metric, collection, database_name=self.database_name, timeout=self.timeout
            )

        for metric in Metric:
            for sensor_id in SEED_SENSOR_IDS:
                await self.write(metric, sensor_id, SEED_VALUE, SEED_SEQUENCE_NUMBER)

    async def _open_collection(self, metric: Metric) -> Any:
        name = metric.collection_name
        try:
            return await self._database.create_collection(name)
        except CollectionInvalid:
            return self._database[name]
        except (PyMongoError, OSError) as exc:
            raise StorageWriteError(
                f"Failed creating database {self.database_name} collection {metric.label}: {exc}",
                metric=metric.label,
            ) from exc


async def _close_quietly(client: Any) -> None:
    try:
        await client.close()
    except (PyMongoError, OSError):
        logger.debug("Ignoring error while closing an unconnected client")


@lru_cache
def build_default_database() -> TelemetryDatabase:
    """Factory that wires the database from the environment settings."""
    settings = get_settings()
    return TelemetryDatabase(
        settings.database_url,
        timeout=settings.storage_timeout,
        client_factory=lambda info: open_client(
            info,
            timeout=settings.storage_timeout,
            mock_persistence_path=settings.mock_persistence_path,
        ),
    )
