"""Append-only reading log for a single metric."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Optional, TypeVar

from pymongo import DESCENDING
from pymongo.errors import PyMongoError

from core.exceptions import NotFoundError, StorageReadError, StorageWriteError
from models.records import Metric, Reading

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Backend faults that are reported as storage errors rather than propagated raw.
_STORAGE_FAULTS = (PyMongoError, OSError, asyncio.TimeoutError)


class MetricStore:
    """Wraps one collection; ``_id`` order is insertion order."""

    def __init__(
        self,
        metric: Metric,
        collection: Any,
        database_name: str,
        timeout: Optional[float] = None,
    ) -> None:
        self.metric = metric
        self.collection = collection
        self.database_name = database_name
        self.timeout = timeout

    async def append(self, sensor_id: str, value: str, sequence_number: str) -> None:
        reading = Reading(sensor_id=sensor_id, value=value, sequence_number=sequence_number)
        try:
            await self._bounded(self.collection.insert_one(reading.to_document()))
        except _STORAGE_FAULTS as exc:
            logger.error(
                "Failed to append reading",
                extra=self._log_context(sensor_id, reason=_describe(exc)),
            )
            raise StorageWriteError(
                f"Failed writing database {self.database_name} collection {self.metric.label}: "
                f"{_describe(exc)}",
                metric=self.metric.label,
            ) from exc

    async def latest(self, sensor_id: str) -> Reading:
        try:
            document = await self._bounded(
                self.collection.find_one({"sensorID": sensor_id}, sort=[("_id", DESCENDING)])
            )
        except _STORAGE_FAULTS as exc:
            logger.error(
                "Failed to read latest reading",
                extra=self._log_context(sensor_id, reason=_describe(exc)),
            )
            raise StorageReadError(
                f"Failed reading database {self.database_name} collection {self.metric.label}: "
                f"{_describe(exc)}",
                metric=self.metric.label,
            ) from exc

        if document is None:
            raise NotFoundError(
                f"No {self.metric.label} reading found for sensorId {sensor_id}"
            )
        try:
            return Reading.from_document(document)
        except (KeyError, TypeError) as exc:
            raise StorageReadError(
                f"Malformed record in database {self.database_name} collection "
                f"{self.metric.label}: {exc!r}",
                metric=self.metric.label,
            ) from exc

    async def _bounded(self, operation: Awaitable[T]) -> T:
        if self.timeout is None:
            return await operation
        return await asyncio.wait_for(operation, timeout=self.timeout)

    def _log_context(self, sensor_id: str, reason: str) -> dict[str, str]:
        return {
            "metric": self.metric.label,
            "collection": self.metric.collection_name,
            "sensor_id": sensor_id,
            "reason": reason,
        }


def _describe(exc: BaseException) -> str:
    if isinstance(exc, asyncio.TimeoutError):
        return "operation timed out"
    return str(exc) or type(exc).__name__
