from __future__ import annotations

import asyncio
import time

import pytest
from pymongo.errors import AutoReconnect

from core.exceptions import NotFoundError, StorageReadError, StorageWriteError
from datastore.mock_mongo import MockDatabase, MockMongoClient
from models.records import Metric, Reading
from services.metric_store import MetricStore


class FailingCollection:
    async def insert_one(self, document):
        raise AutoReconnect("connection reset")

    async def find_one(self, filter=None, sort=None):
        raise AutoReconnect("connection reset")


class HangingCollection:
    async def insert_one(self, document):
        await asyncio.sleep(10)

    async def find_one(self, filter=None, sort=None):
        await asyncio.sleep(10)


def _store(metric: Metric = Metric.temperature, timeout: float | None = None) -> MetricStore:
    collection = MockMongoClient()["telemetry"][metric.collection_name]
    return MetricStore(metric, collection, database_name="telemetry", timeout=timeout)


def test_append_then_latest_returns_written_reading() -> None:
    store = _store()

    async def scenario():
        await store.append("1", "26", "5")
        return await store.latest("1")

    assert asyncio.run(scenario()) == Reading(sensor_id="1", value="26", sequence_number="5")


def test_latest_reflects_most_recent_append_not_highest_sequence() -> None:
    store = _store(Metric.distance)

    async def scenario():
        for value, seq in (("10", "7"), ("11", "9"), ("12", "3")):
            await store.append("2", value, seq)
        await store.append("3", "99", "100")
        return await store.latest("2")

    reading = asyncio.run(scenario())

    assert reading.value == "12"
    assert reading.sequence_number == "3"


def test_latest_unknown_sensor_raises_not_found() -> None:
    store = _store(Metric.speed)

    with pytest.raises(NotFoundError) as excinfo:
        asyncio.run(store.latest("99"))

    assert "99" in excinfo.value.message
    assert excinfo.value.is_domain is True


def test_write_fault_names_the_metric() -> None:
    store = MetricStore(Metric.speed, FailingCollection(), database_name="telemetry")

    with pytest.raises(StorageWriteError) as excinfo:
        asyncio.run(store.append("1", "3", "1"))

    assert excinfo.value.metric == "speed"
    assert "speed" in excinfo.value.message
    assert excinfo.value.is_domain is False


def test_read_fault_is_distinct_from_not_found() -> None:
    store = MetricStore(Metric.distance, FailingCollection(), database_name="telemetry")

    with pytest.raises(StorageReadError) as excinfo:
        asyncio.run(store.latest("1"))

    assert not isinstance(excinfo.value, NotFoundError)
    assert "distance" in excinfo.value.message


def test_timeout_is_reported_as_storage_error() -> None:
    store = MetricStore(Metric.temperature, HangingCollection(), database_name="telemetry", timeout=0.05)

    with pytest.raises(StorageReadError) as excinfo:
        asyncio.run(store.latest("1"))

    assert "timed out" in excinfo.value.message


def test_timeout_fires_while_persisting_a_write(tmp_path, monkeypatch) -> None:
    def slow_journal(self, entry):
        time.sleep(0.5)

    monkeypatch.setattr(MockDatabase, "_journal", slow_journal)
    collection = MockMongoClient(persistence_dir=tmp_path)["telemetry"]["Temperature"]
    store = MetricStore(Metric.temperature, collection, database_name="telemetry", timeout=0.05)

    started = time.monotonic()
    with pytest.raises(StorageWriteError) as excinfo:
        asyncio.run(store.append("1", "26", "5"))

    assert "timed out" in excinfo.value.message
    assert time.monotonic() - started < 5


def test_incomplete_document_is_a_read_fault_naming_the_metric() -> None:
    class PartialCollection:
        async def find_one(self, filter=None, sort=None):
            return {"sensorID": "1", "sensorValue": "26"}

    store = MetricStore(Metric.distance, PartialCollection(), database_name="telemetry")

    with pytest.raises(StorageReadError) as excinfo:
        asyncio.run(store.latest("1"))

    assert excinfo.value.metric == "distance"
    assert "distance" in excinfo.value.message
