from __future__ import annotations

import asyncio

import pytest
from pymongo.errors import ServerSelectionTimeoutError

from core.exceptions import (
    ConfigError,
    DatabaseConnectionError,
    NotFoundError,
    StorageReadError,
    StorageWriteError,
)
from datastore.mock_mongo import MockMongoClient
from models.records import Metric
from services.telemetry import SEED_SENSOR_IDS, TelemetryDatabase


class UnreachableAdmin:
    async def command(self, command):
        raise ServerSelectionTimeoutError("localhost:27017: connection refused")


class UnreachableClient:
    def __init__(self) -> None:
        self.admin = UnreachableAdmin()
        self.closed = False

    async def close(self) -> None:
        self.closed = True


def _database(client: MockMongoClient | None = None) -> tuple[TelemetryDatabase, MockMongoClient]:
    backend = client or MockMongoClient()
    return TelemetryDatabase("mock://localhost/telemetry", client_factory=lambda _info: backend), backend


def test_init_creates_collections_and_seeds_defaults() -> None:
    database, backend = _database()

    async def scenario():
        await database.init()
        names = await backend["telemetry"].list_collection_names()
        readings = [await database.read_last(metric, sensor_id) for metric in Metric for sensor_id in SEED_SENSOR_IDS]
        counts = [await backend["telemetry"][metric.collection_name].count_documents({}) for metric in Metric]
        return names, readings, counts

    names, readings, counts = asyncio.run(scenario())

    assert names == ["Distance", "Speed", "Temperature"]
    assert all(reading.value == "-1" and reading.sequence_number == "0" for reading in readings)
    assert counts == [4, 4, 4]


def test_init_reuses_existing_collections() -> None:
    backend = MockMongoClient()

    async def scenario():
        await backend["telemetry"].create_collection("Temperature")
        database, _ = _database(backend)
        await database.init()
        return await backend["telemetry"]["Temperature"].count_documents({})

    assert asyncio.run(scenario()) == 4


def test_unseeded_sensor_is_not_found() -> None:
    database, _ = _database()

    async def scenario():
        await database.init()
        await database.read_last_speed("5")

    with pytest.raises(NotFoundError):
        asyncio.run(scenario())


def test_metric_delegates_are_independent() -> None:
    database, _ = _database()

    async def scenario():
        await database.init()
        await database.write_temp("1", "26", "5")
        await database.write_dist("1", "140", "6")
        await database.write_speed("2", "3.5", "7")
        return (
            await database.read_last_temp("1"),
            await database.read_last_dist("1"),
            await database.read_last_speed("1"),
            await database.read_last_speed("2"),
        )

    temp, dist, speed_default, speed = asyncio.run(scenario())

    assert (temp.value, temp.sequence_number) == ("26", "5")
    assert (dist.value, dist.sequence_number) == ("140", "6")
    assert (speed_default.value, speed_default.sequence_number) == ("-1", "0")
    assert (speed.value, speed.sequence_number) == ("3.5", "7")


def test_connection_failure_raises_and_releases_client() -> None:
    client = UnreachableClient()
    database = TelemetryDatabase("mongodb://localhost:27017/gnc", client_factory=lambda _info: client)

    with pytest.raises(DatabaseConnectionError) as excinfo:
        asyncio.run(database.init())

    assert "mongodb://localhost:27017" in excinfo.value.message
    assert client.closed is True
    assert database.is_connected is False


def test_malformed_connection_string_fails_construction() -> None:
    with pytest.raises(ConfigError):
        TelemetryDatabase("not a url")


def test_close_is_idempotent() -> None:
    database, backend = _database()

    async def scenario():
        await database.init()
        await database.close()
        await database.close()

    asyncio.run(scenario())

    assert database.is_connected is False
    assert backend._closed is True


def test_close_without_init_is_a_no_op() -> None:
    database, _ = _database()

    asyncio.run(database.close())

    assert database.is_connected is False


def test_operations_after_close_raise_storage_errors() -> None:
    database, _ = _database()

    async def write_after_close():
        await database.init()
        await database.close()
        await database.write_temp("1", "2", "3")

    with pytest.raises(StorageWriteError):
        asyncio.run(write_after_close())
    with pytest.raises(StorageReadError):
        asyncio.run(database.read_last_temp("1"))


def test_clear_all_drops_every_collection_and_restores_defaults() -> None:
    database, backend = _database()

    async def scenario():
        await database.init()
        await backend["telemetry"]["Unrelated"].insert_one({"note": "x"})
        await database.write_temp("1", "30", "9")
        await database.write_temp("42", "30", "9")
        await database.clear_all()
        names = await backend["telemetry"].list_collection_names()
        seeded = await database.read_last_temp("1")
        try:
            await database.read_last_temp("42")
        except NotFoundError:
            missing = True
        else:
            missing = False
        return names, seeded, missing

    names, seeded, missing = asyncio.run(scenario())

    assert "Unrelated" not in names
    assert (seeded.value, seeded.sequence_number) == ("-1", "0")
    assert missing is True


def test_second_init_keeps_the_existing_client() -> None:
    created: list[MockMongoClient] = []

    def factory(_info):
        client = MockMongoClient()
        created.append(client)
        return client

    database = TelemetryDatabase("mock://localhost/telemetry", client_factory=factory)

    async def scenario():
        await database.init()
        await database.write_temp("1", "26", "5")
        await database.init()
        reading = await database.read_last_temp("1")
        await database.close()
        return reading

    reading = asyncio.run(scenario())

    assert len(created) == 1
    assert created[0]._closed is True
    assert (reading.value, reading.sequence_number) == ("26", "5")
