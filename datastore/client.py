from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from pymongo.asynchronous.mongo_client import AsyncMongoClient

from core.exceptions import ConfigError
from datastore.connection import ConnectionInfo
from datastore.mock_mongo import MockMongoClient

MONGO_SCHEMES = frozenset({"mongodb", "mongodb+srv"})
MOCK_SCHEME = "mock"


def open_client(
    info: ConnectionInfo,
    timeout: Optional[float] = None,
    mock_persistence_path: Optional[str] = None,
) -> Any:
    """Build the backend client for a parsed connection string.

    Clients are lazy: nothing touches the network until the first command.
    """
    if info.scheme in MONGO_SCHEMES:
        options: dict[str, Any] = {}
        if timeout is not None:
            timeout_ms = int(timeout * 1000)
            options["serverSelectionTimeoutMS"] = timeout_ms
            options["connectTimeoutMS"] = timeout_ms
        return AsyncMongoClient(info.server_url, **options)
    if info.scheme == MOCK_SCHEME:
        persistence = Path(mock_persistence_path) if mock_persistence_path else None
        return MockMongoClient(persistence_dir=persistence)
    raise ConfigError(
        f"Unsupported storage scheme {info.scheme!r}; "
        f"expected one of {', '.join(sorted(MONGO_SCHEMES | {MOCK_SCHEME}))}"
    )
