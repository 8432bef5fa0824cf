"""In-process stand-in for the subset of pymongo's async API the service uses.

Documents live in memory and, when a persistence directory is given, every
change is appended as one JSON line to a per-database journal that is replayed
on start. Mutations run in a worker thread so callers on the event loop keep
yielding while the journal is written.
"""

from __future__ import annotations

import asyncio
import copy
import json
from pathlib import Path
from threading import Lock
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from bson import ObjectId
from pymongo.errors import CollectionInvalid, InvalidOperation
from pymongo.results import InsertOneResult


class MockCollection:

    def __init__(self, database: "MockDatabase", name: str) -> None:
        self.database = database
        self.name = name

    async def insert_one(self, document: Mapping[str, Any]) -> InsertOneResult:
        stored = copy.deepcopy(dict(document))
        inserted_id = await asyncio.to_thread(self.database._insert, self.name, stored)
        return InsertOneResult(inserted_id, True)

    async def find_one(
        self,
        filter: Optional[Mapping[str, Any]] = None,
        sort: Optional[Sequence[Tuple[str, int]]] = None,
    ) -> Optional[Dict[str, Any]]:
        matches = self.database._find(self.name, filter or {})
        for key, direction in reversed(list(sort or [])):
            matches.sort(key=lambda document: document.get(key), reverse=direction < 0)
        return matches[0] if matches else None

    async def count_documents(self, filter: Mapping[str, Any]) -> int:
        return len(self.database._find(self.name, filter))


class MockDatabase:

    def __init__(self, client: "MockMongoClient", name: str, journal_path: Optional[Path] = None) -> None:
        self.client = client
        self.name = name
        self.journal_path = journal_path
        self._collections: Dict[str, List[Dict[str, Any]]] = {}
        self._lock = Lock()
        if journal_path:
            journal_path.parent.mkdir(parents=True, exist_ok=True)
            self._replay_journal()

    def __getitem__(self, name: str) -> MockCollection:
        return MockCollection(self, name)

    def get_collection(self, name: str) -> MockCollection:
        return self[name]

    async def command(self, command: str) -> Dict[str, Any]:
        self.client._ensure_open()
        if command != "ping":
            raise InvalidOperation(f"Unsupported command {command!r} for the mock backend.")
        return {"ok": 1.0}

    async def list_collection_names(self) -> List[str]:
        self.client._ensure_open()
        with self._lock:
            return sorted(self._collections)

    async def create_collection(self, name: str) -> MockCollection:
        await asyncio.to_thread(self._create, name)
        return self[name]

    async def drop_collection(self, name: str) -> None:
        await asyncio.to_thread(self._drop, name)

    def _create(self, name: str) -> None:
        self.client._ensure_open()
        with self._lock:
            if name in self._collections:
                raise CollectionInvalid(f"collection {name} already exists")
            self._collections[name] = []
            self._journal({"op": "create", "collection": name})

    def _drop(self, name: str) -> None:
        self.client._ensure_open()
        with self._lock:
            if self._collections.pop(name, None) is not None:
                self._journal({"op": "drop", "collection": name})

    def _insert(self, collection: str, document: Dict[str, Any]) -> ObjectId:
        self.client._ensure_open()
        with self._lock:
            # Ids are assigned under the lock so _id order matches append order.
            document.setdefault("_id", ObjectId())
            self._collections.setdefault(collection, []).append(document)
            self._journal(
                {
                    "op": "insert",
                    "collection": collection,
                    "document": {**document, "_id": str(document["_id"])},
                }
            )
            return document["_id"]

    def _find(self, collection: str, filter: Mapping[str, Any]) -> List[Dict[str, Any]]:
        self.client._ensure_open()
        with self._lock:
            documents = self._collections.get(collection, [])
            return [
                copy.deepcopy(document)
                for document in documents
                if all(document.get(key) == value for key, value in filter.items())
            ]

    def _journal(self, entry: Dict[str, Any]) -> None:
        if not self.journal_path:
            return
        with self.journal_path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(entry, sort_keys=True) + "\n")

    def _replay_journal(self) -> None:
        if not self.journal_path or not self.journal_path.exists():
            return

        with self.journal_path.open("r", encoding="utf-8") as handle:
            for line in handle:
                try:
                    entry = json.loads(line)
                except json.JSONDecodeError:
                    # A torn final line from an interrupted write.
                    continue
                name = entry.get("collection")
                op = entry.get("op")
                if op == "create":
                    self._collections.setdefault(name, [])
                elif op == "drop":
                    self._collections.pop(name, None)
                elif op == "insert":
                    document = entry["document"]
                    self._collections.setdefault(name, []).append(
                        {**document, "_id": ObjectId(document["_id"])}
                    )


class MockMongoClient:
    """Client for ``mock://`` connection strings."""

    def __init__(self, persistence_dir: Optional[Path] = None) -> None:
        self.persistence_dir = persistence_dir
        self._databases: Dict[str, MockDatabase] = {}
        self._lock = Lock()
        self._closed = False

    def __getitem__(self, name: str) -> MockDatabase:
        with self._lock:
            database = self._databases.get(name)
            if database is None:
                path = self.persistence_dir / f"{name}.jsonl" if self.persistence_dir else None
                database = MockDatabase(self, name, journal_path=path)
                self._databases[name] = database
            return database

    def get_database(self, name: str) -> MockDatabase:
        return self[name]

    @property
    def admin(self) -> MockDatabase:
        return self["admin"]

    async def close(self) -> None:
        self._closed = True

    def _ensure_open(self) -> None:
        if self._closed:
            raise InvalidOperation("Cannot use MockMongoClient after close")
