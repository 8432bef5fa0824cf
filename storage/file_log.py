from __future__ import annotations

import asyncio
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Optional

from settings import get_settings


class FileWriter:
    """Local side log of accepted writes plus small text lookups.

    Each metric gets one ``<metric>.csv`` file under ``root_path`` with
    ``sensor_id,value`` lines in the order writes were accepted.
    """

    def __init__(self, root_path: Path) -> None:
        self.root_path = root_path
        self._lock = Lock()
        root_path.mkdir(parents=True, exist_ok=True)

    async def write_file(self, metric: str, sensor_id: str, value: str) -> None:
        await asyncio.to_thread(self._append_line, metric, f"{sensor_id},{value}\n")

    async def read_file(self, name: str) -> str:
        return await asyncio.to_thread(self._read_text, name)

    def log_path(self, metric: str) -> Path:
        return self.root_path / f"{metric}.csv"

    def _append_line(self, metric: str, line: str) -> None:
        path = self.log_path(metric)
        with self._lock:
            with path.open("a", encoding="utf-8") as handle:
                handle.write(line)

    def _read_text(self, name: str) -> str:
        path = (self.root_path / name).resolve()
        if self.root_path.resolve() not in path.parents:
            raise FileNotFoundError(f"File {name!r} is outside of {str(self.root_path)!r}.")
        return path.read_text(encoding="utf-8").strip()


@lru_cache
def build_default_file_writer(root_path: Optional[str] = None) -> FileWriter:
    settings = get_settings()
    root = settings.file_log_root if root_path is None else root_path
    return FileWriter(root_path=Path(root))
