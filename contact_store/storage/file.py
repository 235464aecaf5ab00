"""Storage layer — key-value provider backed by a single JSON file.

The file holds one JSON object mapping each key to its string value.  Reads
and writes run in a worker thread so the event loop never blocks on disk.
Writes go to a temporary sibling first and are moved into place, so a crash
mid-write leaves the previous file intact.
"""

from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path

from contact_store.exceptions import StorageReadError, StorageWriteError
from contact_store.storage.base import KeyValueStorage


class JsonFileStorage(KeyValueStorage):
    def __init__(self, path: Path) -> None:
        self._path = path.expanduser()
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _read_all(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        data = json.loads(self._path.read_text(encoding="utf-8") or "{}")
        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object, found {type(data).__name__}")
        return data

    def _write_all(self, data: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_name(self._path.name + ".tmp")
        tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
        os.replace(tmp, self._path)

    async def get(self, key: str) -> str | None:
        try:
            data = await asyncio.to_thread(self._read_all)
        except (OSError, ValueError) as exc:
            raise StorageReadError(key, str(exc)) from exc
        value = data.get(key)
        if value is not None and not isinstance(value, str):
            raise StorageReadError(key, f"value is {type(value).__name__}, not a string")
        return value

    async def _update(self, key: str, value: str | None) -> None:
        async with self._lock:
            try:
                data = await asyncio.to_thread(self._read_all)
                if value is None:
                    if key not in data:
                        return
                    del data[key]
                else:
                    data[key] = value
                await asyncio.to_thread(self._write_all, data)
            except (OSError, ValueError) as exc:
                raise StorageWriteError(key, str(exc)) from exc

    async def set(self, key: str, value: str) -> None:
        await self._update(key, value)

    async def delete(self, key: str) -> None:
        await self._update(key, None)
