"""Storage layer — key-value provider backed by SQLite.

Durable across sessions.  One row per key; values are the raw strings the
store hands over (the serialized contact collection).
"""

from __future__ import annotations

import asyncio
import time
from pathlib import Path

import aiosqlite

from contact_store.exceptions import StorageError, StorageReadError, StorageWriteError
from contact_store.logging import get_logger
from contact_store.storage.base import KeyValueStorage

log = get_logger(__name__)

_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS kv_store (
    key         TEXT PRIMARY KEY,
    value       TEXT NOT NULL,
    created_at  REAL NOT NULL,
    updated_at  REAL NOT NULL
);
"""


class SQLiteStorage(KeyValueStorage):
    """Async persistent key-value provider backed by SQLite.

    Usage::

        storage = SQLiteStorage(Path("~/.contact-store/contacts.db"))
        await storage.set("contacts", "[]")
        value = await storage.get("contacts")
        await storage.close()

    The connection is opened lazily on first use; ``init()`` may also be
    called explicitly to surface connection errors early.
    """

    def __init__(self, db_path: Path) -> None:
        self._db_path = db_path.expanduser()
        self._conn: aiosqlite.Connection | None = None
        self._lock = asyncio.Lock()
        self._init_lock = asyncio.Lock()

    @property
    def db_path(self) -> Path:
        return self._db_path

    async def init(self) -> None:
        if self._conn is not None:
            return
        async with self._init_lock:
            if self._conn is not None:
                return
            self._conn = await self._open()
        log.debug("sqlite_storage_opened", db_path=str(self._db_path))

    async def _open(self) -> aiosqlite.Connection:
        conn: aiosqlite.Connection | None = None
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = await aiosqlite.connect(str(self._db_path))
            await conn.execute("PRAGMA journal_mode=WAL")
            await conn.executescript(_SCHEMA_SQL)
            await conn.commit()
        except Exception as exc:
            if conn is not None:
                await conn.close()
            raise StorageError(f"SQLiteStorage init failed: {exc}") from exc
        return conn

    async def close(self) -> None:
        if self._conn:
            await self._conn.close()
            self._conn = None

    async def _connection(self) -> aiosqlite.Connection:
        await self.init()
        assert self._conn is not None
        return self._conn

    async def get(self, key: str) -> str | None:
        try:
            conn = await self._connection()
            async with conn.execute(
                "SELECT value FROM kv_store WHERE key=?", (key,)
            ) as cursor:
                row = await cursor.fetchone()
        except Exception as exc:
            raise StorageReadError(key, str(exc)) from exc
        return None if row is None else row[0]

    async def set(self, key: str, value: str) -> None:
        now = time.time()
        try:
            conn = await self._connection()
            async with self._lock:
                await conn.execute(
                    """INSERT INTO kv_store (key, value, created_at, updated_at)
                       VALUES (?, ?, ?, ?)
                       ON CONFLICT(key) DO UPDATE SET
                         value=excluded.value,
                         updated_at=excluded.updated_at""",
                    (key, value, now, now),
                )
                await conn.commit()
        except Exception as exc:
            raise StorageWriteError(key, str(exc)) from exc

    async def delete(self, key: str) -> None:
        try:
            conn = await self._connection()
            async with self._lock:
                await conn.execute("DELETE FROM kv_store WHERE key=?", (key,))
                await conn.commit()
        except Exception as exc:
            raise StorageWriteError(key, str(exc)) from exc

    async def list_keys(self) -> list[str]:
        conn = await self._connection()
        async with conn.execute("SELECT key FROM kv_store ORDER BY key") as cursor:
            rows = await cursor.fetchall()
        return [row[0] for row in rows]
