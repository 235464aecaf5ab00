"""Shared pytest fixtures for the contact-store test suite."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import AsyncGenerator, Callable, Generator

import pytest
import pytest_asyncio
import structlog

from contact_store.config import Settings, override_settings
from contact_store.exceptions import StorageReadError, StorageWriteError
from contact_store.models import Contact
from contact_store.seed import DEFAULT_SEED, build_seed
from contact_store.storage import InMemoryStorage, KeyValueStorage
from contact_store.store import ContactStore


# ---------------------------------------------------------------------------
# Isolation
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_global_state() -> Generator[None, None, None]:
    """Undo settings and logging configuration done by a test (CLI tests do both)."""
    yield
    override_settings(None)
    structlog.reset_defaults()
    logging.getLogger().handlers = []


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    settings = Settings(
        storage={
            "backend": "file",
            "file_path": str(tmp_path / "contacts.json"),
            "db_path": str(tmp_path / "contacts.db"),
        },
        logging={"level": "debug", "format": "console"},
    )
    override_settings(settings)
    return settings


# ---------------------------------------------------------------------------
# Storage doubles
# ---------------------------------------------------------------------------


class FlakyStorage(KeyValueStorage):
    """In-memory provider whose reads / writes can be switched to fail."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.data: dict[str, str] = dict(initial or {})
        self.fail_reads = False
        self.fail_writes = False
        self.writes: list[tuple[str, str]] = []

    async def get(self, key: str) -> str | None:
        if self.fail_reads:
            raise StorageReadError(key, "disk unavailable")
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        if self.fail_writes:
            raise StorageWriteError(key, "disk full")
        self.writes.append((key, value))
        self.data[key] = value

    async def delete(self, key: str) -> None:
        self.data.pop(key, None)

    def stored(self, key: str = "contacts") -> list[dict]:
        return json.loads(self.data[key])


@pytest.fixture
def memory_storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def flaky_storage() -> FlakyStorage:
    return FlakyStorage()


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


@pytest.fixture
def seed() -> tuple[Contact, ...]:
    return build_seed(DEFAULT_SEED)


@pytest.fixture
def id_factory() -> Callable[[], str]:
    counter = iter(range(1000, 100_000))
    return lambda: f"c{next(counter)}"


@pytest.fixture
def clock() -> Callable[[], datetime]:
    start = datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc)
    ticks = iter(range(100_000))
    return lambda: start + timedelta(seconds=next(ticks))


@pytest_asyncio.fixture
async def store(
    flaky_storage: FlakyStorage,
    seed: tuple[Contact, ...],
    id_factory: Callable[[], str],
    clock: Callable[[], datetime],
) -> AsyncGenerator[ContactStore, None]:
    """Store hydrated against empty storage, i.e. holding the seed set."""
    contact_store = ContactStore(flaky_storage, seed=seed, id_factory=id_factory, clock=clock)
    await contact_store.initialize()
    yield contact_store
    await contact_store.close()
