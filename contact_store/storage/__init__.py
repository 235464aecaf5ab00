"""Storage layer — async key-value providers for the durable contact slot."""

from __future__ import annotations

from contact_store.config import StorageConfig
from contact_store.storage.base import KeyValueStorage
from contact_store.storage.file import JsonFileStorage
from contact_store.storage.memory import InMemoryStorage
from contact_store.storage.sqlite import SQLiteStorage


def create_storage(config: StorageConfig) -> KeyValueStorage:
    """Build the provider selected by ``config.backend``."""
    if config.backend == "memory":
        return InMemoryStorage()
    if config.backend == "file":
        return JsonFileStorage(config.file_path)
    return SQLiteStorage(config.db_path)


__all__ = [
    "KeyValueStorage",
    "InMemoryStorage",
    "SQLiteStorage",
    "JsonFileStorage",
    "create_storage",
]
