"""Storage layer — abstract asynchronous key-value provider.

The store only needs two calls from its durable backend::

    value = await storage.get("contacts")     # str | None
    await storage.set("contacts", payload)    # str

Providers translate their own failures into ``StorageReadError`` /
``StorageWriteError`` so the store can handle every backend the same way.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class KeyValueStorage(ABC):
    """Async string-to-string key-value provider."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the value stored under *key*, or ``None`` if absent."""

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store *value* under *key*, replacing any previous value."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove *key*.  Deleting a missing key is not an error."""

    async def close(self) -> None:
        """Release any underlying resources."""

    async def __aenter__(self) -> "KeyValueStorage":
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()
