"""Contact Store — Exception hierarchy.

All exceptions raised by the package inherit from ContactStoreError so that
callers can catch the full family with a single except clause when needed.

Hierarchy:
    ContactStoreError
    ├── StorageError
    │   ├── StorageReadError
    │   └── StorageWriteError
    ├── HydrationError
    ├── PersistError
    └── SeedDataError
"""

from __future__ import annotations

from typing import Any


class ContactStoreError(Exception):
    """Base exception for all Contact Store errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = context or {}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context})"


# ---------------------------------------------------------------------------
# Storage providers
# ---------------------------------------------------------------------------


class StorageError(ContactStoreError):
    """Base for all key-value storage errors."""


class StorageReadError(StorageError):
    """Reading a key from the storage provider failed."""

    def __init__(self, key: str, reason: str) -> None:
        super().__init__(
            f"Cannot read key '{key}': {reason}",
            context={"key": key, "reason": reason},
        )
        self.key = key


class StorageWriteError(StorageError):
    """Writing a key to the storage provider failed."""

    def __init__(self, key: str, reason: str) -> None:
        super().__init__(
            f"Cannot write key '{key}': {reason}",
            context={"key": key, "reason": reason},
        )
        self.key = key


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class HydrationError(ContactStoreError):
    """The stored collection could not be read or parsed."""

    def __init__(self, message: str, raw_payload: str | None = None) -> None:
        super().__init__(message, context={"raw_payload": raw_payload})
        self.raw_payload = raw_payload


class PersistError(ContactStoreError):
    """A mutation's full-collection write did not reach storage."""

    def __init__(self, message: str, operation: str, contact_count: int) -> None:
        super().__init__(
            message,
            context={"operation": operation, "contact_count": contact_count},
        )
        self.operation = operation


class SeedDataError(ContactStoreError):
    """The configured seed file is missing or malformed."""
