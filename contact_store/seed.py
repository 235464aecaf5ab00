"""Seed data — the collection adopted when the durable slot is empty or unreadable."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from contact_store.exceptions import SeedDataError
from contact_store.models import Contact

DEFAULT_SEED: tuple[dict[str, Any], ...] = (
    {
        "id": "1",
        "createdAt": "2024-01-01T00:00:00.000Z",
        "favorite": True,
        "name": "Ada Lovelace",
        "phone": "+44 20 7946 0001",
        "email": "ada@example.com",
    },
    {
        "id": "2",
        "createdAt": "2024-01-01T00:00:00.000Z",
        "favorite": False,
        "name": "Alan Turing",
        "phone": "+44 20 7946 0002",
        "email": "alan@example.com",
    },
    {
        "id": "3",
        "createdAt": "2024-01-01T00:00:00.000Z",
        "favorite": False,
        "name": "Grace Hopper",
        "phone": "+1 202 555 0103",
        "email": "grace@example.com",
    },
)


def build_seed(records: list[dict[str, Any]] | tuple[dict[str, Any], ...]) -> tuple[Contact, ...]:
    """Validate *records* into contacts.  Ids must be unique."""
    try:
        contacts = tuple(Contact.from_dict(r) for r in records)
    except (ValidationError, TypeError) as exc:
        raise SeedDataError(f"Invalid seed record: {exc}") from exc
    ids = [c.id for c in contacts]
    if len(ids) != len(set(ids)):
        raise SeedDataError("Seed records contain duplicate ids", context={"ids": ids})
    return contacts


def load_seed(path: Path | None = None) -> tuple[Contact, ...]:
    """Return the seed set from *path* (JSON or YAML list), or the built-in one."""
    if path is None:
        return build_seed(DEFAULT_SEED)

    path = path.expanduser()
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SeedDataError(f"Cannot read seed file {path}: {exc}") from exc

    try:
        if path.suffix in (".yaml", ".yml"):
            import yaml

            records = yaml.safe_load(text)
        else:
            records = json.loads(text)
    except Exception as exc:
        raise SeedDataError(f"Cannot parse seed file {path}: {exc}") from exc

    if not isinstance(records, list):
        raise SeedDataError(f"Seed file {path} must contain a list of records")
    return build_seed(records)
