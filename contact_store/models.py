"""Contact Store — data models.

Contact is the record the store manages: three fields owned by the store
(``id``, ``createdAt``, ``favorite``) plus any number of caller-supplied
fields kept verbatim.  The wire shape (what ends up in storage) uses the
camelCase ``createdAt`` key; Python code reads ``contact.created_at``.

HydrationResult and MutationResult are the values store operations return
instead of raising on storage failures.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, model_validator

from contact_store.exceptions import ContactStoreError

# Python attribute name -> wire key, for the store-owned fields that differ.
_ALIASES = {"created_at": "createdAt"}


def _is_json_tree(value: Any) -> bool:
    if value is None or isinstance(value, (str, bool, int, float)):
        return True
    if isinstance(value, (list, tuple)):
        return all(_is_json_tree(v) for v in value)
    if isinstance(value, dict):
        return all(isinstance(k, str) and _is_json_tree(v) for k, v in value.items())
    return False


def normalise_keys(data: Mapping[str, Any]) -> dict[str, Any]:
    """Return *data* as a plain dict with Python field names mapped to wire keys."""
    return {_ALIASES.get(key, key): value for key, value in data.items()}


class Contact(BaseModel):
    """One contact record.

    Instances are immutable; the store replaces records instead of mutating
    them so that snapshots handed to consumers never change underneath them.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True, frozen=True)

    id: str = Field(min_length=1)
    created_at: str = Field(alias="createdAt", min_length=1)
    favorite: bool = False

    @model_validator(mode="after")
    def _extras_are_json(self) -> "Contact":
        for key, value in (self.model_extra or {}).items():
            if not _is_json_tree(value):
                raise ValueError(
                    f"field '{key}' holds {type(value).__name__}, "
                    "only JSON values (str, number, bool, null, list, object) are allowed"
                )
        return self

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Contact":
        """Strict validation of a wire-shaped mapping.

        Nested values are copied, so later changes to *data* never reach the
        record.
        """
        return cls.model_validate(copy.deepcopy(normalise_keys(data)))

    @classmethod
    def from_stored(cls, record: Any, *, default_created_at: str) -> "Contact":
        """Lenient validation of a record read back from storage.

        Scalar ids are turned into strings, a missing or empty ``createdAt``
        becomes *default_created_at* and a non-boolean ``favorite`` is read
        by truthiness.  Records that are not objects or carry no usable id
        still fail.
        """
        if not isinstance(record, Mapping):
            raise ValueError(f"contact record must be an object, found {type(record).__name__}")
        data = normalise_keys(record)
        if isinstance(data.get("id"), (int, float)) and not isinstance(data["id"], bool):
            data["id"] = str(data["id"])
        created_at = data.get("createdAt")
        if created_at is None or created_at == "":
            data["createdAt"] = default_created_at
        elif not isinstance(created_at, str):
            data["createdAt"] = str(created_at)
        if "favorite" in data and not isinstance(data["favorite"], bool):
            data["favorite"] = bool(data["favorite"])
        return cls.from_dict(data)

    def to_dict(self) -> dict[str, Any]:
        """Wire shape: camelCase store fields followed by the caller's fields."""
        return self.model_dump(mode="json", by_alias=True)

    @property
    def extra_fields(self) -> dict[str, Any]:
        return dict(self.model_extra or {})

    def merged(self, data: Mapping[str, Any]) -> "Contact":
        """Shallow merge of *data* over this record.

        ``id`` is never taken from *data*: a record keeps its identity for
        life.
        """
        patch = normalise_keys(data)
        patch.pop("id", None)
        return Contact.from_dict({**self.to_dict(), **patch})

    def with_favorite(self, favorite: bool) -> "Contact":
        return self.model_copy(update={"favorite": favorite})


# ---------------------------------------------------------------------------
# Operation results
# ---------------------------------------------------------------------------


class HydrationSource(str, Enum):
    STORAGE = "storage"    # adopted the collection found in the slot
    SEED = "seed"          # slot was empty; seed adopted and written
    FALLBACK = "fallback"  # read/parse failed; seed adopted, slot untouched


class ChangeKind(str, Enum):
    HYDRATED = "hydrated"
    ADDED = "added"
    UPDATED = "updated"
    REMOVED = "removed"
    FAVORITE_TOGGLED = "favorite_toggled"


@dataclass(frozen=True)
class HydrationResult:
    source: HydrationSource
    count: int
    error: ContactStoreError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class MutationResult:
    """Outcome of add / update / remove / toggle_favorite.

    ``changed`` is False when the target id was not found (nothing happened,
    nothing was written).  ``error`` is set when the in-memory change was
    applied but the durable write failed.
    """

    kind: ChangeKind
    contact: Contact | None = None
    changed: bool = True
    error: ContactStoreError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def persisted(self) -> bool:
        return self.changed and self.error is None
