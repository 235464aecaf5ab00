"""ContactStore — the authoritative in-memory contact collection.

The store owns one ordered collection of contacts for the session and keeps
a durable mirror of it in a single key-value slot (``"contacts"`` by
default).  Every mutation rewrites the whole serialized collection.

Hydration (``initialize`` / ``refresh``):
    slot holds data   -> adopt it                       (source=storage)
    slot empty        -> adopt seed, write seed to slot (source=seed)
    read/parse failed -> adopt seed, slot left as is    (source=fallback)

Failure model:
    Storage failures never raise out of a public operation.  They are logged
    and returned as ``HydrationResult.error`` / ``MutationResult.error``, and
    remembered in ``last_error``.  A failed write does not roll back the
    in-memory change, so memory and storage can differ until the next
    successful write.

Concurrency:
    Hydration and every read-modify-write run under one ``asyncio.Lock`` per
    store, so mutations issued concurrently on the same instance are applied
    one after another and none is lost.  Two store instances over the same
    slot are not coordinated; the last writer wins.
"""

from __future__ import annotations

import asyncio
import json
import time
from datetime import datetime, timezone
from typing import Any, Callable, Iterator, Mapping

from contact_store.config import Settings, get_settings
from contact_store.events import ContactsChanged, Listener, ListenerSet
from contact_store.exceptions import ContactStoreError, HydrationError, PersistError
from contact_store.logging import get_logger
from contact_store.models import (
    ChangeKind,
    Contact,
    HydrationResult,
    HydrationSource,
    MutationResult,
    normalise_keys,
)
from contact_store.seed import load_seed
from contact_store.storage import KeyValueStorage, create_storage

log = get_logger(__name__)

DEFAULT_KEY = "contacts"


def time_ns_id() -> str:
    """Wall-clock nanoseconds as a decimal string."""
    return str(time.time_ns())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _iso_timestamp(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _bump(candidate: str) -> str:
    if candidate.isdigit():
        return str(int(candidate) + 1)
    return f"{candidate}-1"


def _check_data(data: Mapping[str, Any]) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise TypeError(f"contact data must be a mapping, got {type(data).__name__}")
    return data


class ContactStore:
    """Contact collection synchronised with a key-value slot.

    Usage::

        store = ContactStore(SQLiteStorage(Path("contacts.db")))
        await store.initialize()
        result = await store.add({"name": "Ada", "phone": "123"})
        await store.toggle_favorite(result.contact.id)

    or, from configuration::

        async with ContactStore.from_settings() as store:
            ...
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        *,
        key: str = DEFAULT_KEY,
        seed: tuple[Contact, ...] | list[Contact] | None = None,
        id_factory: Callable[[], str] = time_ns_id,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._storage = storage
        self._key = key
        self._seed: tuple[Contact, ...] = tuple(seed) if seed is not None else load_seed()
        self._id_factory = id_factory
        self._clock = clock

        self._contacts: tuple[Contact, ...] = ()
        self._loading = True
        self._last_error: ContactStoreError | None = None
        self._lock = asyncio.Lock()
        self._listeners = ListenerSet()
        self._log = log.bind(store_key=key)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "ContactStore":
        """Build a store (storage provider and seed included) from *settings*."""
        settings = settings or get_settings()
        return cls(
            create_storage(settings.storage),
            key=settings.storage.key,
            seed=load_seed(settings.seed.file),
        )

    async def __aenter__(self) -> "ContactStore":
        await self.initialize()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def contacts(self) -> tuple[Contact, ...]:
        return self._contacts

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def last_error(self) -> ContactStoreError | None:
        return self._last_error

    @property
    def key(self) -> str:
        return self._key

    @property
    def storage(self) -> KeyValueStorage:
        return self._storage

    def __len__(self) -> int:
        return len(self._contacts)

    def __iter__(self) -> Iterator[Contact]:
        return iter(self._contacts)

    def get(self, contact_id: str) -> Contact | None:
        for contact in self._contacts:
            if contact.id == contact_id:
                return contact
        return None

    def favorites(self) -> tuple[Contact, ...]:
        return tuple(c for c in self._contacts if c.favorite)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call *listener* after every effective change.  Returns an unsubscriber."""
        return self._listeners.add(listener)

    async def close(self) -> None:
        await self._storage.close()

    # ------------------------------------------------------------------
    # Hydration
    # ------------------------------------------------------------------

    async def initialize(self) -> HydrationResult:
        """Load the collection from storage, falling back to the seed set.

        Never raises for storage or parse failures.
        """
        async with self._lock:
            result = await self._hydrate()
            snapshot = self._contacts
        await self._listeners.notify(ContactsChanged(ChangeKind.HYDRATED, snapshot))
        return result

    async def refresh(self) -> HydrationResult:
        """Replace the in-memory collection with what storage holds now."""
        return await self.initialize()

    async def _hydrate(self) -> HydrationResult:
        self._loading = True
        try:
            try:
                raw = await self._storage.get(self._key)
                stored = self._decode(raw) if raw else None
            except ContactStoreError as exc:
                return self._fall_back(exc)
            except Exception as exc:
                return self._fall_back(HydrationError(f"Failed to load contacts: {exc}"))

            if stored is not None:
                self._contacts = stored
                self._last_error = None
                self._log.info("contacts_loaded", count=len(stored))
                return HydrationResult(HydrationSource.STORAGE, len(stored))

            # First run: adopt the seed set and write it to the slot.
            self._contacts = self._seed
            error = await self._persist("seed")
            if error is None:
                self._log.info("contacts_seeded", count=len(self._seed))
            return HydrationResult(HydrationSource.SEED, len(self._contacts), error)
        finally:
            self._loading = False

    def _fall_back(self, error: ContactStoreError) -> HydrationResult:
        # The slot is not overwritten: whatever it holds stays for inspection.
        self._contacts = self._seed
        self._last_error = error
        self._log.error("hydration_failed", error=str(error), fallback_count=len(self._seed))
        return HydrationResult(HydrationSource.FALLBACK, len(self._contacts), error)

    def _decode(self, raw: str) -> tuple[Contact, ...]:
        preview = raw[:200]
        try:
            records = json.loads(raw)
        except ValueError as exc:
            raise HydrationError(f"Stored contacts are not valid JSON: {exc}", preview) from exc
        if not isinstance(records, list):
            raise HydrationError(
                f"Stored contacts must be a list, found {type(records).__name__}", preview
            )
        # Records without a timestamp are stamped with the hydration time.
        adopted_at = _iso_timestamp(self._clock())
        try:
            contacts = tuple(
                Contact.from_stored(r, default_created_at=adopted_at) for r in records
            )
        except (ValueError, TypeError) as exc:
            raise HydrationError(f"Stored contact record is malformed: {exc}", preview) from exc
        if len({c.id for c in contacts}) != len(contacts):
            raise HydrationError("Stored contacts contain duplicate ids", preview)
        return contacts

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def add(self, data: Mapping[str, Any]) -> MutationResult:
        """Append a new contact built from *data*.

        ``id``, ``createdAt`` and ``favorite`` are always generated by the
        store; same-named keys in *data* are overridden.
        """
        fields = normalise_keys(_check_data(data))
        async with self._lock:
            contact = Contact.from_dict(
                {
                    **fields,
                    "id": self._next_id(),
                    "createdAt": _iso_timestamp(self._clock()),
                    "favorite": False,
                }
            )
            self._contacts = (*self._contacts, contact)
            error = await self._persist(ChangeKind.ADDED.value)
            snapshot = self._contacts
        self._log.info("contact_added", contact_id=contact.id, total=len(snapshot))
        await self._listeners.notify(ContactsChanged(ChangeKind.ADDED, snapshot, contact.id))
        return MutationResult(ChangeKind.ADDED, contact, error=error)

    async def update(self, contact_id: str, data: Mapping[str, Any]) -> MutationResult:
        """Shallow-merge *data* over the contact with *contact_id*.

        Unknown ids are a no-op.  The contact's id never changes.
        """
        _check_data(data)
        return await self._replace(
            ChangeKind.UPDATED, contact_id, lambda contact: contact.merged(data)
        )

    async def toggle_favorite(self, contact_id: str) -> MutationResult:
        return await self._replace(
            ChangeKind.FAVORITE_TOGGLED,
            contact_id,
            lambda contact: contact.with_favorite(not contact.favorite),
        )

    async def remove(self, contact_id: str) -> MutationResult:
        """Delete the contact with *contact_id*.  Unknown ids are a no-op."""
        async with self._lock:
            index = self._index_of(contact_id)
            if index is None:
                self._log.debug("contact_not_found", operation="remove", contact_id=contact_id)
                return MutationResult(ChangeKind.REMOVED, changed=False)
            removed = self._contacts[index]
            self._contacts = self._contacts[:index] + self._contacts[index + 1 :]
            error = await self._persist(ChangeKind.REMOVED.value)
            snapshot = self._contacts
        self._log.info("contact_removed", contact_id=contact_id, total=len(snapshot))
        await self._listeners.notify(ContactsChanged(ChangeKind.REMOVED, snapshot, contact_id))
        return MutationResult(ChangeKind.REMOVED, removed, error=error)

    async def _replace(
        self,
        kind: ChangeKind,
        contact_id: str,
        change: Callable[[Contact], Contact],
    ) -> MutationResult:
        async with self._lock:
            index = self._index_of(contact_id)
            if index is None:
                self._log.debug("contact_not_found", operation=kind.value, contact_id=contact_id)
                return MutationResult(kind, changed=False)
            contact = change(self._contacts[index])
            self._contacts = (
                self._contacts[:index] + (contact,) + self._contacts[index + 1 :]
            )
            error = await self._persist(kind.value)
            snapshot = self._contacts
        self._log.info(f"contact_{kind.value}", contact_id=contact_id)
        await self._listeners.notify(ContactsChanged(kind, snapshot, contact_id))
        return MutationResult(kind, contact, error=error)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _index_of(self, contact_id: str) -> int | None:
        for index, contact in enumerate(self._contacts):
            if contact.id == contact_id:
                return index
        return None

    def _next_id(self) -> str:
        taken = {c.id for c in self._contacts}
        candidate = self._id_factory()
        while candidate in taken:
            candidate = _bump(candidate)
        return candidate

    async def _persist(self, operation: str) -> PersistError | None:
        """Write the whole collection to the slot.  Failures are returned, not raised."""
        payload = json.dumps([c.to_dict() for c in self._contacts])
        try:
            await self._storage.set(self._key, payload)
        except Exception as exc:
            error = PersistError(
                f"Failed to save contacts: {exc}",
                operation=operation,
                contact_count=len(self._contacts),
            )
            self._last_error = error
            self._log.error("persist_failed", operation=operation, error=str(exc))
            return error
        self._last_error = None
        self._log.debug("contacts_persisted", operation=operation, count=len(self._contacts))
        return None
