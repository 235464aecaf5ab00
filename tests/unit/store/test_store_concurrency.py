"""Unit tests — ContactStore under concurrent mutations, and change listeners."""

from __future__ import annotations

import asyncio

import pytest

from contact_store.models import ChangeKind
from contact_store.storage import InMemoryStorage
from contact_store.store import ContactStore


class SlowStorage(InMemoryStorage):
    """Yields to the event loop inside every call, like a real I/O provider."""

    async def get(self, key: str) -> str | None:
        await asyncio.sleep(0)
        return await super().get(key)

    async def set(self, key: str, value: str) -> None:
        await asyncio.sleep(0.001)
        await super().set(key, value)


@pytest.mark.unit
class TestConcurrentMutations:
    async def test_concurrent_adds_are_all_kept(self, seed, id_factory) -> None:
        storage = SlowStorage()
        store = ContactStore(storage, seed=seed, id_factory=id_factory)
        await store.initialize()

        results = await asyncio.gather(*(store.add({"name": f"n{i}"}) for i in range(20)))

        assert len(store.contacts) == len(seed) + 20
        assert all(r.persisted for r in results)
        ids = [c.id for c in store.contacts]
        assert len(set(ids)) == len(ids)

        reloaded = ContactStore(storage, seed=())
        await reloaded.initialize()
        assert reloaded.contacts == store.contacts

    async def test_mixed_concurrent_mutations_land_in_storage(self, seed, id_factory) -> None:
        storage = SlowStorage()
        store = ContactStore(storage, seed=seed, id_factory=id_factory)
        await store.initialize()

        await asyncio.gather(
            store.toggle_favorite("2"),
            store.update("3", {"name": "Rear Admiral Hopper"}),
            store.remove("1"),
            store.add({"name": "Katherine Johnson"}),
        )

        reloaded = ContactStore(storage, seed=())
        await reloaded.initialize()
        assert [c.id for c in reloaded.contacts] == ["2", "3", "c1000"]
        assert reloaded.get("2").favorite is True
        assert reloaded.get("3").extra_fields["name"] == "Rear Admiral Hopper"

    async def test_concurrent_toggles_cancel_out(self, seed) -> None:
        store = ContactStore(SlowStorage(), seed=seed)
        await store.initialize()
        await asyncio.gather(*(store.toggle_favorite("2") for _ in range(4)))
        assert store.get("2").favorite is False


@pytest.mark.unit
class TestListeners:
    async def test_one_event_per_effective_change(self, store) -> None:
        events = []
        store.subscribe(events.append)

        added = await store.add({"name": "A"})
        await store.update(added.contact.id, {"name": "B"})
        await store.toggle_favorite(added.contact.id)
        await store.remove(added.contact.id)
        await store.remove("missing")

        assert [e.kind for e in events] == [
            ChangeKind.ADDED,
            ChangeKind.UPDATED,
            ChangeKind.FAVORITE_TOGGLED,
            ChangeKind.REMOVED,
        ]
        assert all(e.contact_id == added.contact.id for e in events)
        assert events[-1].contacts == store.contacts

    async def test_async_listener_awaited(self, store) -> None:
        seen = []

        async def listener(event) -> None:
            await asyncio.sleep(0)
            seen.append(event.kind)

        store.subscribe(listener)
        await store.toggle_favorite("1")
        assert seen == [ChangeKind.FAVORITE_TOGGLED]

    async def test_failing_listener_does_not_break_store(self, store) -> None:
        seen = []

        def broken(event) -> None:
            raise RuntimeError("render crashed")

        store.subscribe(broken)
        store.subscribe(seen.append)

        result = await store.add({"name": "A"})

        assert result.persisted
        assert len(seen) == 1

    async def test_unsubscribe(self, store) -> None:
        seen = []
        unsubscribe = store.subscribe(seen.append)
        await store.toggle_favorite("1")
        unsubscribe()
        unsubscribe()
        await store.toggle_favorite("1")
        assert len(seen) == 1

    async def test_listener_may_mutate_store(self, store) -> None:
        """Listeners run after the lock is released, so re-entrant calls work."""

        async def favorite_new(event) -> None:
            if event.kind is ChangeKind.ADDED:
                await store.toggle_favorite(event.contact_id)

        store.subscribe(favorite_new)
        result = await asyncio.wait_for(store.add({"name": "A"}), timeout=1)
        assert store.get(result.contact.id).favorite is True


@pytest.mark.unit
class TestStoreContextManager:
    async def test_async_with_initializes_and_closes(self, seed) -> None:
        storage = InMemoryStorage()
        async with ContactStore(storage, seed=seed) as store:
            assert store.loading is False
            assert store.contacts == seed
            assert len(store) == len(seed)
            assert list(store) == list(seed)
