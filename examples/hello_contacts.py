#!/usr/bin/env python3
"""Contact Store — Hello World example.

This script walks through the store's lifecycle:

  1. Open a SQLite-backed store and hydrate it (seed data on first run)
  2. Subscribe a listener that reports every change
  3. Add, update, favorite and remove a contact
  4. Reopen the same database and show that the changes persisted

Usage:
  python examples/hello_contacts.py
  python examples/hello_contacts.py --db /tmp/contacts.db
"""

from __future__ import annotations

import argparse
import asyncio
import tempfile
from pathlib import Path


async def run(db_path: Path) -> None:
    from contact_store import ContactStore
    from contact_store.events import ContactsChanged
    from contact_store.storage import SQLiteStorage

    # -----------------------------------------------------------------------
    # Step 1: Hydrate
    # -----------------------------------------------------------------------
    store = ContactStore(SQLiteStorage(db_path))
    hydration = await store.initialize()
    print(f"Hydrated from {hydration.source.value}: {hydration.count} contacts")

    # -----------------------------------------------------------------------
    # Step 2: Listen
    # -----------------------------------------------------------------------
    def report(event: ContactsChanged) -> None:
        print(f"  [{event.kind.value}] {event.contact_id} -> {len(event.contacts)} contacts")

    store.subscribe(report)

    # -----------------------------------------------------------------------
    # Step 3: Mutate
    # -----------------------------------------------------------------------
    added = await store.add({"name": "Katherine Johnson", "phone": "+1 757 555 0199"})
    assert added.contact is not None
    contact_id = added.contact.id

    await store.update(contact_id, {"email": "katherine@example.com"})
    await store.toggle_favorite(contact_id)
    print(f"Favorites: {[c.extra_fields.get('name') for c in store.favorites()]}")

    await store.remove(contact_id)
    await store.close()

    # -----------------------------------------------------------------------
    # Step 4: Reopen
    # -----------------------------------------------------------------------
    async with ContactStore(SQLiteStorage(db_path)) as reopened:
        print(f"Reopened: {len(reopened)} contacts")
        for contact in reopened:
            star = "*" if contact.favorite else " "
            print(f"  {star} {contact.id:>20}  {contact.extra_fields.get('name', '')}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Contact Store Hello World")
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="SQLite database path (default: a temporary directory)",
    )
    args = parser.parse_args()

    if args.db is not None:
        asyncio.run(run(args.db))
        return

    with tempfile.TemporaryDirectory() as tmp:
        asyncio.run(run(Path(tmp) / "contacts.db"))


if __name__ == "__main__":
    main()
