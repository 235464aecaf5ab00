"""Change propagation — listeners notified after every effective store change.

Consumers are handed the ContactStore instance explicitly and subscribe to
it; there is no process-wide registry.

    async def on_change(event: ContactsChanged) -> None:
        render(event.contacts)

    unsubscribe = store.subscribe(on_change)

Listeners may be plain functions or coroutine functions.  A listener that
raises is logged and skipped; it never affects the store or other
listeners.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import Awaitable, Callable, Union

from contact_store.logging import get_logger
from contact_store.models import ChangeKind, Contact

log = get_logger(__name__)


@dataclass(frozen=True)
class ContactsChanged:
    kind: ChangeKind
    contacts: tuple[Contact, ...]
    contact_id: str | None = None


Listener = Callable[[ContactsChanged], Union[None, Awaitable[None]]]


class ListenerSet:
    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    def __len__(self) -> int:
        return len(self._listeners)

    def add(self, listener: Listener) -> Callable[[], None]:
        """Register *listener* and return a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def notify(self, event: ContactsChanged) -> None:
        # Copy: a listener may unsubscribe itself while being notified.
        for listener in list(self._listeners):
            try:
                outcome = listener(event)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as exc:
                log.warning(
                    "listener_failed",
                    listener=getattr(listener, "__qualname__", repr(listener)),
                    kind=event.kind.value,
                    error=str(exc),
                )
