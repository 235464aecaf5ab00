"""Contact Store — client-side contact collection with durable key-value mirroring.

Layers (bottom to top):
    1. Storage  — async key-value providers (memory, SQLite, JSON file)
    2. Models   — Contact record, operation result values
    3. Store    — hydration with seed fallback, CRUD + favorite toggle,
                  whole-collection persistence, change listeners
    4. CLI      — typer commands over the configured store
"""

__version__ = "0.1.0"
__license__ = "Apache-2.0"

from contact_store.models import Contact, HydrationResult, MutationResult
from contact_store.store import ContactStore

__all__ = [
    "__version__",
    "Contact",
    "ContactStore",
    "HydrationResult",
    "MutationResult",
]
