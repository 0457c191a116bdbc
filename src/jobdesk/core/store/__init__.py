"""
Entity store implementations.

``create_store`` picks the backend named by ``settings.store_backend``:

- ``memory``: :class:`InMemoryEntityStore` (tests, demos)
- ``sqlite``: :class:`SqliteEntityStore` at ``settings.resolved_database_path()``
"""

from __future__ import annotations

from pathlib import Path

from jobdesk.core.errors import ValidationError
from jobdesk.core.settings import JobdeskSettings
from jobdesk.core.store.memory import InMemoryEntityStore
from jobdesk.core.store.scheduler import StoreBackedScheduler
from jobdesk.core.store.sqlite import SqliteEntityStore


def create_store(settings: JobdeskSettings) -> InMemoryEntityStore | SqliteEntityStore:
    """Build the entity store configured by *settings*."""
    backend = settings.store_backend.lower()
    if backend == "memory":
        return InMemoryEntityStore()
    if backend == "sqlite":
        path = settings.resolved_database_path()
        if path != ":memory:":
            Path(path).parent.mkdir(parents=True, exist_ok=True)
        return SqliteEntityStore(path)
    raise ValidationError(f"Unknown store backend {settings.store_backend!r}", field="store_backend")


__all__ = [
    "InMemoryEntityStore",
    "SqliteEntityStore",
    "StoreBackedScheduler",
    "create_store",
]
