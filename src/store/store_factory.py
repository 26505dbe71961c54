# src/store/store_factory.py — v1
"""Factory: instantiate the profile + record store from configuration."""

from __future__ import annotations

import logging

from expertmesh.config.settings import Settings
from expertmesh.store.base_store import BaseExpertStore

logger = logging.getLogger(__name__)


class UnsupportedStoreError(ValueError):
    """Raised when a store backend is not supported."""


def create_store(settings: Settings | None = None) -> BaseExpertStore:
    """Instantiate the configured store backend.

    Args:
        settings: Application settings (STORE_BACKEND). None gives memory.

    Raises:
        UnsupportedStoreError: If the backend is not supported.
    """
    backend = "memory" if settings is None else settings.store_backend

    if backend == "memory":
        from expertmesh.store.memory_store import InMemoryStore
        return InMemoryStore()

    if backend == "sqlite":
        from expertmesh.store.sqlite_store import SqliteStore
        return SqliteStore(db_path=settings.store_path)

    raise UnsupportedStoreError(
        f"Unsupported store backend: {backend!r}. Available: memory, sqlite"
    )
