# src/store/base_store.py — v1
"""Combined store interface injected into the orchestrator and stages."""

from __future__ import annotations

from expertmesh.store.base_profile_store import BaseProfileStore
from expertmesh.store.base_record_store import BaseRecordStore


class BaseExpertStore(BaseProfileStore, BaseRecordStore):
    """A backend serving both candidate profiles and pipeline records.

    Constructed once at process start and passed explicitly; nothing
    connects lazily on first use.
    """
