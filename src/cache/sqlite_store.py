# src/cache/sqlite_store.py — v2
"""SQLite-based cache store (CACHE_BACKEND=sqlite).

Uses stdlib sqlite3. SQLite has no native TTL, so ``get_result`` applies
the expiry guard at read time and ``purge_expired`` acts as the sweep.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime
from pathlib import Path

from expertmesh.cache.base_cache_store import BaseCacheStore
from expertmesh.cache.models import EmbeddingCacheEntry, ResultCacheEntry

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS cache_embeddings (
    text_hash TEXT PRIMARY KEY,
    data TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS cache_search_results (
    query_hash TEXT PRIMARY KEY,
    data TEXT NOT NULL,
    expires_at REAL NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_results_expires_at
    ON cache_search_results(expires_at);
"""


def _ts(value: datetime) -> float:
    return value.timestamp()


class SqliteCacheStore(BaseCacheStore):
    """SQLite-backed embedding and result cache."""

    def __init__(self, db_path: Path | str) -> None:
        if str(db_path) == ":memory:":
            self._conn = sqlite3.connect(":memory:")
        else:
            path = Path(db_path).expanduser()
            path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(path))
            self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)

    async def ensure_indexes(self) -> None:
        self._conn.executescript(_SCHEMA)

    async def get_embedding(self, text_hash: str) -> EmbeddingCacheEntry | None:
        row = self._conn.execute(
            "SELECT data FROM cache_embeddings WHERE text_hash = ?", (text_hash,)
        ).fetchone()
        if row is None:
            return None
        try:
            return EmbeddingCacheEntry(**json.loads(row[0]))
        except Exception as e:
            logger.warning("Failed to deserialize embedding entry %s: %s", text_hash, e)
            return None

    async def put_embedding(self, entry: EmbeddingCacheEntry) -> None:
        self._conn.execute(
            "INSERT OR REPLACE INTO cache_embeddings (text_hash, data) VALUES (?, ?)",
            (entry.text_hash, entry.model_dump_json()),
        )
        self._conn.commit()

    async def get_result(
        self, query_hash: str, now: datetime
    ) -> ResultCacheEntry | None:
        row = self._conn.execute(
            "SELECT data FROM cache_search_results "
            "WHERE query_hash = ? AND expires_at > ?",
            (query_hash, _ts(now)),
        ).fetchone()
        if row is None:
            return None
        try:
            entry = ResultCacheEntry(**json.loads(row[0]))
        except Exception as e:
            logger.warning("Failed to deserialize result entry %s: %s", query_hash, e)
            return None
        return entry if entry.is_live(now) else None

    async def put_result(self, entry: ResultCacheEntry) -> None:
        self._conn.execute(
            """INSERT OR REPLACE INTO cache_search_results
               (query_hash, data, expires_at) VALUES (?, ?, ?)""",
            (entry.query_hash, entry.model_dump_json(), _ts(entry.expires_at)),
        )
        self._conn.commit()

    async def purge_expired(self, now: datetime) -> int:
        cursor = self._conn.execute(
            "DELETE FROM cache_search_results WHERE expires_at <= ?", (_ts(now),)
        )
        self._conn.commit()
        return cursor.rowcount

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()
