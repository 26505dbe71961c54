# src/store/sqlite_store.py — v1
"""SQLite profile and record store (STORE_BACKEND=sqlite).

Uses stdlib sqlite3 with numpy for similarity. Vector search is exact
brute-force cosine over all stored embeddings, which is adequate for the
tens of thousands of profiles a single node holds. Keyword search uses a
registered REGEXP function.
"""

from __future__ import annotations

import functools
import json
import logging
import re
import sqlite3
import uuid
from datetime import datetime
from pathlib import Path

import numpy as np

from expertmesh.core.models import (
    CandidateProfile,
    ConversationEntry,
    QueryRecord,
    RequirementSet,
    ScoredCandidate,
    TaskRecord,
    TaskStatus,
)
from expertmesh.core.similarity import cosine_scores, top_k
from expertmesh.store.base_profile_store import (
    DuplicateCandidateError,
    keyword_regex,
)
from expertmesh.store.base_record_store import RecordNotFoundError
from expertmesh.store.base_store import BaseExpertStore

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS experts (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT NOT NULL UNIQUE,
    email TEXT,
    name TEXT NOT NULL,
    title TEXT NOT NULL,
    bio TEXT NOT NULL DEFAULT '',
    skills_text TEXT NOT NULL DEFAULT '',
    embedding TEXT NOT NULL DEFAULT '[]',
    match_count INTEGER NOT NULL DEFAULT 0,
    data TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS queries (
    query_id TEXT PRIMARY KEY,
    status TEXT NOT NULL,
    created_at TEXT NOT NULL,
    data TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS query_conversation (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    query_id TEXT NOT NULL,
    data TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS agent_tasks (
    task_id TEXT PRIMARY KEY,
    query_id TEXT NOT NULL,
    data TEXT NOT NULL
);
"""

_INDEXES = """
CREATE UNIQUE INDEX IF NOT EXISTS idx_experts_email
    ON experts(email) WHERE email IS NOT NULL AND email != '';
CREATE INDEX IF NOT EXISTS idx_experts_name ON experts(name);
CREATE INDEX IF NOT EXISTS idx_experts_title ON experts(title);
CREATE INDEX IF NOT EXISTS idx_queries_status ON queries(status);
CREATE INDEX IF NOT EXISTS idx_queries_created_at ON queries(created_at DESC);
CREATE INDEX IF NOT EXISTS idx_conversation_query ON query_conversation(query_id, seq);
"""


@functools.lru_cache(maxsize=128)
def _compiled(pattern: str) -> re.Pattern[str]:
    return keyword_regex(pattern)


def _regexp(pattern: str, value: str | None) -> bool:
    return value is not None and _compiled(pattern).search(value) is not None


class SqliteStore(BaseExpertStore):
    """SQLite-backed store implementing both profile and record interfaces."""

    def __init__(self, db_path: Path | str) -> None:
        if str(db_path) == ":memory:":
            self._conn = sqlite3.connect(":memory:")
        else:
            path = Path(db_path).expanduser()
            path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(path))
            self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.create_function("REGEXP", 2, _regexp, deterministic=True)
        self._conn.executescript(_SCHEMA)

    async def ensure_indexes(self) -> None:
        logger.info("Ensuring SQLite store indexes")
        self._conn.executescript(_INDEXES)

    # ------------------------------------------------------------------
    # Profiles
    # ------------------------------------------------------------------

    async def add_candidate(self, candidate: CandidateProfile) -> str:
        candidate_id = candidate.id or uuid.uuid4().hex
        stored = candidate.model_copy(update={"id": candidate_id})
        if stored.email and self._conn.execute(
            "SELECT 1 FROM experts WHERE email = ?", (stored.email,)
        ).fetchone():
            raise DuplicateCandidateError(f"Candidate email exists: {stored.email}")
        try:
            self._conn.execute(
                """INSERT INTO experts
                   (id, email, name, title, bio, skills_text, embedding, match_count, data)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    candidate_id,
                    stored.email or None,
                    stored.name,
                    stored.title,
                    stored.bio,
                    "\n".join(stored.skill_names),
                    json.dumps(stored.embedding),
                    stored.match_count,
                    stored.without_embedding().model_dump_json(),
                ),
            )
        except sqlite3.IntegrityError as e:
            raise DuplicateCandidateError(str(e)) from e
        self._conn.commit()
        return candidate_id

    async def get_candidate(self, candidate_id: str) -> CandidateProfile | None:
        row = self._conn.execute(
            "SELECT data, embedding, match_count FROM experts WHERE id = ?",
            (candidate_id,),
        ).fetchone()
        return self._row_to_candidate(row) if row else None

    async def list_candidates(
        self, limit: int | None = None, ids: list[str] | None = None
    ) -> list[CandidateProfile]:
        row_limit = -1 if limit is None else limit
        if ids is None:
            rows = self._conn.execute(
                "SELECT data, embedding, match_count FROM experts ORDER BY seq LIMIT ?",
                (row_limit,),
            ).fetchall()
        elif not ids:
            rows = []
        else:
            placeholders = ", ".join("?" for _ in ids)
            rows = self._conn.execute(
                "SELECT data, embedding, match_count FROM experts "
                f"WHERE id IN ({placeholders}) ORDER BY seq LIMIT ?",
                (*ids, row_limit),
            ).fetchall()
        return [self._row_to_candidate(r) for r in rows]

    async def count(self) -> int:
        return self._conn.execute("SELECT COUNT(*) FROM experts").fetchone()[0]

    async def vector_search(
        self,
        query_vector: list[float],
        num_candidates: int,
        limit: int,
    ) -> list[ScoredCandidate]:
        rows = self._conn.execute(
            "SELECT data, embedding, match_count FROM experts ORDER BY seq"
        ).fetchall()
        pool: list[tuple[tuple, list[float]]] = []
        for row in rows:
            vector = json.loads(row[1])
            if len(vector) == len(query_vector):
                pool.append((row, vector))
        if not pool:
            return []

        matrix = np.asarray([v for _, v in pool], dtype=np.float64)
        scores = cosine_scores(query_vector, matrix)
        indices = top_k(scores, min(num_candidates, len(pool)))[:limit]
        return [
            ScoredCandidate(
                candidate=self._row_to_candidate(pool[i][0]),
                similarity=float(scores[i]),
            )
            for i in indices
        ]

    async def keyword_search(
        self, pattern: str | None, limit: int
    ) -> list[CandidateProfile]:
        if pattern is None:
            rows = self._conn.execute(
                "SELECT data, embedding, match_count FROM experts ORDER BY seq LIMIT ?",
                (limit,),
            ).fetchall()
        else:
            rows = self._conn.execute(
                """SELECT data, embedding, match_count FROM experts
                   WHERE skills_text REGEXP ? OR title REGEXP ? OR bio REGEXP ?
                   ORDER BY seq LIMIT ?""",
                (pattern, pattern, pattern, limit),
            ).fetchall()
        return [self._row_to_candidate(r) for r in rows]

    async def increment_match_count(self, candidate_ids: list[str]) -> None:
        self._conn.executemany(
            "UPDATE experts SET match_count = match_count + 1 WHERE id = ?",
            [(cid,) for cid in candidate_ids],
        )
        self._conn.commit()

    @staticmethod
    def _row_to_candidate(row: tuple) -> CandidateProfile:
        data = json.loads(row[0])
        data["embedding"] = json.loads(row[1])
        data["match_count"] = row[2]
        return CandidateProfile(**data)

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    async def create_query(self, record: QueryRecord) -> None:
        self._conn.execute(
            "INSERT INTO queries (query_id, status, created_at, data) VALUES (?, ?, ?, ?)",
            (
                record.query_id,
                record.status,
                record.created_at.isoformat(),
                record.model_dump_json(exclude={"conversation"}),
            ),
        )
        for entry in record.conversation:
            self._insert_entry(record.query_id, entry)
        self._conn.commit()

    async def append_conversation(
        self, query_id: str, entry: ConversationEntry
    ) -> None:
        self._load_query_row(query_id)
        self._insert_entry(query_id, entry)
        self._conn.commit()

    async def complete_query(
        self,
        query_id: str,
        requirements: RequirementSet,
        result_ids: list[str],
        completed_at: datetime,
    ) -> None:
        record = self._load_query_row(query_id)
        record.status = "completed"
        record.parsed_requirements = requirements
        record.results = list(result_ids)
        record.completed_at = completed_at
        self._save_query_row(record)

    async def fail_query(self, query_id: str) -> None:
        try:
            record = self._load_query_row(query_id)
        except RecordNotFoundError:
            logger.warning("Cannot mark unknown query %s failed", query_id)
            return
        record.status = "failed"
        self._save_query_row(record)

    async def get_query(self, query_id: str) -> QueryRecord | None:
        try:
            record = self._load_query_row(query_id)
        except RecordNotFoundError:
            return None
        rows = self._conn.execute(
            "SELECT data FROM query_conversation WHERE query_id = ? ORDER BY seq",
            (query_id,),
        ).fetchall()
        record.conversation = [ConversationEntry(**json.loads(r[0])) for r in rows]
        return record

    async def create_task(self, task: TaskRecord) -> None:
        self._conn.execute(
            "INSERT INTO agent_tasks (task_id, query_id, data) VALUES (?, ?, ?)",
            (task.task_id, task.query_id, task.model_dump_json()),
        )
        self._conn.commit()

    async def update_task_status(
        self,
        task_id: str,
        status: TaskStatus,
        completed_at: datetime | None = None,
    ) -> None:
        task = await self.get_task(task_id)
        if task is None:
            raise RecordNotFoundError(task_id)
        task.status = status
        if completed_at is not None:
            task.completed_at = completed_at
        self._conn.execute(
            "UPDATE agent_tasks SET data = ? WHERE task_id = ?",
            (task.model_dump_json(), task_id),
        )
        self._conn.commit()

    async def get_task(self, task_id: str) -> TaskRecord | None:
        row = self._conn.execute(
            "SELECT data FROM agent_tasks WHERE task_id = ?", (task_id,)
        ).fetchone()
        return TaskRecord(**json.loads(row[0])) if row else None

    def _insert_entry(self, query_id: str, entry: ConversationEntry) -> None:
        self._conn.execute(
            "INSERT INTO query_conversation (query_id, data) VALUES (?, ?)",
            (query_id, entry.model_dump_json()),
        )

    def _load_query_row(self, query_id: str) -> QueryRecord:
        row = self._conn.execute(
            "SELECT data FROM queries WHERE query_id = ?", (query_id,)
        ).fetchone()
        if row is None:
            raise RecordNotFoundError(query_id)
        return QueryRecord(**json.loads(row[0]))

    def _save_query_row(self, record: QueryRecord) -> None:
        self._conn.execute(
            "UPDATE queries SET status = ?, data = ? WHERE query_id = ?",
            (
                record.status,
                record.model_dump_json(exclude={"conversation"}),
                record.query_id,
            ),
        )
        self._conn.commit()

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()
