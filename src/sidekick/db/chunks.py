"""Project-scoped knowledge chunk store with cosine similarity search.

Embeddings are stored as float32 blobs and compared with sqlite-vec's
``vec_distance_cosine``; similarity = 1 - distance. Every read is restricted
to one project and to ``live`` rows, so a rebuild in progress (``staged`` rows)
is never visible to search.

One rebuild per project at a time: ``begin_build`` takes a lease row that
``commit_build`` or ``discard_build`` releases.
"""

from __future__ import annotations

import json
import logging
import os
import socket
import sqlite3
import time
import uuid
from collections.abc import Iterator
from contextlib import contextmanager

import sqlite_vec

from sidekick.db.models import KnowledgeChunk, SearchResult, SourceType

logger = logging.getLogger(__name__)

# A running build refreshes its lease after every chunk; one this old is dead.
STALE_LEASE_SECONDS = 300.0


class BuildInProgressError(RuntimeError):
    """Another rebuild of the project holds the rebuild lease."""

    def __init__(self, project_id: str, holder: str | None = None) -> None:
        super().__init__(
            f"A rebuild of project '{project_id}' is already running"
            + (f" ({holder})" if holder else "")
        )
        self.project_id = project_id
        self.holder = holder


def _default_holder() -> str:
    return f"{socket.gethostname()}:{os.getpid()}"


class ChunkStore:
    """Data access layer for the ``knowledge_chunks`` table.

    Args:
        conn: Open connection with sqlite-vec loaded and schema initialised
            (see sidekick.db.migrations.initialize).
        dimensions: Fixed embedding length for this deployment. Inserts and
            queries with any other length are rejected.
    """

    def __init__(self, conn: sqlite3.Connection, dimensions: int = 1536) -> None:
        self._conn = conn
        self.dimensions = dimensions

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert(self, chunk: KnowledgeChunk, build_id: str | None = None) -> str:
        """Insert *chunk* and return its id.

        With *build_id* the row is written as ``staged`` and stays invisible
        until ``commit_build()``.
        """
        if not chunk.chunk_text.strip():
            raise ValueError("chunk_text must not be empty")
        self._check_dimensions(chunk.embedding)

        chunk_id = chunk.id or str(uuid.uuid4())
        self._conn.execute(
            """
            INSERT INTO knowledge_chunks
                (id, project_id, source_type, source_id, chunk_text, chunk_index,
                 embedding, metadata, build_id, status)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                chunk_id,
                chunk.project_id,
                SourceType(chunk.source_type).value,
                chunk.source_id,
                chunk.chunk_text,
                chunk.chunk_index,
                sqlite_vec.serialize_float32(chunk.embedding),
                chunk.metadata_json,
                build_id,
                "staged" if build_id else "live",
            ),
        )
        self._conn.commit()
        chunk.id = chunk_id
        return chunk_id

    def delete_by_project(self, project_id: str) -> int:
        """Delete every chunk (live and staged) for *project_id*. Returns rows deleted."""
        cur = self._conn.execute(
            "DELETE FROM knowledge_chunks WHERE project_id = ?", (project_id,)
        )
        self._conn.commit()
        return cur.rowcount

    # ------------------------------------------------------------------
    # Staged rebuild
    # ------------------------------------------------------------------

    def begin_build(
        self,
        project_id: str,
        holder: str | None = None,
        stale_after: float = STALE_LEASE_SECONDS,
    ) -> str:
        """Take the rebuild lease for *project_id* and return a new build id.

        The lease is a row in ``reindex_leases`` written under ``BEGIN
        IMMEDIATE``, so it serializes rebuilds across processes sharing the
        database file. A lease whose heartbeat is older than *stale_after*
        seconds is taken over. Once the lease is held no other build can be
        running, so staged rows left by crashed runs are dropped.

        Raises:
            BuildInProgressError: If another build holds a fresh lease.
        """
        build_id = str(uuid.uuid4())
        now = time.time()
        with self._immediate():
            row = self._conn.execute(
                "SELECT holder, heartbeat_at FROM reindex_leases WHERE project_id = ?",
                (project_id,),
            ).fetchone()
            if row is not None:
                if now - row["heartbeat_at"] < stale_after:
                    raise BuildInProgressError(project_id, row["holder"])
                logger.warning(
                    "Taking over stale rebuild lease of %s from %s", project_id, row["holder"]
                )
            self._conn.execute(
                """
                INSERT OR REPLACE INTO reindex_leases
                    (project_id, build_id, holder, acquired_at, heartbeat_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (project_id, build_id, holder or _default_holder(), now, now),
            )
            self._conn.execute(
                "DELETE FROM knowledge_chunks WHERE project_id = ? AND status = 'staged'",
                (project_id,),
            )
        return build_id

    def heartbeat(self, project_id: str, build_id: str) -> None:
        """Refresh the lease of a running build.

        Raises:
            BuildInProgressError: If the lease was taken over by another build.
        """
        cur = self._conn.execute(
            "UPDATE reindex_leases SET heartbeat_at = ? WHERE project_id = ? AND build_id = ?",
            (time.time(), project_id, build_id),
        )
        self._conn.commit()
        if cur.rowcount == 0:
            raise BuildInProgressError(project_id, self._lease_holder(project_id))

    def commit_build(self, project_id: str, build_id: str) -> int:
        """Atomically replace the live chunk set with the staged *build_id* rows.

        The lease is released in the same transaction.

        Returns:
            The new live chunk count for the project.

        Raises:
            BuildInProgressError: If *build_id* no longer holds the lease; the
                live set is left untouched.
        """
        with self._immediate():
            owner = self._conn.execute(
                "SELECT build_id, holder FROM reindex_leases WHERE project_id = ?",
                (project_id,),
            ).fetchone()
            if owner is None or owner["build_id"] != build_id:
                raise BuildInProgressError(project_id, owner["holder"] if owner else None)
            self._conn.execute(
                "DELETE FROM knowledge_chunks WHERE project_id = ? AND status = 'live'",
                (project_id,),
            )
            self._conn.execute(
                """
                UPDATE knowledge_chunks SET status = 'live'
                WHERE project_id = ? AND build_id = ? AND status = 'staged'
                """,
                (project_id, build_id),
            )
            self._conn.execute(
                "DELETE FROM reindex_leases WHERE project_id = ? AND build_id = ?",
                (project_id, build_id),
            )
        return self.count(project_id)

    def discard_build(self, project_id: str, build_id: str) -> None:
        """Drop the staged rows of a failed rebuild and release its lease.

        The live set is untouched, and so is a lease another build has taken over.
        """
        with self._conn:
            self._conn.execute(
                "DELETE FROM knowledge_chunks WHERE project_id = ? AND build_id = ? AND status = 'staged'",
                (project_id, build_id),
            )
            self._conn.execute(
                "DELETE FROM reindex_leases WHERE project_id = ? AND build_id = ?",
                (project_id, build_id),
            )

    def _lease_holder(self, project_id: str) -> str | None:
        row = self._conn.execute(
            "SELECT holder FROM reindex_leases WHERE project_id = ?", (project_id,)
        ).fetchone()
        return row["holder"] if row else None

    @contextmanager
    def _immediate(self) -> Iterator[None]:
        """Run the block in a write transaction taken up front (BEGIN IMMEDIATE)."""
        if self._conn.in_transaction:
            self._conn.commit()
        self._conn.execute("BEGIN IMMEDIATE")
        try:
            yield
        except BaseException:
            self._conn.rollback()
            raise
        self._conn.commit()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def count(self, project_id: str) -> int:
        """Return the number of live chunks for *project_id*."""
        return self._conn.execute(
            "SELECT COUNT(*) FROM knowledge_chunks WHERE project_id = ? AND status = 'live'",
            (project_id,),
        ).fetchone()[0]

    def count_by_type(self, project_id: str) -> dict[str, int]:
        """Return {source_type: live chunk count} for *project_id*."""
        rows = self._conn.execute(
            """
            SELECT source_type, COUNT(*) AS n FROM knowledge_chunks
            WHERE project_id = ? AND status = 'live'
            GROUP BY source_type ORDER BY source_type
            """,
            (project_id,),
        ).fetchall()
        return {r["source_type"]: r["n"] for r in rows}

    def search(
        self,
        project_id: str,
        query_vector: list[float],
        threshold: float,
        limit: int,
    ) -> list[SearchResult]:
        """Cosine similarity search restricted to one project's live chunks.

        Returns rows with ``similarity > threshold``, best match first, at most
        *limit* of them.
        """
        self._check_dimensions(query_vector)
        rows = self._conn.execute(
            """
            SELECT source_type, source_id, chunk_text, metadata, similarity FROM (
                SELECT source_type, source_id, chunk_text, metadata,
                       1.0 - vec_distance_cosine(embedding, ?) AS similarity
                FROM knowledge_chunks
                WHERE project_id = ? AND status = 'live'
            )
            WHERE similarity > ?
            ORDER BY similarity DESC
            LIMIT ?
            """,
            (sqlite_vec.serialize_float32(query_vector), project_id, threshold, limit),
        ).fetchall()
        return [
            SearchResult(
                source_type=SourceType(r["source_type"]),
                source_id=r["source_id"],
                chunk_text=r["chunk_text"],
                metadata=json.loads(r["metadata"] or "{}"),
                similarity=float(r["similarity"]),
            )
            for r in rows
        ]

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _check_dimensions(self, vector: list[float]) -> None:
        if len(vector) != self.dimensions:
            raise ValueError(
                f"Embedding has {len(vector)} dimensions; this store expects {self.dimensions}."
            )
