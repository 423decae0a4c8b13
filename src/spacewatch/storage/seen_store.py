"""Dedup store: durable per-source log of fingerprints already notified."""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone

from spacewatch.errors import StoreWriteError
from spacewatch.storage.connection import get_connection

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SeenRecord:
    """Proof that a fingerprint was already dispatched for a source."""

    source_id: str
    fingerprint: str
    first_seen_at: str


class DedupStore:
    """SQLite-backed seen-record store partitioned by source id.

    Records are append-only: ``record`` never overwrites an existing
    ``(source_id, fingerprint)`` pair. Callers are expected to serialize
    ``exists`` + ``record`` per source; the orchestrator holds one lock per
    source for the whole pipeline.
    """

    def __init__(self, database_path: str) -> None:
        self._database_path = database_path

    @property
    def database_path(self) -> str:
        return self._database_path

    def ensure_partitions(self, sources: dict[str, str]) -> None:
        """Register every configured source (``source_id -> source_type``). Idempotent."""
        now = datetime.now(timezone.utc).isoformat()
        try:
            with get_connection(self._database_path) as conn:
                conn.executemany(
                    "INSERT OR IGNORE INTO sources (source_id, source_type, created_at) "
                    "VALUES (?, ?, ?)",
                    [(source_id, source_type, now) for source_id, source_type in sources.items()],
                )
        except sqlite3.Error as exc:
            raise StoreWriteError(f"Could not register sources: {exc}") from exc

    def exists(self, source_id: str, fingerprint: str) -> bool:
        with get_connection(self._database_path) as conn:
            row = conn.execute(
                "SELECT 1 FROM seen_records WHERE source_id = ? AND fingerprint = ?",
                (source_id, fingerprint),
            ).fetchone()
        return row is not None

    def record(self, source_id: str, fingerprint: str, timestamp: str | None = None) -> bool:
        """Append a seen record. Returns False if the pair was already recorded.

        Raises StoreWriteError if the write cannot be committed.
        """
        first_seen_at = timestamp or datetime.now(timezone.utc).isoformat()
        try:
            with get_connection(self._database_path) as conn:
                cursor = conn.execute(
                    "INSERT INTO seen_records (source_id, fingerprint, first_seen_at) "
                    "VALUES (?, ?, ?) "
                    "ON CONFLICT(source_id, fingerprint) DO NOTHING",
                    (source_id, fingerprint, first_seen_at),
                )
                inserted = cursor.rowcount == 1
        except sqlite3.Error as exc:
            raise StoreWriteError(
                f"Could not record fingerprint for source '{source_id}': {exc}"
            ) from exc
        if inserted:
            logger.debug("Recorded %s for source %s", fingerprint, source_id)
        return inserted

    def recent(self, source_id: str, limit: int = 50) -> list[str]:
        """Most recently recorded fingerprints for a source, newest first."""
        with get_connection(self._database_path) as conn:
            rows = conn.execute(
                "SELECT fingerprint FROM seen_records WHERE source_id = ? "
                "ORDER BY first_seen_at DESC, rowid DESC LIMIT ?",
                (source_id, limit),
            ).fetchall()
        return [row["fingerprint"] for row in rows]

    def history(self, source_id: str) -> list[SeenRecord]:
        """All seen records for a source in append order."""
        with get_connection(self._database_path) as conn:
            rows = conn.execute(
                "SELECT source_id, fingerprint, first_seen_at FROM seen_records "
                "WHERE source_id = ? ORDER BY first_seen_at ASC, rowid ASC",
                (source_id,),
            ).fetchall()
        return [SeenRecord(**dict(row)) for row in rows]

    def count(self, source_id: str) -> int:
        with get_connection(self._database_path) as conn:
            row = conn.execute(
                "SELECT COUNT(*) AS n FROM seen_records WHERE source_id = ?",
                (source_id,),
            ).fetchone()
        return row["n"]

    def is_baselined(self, source_id: str) -> bool:
        with get_connection(self._database_path) as conn:
            row = conn.execute(
                "SELECT baselined_at FROM sources WHERE source_id = ?",
                (source_id,),
            ).fetchone()
        return row is not None and row["baselined_at"] is not None

    def mark_baselined(self, source_id: str) -> None:
        now = datetime.now(timezone.utc).isoformat()
        try:
            with get_connection(self._database_path) as conn:
                conn.execute(
                    "UPDATE sources SET baselined_at = ? "
                    "WHERE source_id = ? AND baselined_at IS NULL",
                    (now, source_id),
                )
        except sqlite3.Error as exc:
            raise StoreWriteError(
                f"Could not mark source '{source_id}' as baselined: {exc}"
            ) from exc

    def prune(self, older_than: str) -> int:
        """Delete records first seen before ``older_than`` (ISO 8601).

        The newest record of each source is always kept so the latest upstream
        item is never re-announced. Returns the number of rows removed.
        """
        try:
            with get_connection(self._database_path) as conn:
                cursor = conn.execute(
                    "DELETE FROM seen_records "
                    "WHERE first_seen_at < ? "
                    "AND rowid NOT IN ("
                    "  SELECT MAX(rowid) FROM seen_records GROUP BY source_id"
                    ")",
                    (older_than,),
                )
                removed = cursor.rowcount
        except sqlite3.Error as exc:
            raise StoreWriteError(f"Could not prune seen records: {exc}") from exc
        logger.info("Pruned %d seen record(s) older than %s", removed, older_than)
        return removed
