"""Database schema definition and initialization."""

from __future__ import annotations

import logging

from spacewatch.storage.connection import get_connection

logger = logging.getLogger(__name__)

_SCHEMA_SQL = """\
-- One row per configured source; the partition key of seen_records
CREATE TABLE IF NOT EXISTS sources (
    source_id       TEXT PRIMARY KEY,
    source_type     TEXT NOT NULL,
    created_at      TEXT NOT NULL,
    baselined_at    TEXT
);

-- Append-only log of fingerprints already notified, per source
CREATE TABLE IF NOT EXISTS seen_records (
    source_id       TEXT NOT NULL REFERENCES sources(source_id),
    fingerprint     TEXT NOT NULL,
    first_seen_at   TEXT NOT NULL,
    PRIMARY KEY (source_id, fingerprint)
);
CREATE INDEX IF NOT EXISTS idx_seen_records_first_seen
    ON seen_records(source_id, first_seen_at);

-- Consecutive fetch failures per source
CREATE TABLE IF NOT EXISTS source_errors (
    source_id               TEXT PRIMARY KEY,
    consecutive_failures    INTEGER NOT NULL DEFAULT 0,
    last_error              TEXT,
    last_failed_at          TEXT,
    last_succeeded_at       TEXT
);

-- Poll cycle and maintenance job log
CREATE TABLE IF NOT EXISTS cycle_runs (
    id          TEXT PRIMARY KEY,
    run_type    TEXT NOT NULL CHECK (run_type IN ('cycle', 'retention')),
    started_at  TEXT NOT NULL,
    finished_at TEXT NOT NULL,
    status      TEXT NOT NULL CHECK (status IN ('success', 'partial', 'error')),
    result      TEXT NOT NULL,   -- JSON
    error       TEXT
);
CREATE INDEX IF NOT EXISTS idx_cycle_runs_started_at ON cycle_runs(started_at);
CREATE INDEX IF NOT EXISTS idx_cycle_runs_run_type ON cycle_runs(run_type);
"""


def init_db(database_path: str) -> None:
    """Create all tables and indexes if they do not already exist."""
    with get_connection(database_path) as conn:
        conn.executescript(_SCHEMA_SQL)
    logger.info("Database initialized at %s", database_path)
