"""Read-only queries backing the status API."""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from typing import Generator


@contextmanager
def get_readonly_connection(database_path: str) -> Generator[sqlite3.Connection, None, None]:
    """Open a read-only SQLite connection.

    Uses URI mode to enforce read-only access. Yields the connection and
    closes on exit.
    """
    conn = sqlite3.connect(f"file:{database_path}?mode=ro", uri=True)
    conn.execute("PRAGMA query_only=ON")
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()


def list_sources(database_path: str) -> list[dict]:
    """Per-source seen-record counts and fetch health."""
    with get_readonly_connection(database_path) as conn:
        rows = conn.execute(
            "SELECT s.source_id, s.source_type, s.created_at, s.baselined_at, "
            "COUNT(r.fingerprint) AS seen_count, MAX(r.first_seen_at) AS last_seen_at, "
            "COALESCE(e.consecutive_failures, 0) AS consecutive_failures, "
            "e.last_error, e.last_failed_at, e.last_succeeded_at "
            "FROM sources s "
            "LEFT JOIN seen_records r ON r.source_id = s.source_id "
            "LEFT JOIN source_errors e ON e.source_id = s.source_id "
            "GROUP BY s.source_id "
            "ORDER BY s.source_id"
        ).fetchall()
    return [dict(row) for row in rows]


def list_runs(
    database_path: str,
    *,
    page: int = 1,
    per_page: int = 20,
    run_type: str | None = None,
) -> tuple[list[dict], int]:
    """Most recent runs first. Returns (rows, total)."""
    where = ""
    params: list = []
    if run_type:
        where = "WHERE run_type = ? "
        params.append(run_type)

    with get_readonly_connection(database_path) as conn:
        total = conn.execute(
            f"SELECT COUNT(*) AS n FROM cycle_runs {where}", params  # noqa: S608
        ).fetchone()["n"]
        rows = conn.execute(
            "SELECT id, run_type, started_at, finished_at, status, result, error "
            f"FROM cycle_runs {where}"  # noqa: S608
            "ORDER BY started_at DESC LIMIT ? OFFSET ?",
            [*params, per_page, (page - 1) * per_page],
        ).fetchall()

    runs = []
    for row in rows:
        run = dict(row)
        run["result"] = json.loads(run["result"])
        runs.append(run)
    return runs, total
