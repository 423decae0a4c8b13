"""Scheduled job functions: poll cycle and seen-record retention."""

from __future__ import annotations

import json
import logging
import sqlite3
import uuid
from datetime import datetime, timedelta, timezone

from spacewatch.config import Config
from spacewatch.errors import StoreWriteError
from spacewatch.pipeline import PollContext, run_cycle
from spacewatch.storage.connection import get_connection
from spacewatch.storage.seen_store import DedupStore

logger = logging.getLogger(__name__)


def _record_run(
    database_path: str,
    run_type: str,
    started_at: str,
    result: dict,
    status: str = "success",
    error: str | None = None,
) -> None:
    """Insert a run record into the cycle_runs table. Never raises."""
    finished_at = datetime.now(timezone.utc).isoformat()
    try:
        with get_connection(database_path) as conn:
            conn.execute(
                "INSERT INTO cycle_runs "
                "(id, run_type, started_at, finished_at, status, result, error) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    str(uuid.uuid4()),
                    run_type,
                    started_at,
                    finished_at,
                    status,
                    json.dumps(result),
                    error,
                ),
            )
    except sqlite3.Error:
        logger.exception("Could not record %s run", run_type)


def run_poll_cycle(context: PollContext) -> None:
    """Run one poll cycle across all sources and log it to cycle_runs."""
    started_at = datetime.now(timezone.utc).isoformat()
    try:
        cycle = run_cycle(context)
    except Exception:
        logger.exception("Poll cycle failed")
        _record_run(
            context.store.database_path, "cycle", started_at, {},
            status="error", error="Poll cycle failed (see logs)",
        )
        return

    error = None
    if cycle.failed:
        error = "; ".join(f"{s.source_id}: {', '.join(s.errors)}" for s in cycle.failed)
    _record_run(
        context.store.database_path, "cycle", cycle.started_at, cycle.to_dict(),
        status=cycle.status, error=error,
    )


def run_retention(config: Config) -> None:
    """Prune seen records older than the retention window (0 keeps everything)."""
    if config.seen_retention_days <= 0:
        logger.debug("Seen-record retention disabled")
        return

    started_at = datetime.now(timezone.utc).isoformat()
    cutoff = (
        datetime.now(timezone.utc) - timedelta(days=config.seen_retention_days)
    ).isoformat()
    try:
        removed = DedupStore(config.database_path).prune(cutoff)
    except StoreWriteError:
        logger.exception("Retention failed")
        _record_run(
            config.database_path, "retention", started_at, {"cutoff": cutoff},
            status="error", error="Retention failed (see logs)",
        )
        return

    _record_run(
        config.database_path, "retention", started_at, {"cutoff": cutoff, "removed": removed},
    )
