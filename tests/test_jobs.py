"""Tests for scheduled job functions: cycle logging and retention."""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

from spacewatch.config import Config
from spacewatch.delivery.dispatcher import TelegramDispatcher
from spacewatch.jobs import _record_run, run_poll_cycle, run_retention
from spacewatch.pipeline import CycleResult, PollContext, SourceResult
from spacewatch.storage.connection import get_connection
from spacewatch.storage.schema import init_db
from spacewatch.storage.seen_store import DedupStore


def _make_config(tmp_path, **overrides) -> Config:
    defaults = {
        "database_path": str(tmp_path / "test.db"),
        "telegram_bot_token": "test-token",
        "telegram_chat_id": "test-chat",
    }
    defaults.update(overrides)
    return Config(**defaults)


def _runs(database_path: str, run_type: str) -> list[sqlite3.Row]:
    with get_connection(database_path) as conn:
        return conn.execute(
            "SELECT * FROM cycle_runs WHERE run_type = ? ORDER BY started_at", (run_type,)
        ).fetchall()


def _context(database_path: str) -> PollContext:
    return PollContext(
        channel_id="chat",
        store=DedupStore(database_path),
        dispatcher=MagicMock(spec=TelegramDispatcher),
        adapters=[],
    )


# --- Cycle logging ---


class TestRunPollCycle:
    def test_records_successful_cycle(self, tmp_path):
        config = _make_config(tmp_path)
        init_db(config.database_path)
        cycle = CycleResult(
            started_at="2025-06-15T12:00:00+00:00",
            finished_at="2025-06-15T12:00:02+00:00",
            sources=[SourceResult("alerts", dispatched=1)],
        )

        with patch("spacewatch.jobs.run_cycle", return_value=cycle):
            run_poll_cycle(_context(config.database_path))

        runs = _runs(config.database_path, "cycle")
        assert len(runs) == 1
        assert runs[0]["status"] == "success"
        assert runs[0]["error"] is None
        assert json.loads(runs[0]["result"])["dispatched"] == 1

    def test_records_partial_cycle_with_errors(self, tmp_path):
        config = _make_config(tmp_path)
        init_db(config.database_path)
        cycle = CycleResult(
            started_at="2025-06-15T12:00:00+00:00",
            finished_at="2025-06-15T12:00:02+00:00",
            sources=[
                SourceResult("alerts"),
                SourceResult("discussion", status="fetch_error", errors=["fetch: timed out"]),
            ],
        )

        with patch("spacewatch.jobs.run_cycle", return_value=cycle):
            run_poll_cycle(_context(config.database_path))

        run = _runs(config.database_path, "cycle")[0]
        assert run["status"] == "partial"
        assert "discussion: fetch: timed out" in run["error"]

    def test_unexpected_failure_recorded(self, tmp_path):
        config = _make_config(tmp_path)
        init_db(config.database_path)

        with patch("spacewatch.jobs.run_cycle", side_effect=RuntimeError("boom")):
            run_poll_cycle(_context(config.database_path))

        run = _runs(config.database_path, "cycle")[0]
        assert run["status"] == "error"
        assert json.loads(run["result"]) == {}

    def test_record_run_never_raises(self, tmp_path):
        # No schema: the insert fails and is only logged
        _record_run(str(tmp_path / "empty.db"), "cycle", "2025-06-15T12:00:00+00:00", {})


# --- Retention ---


class TestRunRetention:
    def test_disabled_by_default(self, tmp_path):
        config = _make_config(tmp_path)
        init_db(config.database_path)

        run_retention(config)

        assert _runs(config.database_path, "retention") == []

    def test_prunes_old_records(self, tmp_path):
        config = _make_config(tmp_path, seen_retention_days=30)
        init_db(config.database_path)
        store = DedupStore(config.database_path)
        store.ensure_partitions({"alerts": "alerts"})
        old = (datetime.now(timezone.utc) - timedelta(days=60)).isoformat()
        store.record("alerts", "fp-old-1", old)
        store.record("alerts", "fp-old-2", old)
        store.record("alerts", "fp-new")

        run_retention(config)

        assert store.count("alerts") == 1
        assert store.exists("alerts", "fp-new")
        run = _runs(config.database_path, "retention")[0]
        assert run["status"] == "success"
        assert json.loads(run["result"])["removed"] == 2

    def test_keeps_newest_record_even_when_old(self, tmp_path):
        config = _make_config(tmp_path, seen_retention_days=1)
        init_db(config.database_path)
        store = DedupStore(config.database_path)
        store.ensure_partitions({"discussion": "discussion"})
        old = (datetime.now(timezone.utc) - timedelta(days=10)).isoformat()
        store.record("discussion", "fp-1", old)
        store.record("discussion", "fp-2", old)

        run_retention(config)

        assert store.recent("discussion") == ["fp-2"]
