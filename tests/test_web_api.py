"""Integration tests for the status API endpoints."""

from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient

from spacewatch.storage.connection import get_connection
from spacewatch.storage.schema import init_db
from spacewatch.storage.seen_store import DedupStore
from spacewatch.web.app import create_app


def _seed_run(conn, run_id, run_type="cycle", started_at="2025-06-15T12:00:00+00:00", **overrides):
    """Insert a row into cycle_runs."""
    defaults = {
        "finished_at": started_at,
        "status": "success",
        "result": {"dispatched": 0, "sources": []},
        "error": None,
    }
    defaults.update(overrides)
    conn.execute(
        "INSERT INTO cycle_runs (id, run_type, started_at, finished_at, status, result, error) "
        "VALUES (?, ?, ?, ?, ?, ?, ?)",
        (
            run_id,
            run_type,
            started_at,
            defaults["finished_at"],
            defaults["status"],
            json.dumps(defaults["result"]),
            defaults["error"],
        ),
    )


@pytest.fixture()
def db_path(tmp_path):
    path = str(tmp_path / "test.db")
    init_db(path)
    return path


@pytest.fixture()
def seeded_db(db_path):
    store = DedupStore(db_path)
    store.ensure_partitions({"alerts": "alerts", "aurora_oval": "image"})
    store.record("alerts", "fp-1", "2025-06-15T08:00:00+00:00")
    store.record("alerts", "fp-2", "2025-06-15T09:00:00+00:00")
    store.mark_baselined("alerts")
    with get_connection(db_path) as conn:
        conn.execute(
            "INSERT INTO source_errors (source_id, consecutive_failures, last_error, last_failed_at) "
            "VALUES ('aurora_oval', 3, 'Timed out', '2025-06-15T11:00:00+00:00')"
        )
        for i in range(25):
            _seed_run(conn, f"cycle-{i:02d}", started_at=f"2025-06-15T{i % 24:02d}:{i:02d}:00+00:00")
        _seed_run(
            conn, "retention-1", run_type="retention", started_at="2025-06-16T03:30:00+00:00",
            result={"cutoff": "2025-05-17T03:30:00+00:00", "removed": 3},
        )
        _seed_run(
            conn, "cycle-partial", started_at="2025-06-16T04:00:00+00:00",
            status="partial", error="aurora_oval: fetch: Timed out",
        )
    return db_path


@pytest.fixture()
def client(seeded_db):
    return TestClient(create_app(seeded_db))


# --- Health ---


class TestHealth:
    def test_healthy_response(self, db_path):
        resp = TestClient(create_app(db_path)).get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "healthy", "database": "ok"}

    def test_unhealthy_when_db_missing(self, tmp_path):
        app = create_app(str(tmp_path / "nonexistent" / "missing.db"))
        resp = TestClient(app, raise_server_exceptions=False).get("/health")
        assert resp.status_code == 503
        data = resp.json()
        assert data["status"] == "unhealthy"
        assert "detail" in data

    def test_health_not_under_api_prefix(self, client):
        assert client.get("/api/v1/health").status_code == 404


# --- Sources ---


class TestSources:
    def test_lists_all_sources(self, client):
        resp = client.get("/api/v1/sources")
        assert resp.status_code == 200
        sources = {s["source_id"]: s for s in resp.json()["sources"]}
        assert set(sources) == {"alerts", "aurora_oval"}

    def test_seen_counts_and_baseline(self, client):
        sources = {s["source_id"]: s for s in client.get("/api/v1/sources").json()["sources"]}
        alerts = sources["alerts"]
        assert alerts["seen_count"] == 2
        assert alerts["last_seen_at"] == "2025-06-15T09:00:00+00:00"
        assert alerts["baselined_at"] is not None
        assert alerts["consecutive_failures"] == 0

    def test_failure_state(self, client):
        sources = {s["source_id"]: s for s in client.get("/api/v1/sources").json()["sources"]}
        oval = sources["aurora_oval"]
        assert oval["seen_count"] == 0
        assert oval["last_seen_at"] is None
        assert oval["consecutive_failures"] == 3
        assert oval["last_error"] == "Timed out"


# --- Runs ---


class TestRuns:
    def test_paginated(self, client):
        data = client.get("/api/v1/runs", params={"per_page": 10}).json()
        assert data["total"] == 27
        assert data["pages"] == 3
        assert len(data["runs"]) == 10

    def test_newest_first(self, client):
        runs = client.get("/api/v1/runs").json()["runs"]
        assert runs[0]["id"] == "cycle-partial"
        assert runs[0]["status"] == "partial"
        assert runs[0]["error"] == "aurora_oval: fetch: Timed out"

    def test_filter_by_run_type(self, client):
        data = client.get("/api/v1/runs", params={"run_type": "retention"}).json()
        assert data["total"] == 1
        assert data["runs"][0]["result"]["removed"] == 3

    def test_invalid_run_type_rejected(self, client):
        assert client.get("/api/v1/runs", params={"run_type": "digest"}).status_code == 422

    def test_per_page_capped_at_100(self, client):
        assert client.get("/api/v1/runs", params={"per_page": 101}).status_code == 422

    def test_page_beyond_range_returns_empty(self, client):
        data = client.get("/api/v1/runs", params={"page": 50}).json()
        assert data["runs"] == []
        assert data["total"] == 27

    def test_empty_database(self, db_path):
        data = TestClient(create_app(db_path)).get("/api/v1/runs").json()
        assert data == {"runs": [], "total": 0, "page": 1, "per_page": 20, "pages": 0}
