"""Pydantic v2 response models for the status API."""

from __future__ import annotations

from pydantic import BaseModel


class SourceStatus(BaseModel):
    source_id: str
    source_type: str
    created_at: str
    baselined_at: str | None
    seen_count: int
    last_seen_at: str | None
    consecutive_failures: int
    last_error: str | None
    last_failed_at: str | None
    last_succeeded_at: str | None


class SourceListResponse(BaseModel):
    sources: list[SourceStatus]


class CycleRun(BaseModel):
    id: str
    run_type: str
    started_at: str
    finished_at: str
    status: str
    result: dict
    error: str | None


class CycleRunListResponse(BaseModel):
    runs: list[CycleRun]
    total: int
    page: int
    per_page: int
    pages: int
