"""Route handlers for the status API."""

from __future__ import annotations

import logging
import math
import sqlite3

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse

from spacewatch.web.models import CycleRunListResponse, SourceListResponse
from spacewatch.web.queries import get_readonly_connection, list_runs, list_sources

logger = logging.getLogger(__name__)

router = APIRouter()
health_router = APIRouter()


@health_router.get("/health")
def health(request: Request) -> JSONResponse:
    """Check database connectivity and return health status."""
    database_path = request.app.state.database_path
    try:
        with get_readonly_connection(database_path) as conn:
            conn.execute("SELECT 1 FROM seen_records LIMIT 1")
        return JSONResponse({"status": "healthy", "database": "ok"})
    except (sqlite3.Error, OSError) as exc:
        logger.warning("Health check failed: %s", exc)
        return JSONResponse(
            {"status": "unhealthy", "database": "error", "detail": str(exc)},
            status_code=503,
        )


@router.get("/sources", response_model=SourceListResponse)
def sources(request: Request) -> SourceListResponse:
    database_path = request.app.state.database_path
    return SourceListResponse(sources=list_sources(database_path))


@router.get("/runs", response_model=CycleRunListResponse)
def runs(
    request: Request,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    run_type: str | None = Query(None, pattern="^(cycle|retention)$"),
) -> CycleRunListResponse:
    database_path = request.app.state.database_path
    rows, total = list_runs(database_path, page=page, per_page=per_page, run_type=run_type)
    pages = math.ceil(total / per_page) if total else 0
    return CycleRunListResponse(
        runs=rows,
        total=total,
        page=page,
        per_page=per_page,
        pages=pages,
    )
