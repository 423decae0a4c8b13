"""Kp-index forecast adapter: announces changes to the forecast table."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from spacewatch.errors import FetchError
from spacewatch.sources.adapter import SourceAdapter
from spacewatch.sources.fingerprint import compute_fingerprint
from spacewatch.sources.http import fetch_json
from spacewatch.sources.items import NormalizedItem, RawItem

logger = logging.getLogger(__name__)

_TIME_FORMATS = ("%Y-%m-%d %H:%M:%S", "%Y-%m-%d %H:%M", "%Y-%m-%dT%H:%M:%S")


@dataclass(frozen=True)
class ForecastPoint:
    """One row of the forecast table. ``timestamp`` is UTC."""

    timestamp: datetime
    value: float
    status: str | None = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: str) -> datetime:
    """Parse a feed time tag as UTC. Raises ValueError if unrecognised."""
    for fmt in _TIME_FORMATS:
        try:
            return datetime.strptime(value, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_rows(rows: list) -> list[ForecastPoint]:
    """Parse ``[time_tag, value, status?, ...]`` rows (header already removed)."""
    points: list[ForecastPoint] = []
    for row in rows:
        if not isinstance(row, (list, tuple)) or len(row) < 2:
            raise FetchError(f"Malformed forecast row: {row!r}")
        try:
            timestamp = parse_timestamp(str(row[0]))
            value = float(row[1])
        except (TypeError, ValueError) as exc:
            raise FetchError(f"Malformed forecast row {row!r}: {exc}") from exc
        status = row[2] if len(row) > 2 and isinstance(row[2], str) else None
        points.append(ForecastPoint(timestamp, value, status))
    return points


def filter_display_rows(
    points: list[ForecastPoint], now: datetime, utc_offset_hours: float
) -> list[ForecastPoint]:
    """Drop rows that lie in the past of the observer.

    Both the row time and *now* are shifted to the observation offset; a row
    is kept when ``row_local - now_local + offset >= 0``, i.e. when it is no
    older than *offset* hours before *now*.
    """
    offset = timedelta(hours=utc_offset_hours)
    now_local = now + offset
    return [p for p in points if (p.timestamp + offset) - now_local + offset >= timedelta(0)]


class ForecastSeriesAdapter(SourceAdapter):
    """Adapter for ``[header, [time_tag, kp, ...], ...]`` forecast tables.

    The fingerprint covers every data row of the table so that rows sliding
    out of the display window do not by themselves count as a change.
    """

    source_type = "forecast"

    def __init__(self, timeout: float = 30.0) -> None:
        super().__init__(timeout)
        self._utc_offset_hours = 0.0
        self._title = "Kp index forecast"

    def configure(self, config: dict) -> None:
        super().configure(config)
        self._utc_offset_hours = float(config.get("utc_offset_hours", 0.0))
        self._title = config.get("title", "Kp index forecast")

    def fetch(self) -> list[RawItem]:
        data = fetch_json(self._url, timeout=self._timeout)
        if not isinstance(data, list) or not data:
            raise FetchError(f"Forecast feed '{self.name}' returned no table")
        logger.info("Fetched forecast table with %d row(s) from %s", len(data) - 1, self.name)
        return [RawItem(self.name, data, datetime.now(timezone.utc), "application/json")]

    def normalize(self, raw: RawItem) -> list[NormalizedItem]:
        rows = raw.payload[1:]
        points = parse_rows(rows)
        if not points:
            return []

        now = _utcnow()
        display = filter_display_rows(points, now, self._utc_offset_hours)
        if not display:
            logger.info("Forecast '%s' has no rows in the display window", self.name)
            return []

        return [
            NormalizedItem(
                source_id=self.name,
                kind="series",
                fingerprint=compute_fingerprint(self.name, rows),
                fields={
                    "points": display,
                    "utc_offset_hours": self._utc_offset_hours,
                    "title": self._title,
                    "caption": self._caption,
                    "silent": self._silent,
                },
                sort_key=points[-1].timestamp.isoformat(),
            )
        ]
