"""Alert feed adapter: announces the newest record of a JSON alert list."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from spacewatch.errors import FetchError
from spacewatch.sources.adapter import SourceAdapter
from spacewatch.sources.fingerprint import compute_fingerprint
from spacewatch.sources.http import fetch_json
from spacewatch.sources.items import NormalizedItem, RawItem

logger = logging.getLogger(__name__)


class AlertFeedAdapter(SourceAdapter):
    """Adapter for append-only alert lists such as the SWPC ``alerts.json``.

    Only the most recent record is examined per poll; older records were
    either announced on an earlier cycle or superseded upstream.
    """

    source_type = "alerts"

    def __init__(self, timeout: float = 30.0) -> None:
        super().__init__(timeout)
        self._message_field = "message"
        self._sort_field = "issue_datetime"
        self._volatile_fields: frozenset[str] = frozenset()
        self._newest_first = False

    def configure(self, config: dict) -> None:
        super().configure(config)
        self._message_field = config.get("message_field", "message")
        self._sort_field = config.get("sort_field", "issue_datetime")
        self._volatile_fields = frozenset(config.get("volatile_fields", []))
        self._newest_first = bool(config.get("newest_first", False))

    def fetch(self) -> list[RawItem]:
        data = fetch_json(self._url, timeout=self._timeout)
        if not isinstance(data, list):
            raise FetchError(
                f"Alert feed '{self.name}' returned {type(data).__name__}, expected a list"
            )
        logger.info("Fetched %d alert record(s) from %s", len(data), self.name)
        return [RawItem(self.name, data, datetime.now(timezone.utc), "application/json")]

    def normalize(self, raw: RawItem) -> list[NormalizedItem]:
        records = raw.payload
        if not records:
            return []

        latest = records[0] if self._newest_first else records[-1]
        if not isinstance(latest, dict):
            raise FetchError(f"Alert feed '{self.name}' record is not an object: {latest!r}")

        message = latest.get(self._message_field)
        if not isinstance(message, str) or not message.strip():
            raise FetchError(
                f"Alert feed '{self.name}' record has no '{self._message_field}' text"
            )

        relevant = {k: v for k, v in latest.items() if k not in self._volatile_fields}
        sort_key = latest.get(self._sort_field)
        return [
            NormalizedItem(
                source_id=self.name,
                kind="text",
                fingerprint=compute_fingerprint(self.name, relevant),
                fields={"message": message, "record": latest},
                sort_key=str(sort_key) if sort_key is not None else None,
            )
        ]
