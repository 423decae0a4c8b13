"""Discussion feed adapter: announces any edit of a free-form text document."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from spacewatch.errors import FetchError
from spacewatch.sources.adapter import SourceAdapter
from spacewatch.sources.fingerprint import compute_fingerprint
from spacewatch.sources.http import fetch_url
from spacewatch.sources.items import NormalizedItem, RawItem

logger = logging.getLogger(__name__)


def extract_text(payload: object, text_field: str = "message") -> str:
    """Pull the discussion text out of a decoded payload.

    Accepts a bare string, an object holding ``text_field``, or a list of
    strings / objects (joined with blank lines). Raises FetchError otherwise.
    """
    if isinstance(payload, str):
        return payload
    if isinstance(payload, dict):
        value = payload.get(text_field)
        if isinstance(value, str):
            return value
        raise FetchError(f"Discussion payload has no '{text_field}' text")
    if isinstance(payload, list):
        return "\n\n".join(extract_text(part, text_field) for part in payload)
    raise FetchError(f"Unsupported discussion payload: {type(payload).__name__}")


class DiscussionFeedAdapter(SourceAdapter):
    """Adapter for a single free-form forecast discussion.

    The whole text is fingerprinted, so any upstream edit is a new item.
    """

    source_type = "discussion"

    def __init__(self, timeout: float = 30.0) -> None:
        super().__init__(timeout)
        self._text_field = "message"

    def configure(self, config: dict) -> None:
        super().configure(config)
        self._text_field = config.get("text_field", "message")

    def fetch(self) -> list[RawItem]:
        resp = fetch_url(self._url, timeout=self._timeout)
        content_type = resp.headers.get("content-type", "")
        if "json" in content_type:
            try:
                payload = resp.json()
            except ValueError as exc:
                raise FetchError(f"Invalid JSON from {self._url}: {exc}") from exc
        else:
            payload = resp.text
        return [RawItem(self.name, payload, datetime.now(timezone.utc), content_type)]

    def normalize(self, raw: RawItem) -> list[NormalizedItem]:
        text = extract_text(raw.payload, self._text_field).strip()
        if not text:
            logger.info("Discussion '%s' is empty; nothing to announce", self.name)
            return []
        return [
            NormalizedItem(
                source_id=self.name,
                kind="text",
                fingerprint=compute_fingerprint(self.name, text),
                fields={"message": text},
            )
        ]
