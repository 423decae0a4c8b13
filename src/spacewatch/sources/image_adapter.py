"""Image snapshot adapter: announces visible changes of a periodically refreshed image."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone

from spacewatch.errors import FetchError
from spacewatch.sources.adapter import SourceAdapter
from spacewatch.sources.fingerprint import hash_distance, perceptual_hash
from spacewatch.sources.http import fetch_url
from spacewatch.sources.items import NormalizedItem, RawItem

logger = logging.getLogger(__name__)


class ImageSnapshotAdapter(SourceAdapter):
    """Adapter for a single image URL such as the aurora oval snapshot.

    Fingerprints are perceptual hashes; an image within ``max_distance`` bits
    of a recently announced one counts as already seen.
    """

    source_type = "image"
    similarity_window = 20

    def __init__(self, timeout: float = 30.0) -> None:
        super().__init__(timeout)
        self._max_distance = 4
        self._cache_bust_param = "t"

    def configure(self, config: dict) -> None:
        super().configure(config)
        self._max_distance = int(config.get("max_distance", 4))
        self._cache_bust_param = config.get("cache_bust_param", "t")
        if "silent" not in config:
            self._silent = True

    def fetch(self) -> list[RawItem]:
        params = {self._cache_bust_param: str(int(time.time() * 1000))}
        resp = fetch_url(self._url, timeout=self._timeout, params=params)
        if not resp.content:
            raise FetchError(f"Image source '{self.name}' returned an empty body")
        content_type = resp.headers.get("content-type", "")
        logger.info("Fetched %d byte image from %s", len(resp.content), self.name)
        return [RawItem(self.name, resp.content, datetime.now(timezone.utc), content_type)]

    def normalize(self, raw: RawItem) -> list[NormalizedItem]:
        try:
            digest = perceptual_hash(raw.payload)
        except ValueError as exc:
            raise FetchError(f"Image source '{self.name}': {exc}") from exc
        return [
            NormalizedItem(
                source_id=self.name,
                kind="image",
                fingerprint=digest,
                fields={
                    "image": raw.payload,
                    "content_type": raw.content_type,
                    "caption": self._caption,
                    "silent": self._silent,
                },
            )
        ]

    def matches_seen(self, item: NormalizedItem, recent: list[str]) -> bool:
        for fingerprint in recent:
            try:
                distance = hash_distance(item.fingerprint, fingerprint)
            except (TypeError, ValueError):
                continue
            if distance <= self._max_distance:
                logger.info(
                    "Image '%s' matches a recent snapshot (distance=%d)", self.name, distance
                )
                return True
        return False
