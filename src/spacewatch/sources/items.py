"""Item types passed between adapters, the renderer, and the dedup store."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping


@dataclass(frozen=True)
class RawItem:
    """Payload of one fetch of one source, before normalization."""

    source_id: str
    payload: Any
    fetched_at: datetime
    content_type: str | None = None


@dataclass(frozen=True)
class NormalizedItem:
    """Source-agnostic item handed to the dedup check and the renderer.

    ``fingerprint`` is computed by the adapter over the relevant fields only,
    so two fetches of unchanged upstream content carry the same fingerprint.
    ``kind`` tells the renderer how to draw ``fields``.
    """

    source_id: str
    kind: str
    fingerprint: str
    fields: Mapping[str, Any] = field(default_factory=dict)
    sort_key: str | None = None
