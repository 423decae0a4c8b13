"""Turn normalized items into deliverable payloads."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from spacewatch.errors import RenderError
from spacewatch.render.chart import render_forecast_chart
from spacewatch.sources.items import NormalizedItem


@dataclass(frozen=True)
class DispatchPayload:
    """One outbound message: text, or image bytes with an optional caption."""

    kind: str  # "text" or "image"
    content: str | bytes
    caption: str = ""
    silent: bool = False
    filename: str = "image.png"


def _render_text(item: NormalizedItem) -> DispatchPayload:
    message = item.fields.get("message")
    if not isinstance(message, str) or not message.strip():
        raise RenderError(f"Item from '{item.source_id}' has no message text")
    return DispatchPayload(kind="text", content=message)


def _render_series(item: NormalizedItem, now: datetime | None) -> DispatchPayload:
    png = render_forecast_chart(
        list(item.fields.get("points", [])),
        utc_offset_hours=float(item.fields.get("utc_offset_hours", 0.0)),
        now=now,
        title=item.fields.get("title", "Kp index forecast"),
    )
    return DispatchPayload(
        kind="image",
        content=png,
        caption=item.fields.get("caption", ""),
        silent=bool(item.fields.get("silent", False)),
        filename=f"{item.source_id}.png",
    )


def _render_image(item: NormalizedItem) -> DispatchPayload:
    image = item.fields.get("image")
    if not isinstance(image, (bytes, bytearray)) or not image:
        raise RenderError(f"Item from '{item.source_id}' has no image bytes")
    content_type = item.fields.get("content_type") or ""
    extension = "png" if "png" in content_type else "jpg"
    return DispatchPayload(
        kind="image",
        content=bytes(image),
        caption=item.fields.get("caption", ""),
        silent=bool(item.fields.get("silent", False)),
        filename=f"{item.source_id}.{extension}",
    )


def render(item: NormalizedItem, now: datetime | None = None) -> DispatchPayload:
    """Render *item* according to its kind. Raises RenderError."""
    if item.kind == "text":
        return _render_text(item)
    if item.kind == "series":
        return _render_series(item, now)
    if item.kind == "image":
        return _render_image(item)
    raise RenderError(f"Unknown item kind '{item.kind}' from '{item.source_id}'")
