"""Kp-index forecast bar chart rendered with matplotlib's Agg canvas."""

from __future__ import annotations

import io
import logging
from datetime import datetime, timedelta, timezone

from matplotlib.figure import Figure

from spacewatch.errors import RenderError
from spacewatch.render.colors import SEVERITY_BANDS, severity_color

logger = logging.getLogger(__name__)

FIGURE_SIZE = (10, 5)
FIGURE_DPI = 100
BACKGROUND = "#0b0f14"
FOREGROUND = "#d8dee9"
GRID_COLOR = "#2e3440"
DAY_MARKER_COLOR = "#88c0d0"
Y_LIMIT = 9


def _local(ts: datetime, utc_offset_hours: float) -> datetime:
    return ts.astimezone(timezone.utc) + timedelta(hours=utc_offset_hours)


def _style_axes(ax) -> None:
    ax.set_facecolor(BACKGROUND)
    ax.tick_params(colors=FOREGROUND, labelsize=8)
    for spine in ax.spines.values():
        spine.set_color(GRID_COLOR)
    ax.yaxis.grid(True, color=GRID_COLOR, linewidth=0.5)
    ax.set_axisbelow(True)


def render_forecast_chart(
    points: list,
    *,
    utc_offset_hours: float = 0.0,
    now: datetime | None = None,
    title: str = "Kp index forecast",
) -> bytes:
    """Draw *points* (ForecastPoint-like) as a PNG bar chart.

    Bars are colored by severity band, ticks show local hours, a dashed
    vertical line marks every local-day transition and the day is labeled
    below it. Raises RenderError if there is nothing to draw or drawing fails.
    """
    if not points:
        raise RenderError("Forecast has no rows to draw")

    now = now or datetime.now(timezone.utc)
    local_times = [_local(p.timestamp, utc_offset_hours) for p in points]
    values = [p.value for p in points]

    try:
        fig = Figure(figsize=FIGURE_SIZE, dpi=FIGURE_DPI, facecolor=BACKGROUND)
        ax = fig.add_subplot(1, 1, 1)
        _style_axes(ax)

        positions = list(range(len(points)))
        ax.bar(
            positions,
            values,
            width=0.8,
            color=[severity_color(v) for v in values],
            edgecolor=[severity_color(v)[:7] for v in values],
        )
        ax.set_ylim(0, max(Y_LIMIT, max(values)))
        ax.set_yticks(range(0, Y_LIMIT + 1))
        ax.set_xticks(positions)
        ax.set_xticklabels([t.strftime("%H") for t in local_times])

        for idx in range(1, len(local_times)):
            if local_times[idx].date() != local_times[idx - 1].date():
                ax.axvline(idx - 0.5, color=DAY_MARKER_COLOR, linestyle="--", linewidth=1)
        for idx, t in enumerate(local_times):
            if idx == 0 or t.date() != local_times[idx - 1].date():
                ax.annotate(
                    t.strftime("%d %b"),
                    xy=(idx - 0.4, 0),
                    xycoords=("data", "axes fraction"),
                    xytext=(0, -28),
                    textcoords="offset points",
                    color=FOREGROUND,
                    fontsize=8,
                )

        # G1 storm threshold (Kp 5)
        storm_level = SEVERITY_BANDS[3][0]
        ax.axhline(storm_level, color=SEVERITY_BANDS[3][1][:7], linewidth=0.8, alpha=0.6)

        rendered_at = _local(now, utc_offset_hours).strftime("%Y-%m-%d %H:%M")
        sign = "+" if utc_offset_hours >= 0 else "-"
        ax.set_title(
            f"{title} (generated {rendered_at} UTC{sign}{abs(utc_offset_hours):g})",
            color=FOREGROUND,
            fontsize=11,
        )
        ax.set_ylabel("Kp", color=FOREGROUND)
        fig.subplots_adjust(bottom=0.15)

        buf = io.BytesIO()
        fig.savefig(buf, format="png", facecolor=fig.get_facecolor())
    except (ValueError, TypeError, OverflowError, RuntimeError) as exc:
        raise RenderError(f"Chart rendering failed: {exc}") from exc

    data = buf.getvalue()
    logger.debug("Rendered forecast chart: %d bars, %d bytes", len(points), len(data))
    return data
