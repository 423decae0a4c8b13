"""Severity bands for Kp-index chart bars."""

from __future__ import annotations

# (upper bound inclusive, color). Ordered by threshold; the first band whose
# bound is >= the value wins, values above the last bound use the last band.
SEVERITY_BANDS: tuple[tuple[int, str], ...] = (
    (2, "#1e3731fa"),
    (3, "#3c6322fa"),
    (4, "#919733fa"),
    (5, "#804b19fa"),
    (6, "#58212afa"),
    (7, "#40253bfa"),
    (8, "#232d40fa"),
    (9, "#000000fa"),
)


def severity_band(value: float) -> int:
    """Return the 1-based severity band for an index value."""
    for band, (upper, _color) in enumerate(SEVERITY_BANDS, start=1):
        if value <= upper:
            return band
    return len(SEVERITY_BANDS)


def severity_color(value: float) -> str:
    """Return the bar color for an index value."""
    return SEVERITY_BANDS[severity_band(value) - 1][1]
