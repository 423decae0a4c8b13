"""Tests for spacewatch.sources.forecast_adapter."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from spacewatch.errors import FetchError
from spacewatch.sources.forecast_adapter import (
    ForecastPoint,
    ForecastSeriesAdapter,
    filter_display_rows,
    parse_rows,
    parse_timestamp,
)
from spacewatch.sources.items import RawItem

URL = "https://services.example/products/noaa-planetary-k-index-forecast.json"
NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)
HEADER = ["time_tag", "kp", "observed", "noaa_scale"]


def _adapter(**config) -> ForecastSeriesAdapter:
    adapter = ForecastSeriesAdapter(timeout=5)
    adapter.configure({"name": "kp_forecast", "url": URL, "utc_offset_hours": 3, **config})
    return adapter


def _raw(rows) -> RawItem:
    return RawItem("kp_forecast", [HEADER, *rows], NOW)


def _normalize(adapter, rows):
    with patch("spacewatch.sources.forecast_adapter._utcnow", return_value=NOW):
        return adapter.normalize(_raw(rows))


class TestParsing:
    def test_parse_feed_time_tag(self):
        assert parse_timestamp("2025-06-15 03:00:00") == datetime(2025, 6, 15, 3, tzinfo=timezone.utc)

    def test_parse_iso_with_offset(self):
        assert parse_timestamp("2025-06-15T06:00:00+03:00") == datetime(
            2025, 6, 15, 3, tzinfo=timezone.utc
        )

    def test_parse_rows(self):
        points = parse_rows([["2025-06-15 03:00:00", "2.33", "observed", None]])
        assert points == [
            ForecastPoint(datetime(2025, 6, 15, 3, tzinfo=timezone.utc), 2.33, "observed")
        ]

    def test_short_row_raises(self):
        with pytest.raises(FetchError, match="Malformed"):
            parse_rows([["2025-06-15 03:00:00"]])

    def test_bad_value_raises(self):
        with pytest.raises(FetchError, match="Malformed"):
            parse_rows([["2025-06-15 03:00:00", "n/a"]])

    def test_bad_timestamp_raises(self):
        with pytest.raises(FetchError, match="Malformed"):
            parse_rows([["yesterday", "1"]])


class TestFilterDisplayRows:
    def _point(self, hour: int, value: float = 1.0) -> ForecastPoint:
        return ForecastPoint(datetime(2025, 6, 15, hour, tzinfo=timezone.utc), value)

    def test_drops_rows_older_than_offset(self):
        points = [self._point(6, 1), self._point(15, 9)]
        assert filter_display_rows(points, NOW, 3.0) == [self._point(15, 9)]

    def test_boundary_row_kept(self):
        # now - offset is exactly the cutoff
        assert filter_display_rows([self._point(9)], NOW, 3.0) == [self._point(9)]

    def test_zero_offset_keeps_current_and_future(self):
        points = [self._point(11), self._point(12), self._point(13)]
        assert filter_display_rows(points, NOW, 0.0) == [self._point(12), self._point(13)]


class TestFetch:
    def test_returns_table(self):
        table = [HEADER, ["2025-06-15 03:00:00", "2.33", "observed", None]]
        with patch("spacewatch.sources.forecast_adapter.fetch_json", return_value=table):
            raw_items = _adapter().fetch()
        assert raw_items[0].payload == table

    def test_empty_table_raises(self):
        with patch("spacewatch.sources.forecast_adapter.fetch_json", return_value=[]):
            with pytest.raises(FetchError, match="no table"):
                _adapter().fetch()


class TestNormalize:
    ROWS = [
        ["2025-06-15 06:00:00", "1.00", "observed", None],
        ["2025-06-15 15:00:00", "9.00", "predicted", "G5"],
    ]

    def test_series_item_with_display_rows(self):
        items = _normalize(_adapter(), self.ROWS)
        assert len(items) == 1
        item = items[0]
        assert item.kind == "series"
        assert [p.value for p in item.fields["points"]] == [9.0]
        assert item.fields["utc_offset_hours"] == 3.0

    def test_hidden_row_edit_changes_fingerprint(self):
        adapter = _adapter()
        before = _normalize(adapter, self.ROWS)[0]
        edited = [["2025-06-15 06:00:00", "2.00", "observed", None], self.ROWS[1]]
        after = _normalize(adapter, edited)[0]
        assert before.fingerprint != after.fingerprint

    def test_same_table_same_fingerprint(self):
        adapter = _adapter()
        assert _normalize(adapter, self.ROWS)[0].fingerprint == _normalize(
            adapter, [list(r) for r in self.ROWS]
        )[0].fingerprint

    def test_only_header_yields_nothing(self):
        assert _normalize(_adapter(), []) == []

    def test_all_rows_in_past_yields_nothing(self):
        rows = [["2025-06-14 00:00:00", "3.00", "observed", None]]
        assert _normalize(_adapter(), rows) == []

    def test_caption_and_silent_carried(self):
        items = _normalize(_adapter(caption="Kp outlook", silent=True), self.ROWS)
        assert items[0].fields["caption"] == "Kp outlook"
        assert items[0].fields["silent"] is True
