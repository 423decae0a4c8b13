"""Tests for spacewatch.sources.alerts_adapter."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from spacewatch.errors import FetchError
from spacewatch.sources.alerts_adapter import AlertFeedAdapter
from spacewatch.sources.items import RawItem

URL = "https://services.example/products/alerts.json"


def _adapter(**config) -> AlertFeedAdapter:
    adapter = AlertFeedAdapter(timeout=5)
    adapter.configure({"name": "alerts", "url": URL, **config})
    return adapter


def _raw(records) -> RawItem:
    return RawItem("alerts", records, datetime(2025, 6, 15, tzinfo=timezone.utc))


class TestFetch:
    def test_returns_single_raw_item(self):
        adapter = _adapter()
        records = [{"id": 1, "message": "a"}]
        with patch("spacewatch.sources.alerts_adapter.fetch_json", return_value=records) as mock_fetch:
            raw_items = adapter.fetch()
        mock_fetch.assert_called_once_with(URL, timeout=5)
        assert len(raw_items) == 1
        assert raw_items[0].payload == records
        assert raw_items[0].source_id == "alerts"

    def test_non_list_payload_raises(self):
        adapter = _adapter()
        with patch("spacewatch.sources.alerts_adapter.fetch_json", return_value={"error": "x"}):
            with pytest.raises(FetchError, match="expected a list"):
                adapter.fetch()


class TestNormalize:
    def test_takes_only_last_record(self):
        items = _adapter().normalize(_raw([{"id": 1, "message": "a"}, {"id": 2, "message": "b"}]))
        assert len(items) == 1
        assert items[0].fields["message"] == "b"
        assert items[0].kind == "text"
        assert items[0].source_id == "alerts"

    def test_newest_first_takes_first_record(self):
        adapter = _adapter(newest_first=True)
        items = adapter.normalize(_raw([{"id": 2, "message": "b"}, {"id": 1, "message": "a"}]))
        assert items[0].fields["message"] == "b"

    def test_empty_feed_yields_nothing(self):
        assert _adapter().normalize(_raw([])) == []

    def test_fingerprint_stable_across_fetches(self):
        adapter = _adapter()
        first = adapter.normalize(_raw([{"id": 1, "message": "a"}]))[0]
        second = adapter.normalize(
            RawItem("alerts", [{"id": 0, "message": "z"}, {"id": 1, "message": "a"}], datetime.now(timezone.utc))
        )[0]
        assert first.fingerprint == second.fingerprint

    def test_volatile_fields_excluded_from_fingerprint(self):
        adapter = _adapter(volatile_fields=["checked_at"])
        a = adapter.normalize(_raw([{"id": 1, "message": "a", "checked_at": "10:00"}]))[0]
        b = adapter.normalize(_raw([{"id": 1, "message": "a", "checked_at": "10:05"}]))[0]
        assert a.fingerprint == b.fingerprint

    def test_different_record_changes_fingerprint(self):
        adapter = _adapter()
        a = adapter.normalize(_raw([{"id": 1, "message": "a"}]))[0]
        b = adapter.normalize(_raw([{"id": 2, "message": "b"}]))[0]
        assert a.fingerprint != b.fingerprint

    def test_sort_key_from_issue_datetime(self):
        items = _adapter().normalize(
            _raw([{"issue_datetime": "2025-06-15 08:00:00.000", "message": "a"}])
        )
        assert items[0].sort_key == "2025-06-15 08:00:00.000"

    def test_custom_message_field(self):
        items = _adapter(message_field="text").normalize(_raw([{"text": "storm"}]))
        assert items[0].fields["message"] == "storm"

    def test_record_without_message_raises(self):
        with pytest.raises(FetchError, match="no 'message' text"):
            _adapter().normalize(_raw([{"id": 1}]))

    def test_non_object_record_raises(self):
        with pytest.raises(FetchError, match="not an object"):
            _adapter().normalize(_raw(["just a string"]))


def test_configure_requires_url():
    with pytest.raises(ValueError, match="no url"):
        AlertFeedAdapter().configure({"name": "alerts"})


def test_name_defaults_to_type():
    adapter = AlertFeedAdapter()
    adapter.configure({"url": URL})
    assert adapter.name == "alerts"
