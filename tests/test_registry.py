"""Tests for the adapter registry."""

from spacewatch.sources import (
    AlertFeedAdapter,
    DiscussionFeedAdapter,
    ForecastSeriesAdapter,
    ImageSnapshotAdapter,
)
from spacewatch.sources.adapter import SourceAdapter
from spacewatch.sources.registry import get_adapter_class, register_adapter, registered_types


def test_builtin_adapters_registered():
    assert get_adapter_class("alerts") is AlertFeedAdapter
    assert get_adapter_class("discussion") is DiscussionFeedAdapter
    assert get_adapter_class("forecast") is ForecastSeriesAdapter
    assert get_adapter_class("image") is ImageSnapshotAdapter


def test_unknown_type_returns_none():
    assert get_adapter_class("nonexistent") is None


def test_registered_types_sorted():
    types = registered_types()
    assert types == sorted(types)
    assert {"alerts", "discussion", "forecast", "image"} <= set(types)


def test_register_custom_adapter():
    class DummyAdapter(SourceAdapter):
        source_type = "dummy"

        def fetch(self):
            return []

        def normalize(self, raw):
            return []

    register_adapter("dummy", DummyAdapter)
    assert get_adapter_class("dummy") is DummyAdapter


def test_adapter_types_match_registration():
    for type_name in ("alerts", "discussion", "forecast", "image"):
        assert get_adapter_class(type_name).source_type == type_name
