"""Feed sources: fetching, normalization, and fingerprinting."""

from spacewatch.sources.alerts_adapter import AlertFeedAdapter
from spacewatch.sources.discussion_adapter import DiscussionFeedAdapter
from spacewatch.sources.forecast_adapter import ForecastSeriesAdapter
from spacewatch.sources.image_adapter import ImageSnapshotAdapter
from spacewatch.sources.registry import register_adapter

register_adapter("alerts", AlertFeedAdapter)
register_adapter("discussion", DiscussionFeedAdapter)
register_adapter("forecast", ForecastSeriesAdapter)
register_adapter("image", ImageSnapshotAdapter)
