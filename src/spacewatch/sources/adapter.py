"""Source adapter interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from spacewatch.sources.items import NormalizedItem, RawItem


class SourceAdapter(ABC):
    """Abstract base class for source adapters.

    Every adapter knows how to fetch one kind of feed and turn its payload
    into fingerprinted NormalizedItems. The rest of the system is
    source-agnostic: deduplication, rendering, and delivery happen in the
    poll pipeline.
    """

    #: Type string the adapter is registered under.
    source_type: str = ""

    #: How many recent fingerprints ``matches_seen`` wants to compare against.
    #: Zero disables similarity matching (exact fingerprint lookups only).
    similarity_window: int = 0

    def __init__(self, timeout: float = 30.0) -> None:
        self._timeout = timeout
        self._name = ""
        self._url = ""
        self._caption = ""
        self._silent = False

    @property
    def name(self) -> str:
        """Source id; the partition key in the dedup store."""
        return self._name or self.source_type

    @property
    def url(self) -> str:
        return self._url

    def configure(self, config: dict) -> None:
        """Accept source-specific configuration.

        Raises ValueError if no URL is configured.
        """
        self._name = config.get("name", "") or self.source_type
        self._url = config.get("url", "")
        self._caption = config.get("caption", "")
        self._silent = bool(config.get("silent", False))
        if "timeout" in config:
            self._timeout = float(config["timeout"])
        if not self._url:
            raise ValueError(f"Source '{self.name}' has no url configured")

    @abstractmethod
    def fetch(self) -> list[RawItem]:
        """Fetch the current payload of the feed.

        Raises FetchError on network, timeout, or decoding failure.
        """

    @abstractmethod
    def normalize(self, raw: RawItem) -> list[NormalizedItem]:
        """Turn one raw payload into zero or more fingerprinted items.

        Raises FetchError if the payload does not have the expected shape.
        """

    def matches_seen(self, item: NormalizedItem, recent: list[str]) -> bool:
        """Whether *item* should count as already seen given recent fingerprints.

        Called only when the exact fingerprint is not in the store and
        ``similarity_window`` is non-zero.
        """
        return False
