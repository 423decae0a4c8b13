"""Exception types raised across the poll pipeline."""

from __future__ import annotations


class SpacewatchError(Exception):
    """Base class for pipeline errors."""


class FetchError(SpacewatchError):
    """A feed could not be fetched or its payload could not be parsed."""


class RenderError(SpacewatchError):
    """An item could not be turned into a deliverable payload."""


class DeliveryError(SpacewatchError):
    """The messaging channel did not accept a payload.

    ``transient`` is True for failures worth retrying on a later cycle
    (network errors, rate limiting, server errors). ``delivered`` counts the
    message chunks Telegram accepted before the failure.
    """

    def __init__(self, message: str, *, transient: bool, delivered: int = 0) -> None:
        super().__init__(message)
        self.transient = transient
        self.delivered = delivered

    @property
    def kind(self) -> str:
        return "transient" if self.transient else "permanent"


class StoreWriteError(SpacewatchError):
    """A seen record could not be durably written."""
