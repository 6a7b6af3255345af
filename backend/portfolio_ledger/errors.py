"""Exceptions raised when a feed breaks its structural contract."""

from __future__ import annotations

SOURCE_FEED = "source_feed"
PRICE_FEED = "price_feed"


class LedgerError(Exception):
    """Base class for portfolio ledger errors."""


class FeedContractError(LedgerError):
    """A collaborator handed over data of the wrong shape entirely.

    Dirty values inside well-shaped records never raise; they normalise to 0.
    """

    def __init__(self, collaborator: str, detail: str):
        self.collaborator = collaborator
        self.detail = detail
        super().__init__(f"{collaborator}: {detail}")


class SourceFeedError(FeedContractError):
    def __init__(self, detail: str):
        super().__init__(SOURCE_FEED, detail)


class PriceFeedError(FeedContractError):
    def __init__(self, detail: str):
        super().__init__(PRICE_FEED, detail)


class LeverageConfigError(LedgerError):
    """Leverage ratios were empty or not positive."""


__all__ = [
    "FeedContractError",
    "LedgerError",
    "LeverageConfigError",
    "PRICE_FEED",
    "PriceFeedError",
    "SOURCE_FEED",
    "SourceFeedError",
]
