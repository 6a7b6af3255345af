"""Reconcile brokerage trades, positions and prices into one portfolio view."""

from .cache import LedgerCache
from .errors import FeedContractError, PriceFeedError, SourceFeedError
from .models import (
    AggregatedTradeEntry,
    ClosePriceDay,
    ClosePriceRequest,
    CombinedRow,
    CombinedSummary,
    Currency,
    MarginClass,
    MergedPosition,
    NormalizedTrade,
    PivotCell,
    PivotDayEntry,
    PortfolioSummary,
    PortfolioView,
    TradeSide,
)
from .normalize import normalize_trade, normalize_trades
from .pipeline import build_portfolio_view
from .pivot import build_price_change_pivot
from .positions import merge_positions
from .summary import combine_currencies, summarize
from .trades import aggregate_raw_trades, aggregate_trades

__all__ = [
    "AggregatedTradeEntry",
    "ClosePriceDay",
    "ClosePriceRequest",
    "CombinedRow",
    "CombinedSummary",
    "Currency",
    "FeedContractError",
    "LedgerCache",
    "MarginClass",
    "MergedPosition",
    "NormalizedTrade",
    "PivotCell",
    "PivotDayEntry",
    "PortfolioSummary",
    "PortfolioView",
    "PriceFeedError",
    "SourceFeedError",
    "TradeSide",
    "aggregate_raw_trades",
    "aggregate_trades",
    "build_portfolio_view",
    "build_price_change_pivot",
    "combine_currencies",
    "merge_positions",
    "normalize_trade",
    "normalize_trades",
    "summarize",
]
