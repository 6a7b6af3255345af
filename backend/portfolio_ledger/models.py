"""Value objects produced by the portfolio ledger."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Dict, Optional, Tuple

from .errors import SourceFeedError


class TradeSide(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class MarginClass(str, Enum):
    CASH = "CASH"
    MARGIN = "MARGIN"


class Currency(str, Enum):
    JPY = "JPY"
    USD = "USD"


@dataclass(frozen=True)
class NormalizedTrade:
    """A single execution with numeric quantity and price."""

    date: str
    code: str
    name: str
    side: TradeSide
    quantity: int
    price: float

    def __post_init__(self) -> None:
        # entries rebuilt from a serialised cache carry the side as plain text
        if not isinstance(self.side, TradeSide):
            try:
                side = TradeSide(str(self.side).strip().upper())
            except ValueError as exc:
                raise SourceFeedError(f"unknown trade side {self.side!r}") from exc
            object.__setattr__(self, "side", side)

    @property
    def signed_quantity(self) -> int:
        return self.quantity if self.side is TradeSide.BUY else -self.quantity

    @property
    def key(self) -> Tuple[str, str, TradeSide]:
        return (self.date, self.code, self.side)


@dataclass(frozen=True)
class AggregatedTradeEntry(NormalizedTrade):
    """All executions of one (date, code, side) with a weighted-average price."""


@dataclass(frozen=True)
class Position:
    """A position snapshot for one margin class, in numeric form."""

    code: str
    name: str
    margin_class: MarginClass
    quantity: float
    buy_price: float
    current_price: float
    market_value: float
    unrealized_pnl: float
    day_change: Optional[float] = None


@dataclass(frozen=True)
class MergedPosition:
    """One instrument across margin classes, or the adjusted-cash line."""

    code: str
    name: str
    quantity: Optional[float]
    buy_price: Optional[float]
    current_price: Optional[float]
    market_value: float
    unrealized_pnl: Optional[float]
    day_change: Optional[float] = None
    cash_market_value: float = 0.0
    margin_market_value: float = 0.0
    margin_unrealized_pnl: float = 0.0
    is_adjusted_cash: bool = False

    @property
    def net_asset_value(self) -> float:
        """Contribution to net assets: cash holdings at market, margin at P&L only."""

        return self.cash_market_value + self.margin_unrealized_pnl


@dataclass(frozen=True)
class LeverageTier:
    ratio: float
    label: str
    target_assets: float
    diff: float


@dataclass(frozen=True)
class PortfolioSummary:
    net_assets: float
    total_assets: float
    leverage_tiers: Tuple[LeverageTier, ...]
    total_unrealized_pnl: float
    buying_power: float
    leverage_pct: float


@dataclass(frozen=True)
class PositionMetrics:
    """Per-row rates shown beside a merged position."""

    code: str
    day_change_rate: Optional[float]
    pnl_rate: Optional[float]


@dataclass(frozen=True)
class ClosePriceDay:
    date: str
    close_price_by_code: Dict[str, Optional[float]]


@dataclass(frozen=True)
class PivotCell:
    code: str
    name: str
    quantity: int
    ratio: float


@dataclass(frozen=True)
class PivotDayEntry:
    date: str
    per_instrument: Dict[str, PivotCell]


@dataclass(frozen=True)
class CombinedRow:
    """One holding in the all-currency table, valued in yen."""

    code: str
    name: str
    currency: Currency
    quantity: float
    current_price: float
    market_value: float
    unrealized_pnl: float
    pnl_rate: float


@dataclass(frozen=True)
class CombinedSummary:
    """Yen and USD accounts folded into one set of totals.

    ``margin_open_interest`` is the yen account's total minus its net assets;
    it is carried over unchanged because the USD account holds no margin.
    """

    net_assets: float
    total_assets: float
    margin_open_interest: float
    buying_power: float
    leverage: float
    rows: Tuple[CombinedRow, ...]


@dataclass(frozen=True)
class PortfolioView:
    """Everything one refresh cycle hands to the presentation layer."""

    trade_log: Tuple[AggregatedTradeEntry, ...]
    merged_positions: Tuple[MergedPosition, ...]
    summary: PortfolioSummary
    position_metrics: Tuple[PositionMetrics, ...]
    pivot: Tuple[PivotDayEntry, ...]
    today_executions: Tuple[AggregatedTradeEntry, ...] = field(default_factory=tuple)
    combined: Optional[CombinedSummary] = None


@dataclass(frozen=True)
class ClosePriceRequest:
    """What a price feed is asked for when the close-price series is cold."""

    codes: Tuple[str, ...]
    start: date
    end: date
