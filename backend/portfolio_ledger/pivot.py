"""Date x instrument matrix of price-change ratios and net traded quantity.

For every trading date in the aggregated trade log, and for every instrument
ever traded, one cell holds:

* when the instrument traded that day, the ratio of the current price to the
  effective trade price, ``(current - trade) / current * 100``, with buy and
  sell buckets netted into one blended ratio for the remaining position;
* otherwise the move from that day's close, ``(current - close) / close * 100``,
  with zero quantity.

Missing or zero prices give a ratio of 0, never NaN.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .errors import PriceFeedError, SourceFeedError
from .models import (
    AggregatedTradeEntry,
    ClosePriceDay,
    ClosePriceRequest,
    PivotCell,
    PivotDayEntry,
    TradeSide,
)
from .normalize import normalize_date, parse_number
from .schemas import RawClosePriceDay, RawCurrentPrice, ensure_instances, ensure_sequence, validate_record

logger = logging.getLogger(__name__)


def _optional_price(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    return parse_number(value)


def current_price_map(current_prices: Any) -> Dict[str, float]:
    """Accept ``{code: price}`` or a sequence of ``{code, price}`` records."""

    if isinstance(current_prices, Mapping):
        return {str(code): parse_number(price) for code, price in current_prices.items()}
    prices: Dict[str, float] = {}
    for record in ensure_sequence(current_prices, "current prices", PriceFeedError):
        item = validate_record(RawCurrentPrice, record, PriceFeedError)
        prices[str(item.code)] = parse_number(item.price)
    return prices


def close_price_days(close_prices: Any) -> List[ClosePriceDay]:
    days: List[ClosePriceDay] = []
    for record in ensure_sequence(close_prices, "close price series", PriceFeedError):
        if isinstance(record, ClosePriceDay):
            days.append(record)
            continue
        item = validate_record(RawClosePriceDay, record, PriceFeedError)
        days.append(
            ClosePriceDay(
                date=normalize_date(item.date),
                close_price_by_code={
                    str(code): _optional_price(price) for code, price in item.close_price_by_code.items()
                },
            )
        )
    return days


def close_price_request(
    trade_log: Iterable[AggregatedTradeEntry],
    lookback_days: int,
    today: date | None = None,
) -> ClosePriceRequest:
    """Codes ever traded and the date window the price feed should cover."""

    end = today or date.today()
    codes = tuple(_instrument_universe(entry for entry in trade_log if entry.code))
    return ClosePriceRequest(codes=codes, start=end - timedelta(days=lookback_days), end=end)


def _close_price_lookup(days: Iterable[ClosePriceDay]) -> Dict[Tuple[str, str], float]:
    lookup: Dict[Tuple[str, str], float] = {}
    for day in days:
        if not day.date:
            continue
        for code, price in day.close_price_by_code.items():
            if price is None:
                continue
            lookup[(normalize_date(day.date), code)] = price
    return lookup


def realized_ratio(current_price: Optional[float], trade_price: float) -> float:
    if not current_price or not trade_price:
        return 0.0
    return (current_price - trade_price) / current_price * 100


def close_ratio(current_price: Optional[float], close_price: Optional[float]) -> float:
    if not current_price or not close_price:
        return 0.0
    return (current_price - close_price) / close_price * 100


@dataclass
class _NetCell:
    """Running blend of one instrument's buckets on one date."""

    code: str
    name: str
    quantity: int
    ratio: float

    def blend(self, quantity: int, ratio: float) -> None:
        net_quantity = self.quantity + quantity
        if net_quantity == 0:
            # round trip: nothing left to price
            self.quantity = 0
            self.ratio = 0.0
            return
        old_weight = (1 - self.ratio / 100) * self.quantity
        new_weight = (1 - ratio / 100) * quantity
        self.ratio = 100 - 100 * (old_weight + new_weight) / net_quantity
        self.quantity = net_quantity

    def freeze(self) -> PivotCell:
        return PivotCell(code=self.code, name=self.name, quantity=self.quantity, ratio=self.ratio)


def _instrument_universe(trade_log: Iterable[AggregatedTradeEntry]) -> Dict[str, str]:
    universe: Dict[str, str] = {}
    for entry in trade_log:
        universe.setdefault(entry.code, entry.name)
    return universe


def _group_by_date(trade_log: Iterable[AggregatedTradeEntry]) -> Dict[str, List[AggregatedTradeEntry]]:
    grouped: Dict[str, List[AggregatedTradeEntry]] = {}
    for entry in trade_log:
        grouped.setdefault(entry.date, []).append(entry)
    return grouped


def _traded_cells(entries: Iterable[AggregatedTradeEntry], prices: Mapping[str, float]) -> Dict[str, _NetCell]:
    cells: Dict[str, _NetCell] = {}
    for entry in entries:
        quantity = entry.quantity if entry.side is TradeSide.BUY else -entry.quantity
        ratio = realized_ratio(prices.get(entry.code), entry.price)
        cell = cells.get(entry.code)
        if cell is None:
            cells[entry.code] = _NetCell(code=entry.code, name=entry.name, quantity=quantity, ratio=ratio)
        else:
            cell.blend(quantity, ratio)
    return cells


def build_price_change_pivot(
    current_prices: Any,
    trade_log: Iterable[AggregatedTradeEntry],
    close_prices: Any = (),
) -> List[PivotDayEntry]:
    """Build one dense row per trading date, in the order dates appear in ``trade_log``."""

    entries = ensure_instances(trade_log, "trade log", AggregatedTradeEntry, SourceFeedError)
    prices = current_price_map(current_prices)
    closes = _close_price_lookup(close_price_days(close_prices))
    universe = _instrument_universe(entries)

    rows: List[PivotDayEntry] = []
    for day, day_entries in _group_by_date(entries).items():
        close_key = normalize_date(day)
        traded = _traded_cells(day_entries, prices)
        per_instrument: Dict[str, PivotCell] = {}
        for code, name in universe.items():
            if code in traded:
                per_instrument[code] = traded[code].freeze()
                continue
            ratio = close_ratio(prices.get(code), closes.get((close_key, code)))
            per_instrument[code] = PivotCell(code=code, name=name, quantity=0, ratio=ratio)
        rows.append(PivotDayEntry(date=day, per_instrument=per_instrument))

    logger.debug("Built price-change pivot: %d date(s) x %d instrument(s)", len(rows), len(universe))
    return rows


__all__ = [
    "build_price_change_pivot",
    "close_price_days",
    "close_price_request",
    "close_ratio",
    "current_price_map",
    "realized_ratio",
]
