"""Merge executions into one weighted-average entry per (date, code, side)."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Sequence, Tuple

from .config import LedgerSettings
from .errors import SourceFeedError
from .models import AggregatedTradeEntry, NormalizedTrade, TradeSide
from .normalize import normalize_trades
from .schemas import ensure_instances

logger = logging.getLogger(__name__)


@dataclass
class _Bucket:
    """Running state of one (date, code, side) while folding."""

    date: str
    code: str
    name: str
    side: TradeSide
    quantity: int
    price: float

    def absorb(self, trade: NormalizedTrade) -> None:
        total_quantity = self.quantity + trade.quantity
        if total_quantity:
            self.price = (self.price * self.quantity + trade.price * trade.quantity) / total_quantity
        self.quantity = total_quantity

    def freeze(self) -> AggregatedTradeEntry:
        return AggregatedTradeEntry(
            date=self.date,
            code=self.code,
            name=self.name,
            side=self.side,
            quantity=self.quantity,
            price=self.price,
        )


def _fold(trades: Iterable[NormalizedTrade]) -> List[_Bucket]:
    buckets: Dict[Tuple[str, str, TradeSide], _Bucket] = {}
    for trade in ensure_instances(trades, "trades", NormalizedTrade, SourceFeedError):
        bucket = buckets.get(trade.key)
        if bucket is None:
            buckets[trade.key] = _Bucket(
                date=trade.date,
                code=trade.code,
                name=trade.name,
                side=trade.side,
                quantity=trade.quantity,
                price=trade.price,
            )
        else:
            bucket.absorb(trade)
    return list(buckets.values())


def _date_desc_code_asc(buckets: List[_Bucket]) -> None:
    # two stable passes: secondary key first, then primary
    buckets.sort(key=lambda b: b.code)
    buckets.sort(key=lambda b: b.date, reverse=True)


def aggregate_trades(trades: Iterable[NormalizedTrade]) -> List[AggregatedTradeEntry]:
    """Deduplicate executions, newest date first and codes ascending within a date.

    Already aggregated entries may be fed back in; the result is unchanged.
    """

    buckets = _fold(trades)
    _date_desc_code_asc(buckets)
    entries = [bucket.freeze() for bucket in buckets]
    logger.debug("Aggregated trades into %d entries", len(entries))
    return entries


def aggregate_raw_trades(
    records: Iterable[Any],
    settings: LedgerSettings | None = None,
) -> List[AggregatedTradeEntry]:
    return aggregate_trades(normalize_trades(records, settings))


def aggregate_today_executions(trades: Iterable[NormalizedTrade]) -> List[AggregatedTradeEntry]:
    """Same merge as :func:`aggregate_trades`, ordered by code only."""

    buckets = _fold(trades)
    buckets.sort(key=lambda b: b.code)
    return [bucket.freeze() for bucket in buckets]


def merge_today_executions(
    trade_log: Sequence[AggregatedTradeEntry],
    today_executions: Sequence[AggregatedTradeEntry],
) -> List[AggregatedTradeEntry]:
    """Put today's executions ahead of the settled trade log."""

    if not today_executions:
        return list(trade_log)
    return [*today_executions, *trade_log]


__all__ = [
    "aggregate_raw_trades",
    "aggregate_today_executions",
    "aggregate_trades",
    "merge_today_executions",
]
