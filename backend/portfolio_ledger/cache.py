"""Caller-owned cache for the slow-moving inputs of a refresh cycle.

The aggregated trade log and the close-price series change at most once a
day, so a long-lived caller keeps one :class:`LedgerCache`, lets the first
refresh populate it, and calls :meth:`LedgerCache.roll_over` with the current
date so the next day starts cold.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Callable, Optional, Sequence, Tuple

from .models import AggregatedTradeEntry, ClosePriceDay

logger = logging.getLogger(__name__)


class LedgerCache:
    """Populate-once store for the trade log and close prices."""

    def __init__(self, clock: Callable[[], date] = date.today) -> None:
        self._clock = clock
        self._trade_log: Optional[Tuple[AggregatedTradeEntry, ...]] = None
        self._close_prices: Optional[Tuple[ClosePriceDay, ...]] = None
        self._as_of: Optional[date] = None

    @property
    def as_of(self) -> date | None:
        return self._as_of

    @property
    def has_trade_log(self) -> bool:
        return self._trade_log is not None

    @property
    def has_close_prices(self) -> bool:
        return self._close_prices is not None

    def trade_log(
        self,
        loader: Callable[[], Sequence[AggregatedTradeEntry]],
    ) -> Tuple[AggregatedTradeEntry, ...]:
        if self._trade_log is None:
            self._trade_log = tuple(loader())
            self._touch()
            logger.info("Cached aggregated trade log (%d entries)", len(self._trade_log))
        return self._trade_log

    def close_prices(
        self,
        loader: Callable[[], Sequence[ClosePriceDay]],
    ) -> Tuple[ClosePriceDay, ...]:
        if self._close_prices is None:
            self._close_prices = tuple(loader())
            self._touch()
            logger.info("Cached close price series (%d days)", len(self._close_prices))
        return self._close_prices

    def invalidate(self) -> None:
        self._trade_log = None
        self._close_prices = None
        self._as_of = None
        logger.info("Ledger cache invalidated")

    def roll_over(self, today: date | None = None) -> bool:
        """Invalidate when the calendar date moved on; return whether it did."""

        today = today or self._clock()
        if self._as_of is not None and self._as_of != today:
            self.invalidate()
            return True
        return False

    def _touch(self) -> None:
        if self._as_of is None:
            self._as_of = self._clock()


__all__ = ["LedgerCache"]
