"""One refresh cycle: trades, positions, summary and pivot in a single call."""
from __future__ import annotations

import logging
from typing import Any, Callable, Optional, Sequence, Union

from opentelemetry import trace

from .cache import LedgerCache
from .config import LedgerSettings, get_settings
from .errors import SourceFeedError
from .models import AggregatedTradeEntry, ClosePriceDay, ClosePriceRequest, PortfolioView
from .normalize import normalize_trades
from .pivot import build_price_change_pivot, close_price_days, close_price_request
from .positions import merge_positions
from .summary import combine_currencies, position_metrics, summarize
from .trades import aggregate_today_executions, aggregate_trades

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

Source = Union[Sequence[Any], Callable[[], Sequence[Any]], None]
CloseSource = Union[Sequence[Any], Callable[[ClosePriceRequest], Sequence[Any]], None]


def _resolve(source: Source) -> Any:
    return source() if callable(source) else source


def build_portfolio_view(
    positions: Sequence[Any],
    current_prices: Any,
    *,
    cash_balance: Any = None,
    buying_power: Any = 0,
    trades: Source = None,
    close_prices: CloseSource = None,
    today_executions: Optional[Sequence[Any]] = None,
    usd_positions: Optional[Sequence[Any]] = None,
    usd_deposit: Any = 0,
    cache: LedgerCache | None = None,
    settings: LedgerSettings | None = None,
) -> PortfolioView:
    """Compute everything the presentation layer shows for one refresh.

    ``trades`` may be a sequence or a zero-argument loader. ``close_prices``
    may be a sequence or a loader taking a :class:`ClosePriceRequest` for the
    traded codes over the configured lookback window.
    When ``cache`` already holds them they are not consulted, and the result
    is the same as a cold run over equivalent inputs. When ``usd_positions``
    is given the view also carries the all-currency summary.
    """

    settings = settings or get_settings()
    cache = cache if cache is not None else LedgerCache()

    def load_trade_log() -> Sequence[AggregatedTradeEntry]:
        records = _resolve(trades)
        if records is None:
            raise SourceFeedError("trade records are required when the trade log is not cached")
        with tracer.start_as_current_span("ledger.aggregate_trades"):
            return aggregate_trades(normalize_trades(records, settings))

    def load_close_prices() -> Sequence[ClosePriceDay]:
        if not callable(close_prices):
            return close_price_days(close_prices if close_prices is not None else ())
        request = close_price_request(trade_log, settings.close_price_lookback_days, cache.as_of)
        if not request.codes:
            return []
        logger.info(
            "Requesting close prices for %d code(s) from %s to %s",
            len(request.codes),
            request.start,
            request.end,
        )
        return close_price_days(close_prices(request))

    with tracer.start_as_current_span("ledger.refresh"):
        trade_log = cache.trade_log(load_trade_log)
        closes = cache.close_prices(load_close_prices)

        with tracer.start_as_current_span("ledger.merge_positions"):
            merged = merge_positions(positions, cash_balance, settings)

        with tracer.start_as_current_span("ledger.summarize"):
            summary = summarize(merged, cash_balance, buying_power, settings=settings)
            metrics = tuple(position_metrics(row) for row in merged if not row.is_adjusted_cash)
            combined = None
            if usd_positions is not None:
                combined = combine_currencies(summary, merged, usd_positions, usd_deposit)

        with tracer.start_as_current_span("ledger.price_change_pivot"):
            pivot = build_price_change_pivot(current_prices, trade_log, closes)

        today = ()
        if today_executions:
            today = tuple(aggregate_today_executions(normalize_trades(today_executions, settings)))

    logger.debug(
        "Refresh built %d trade entries, %d position rows, %d pivot rows",
        len(trade_log),
        len(merged),
        len(pivot),
    )
    return PortfolioView(
        trade_log=trade_log,
        merged_positions=tuple(merged),
        summary=summary,
        position_metrics=metrics,
        pivot=tuple(pivot),
        today_executions=today,
        combined=combined,
    )


__all__ = ["build_portfolio_view"]
