"""Portfolio totals, leverage tiers and per-row rates."""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Optional, Sequence

from .config import LedgerSettings, get_settings
from .errors import LeverageConfigError, SourceFeedError
from .models import (
    CombinedRow,
    CombinedSummary,
    Currency,
    LeverageTier,
    MergedPosition,
    PortfolioSummary,
    PositionMetrics,
)
from .normalize import parse_number
from .schemas import RawUsdPosition, ensure_instances, ensure_sequence, validate_record

logger = logging.getLogger(__name__)


def tier_label(ratio: float) -> str:
    return f"{round(ratio * 100)}%"


def _safe_ratio(numerator: float, denominator: float) -> float:
    if not denominator:
        return 0.0
    return numerator / denominator


def leverage_tiers(
    net_assets: float,
    total_assets: float,
    ratios: Sequence[float],
) -> List[LeverageTier]:
    """Target total assets per leverage cap and the gap from current exposure.

    A positive ``diff`` is room to add exposure; negative is excess.
    """

    if not ratios:
        raise LeverageConfigError("at least one leverage ratio is required")
    tiers: List[LeverageTier] = []
    for ratio in ratios:
        if ratio <= 0:
            raise LeverageConfigError(f"leverage ratio must be positive, got {ratio}")
        target = net_assets * ratio
        tiers.append(
            LeverageTier(
                ratio=ratio,
                label=tier_label(ratio),
                target_assets=target,
                diff=target - total_assets,
            )
        )
    return tiers


def summarize(
    merged: Iterable[MergedPosition],
    cash_balance: Any,
    buying_power: Any = 0,
    leverage_ratios: Optional[Sequence[float]] = None,
    settings: LedgerSettings | None = None,
) -> PortfolioSummary:
    """Derive net assets, total assets and leverage tiers from merged rows.

    ``total_assets`` includes the adjusted-cash line. ``net_assets`` counts
    cash-class holdings at market value but margin holdings only through
    their unrealized P&L.
    """

    settings = settings or get_settings()
    ratios = list(leverage_ratios) if leverage_ratios is not None else list(settings.leverage_ratios)
    rows = ensure_instances(merged, "merged positions", MergedPosition, SourceFeedError)
    cash = parse_number(cash_balance)

    total_assets = sum(row.market_value for row in rows)
    net_assets = cash + sum(row.net_asset_value for row in rows if not row.is_adjusted_cash)
    total_pnl = sum(row.unrealized_pnl or 0.0 for row in rows if not row.is_adjusted_cash)

    summary = PortfolioSummary(
        net_assets=net_assets,
        total_assets=total_assets,
        leverage_tiers=tuple(leverage_tiers(net_assets, total_assets, ratios)),
        total_unrealized_pnl=total_pnl,
        buying_power=parse_number(buying_power),
        leverage_pct=_safe_ratio(total_assets, net_assets) * 100,
    )
    if not net_assets:
        logger.info("Net assets are zero; leverage figures reported as 0")
    return summary


def position_metrics(row: MergedPosition) -> PositionMetrics:
    """Day-change and P&L rates in percent for one merged row."""

    day_change_rate: Optional[float] = None
    if row.day_change is not None:
        if row.current_price and row.day_change:
            day_change_rate = _safe_ratio(row.day_change, row.current_price - row.day_change) * 100
        else:
            day_change_rate = 0.0

    pnl_rate: Optional[float] = None
    if row.buy_price and row.quantity:
        pnl_rate = (row.unrealized_pnl or 0.0) / (row.buy_price * row.quantity) * 100

    return PositionMetrics(code=row.code, day_change_rate=day_change_rate, pnl_rate=pnl_rate)



def cost_based_pnl_rate(market_value: float, unrealized_pnl: float) -> float:
    """P&L over cost, where cost is market value minus P&L; 0 without a cost."""

    return _safe_ratio(unrealized_pnl, market_value - unrealized_pnl) * 100


def _jpy_row(row: MergedPosition) -> CombinedRow:
    pnl = row.unrealized_pnl or 0.0
    return CombinedRow(
        code=row.code,
        name=row.name,
        currency=Currency.JPY,
        quantity=row.quantity or 0.0,
        current_price=row.current_price or 0.0,
        market_value=row.market_value,
        unrealized_pnl=pnl,
        pnl_rate=cost_based_pnl_rate(row.market_value, pnl),
    )


def _usd_row(record: Any) -> CombinedRow:
    raw = validate_record(RawUsdPosition, record, SourceFeedError)
    quantity = parse_number(raw.quantity)
    if raw.yen_market_value is not None:
        market_value = parse_number(raw.yen_market_value)
        current_price = _safe_ratio(market_value, quantity)
    else:
        market_value = parse_number(raw.market_value)
        current_price = parse_number(raw.current_price)
    pnl_source = raw.yen_unrealized_pnl if raw.yen_unrealized_pnl is not None else raw.unrealized_pnl
    pnl = parse_number(pnl_source)
    return CombinedRow(
        code="" if raw.code is None else str(raw.code).strip(),
        name="" if raw.name is None else str(raw.name).strip(),
        currency=Currency.USD,
        quantity=quantity,
        current_price=current_price,
        market_value=market_value,
        unrealized_pnl=pnl,
        pnl_rate=cost_based_pnl_rate(market_value, pnl),
    )


def combine_currencies(
    jpy_summary: PortfolioSummary,
    jpy_rows: Iterable[MergedPosition],
    usd_positions: Iterable[Any],
    usd_deposit: Any = 0,
) -> CombinedSummary:
    """Fold the USD account into the yen summary.

    The yen account's margin open interest (total minus net assets) is kept;
    USD holdings and the USD deposit, both in yen, add to net assets and the
    deposit adds to buying power. Rows of both accounts are merged and sorted
    by market value, largest first. The adjusted-cash line is not a holding
    and is left out.
    """

    if not isinstance(jpy_summary, PortfolioSummary):
        raise SourceFeedError(f"yen summary must be PortfolioSummary, got {type(jpy_summary).__name__}")
    jpy = [
        _jpy_row(row)
        for row in ensure_instances(jpy_rows, "yen positions", MergedPosition, SourceFeedError)
        if not row.is_adjusted_cash
    ]
    usd = [_usd_row(record) for record in ensure_sequence(usd_positions, "USD positions", SourceFeedError)]
    deposit = parse_number(usd_deposit)

    margin_open_interest = jpy_summary.total_assets - jpy_summary.net_assets
    net_assets = jpy_summary.net_assets + sum(row.market_value for row in usd) + deposit
    total_assets = net_assets + margin_open_interest
    if not net_assets:
        logger.info("Combined net assets are zero; leverage reported as 0")

    return CombinedSummary(
        net_assets=net_assets,
        total_assets=total_assets,
        margin_open_interest=margin_open_interest,
        buying_power=jpy_summary.buying_power + deposit,
        leverage=_safe_ratio(total_assets, net_assets),
        rows=tuple(sorted([*jpy, *usd], key=lambda row: row.market_value, reverse=True)),
    )


__all__ = [
    "combine_currencies",
    "cost_based_pnl_rate",
    "leverage_tiers",
    "position_metrics",
    "summarize",
    "tier_label",
]
