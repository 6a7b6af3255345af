"""pandas exports of ledger outputs."""

from __future__ import annotations

import pandas as pd
import pytest

from portfolio_ledger.frames import pivot_to_frame, positions_to_frame, trade_log_to_frame
from portfolio_ledger.models import AggregatedTradeEntry, TradeSide
from portfolio_ledger.pivot import build_price_change_pivot
from portfolio_ledger.positions import merge_positions


def _trade_log():
    return [
        AggregatedTradeEntry(date="2024-01-05", code="7203", name="a", side=TradeSide.BUY, quantity=100, price=1000.0),
        AggregatedTradeEntry(date="2024-01-04", code="6758", name="b", side=TradeSide.SELL, quantity=10, price=12000.0),
    ]


def test_pivot_to_frame_ratio_and_quantity():
    pivot = build_price_change_pivot({"7203": 1100.0, "6758": 12000.0}, _trade_log())
    ratios = pivot_to_frame(pivot)
    assert list(ratios.index) == ["2024-01-05", "2024-01-04"]
    assert list(ratios.columns) == ["7203", "6758"]
    assert ratios.loc["2024-01-05", "7203"] == pytest.approx(100 / 1100 * 100)

    quantities = pivot_to_frame(pivot, value="quantity")
    assert quantities.loc["2024-01-04", "6758"] == -10
    assert quantities.loc["2024-01-05", "6758"] == 0
    assert all(dtype == "int64" for dtype in quantities.dtypes)


def test_pivot_to_frame_rejects_unknown_value():
    with pytest.raises(ValueError):
        pivot_to_frame([], value="price")


def test_trade_log_to_frame():
    df = trade_log_to_frame(_trade_log())
    assert list(df.columns) == ["date", "code", "name", "side", "quantity", "price"]
    assert df["side"].tolist() == ["BUY", "SELL"]


def test_positions_to_frame(settings):
    merged = merge_positions(
        [{"code": "7203", "name": "a", "marginClass": "Cash", "quantity": 1, "buyPrice": 1,
          "currentPrice": 2, "marketValue": 2, "unrealizedPnL": 1}],
        cash_balance=10,
        settings=settings,
    )
    df = positions_to_frame(merged)
    assert df["is_adjusted_cash"].tolist() == [False, True]
    assert df.loc[1, "market_value"] == 10
    assert isinstance(positions_to_frame([]), pd.DataFrame)
