from __future__ import annotations

import pytest

from portfolio_ledger.errors import SourceFeedError
from portfolio_ledger.models import MarginClass
from portfolio_ledger.positions import adjusted_cash, merge_positions, normalize_position, tradable_codes


def _position(code, margin, quantity, buy_price, current_price, market_value, pnl, name=None, **extra):
    return {
        "code": code,
        "name": name or f"name-{code}",
        "marginClass": margin,
        "quantity": quantity,
        "buyPrice": buy_price,
        "currentPrice": current_price,
        "marketValue": market_value,
        "unrealizedPnL": pnl,
        **extra,
    }


def test_cash_and_margin_lots_merge_with_weighted_buy_price(settings):
    merged = merge_positions(
        [
            _position("7203", "Cash", 100, 1000, 1200, 120_000, 20_000),
            _position("7203", "Margin", 50, 1100, 1120, 56_000, 1_000),
        ],
        settings=settings,
    )
    assert len(merged) == 1
    row = merged[0]
    assert row.quantity == 150
    assert row.buy_price == pytest.approx((1000 * 100 + 1100 * 50) / 150)
    assert row.buy_price == pytest.approx(1033.33, abs=0.01)
    assert row.market_value == 176_000
    assert row.unrealized_pnl == 21_000
    assert row.cash_market_value == 120_000
    assert row.margin_market_value == 56_000
    assert row.margin_unrealized_pnl == 1_000


def test_rows_sorted_by_market_value_descending(settings):
    merged = merge_positions(
        [
            _position("1111", "現物", 10, 100, 100, 1_000, 0),
            _position("2222", "現物", 10, 100, 500, 5_000, 4_000),
            _position("3333", "信用", 10, 100, 300, 3_000, 2_000),
        ],
        settings=settings,
    )
    assert [row.code for row in merged] == ["2222", "3333", "1111"]


def test_adjusted_cash_line_is_appended_last(settings):
    merged = merge_positions(
        [
            _position("7203", "cash", 100, 1000, 1200, 120_000, 20_000),
            _position("6758", "margin", 10, 10_000, 12_000, 120_000, 20_000),
        ],
        cash_balance="300,000",
        settings=settings,
    )
    cash_row = merged[-1]
    assert cash_row.is_adjusted_cash
    assert cash_row.code == ""
    assert cash_row.name == settings.adjusted_cash_label
    assert cash_row.quantity is None
    assert cash_row.buy_price is None
    assert cash_row.unrealized_pnl is None
    assert cash_row.market_value == 180_000
    assert tradable_codes(merged) == ["7203", "6758"]


def test_adjusted_cash_is_floored_at_zero(settings):
    merged = merge_positions(
        [_position("6758", "Margin", 70, 10_000, 10_000, 700_000, 0)],
        cash_balance=500_000,
        settings=settings,
    )
    assert merged[-1].is_adjusted_cash
    assert merged[-1].market_value == 0


def test_no_adjusted_cash_without_cash_balance(settings):
    merged = merge_positions([_position("7203", "Cash", 1, 1, 1, 1, 0)], settings=settings)
    assert not any(row.is_adjusted_cash for row in merged)


def test_adjusted_cash_helper_only_nets_margin():
    positions = [
        normalize_position(_position("1", "Cash", 1, 1, 1, 400, 0)),
        normalize_position(_position("2", "Margin", 1, 1, 1, 250, 0)),
    ]
    assert adjusted_cash(1_000, positions) == 750


def test_offsetting_quantities_fall_back_to_incoming_buy_price(settings):
    merged = merge_positions(
        [
            _position("9984", "Cash", 100, 7000, 7000, 0, 0),
            _position("9984", "Margin", -100, 7100, 7000, 0, 0),
        ],
        settings=settings,
    )
    assert merged[0].quantity == 0
    assert merged[0].buy_price == 7100


def test_dirty_numbers_are_parsed(settings):
    merged = merge_positions(
        [_position("7203", "現物", "1,000", "2,500.5", "2,600", "2,600,000", "+100,500", dayChange="+15")],
        settings=settings,
    )
    row = merged[0]
    assert row.quantity == 1000
    assert row.buy_price == pytest.approx(2500.5)
    assert row.market_value == 2_600_000
    assert row.unrealized_pnl == 100_500
    assert row.day_change == 15


def test_margin_class_aliases():
    assert normalize_position(_position("1", "信用", 1, 1, 1, 1, 0)).margin_class is MarginClass.MARGIN
    assert normalize_position(_position("1", "MARGIN", 1, 1, 1, 1, 0)).margin_class is MarginClass.MARGIN
    assert normalize_position(_position("1", "現物", 1, 1, 1, 1, 0)).margin_class is MarginClass.CASH


def test_unknown_margin_class_is_a_contract_violation(settings):
    with pytest.raises(SourceFeedError):
        merge_positions([_position("1", "futures", 1, 1, 1, 1, 0)], settings=settings)


def test_positions_must_be_a_sequence(settings):
    with pytest.raises(SourceFeedError):
        merge_positions(None, settings=settings)
