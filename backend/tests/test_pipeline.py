from datetime import date

import pytest

from portfolio_ledger import LedgerCache, SourceFeedError, build_portfolio_view
from portfolio_ledger.models import TradeSide


def _make_trades():
    return [
        {"date": "2024/01/05", "code": "7203", "name": "Toyota", "side": "株式現物買", "quantity": "100", "price": "1,500"},
        {"date": "2024/01/05", "code": "7203", "name": "Toyota", "side": "株式現物買", "quantity": "200", "price": "1,800"},
        {"date": "2024/01/05", "code": "7203", "name": "Toyota", "side": "株式現物売", "quantity": "100", "price": "1,900"},
        {"date": "2024/01/04", "code": "6758", "name": "Sony", "side": "信用新規買", "quantity": "10", "price": "12,000"},
    ]


def _make_positions():
    return [
        {"code": "7203", "name": "Toyota", "marginClass": "現物", "quantity": "200", "buyPrice": "1,700",
         "currentPrice": "2,000", "marketValue": "400,000", "unrealizedPnL": "60,000", "dayChange": "+20"},
        {"code": "6758", "name": "Sony", "marginClass": "信用", "quantity": "10", "buyPrice": "12,000",
         "currentPrice": "13,000", "marketValue": "130,000", "unrealizedPnL": "10,000"},
    ]


def _make_closes():
    return [
        {"date": "2024-01-05", "closePrice": {"7203": 1950.0, "6758": 12500.0}},
        {"date": "2024-01-04", "closePrice": {"7203": 1900.0, "6758": None}},
    ]


CURRENT = {"7203": 2000.0, "6758": 13000.0}


def _build(cache=None, trades=None, closes=None):
    return build_portfolio_view(
        _make_positions(),
        CURRENT,
        cash_balance="1,000,000",
        buying_power="800,000",
        trades=trades if trades is not None else _make_trades(),
        close_prices=closes if closes is not None else _make_closes(),
        cache=cache,
    )


def test_refresh_produces_every_view(settings):
    view = build_portfolio_view(
        _make_positions(),
        CURRENT,
        cash_balance="1,000,000",
        buying_power="800,000",
        trades=_make_trades(),
        close_prices=_make_closes(),
        settings=settings,
    )
    assert [(e.date, e.code, e.side) for e in view.trade_log] == [
        ("2024-01-05", "7203", TradeSide.BUY),
        ("2024-01-05", "7203", TradeSide.SELL),
        ("2024-01-04", "6758", TradeSide.BUY),
    ]
    assert view.trade_log[0].price == pytest.approx(1700.0)

    assert view.merged_positions[-1].is_adjusted_cash
    assert view.merged_positions[-1].market_value == pytest.approx(1_000_000 - 130_000)
    assert view.summary.net_assets == pytest.approx(1_000_000 + 400_000 + 10_000)
    assert view.summary.buying_power == 800_000
    assert [m.code for m in view.position_metrics] == ["7203", "6758"]

    day5 = view.pivot[0].per_instrument
    assert day5["7203"].quantity == 200
    assert day5["6758"].quantity == 0
    assert day5["6758"].ratio == pytest.approx((13000 - 12500) / 12500 * 100)
    assert view.pivot[1].per_instrument["7203"].ratio == pytest.approx((2000 - 1900) / 1900 * 100)


def test_warm_cache_matches_cold_run():
    cold = _build()
    cache = LedgerCache()
    first = _build(cache=cache)
    assert cache.has_trade_log and cache.has_close_prices

    def must_not_load(*args):
        raise AssertionError("loader called on a warm cache")

    warm = _build(cache=cache, trades=must_not_load, closes=must_not_load)
    assert warm == first == cold


def test_loaders_are_called_once_per_cache():
    calls = {"trades": 0, "closes": 0}

    def load_trades():
        calls["trades"] += 1
        return _make_trades()

    def load_closes(request):
        calls["closes"] += 1
        return _make_closes()

    cache = LedgerCache()
    for _ in range(3):
        _build(cache=cache, trades=load_trades, closes=load_closes)
    assert calls == {"trades": 1, "closes": 1}


def test_roll_over_invalidates_on_new_day():
    today = {"value": date(2024, 1, 5)}
    cache = LedgerCache(clock=lambda: today["value"])
    _build(cache=cache)
    assert cache.as_of == date(2024, 1, 5)
    assert cache.roll_over() is False

    today["value"] = date(2024, 1, 6)
    assert cache.roll_over() is True
    assert not cache.has_trade_log
    assert cache.as_of is None


def test_cold_cache_without_trades_is_a_contract_error():
    with pytest.raises(SourceFeedError):
        build_portfolio_view(_make_positions(), CURRENT, cash_balance=0)


def test_today_executions_are_aggregated_separately():
    view = build_portfolio_view(
        _make_positions(),
        CURRENT,
        cash_balance=0,
        trades=_make_trades(),
        today_executions=[
            {"date": "2024/01/06", "code": "9984", "name": "SBG", "side": "買", "quantity": "100", "price": "7,000"},
            {"date": "2024/01/06", "code": "6758", "name": "Sony", "side": "売", "quantity": "5", "price": "13,100"},
        ],
    )
    assert [e.code for e in view.today_executions] == ["6758", "9984"]
    assert all(e.date != "2024-01-06" for e in view.trade_log)


def test_close_loader_receives_traded_codes_and_window(settings):
    requests = []

    def load_closes(request):
        requests.append(request)
        return _make_closes()

    cache = LedgerCache(clock=lambda: date(2024, 1, 20))
    view = build_portfolio_view(
        _make_positions(),
        CURRENT,
        cash_balance=0,
        trades=_make_trades(),
        close_prices=load_closes,
        cache=cache,
        settings=settings,
    )
    (request,) = requests
    assert request.codes == ("7203", "6758")
    assert request.start == date(2024, 1, 5)
    assert request.end == date(2024, 1, 20)
    assert view.pivot[1].per_instrument["7203"].ratio == pytest.approx((2000 - 1900) / 1900 * 100)


def test_close_loader_skipped_without_traded_codes(settings):
    def must_not_load(request):
        raise AssertionError("no codes to request")

    view = build_portfolio_view(
        _make_positions(),
        CURRENT,
        cash_balance=0,
        trades=[],
        close_prices=must_not_load,
        settings=settings,
    )
    assert view.pivot == ()


def test_usd_account_adds_combined_summary(settings):
    view = build_portfolio_view(
        _make_positions(),
        CURRENT,
        cash_balance="1,000,000",
        buying_power="800,000",
        trades=_make_trades(),
        usd_positions=[{"code": "AAPL", "name": "Apple", "quantity": 10, "marketCap": 300_000, "profitAndLoss": 0}],
        usd_deposit=50_000,
        settings=settings,
    )
    combined = view.combined
    assert combined.net_assets == pytest.approx(view.summary.net_assets + 350_000)
    assert combined.buying_power == pytest.approx(850_000)
    assert [row.code for row in combined.rows] == ["7203", "AAPL", "6758"]
    assert _build().combined is None
