import pytest
from pydantic import ValidationError

from portfolio_ledger.config import LedgerSettings, get_settings
from portfolio_ledger.models import TradeSide
from portfolio_ledger.normalize import normalize_trade


def test_defaults(settings):
    assert settings.leverage_ratios == [1.5, 1.35, 1.2]
    assert "買" in settings.buy_markers
    assert settings.close_price_lookback_days == 15


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("LEDGER_LEVERAGE_RATIOS", "[2.0, 1.0]")
    monkeypatch.setenv("LEDGER_ADJUSTED_CASH_LABEL", "Free cash")
    settings = LedgerSettings(_env_file=None)
    assert settings.leverage_ratios == [2.0, 1.0]
    assert settings.adjusted_cash_label == "Free cash"


def test_blank_buy_markers_rejected():
    with pytest.raises(ValidationError):
        LedgerSettings(_env_file=None, buy_markers=["", "  "])


def test_custom_buy_marker_changes_classification():
    settings = LedgerSettings(_env_file=None, buy_markers=["long"])
    raw = {"date": "2024-01-05", "code": "X", "name": "x", "side": "LONG", "quantity": 1, "price": 1}
    assert normalize_trade(raw, settings).side is TradeSide.BUY
    raw["side"] = "買"
    assert normalize_trade(raw, settings).side is TradeSide.SELL


def test_get_settings_accepts_list_overrides():
    settings = get_settings(leverage_ratios=[2.0], _env_file=None)
    assert settings.leverage_ratios == [2.0]
    assert get_settings() is get_settings()
