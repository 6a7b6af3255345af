"""Merge per-margin-class position snapshots into one row per instrument."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from .config import LedgerSettings, get_settings
from .errors import SourceFeedError
from .models import MarginClass, MergedPosition, Position
from .normalize import parse_number
from .schemas import RawPosition, ensure_sequence, validate_record

logger = logging.getLogger(__name__)


def normalize_position(record: Any) -> Position:
    raw = validate_record(RawPosition, record, SourceFeedError)
    return Position(
        code="" if raw.code is None else str(raw.code).strip(),
        name="" if raw.name is None else str(raw.name).strip(),
        margin_class=raw.margin_class,
        quantity=parse_number(raw.quantity),
        buy_price=parse_number(raw.buy_price),
        current_price=parse_number(raw.current_price),
        market_value=parse_number(raw.market_value),
        unrealized_pnl=parse_number(raw.unrealized_pnl),
        day_change=None if raw.day_change in (None, "") else parse_number(raw.day_change),
    )


@dataclass
class _Holding:
    code: str
    name: str
    quantity: float
    buy_price: float
    current_price: float
    market_value: float
    unrealized_pnl: float
    day_change: Optional[float]
    cash_market_value: float = 0.0
    margin_market_value: float = 0.0
    margin_unrealized_pnl: float = 0.0

    @classmethod
    def open(cls, position: Position) -> "_Holding":
        holding = cls(
            code=position.code,
            name=position.name,
            quantity=position.quantity,
            buy_price=position.buy_price,
            current_price=position.current_price,
            market_value=position.market_value,
            unrealized_pnl=position.unrealized_pnl,
            day_change=position.day_change,
        )
        holding._book(position)
        return holding

    def _book(self, position: Position) -> None:
        if position.margin_class is MarginClass.MARGIN:
            self.margin_market_value += position.market_value
            self.margin_unrealized_pnl += position.unrealized_pnl
        else:
            self.cash_market_value += position.market_value

    def add(self, position: Position) -> None:
        self.quantity += position.quantity
        self.market_value += position.market_value
        self.unrealized_pnl += position.unrealized_pnl
        # quantity is already incremented; total - incoming is the prior quantity
        if self.quantity:
            prior_quantity = self.quantity - position.quantity
            self.buy_price = (
                self.buy_price * prior_quantity + position.buy_price * position.quantity
            ) / self.quantity
        else:
            self.buy_price = position.buy_price
        self._book(position)

    def freeze(self) -> MergedPosition:
        return MergedPosition(
            code=self.code,
            name=self.name,
            quantity=self.quantity,
            buy_price=self.buy_price,
            current_price=self.current_price,
            market_value=self.market_value,
            unrealized_pnl=self.unrealized_pnl,
            day_change=self.day_change,
            cash_market_value=self.cash_market_value,
            margin_market_value=self.margin_market_value,
            margin_unrealized_pnl=self.margin_unrealized_pnl,
        )


def adjusted_cash(cash_balance: float, positions: Iterable[Position]) -> float:
    """Free cash after netting out margin notional, never below zero."""

    margin_total = sum(p.market_value for p in positions if p.margin_class is MarginClass.MARGIN)
    return max(0.0, cash_balance - margin_total)


def merge_positions(
    records: Iterable[Any],
    cash_balance: Any = None,
    settings: LedgerSettings | None = None,
) -> List[MergedPosition]:
    """Merge snapshots by code, largest market value first.

    When ``cash_balance`` is given an adjusted-cash line is appended last.
    """

    settings = settings or get_settings()
    positions = [
        normalize_position(record)
        for record in ensure_sequence(records, "position records", SourceFeedError)
    ]

    holdings: Dict[str, _Holding] = {}
    for position in positions:
        holding = holdings.get(position.code)
        if holding is None:
            holdings[position.code] = _Holding.open(position)
        else:
            holding.add(position)

    merged = sorted((h.freeze() for h in holdings.values()), key=lambda m: m.market_value, reverse=True)

    if cash_balance is not None:
        merged.append(
            MergedPosition(
                code="",
                name=settings.adjusted_cash_label,
                quantity=None,
                buy_price=None,
                current_price=None,
                market_value=adjusted_cash(parse_number(cash_balance), positions),
                unrealized_pnl=None,
                is_adjusted_cash=True,
            )
        )
    logger.debug("Merged %d position snapshot(s) into %d row(s)", len(positions), len(merged))
    return merged


def tradable_codes(merged: Iterable[MergedPosition]) -> List[str]:
    """Codes of real instruments, in row order."""

    return [row.code for row in merged if not row.is_adjusted_cash and row.code]


__all__ = [
    "adjusted_cash",
    "merge_positions",
    "normalize_position",
    "tradable_codes",
]
