"""Turn loosely formatted feed values into numbers, dates and trade sides."""

from __future__ import annotations

import logging
import math
import re
from datetime import date, datetime
from typing import Any, Iterable, List, Optional, Sequence

from .config import LedgerSettings, get_settings
from .errors import SourceFeedError
from .models import NormalizedTrade, TradeSide
from .schemas import RawTrade, ensure_sequence, validate_record

logger = logging.getLogger(__name__)

_NON_NUMERIC = re.compile(r"[^\d.\-]")
_DATE_FORMATS = ("%Y/%m/%d", "%Y-%m-%d", "%Y%m%d", "%Y.%m.%d", "%y/%m/%d")


def parse_number(value: Any) -> float:
    """Strip separators and decoration; anything unparsable becomes 0."""

    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        cleaned = _NON_NUMERIC.sub("", str(value))
        try:
            number = float(cleaned)
        except ValueError:
            return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def parse_quantity(value: Any) -> int:
    return abs(int(parse_number(value)))


def parse_price(value: Any) -> float:
    return abs(parse_number(value))


def normalize_date(value: Any) -> str:
    """Return ``YYYY-MM-DD`` for the date formats the feeds use.

    Text that matches none of them is returned stripped.
    """

    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    text = "" if value is None else str(value).strip()
    # drop a trailing time part such as "2024/01/05 09:00" or "2024-01-05, 09:00:00"
    head = re.split(r"[\sT,]", text, maxsplit=1)[0]
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(head, fmt).date().isoformat()
        except ValueError:
            continue
    return text


def classify_side(text: Any, buy_markers: Sequence[str]) -> TradeSide:
    """Buy iff the free-text side contains a buy marker; everything else sells."""

    if isinstance(text, TradeSide):
        return text
    lowered = str(text or "").lower()
    if any(marker.lower() in lowered for marker in buy_markers):
        return TradeSide.BUY
    return TradeSide.SELL


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def normalize_trade(
    record: Any,
    settings: LedgerSettings | None = None,
) -> Optional[NormalizedTrade]:
    """Canonicalise one raw trade, or ``None`` when its leading field is blank."""

    if isinstance(record, NormalizedTrade):
        return record
    settings = settings or get_settings()
    raw = validate_record(RawTrade, record, SourceFeedError)
    if not _text(raw.date):
        return None
    return NormalizedTrade(
        date=normalize_date(raw.date),
        code=_text(raw.code),
        name=_text(raw.name),
        side=classify_side(raw.side, settings.buy_markers),
        quantity=parse_quantity(raw.quantity),
        price=parse_price(raw.price),
    )


def normalize_trades(
    records: Iterable[Any],
    settings: LedgerSettings | None = None,
) -> List[NormalizedTrade]:
    settings = settings or get_settings()
    rows = ensure_sequence(records, "trade records", SourceFeedError)
    trades: List[NormalizedTrade] = []
    for record in rows:
        trade = normalize_trade(record, settings)
        if trade is not None:
            trades.append(trade)
    skipped = len(rows) - len(trades)
    if skipped:
        logger.warning("Discarded %d blank trade record(s) out of %d", skipped, len(rows))
    return trades


__all__ = [
    "classify_side",
    "normalize_date",
    "normalize_trade",
    "normalize_trades",
    "parse_number",
    "parse_price",
    "parse_quantity",
]
