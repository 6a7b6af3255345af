"""pandas views of ledger outputs for tables and charts."""

from __future__ import annotations

from dataclasses import asdict, fields
from typing import Iterable

import pandas as pd

from .models import AggregatedTradeEntry, MergedPosition, PivotDayEntry

_PIVOT_VALUES = ("ratio", "quantity")


def pivot_to_frame(pivot: Iterable[PivotDayEntry], value: str = "ratio") -> pd.DataFrame:
    """One row per date, one column per instrument code."""

    if value not in _PIVOT_VALUES:
        raise ValueError(f"value must be one of {_PIVOT_VALUES}, got {value!r}")
    records = {
        row.date: {code: getattr(cell, value) for code, cell in row.per_instrument.items()}
        for row in pivot
    }
    df = pd.DataFrame.from_dict(records, orient="index")
    df.index.name = "date"
    if value == "quantity" and not df.empty:
        df = df.astype("int64")
    return df


def trade_log_to_frame(entries: Iterable[AggregatedTradeEntry]) -> pd.DataFrame:
    columns = ["date", "code", "name", "side", "quantity", "price"]
    rows = [{**asdict(entry), "side": entry.side.value} for entry in entries]
    return pd.DataFrame(rows, columns=columns)


def positions_to_frame(merged: Iterable[MergedPosition]) -> pd.DataFrame:
    rows = [asdict(row) for row in merged]
    if not rows:
        return pd.DataFrame(columns=[f.name for f in fields(MergedPosition)])
    return pd.DataFrame(rows)


__all__ = ["pivot_to_frame", "positions_to_frame", "trade_log_to_frame"]
