"""Rule-of-thumb leverage multiplier from four risk questions.

The multiplier is the product of one factor per question: how deep a
drawdown the account must survive, whether sudden shocks are cared for, what
kind of stock is held, and how far the market already sits below its recent
high.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

from .errors import LeverageConfigError

QUESTIONS = ("max_drawdown", "shock_care", "stock_type", "drawdown")

DEFAULT_FACTORS: Dict[str, Dict[str, float]] = {
    "max_drawdown": {"dd30": 0.55, "dd50": 0.9, "dd66": 1.2},
    "shock_care": {"care": 1.0, "ignore": 55 / 33},
    "stock_type": {
        "index": 1.0,
        "large_multiple": 0.8,
        "large_single": 0.66,
        "small_multiple": 0.5,
        "small_single": 0.33,
    },
    "drawdown": {"recent_high": 1.0, "drop30": 1.5, "drop60": 2.0},
}

DEFAULT_SELECTION: Dict[str, str] = {
    "max_drawdown": "dd30",
    "shock_care": "care",
    "stock_type": "index",
    "drawdown": "recent_high",
}


@dataclass(frozen=True)
class LeverageEstimate:
    multiplier: float
    factors: Dict[str, float] = field(default_factory=dict)
    selection: Dict[str, str] = field(default_factory=dict)


def recommend_leverage(
    selection: Optional[Mapping[str, str]] = None,
    factors: Optional[Mapping[str, Mapping[str, float]]] = None,
    defaults: Optional[Mapping[str, str]] = None,
) -> LeverageEstimate:
    """Multiply the chosen factors; unknown choices fall back to the defaults."""

    table = factors if factors is not None else DEFAULT_FACTORS
    fallback = defaults if defaults is not None else DEFAULT_SELECTION
    chosen = {**fallback, **(selection or {})}

    multiplier = 1.0
    used: Dict[str, float] = {}
    resolved: Dict[str, str] = {}
    for question in QUESTIONS:
        options = table.get(question)
        if not options:
            raise LeverageConfigError(f"no factors configured for {question!r}")
        choice = chosen.get(question)
        if choice not in options:
            choice = fallback.get(question)
        if choice not in options:
            raise LeverageConfigError(f"default choice for {question!r} is not a configured option")
        used[question] = options[choice]
        resolved[question] = choice
        multiplier *= options[choice]

    return LeverageEstimate(multiplier=round(multiplier, 2), factors=used, selection=resolved)


__all__ = [
    "DEFAULT_FACTORS",
    "DEFAULT_SELECTION",
    "LeverageEstimate",
    "QUESTIONS",
    "recommend_leverage",
]
