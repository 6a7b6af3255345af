"""Pydantic contracts for records handed over by the source and price feeds.

Values are deliberately loose (strings with separators, numbers, ``None``);
only the shape is enforced here. Numeric clean-up happens in
:mod:`portfolio_ledger.normalize`.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import FeedContractError
from .models import MarginClass

_MARGIN_CLASS_ALIASES = {
    "cash": MarginClass.CASH,
    "現物": MarginClass.CASH,
    "margin": MarginClass.MARGIN,
    "信用": MarginClass.MARGIN,
}


class _FeedRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True, from_attributes=True, extra="ignore")


class RawTrade(_FeedRecord):
    date: Any
    code: Any
    name: Any
    side: Any = Field(validation_alias=AliasChoices("side", "tradeType", "trade_type"))
    quantity: Any
    price: Any


class RawPosition(_FeedRecord):
    code: Any
    name: Any
    margin_class: MarginClass = Field(
        validation_alias=AliasChoices("margin_class", "marginClass", "marginType", "margin_type")
    )
    quantity: Any
    buy_price: Any = Field(validation_alias=AliasChoices("buy_price", "buyPrice"))
    current_price: Any = Field(validation_alias=AliasChoices("current_price", "currentPrice"))
    market_value: Any = Field(
        validation_alias=AliasChoices("market_value", "marketValue", "marketCap", "market_cap")
    )
    unrealized_pnl: Any = Field(
        validation_alias=AliasChoices("unrealized_pnl", "unrealizedPnL", "profitAndLoss", "profit_and_loss")
    )
    day_change: Any = Field(default=None, validation_alias=AliasChoices("day_change", "dayChange"))

    @field_validator("margin_class", mode="before")
    @classmethod
    def _parse_margin_class(cls, value: Any) -> Any:
        if isinstance(value, MarginClass):
            return value
        if isinstance(value, str):
            key = value.strip()
            mapped = _MARGIN_CLASS_ALIASES.get(key) or _MARGIN_CLASS_ALIASES.get(key.lower())
            if mapped is not None:
                return mapped
            return key.upper()
        return value


class RawUsdPosition(_FeedRecord):
    """A holding from the foreign-currency account; yen fields are optional."""

    code: Any = Field(validation_alias=AliasChoices("code", "securityCode"))
    name: Any = Field(validation_alias=AliasChoices("name", "securityName"))
    quantity: Any = Field(validation_alias=AliasChoices("quantity", "assetQty"))
    current_price: Any = Field(default=None, validation_alias=AliasChoices("current_price", "currentPrice"))
    market_value: Any = Field(
        validation_alias=AliasChoices("market_value", "marketCap", "foreignEvaluateAmount")
    )
    unrealized_pnl: Any = Field(
        default=None,
        validation_alias=AliasChoices("unrealized_pnl", "profitAndLoss", "foreignEvaluateProfitLoss"),
    )
    yen_market_value: Any = Field(
        default=None,
        validation_alias=AliasChoices("yen_market_value", "yenMarketCap", "yenEvaluateAmount"),
    )
    yen_unrealized_pnl: Any = Field(
        default=None,
        validation_alias=AliasChoices("yen_unrealized_pnl", "yenProfitAndLoss", "yenEvaluateProfitLoss"),
    )


class RawClosePriceDay(_FeedRecord):
    date: Any
    close_price_by_code: dict[Any, Any] = Field(
        validation_alias=AliasChoices("close_price_by_code", "closePriceByCode", "closePrice", "close_price")
    )


class RawCurrentPrice(_FeedRecord):
    code: Any
    price: Any


ModelT = TypeVar("ModelT", bound=_FeedRecord)


def validate_record(
    model: type[ModelT],
    record: Any,
    error_cls: type[FeedContractError],
) -> ModelT:
    """Validate one record against ``model`` or raise the collaborator's error."""

    if isinstance(record, model):
        return record
    try:
        return model.model_validate(record)
    except ValidationError as exc:
        raise error_cls(f"invalid {model.__name__} record: {exc.errors(include_url=False)}") from exc


def ensure_sequence(value: Any, what: str, error_cls: type[FeedContractError]) -> list:
    """Materialise an iterable of records, rejecting strings, mappings and scalars."""

    if value is None:
        raise error_cls(f"{what} is missing")
    if isinstance(value, (str, bytes, Mapping)) or not isinstance(value, Iterable):
        raise error_cls(f"{what} must be a sequence of records, got {type(value).__name__}")
    return list(value)


def ensure_instances(
    value: Any,
    what: str,
    item_type: type,
    error_cls: type[FeedContractError],
) -> list:
    """Like :func:`ensure_sequence`, but every item must already be an ``item_type``."""

    items = ensure_sequence(value, what, error_cls)
    for index, item in enumerate(items):
        if not isinstance(item, item_type):
            raise error_cls(
                f"{what}[{index}] must be {item_type.__name__}, got {type(item).__name__}"
            )
    return items


__all__ = [
    "RawClosePriceDay",
    "RawCurrentPrice",
    "RawPosition",
    "RawTrade",
    "RawUsdPosition",
    "ensure_instances",
    "ensure_sequence",
    "validate_record",
]
