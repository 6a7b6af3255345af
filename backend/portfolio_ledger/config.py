"""Configuration for the portfolio ledger."""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_BUY_MARKERS = ("買", "buy")
DEFAULT_LEVERAGE_RATIOS = (1.5, 1.35, 1.2)
DEFAULT_ADJUSTED_CASH_LABEL = "Adjusted cash"


class LedgerSettings(BaseSettings):
    """Runtime options for trade normalisation and portfolio summaries."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    buy_markers: list[str] = Field(
        default_factory=lambda: list(DEFAULT_BUY_MARKERS),
        description="Substrings that mark a trade side as a buy; anything else is a sell.",
    )
    leverage_ratios: list[float] = Field(
        default_factory=lambda: list(DEFAULT_LEVERAGE_RATIOS),
        description="Ordered leverage caps used for the tier table.",
    )
    adjusted_cash_label: str = Field(default=DEFAULT_ADJUSTED_CASH_LABEL)
    close_price_lookback_days: int = Field(default=15, ge=1)

    log_level: str = Field(default="INFO")

    telemetry_enabled: bool = Field(default=False)
    telemetry_service_name: str = Field(default="portfolio-ledger")
    telemetry_otlp_endpoint: str | None = Field(default=None)
    telemetry_otlp_insecure: bool = Field(default=True)
    telemetry_sample_ratio: float = Field(default=1.0, ge=0.0, le=1.0)

    @field_validator("buy_markers")
    @classmethod
    def _markers_not_blank(cls, value: list[str]) -> list[str]:
        markers = [m for m in value if m and m.strip()]
        if not markers:
            raise ValueError("buy_markers must contain at least one non-blank marker")
        return markers

    def dict_for_logging(self) -> dict[str, Any]:
        """Return a plain dict suitable for a startup log line."""

        return self.model_dump()


@lru_cache(maxsize=1)
def _cached_settings() -> LedgerSettings:
    return LedgerSettings()


def get_settings(**overrides: Any) -> LedgerSettings:
    """Return the cached settings, or a fresh instance when overrides are given.

    Overrides bypass the cache, so list-valued fields are accepted.
    """

    if overrides:
        return LedgerSettings(**overrides)
    return _cached_settings()


__all__ = [
    "LedgerSettings",
    "DEFAULT_ADJUSTED_CASH_LABEL",
    "DEFAULT_BUY_MARKERS",
    "DEFAULT_LEVERAGE_RATIOS",
    "get_settings",
]
