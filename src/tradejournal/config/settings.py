"""Application settings using pydantic-settings."""

from decimal import Decimal
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from tradejournal.constants.positions import (
    DEFAULT_FEE_DECIMAL_PLACES,
    DEFAULT_QUOTE_SYMBOLS,
    DEFAULT_ZERO_EPSILON,
    PRICE_CACHE_MAX_SIZE,
    PRICE_CACHE_TTL_SECONDS,
)


class Settings(BaseSettings):
    """TradeJournal configuration from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra env vars
    )

    # Application
    app_name: str = Field(default="TradeJournal", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Minimum log level"
    )

    # Position engine
    zero_epsilon: Decimal = Field(
        default=DEFAULT_ZERO_EPSILON,
        gt=0,
        description="Remaining quantity at or below this is treated as zero",
    )
    fee_decimal_places: int = Field(
        default=DEFAULT_FEE_DECIMAL_PLACES,
        ge=0,
        le=18,
        description="Decimal places used when allocating a disposal fee across lots",
    )
    tie_break_policy: Literal["ingestion", "entries_first"] = Field(
        default="ingestion",
        description="Ordering of trades sharing the same block time",
    )
    quote_symbols: list[str] = Field(
        default_factory=lambda: list(DEFAULT_QUOTE_SYMBOLS),
        description="Symbols treated as cash; swap legs in these are not tracked",
    )
    include_entry_fees_in_cost_basis: bool = Field(
        default=True,
        description="Deduct the consumed share of acquisition fees from realized PnL",
    )
    max_workers: int = Field(
        default=1, ge=1, le=32, description="Threads used to rebuild (wallet, symbol) keys"
    )
    token_symbol_overrides: dict[str, str] = Field(
        default_factory=dict, description="Token address -> symbol overrides"
    )

    # Price lookup cache
    price_cache_ttl_seconds: int = Field(
        default=PRICE_CACHE_TTL_SECONDS, ge=1, description="Current price cache TTL"
    )
    price_cache_max_size: int = Field(
        default=PRICE_CACHE_MAX_SIZE, ge=1, description="Current price cache capacity"
    )

    @field_validator("quote_symbols")
    @classmethod
    def normalize_quote_symbols(cls, v: list[str]) -> list[str]:
        """Upper-case quote symbols and drop blanks."""
        return [s.strip().upper() for s in v if s and s.strip()]

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Accept lower-case level names from the environment."""
        return v.upper() if isinstance(v, str) else v


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
