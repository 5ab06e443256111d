"""Explicit policy object passed to the position engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING

from tradejournal.constants.positions import (
    DEFAULT_FEE_DECIMAL_PLACES,
    DEFAULT_QUOTE_SYMBOLS,
    DEFAULT_ZERO_EPSILON,
)
from tradejournal.core.exceptions import ConfigurationError

if TYPE_CHECKING:
    from tradejournal.config.settings import Settings


class TieBreakPolicy(str, Enum):
    """Ordering of trades that share a block time."""

    INGESTION = "ingestion"  # stable input order
    ENTRIES_FIRST = "entries_first"  # buys, then swaps, then sells


@dataclass(frozen=True)
class MatchingPolicy:
    """Numeric and ordering rules for FIFO position reconstruction.

    The engine holds no global state; everything that used to be a module
    setting is carried here and passed in explicitly.

    With ``include_entry_fees_in_cost_basis`` (the default) a disposal also
    deducts the consumed share of each matched lot's acquisition fee, on top
    of its own allocated fee. This intentionally departs from charging
    only the disposal fee; disable it to realize PnL net of exit fees alone.
    """

    zero_epsilon: Decimal = DEFAULT_ZERO_EPSILON
    fee_decimal_places: int = DEFAULT_FEE_DECIMAL_PLACES
    tie_break: TieBreakPolicy = TieBreakPolicy.INGESTION
    quote_symbols: tuple[str, ...] = DEFAULT_QUOTE_SYMBOLS
    include_entry_fees_in_cost_basis: bool = True
    max_workers: int = 1
    token_symbol_overrides: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.zero_epsilon <= 0:
            raise ConfigurationError(f"zero_epsilon must be positive, got {self.zero_epsilon}")
        if self.fee_decimal_places < 0:
            raise ConfigurationError(
                f"fee_decimal_places must be non-negative, got {self.fee_decimal_places}"
            )
        if self.max_workers < 1:
            raise ConfigurationError(f"max_workers must be at least 1, got {self.max_workers}")

    @property
    def fee_quantum(self) -> Decimal:
        """Smallest fee increment used when splitting a fee across lots."""
        return Decimal(1).scaleb(-self.fee_decimal_places)

    def is_zero(self, quantity: Decimal) -> bool:
        return abs(quantity) <= self.zero_epsilon

    @classmethod
    def from_settings(cls, settings: Settings) -> MatchingPolicy:
        """Build a policy from application settings."""
        return cls(
            zero_epsilon=settings.zero_epsilon,
            fee_decimal_places=settings.fee_decimal_places,
            tie_break=TieBreakPolicy(settings.tie_break_policy),
            quote_symbols=tuple(settings.quote_symbols),
            include_entry_fees_in_cost_basis=settings.include_entry_fees_in_cost_basis,
            max_workers=settings.max_workers,
            token_symbol_overrides=dict(settings.token_symbol_overrides),
        )
