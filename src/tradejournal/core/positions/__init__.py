"""FIFO position reconstruction and metrics."""

from tradejournal.core.positions.engine import (
    PositionEngine,
    calculate_positions,
    order_trades,
    validate_trades,
)
from tradejournal.core.positions.filters import (
    GroupingValidation,
    filter_positions,
    filter_trades,
    validate_position_grouping,
)
from tradejournal.core.positions.grouping import (
    TokenRegistry,
    TradeLeg,
    group_trade_legs,
    split_trade_legs,
)
from tradejournal.core.positions.lot_matcher import LotMatcher, SymbolMatchResult
from tradejournal.core.positions.metrics import (
    calculate_position_metrics,
    combine_position_metrics,
    summarize_positions_by_symbol,
)
from tradejournal.core.positions.policy import MatchingPolicy, TieBreakPolicy

__all__ = [
    "GroupingValidation",
    "LotMatcher",
    "MatchingPolicy",
    "PositionEngine",
    "SymbolMatchResult",
    "TieBreakPolicy",
    "TokenRegistry",
    "TradeLeg",
    "calculate_position_metrics",
    "calculate_positions",
    "combine_position_metrics",
    "filter_positions",
    "filter_trades",
    "group_trade_legs",
    "order_trades",
    "split_trade_legs",
    "summarize_positions_by_symbol",
    "validate_position_grouping",
    "validate_trades",
]
