"""Pydantic models for data validation and serialization."""

from tradejournal.data.models.position import (
    DataQualityWarning,
    Lot,
    Position,
    PositionCalculationResult,
    PositionFilter,
    PositionMetrics,
    PositionStatus,
    PositionSummary,
    PositionTrade,
    TradeRole,
    WarningCode,
)
from tradejournal.data.models.trade import Trade, TradeFilter, TradeType

__all__ = [
    "DataQualityWarning",
    "Lot",
    "Position",
    "PositionCalculationResult",
    "PositionFilter",
    "PositionMetrics",
    "PositionStatus",
    "PositionSummary",
    "PositionTrade",
    "Trade",
    "TradeFilter",
    "TradeRole",
    "TradeType",
    "WarningCode",
]
