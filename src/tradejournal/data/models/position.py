"""Position models derived from the trade log.

Models for:
- FIFO lots and position/trade join records
- Reconstructed positions and their aggregate metrics
- Non-fatal data-quality warnings returned alongside results

Everything here is recomputable by replaying trades; none of it is a second
source of truth.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field, computed_field

from tradejournal.constants.positions import SECONDS_PER_HOUR


class PositionStatus(str, Enum):
    """Status of a position."""

    OPEN = "open"
    CLOSED = "closed"


class TradeRole(str, Enum):
    """Whether a trade leg adds to or removes from a position."""

    ENTRY = "entry"
    EXIT = "exit"


class WarningCode(str, Enum):
    """Kinds of data-quality problems the engine tolerates."""

    OVERSELL = "oversell"
    MISSING_PRICE = "missing_price"
    AMBIGUOUS_SYMBOL = "ambiguous_symbol"


@dataclass
class Lot:
    """Open quantity of a token acquired by one trade.

    Only ``quantity`` changes; it is consumed oldest-first and never goes
    negative.
    """

    quantity: Decimal
    original_quantity: Decimal
    price: Decimal | None
    fees: Decimal
    source_trade_id: str
    timestamp: datetime

    @property
    def fee_per_unit(self) -> Decimal:
        if self.original_quantity <= 0:
            return Decimal(0)
        return self.fees / self.original_quantity


class Position(BaseModel):
    """A continuous holding interval of one token in one wallet."""

    id: str = Field(..., description="Deterministic position identifier")
    symbol: str = Field(...)
    token_address: str = Field(..., description="Raw token identifier from the feed")
    wallet_address: str = Field(...)

    status: PositionStatus = Field(default=PositionStatus.OPEN)
    open_date: datetime = Field(..., description="Time of first acquisition")
    close_date: datetime | None = Field(default=None)

    total_quantity: Decimal = Field(default=Decimal(0), description="Remaining quantity")
    priced_quantity: Decimal = Field(
        default=Decimal(0), description="Remaining quantity held in lots with a known cost"
    )
    entry_quantity: Decimal = Field(default=Decimal(0), description="Total acquired")
    exit_quantity: Decimal = Field(default=Decimal(0), description="Total matched disposals")
    avg_entry_price: Decimal = Field(default=Decimal(0))
    avg_exit_price: Decimal | None = Field(default=None)

    realized_pnl: Decimal = Field(default=Decimal(0))
    unrealized_pnl: Decimal = Field(default=Decimal(0))
    current_price: Decimal | None = Field(default=None)
    fees: Decimal = Field(default=Decimal(0))

    trade_ids: list[str] = Field(default_factory=list)

    @computed_field
    @property
    def net_pnl(self) -> Decimal:
        """Realized plus unrealized PnL."""
        return self.realized_pnl + self.unrealized_pnl

    @computed_field
    @property
    def entry_notional(self) -> Decimal:
        """USD cost of everything acquired into this position."""
        return self.avg_entry_price * self.entry_quantity

    @computed_field
    @property
    def duration_hours(self) -> Decimal | None:
        """Hours between open and close (None while open)."""
        if self.close_date is None:
            return None
        seconds = Decimal(str((self.close_date - self.open_date).total_seconds()))
        return seconds / SECONDS_PER_HOUR

    @property
    def is_open(self) -> bool:
        return self.status == PositionStatus.OPEN


class PositionTrade(BaseModel):
    """Join record attributing (part of) a trade to a position."""

    id: str = Field(...)
    position_id: str = Field(...)
    trade_id: str = Field(...)
    role: TradeRole = Field(...)
    quantity: Decimal = Field(..., ge=0, description="Quantity attributed to the position")
    price: Decimal | None = Field(default=None, description="Execution price of this leg")
    fees: Decimal = Field(default=Decimal(0))
    timestamp: datetime = Field(...)

    # Exit legs only
    cost_basis_price: Decimal | None = Field(
        default=None, description="Weighted average cost of the matched lots"
    )
    realized_pnl: Decimal = Field(default=Decimal(0))


class DataQualityWarning(BaseModel):
    """Non-fatal problem found while replaying trades."""

    code: WarningCode = Field(...)
    message: str = Field(...)
    trade_id: str = Field(...)
    wallet_address: str = Field(...)
    symbol: str | None = Field(default=None)
    unmatched_quantity: Decimal | None = Field(default=None)


class PositionCalculationResult(BaseModel):
    """Positions, join records and warnings produced by one replay."""

    positions: list[Position] = Field(default_factory=list)
    position_trades: list[PositionTrade] = Field(default_factory=list)
    warnings: list[DataQualityWarning] = Field(default_factory=list)

    @property
    def open_positions(self) -> list[Position]:
        return [p for p in self.positions if p.status == PositionStatus.OPEN]

    @property
    def closed_positions(self) -> list[Position]:
        return [p for p in self.positions if p.status == PositionStatus.CLOSED]


class PositionMetrics(BaseModel):
    """Aggregate statistics over a set of positions."""

    total_positions: int = Field(default=0, ge=0)
    open_positions: int = Field(default=0, ge=0)
    closed_positions: int = Field(default=0, ge=0)
    winning_positions: int = Field(default=0, ge=0)
    losing_positions: int = Field(default=0, ge=0)

    total_realized_pnl: Decimal = Field(default=Decimal(0))
    total_unrealized_pnl: Decimal = Field(default=Decimal(0))
    total_net_pnl: Decimal = Field(default=Decimal(0))

    position_win_rate: Decimal = Field(
        default=Decimal(0), description="Percent of decided closed positions that won"
    )
    avg_position_duration: Decimal = Field(
        default=Decimal(0), description="Average hours held, closed positions only"
    )
    avg_position_size: Decimal = Field(default=Decimal(0), description="Average USD entry notional")
    largest_win: Decimal = Field(default=Decimal(0))
    largest_loss: Decimal = Field(default=Decimal(0))
    total_fees: Decimal = Field(default=Decimal(0))


class PositionSummary(BaseModel):
    """Per-symbol rollup of positions."""

    symbol: str
    token_address: str
    total_positions: int = 0
    open_positions: int = 0
    total_realized_pnl: Decimal = Decimal(0)
    total_unrealized_pnl: Decimal = Decimal(0)
    win_rate: Decimal = Decimal(0)
    avg_duration: Decimal = Decimal(0)
    total_volume: Decimal = Decimal(0)

    @computed_field
    @property
    def total_net_pnl(self) -> Decimal:
        return self.total_realized_pnl + self.total_unrealized_pnl


class PositionFilter(BaseModel):
    """Filter for position queries."""

    wallet_address: str | None = None
    symbol: str | None = None
    status: PositionStatus | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    min_pnl: Decimal | None = None
    max_pnl: Decimal | None = None
    limit: int | None = Field(default=None, ge=0)
    offset: int = Field(default=0, ge=0)
