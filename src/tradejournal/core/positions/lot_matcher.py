"""FIFO lot matcher.

Replays the leg stream of one (wallet, symbol) pair and reconstructs:
- the FIFO lots created by acquisitions (remaining quantities after replay)
- the positions, segmented at every return to a zero balance
- entry/exit join records with per-disposal realized PnL
- oversell warnings for disposals larger than the open quantity
"""

from __future__ import annotations

import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_EVEN, Decimal

import structlog

from tradejournal.constants.positions import POSITION_ID_NAMESPACE
from tradejournal.core.exceptions import InvalidTradeError
from tradejournal.core.positions.grouping import TradeLeg
from tradejournal.core.positions.policy import MatchingPolicy
from tradejournal.data.models.position import (
    DataQualityWarning,
    Lot,
    Position,
    PositionStatus,
    PositionTrade,
    TradeRole,
    WarningCode,
)

log = structlog.get_logger(__name__)

ZERO = Decimal(0)


def position_id_for(wallet_address: str, symbol: str, opening_trade_id: str) -> str:
    """Deterministic position id, stable across replays of the same log."""
    return str(uuid.uuid5(POSITION_ID_NAMESPACE, f"{wallet_address}:{symbol}:{opening_trade_id}"))


def allocate_pro_rata(total: Decimal, weights: list[Decimal], quantum: Decimal) -> list[Decimal]:
    """Split ``total`` across ``weights``, rounding each share to ``quantum``.

    The last share absorbs the rounding remainder so the shares always sum
    to ``total`` exactly.

    Example:
        >>> allocate_pro_rata(Decimal("1"), [Decimal(1)] * 3, Decimal("0.01"))
        [Decimal('0.33'), Decimal('0.33'), Decimal('0.34')]
    """
    if not weights:
        return []
    weight_sum = sum(weights, ZERO)
    if weight_sum <= 0:
        return [total] + [ZERO] * (len(weights) - 1)
    shares = [(total * w / weight_sum).quantize(quantum, rounding=ROUND_HALF_EVEN) for w in weights[:-1]]
    shares.append(total - sum(shares, ZERO))
    return shares


@dataclass
class _PositionBuilder:
    """Running totals for the position currently being filled."""

    id: str
    symbol: str
    token_address: str
    wallet_address: str
    open_date: datetime

    entry_quantity: Decimal = ZERO
    priced_entry_quantity: Decimal = ZERO
    entry_cost: Decimal = ZERO
    exit_quantity: Decimal = ZERO
    priced_exit_quantity: Decimal = ZERO
    exit_proceeds: Decimal = ZERO
    realized_pnl: Decimal = ZERO
    fees: Decimal = ZERO
    trade_ids: list[str] = field(default_factory=list)

    def touch(self, trade_id: str) -> None:
        if trade_id not in self.trade_ids:
            self.trade_ids.append(trade_id)

    def build(
        self,
        remaining: Decimal,
        priced_remaining: Decimal,
        status: PositionStatus,
        close_date: datetime | None = None,
    ) -> Position:
        avg_entry = self.entry_cost / self.priced_entry_quantity if self.priced_entry_quantity else ZERO
        avg_exit = self.exit_proceeds / self.priced_exit_quantity if self.priced_exit_quantity else None
        return Position(
            id=self.id,
            symbol=self.symbol,
            token_address=self.token_address,
            wallet_address=self.wallet_address,
            status=status,
            open_date=self.open_date,
            close_date=close_date,
            total_quantity=remaining,
            priced_quantity=priced_remaining,
            entry_quantity=self.entry_quantity,
            exit_quantity=self.exit_quantity,
            avg_entry_price=avg_entry,
            avg_exit_price=avg_exit,
            realized_pnl=self.realized_pnl,
            fees=self.fees,
            trade_ids=list(self.trade_ids),
        )


@dataclass
class SymbolMatchResult:
    """Output of replaying one (wallet, symbol) leg stream."""

    wallet_address: str
    symbol: str
    lots: list[Lot] = field(default_factory=list)
    positions: list[Position] = field(default_factory=list)
    position_trades: list[PositionTrade] = field(default_factory=list)
    warnings: list[DataQualityWarning] = field(default_factory=list)

    @property
    def open_lots(self) -> list[Lot]:
        return [lot for lot in self.lots if lot.quantity > 0]


class LotMatcher:
    """FIFO lot matcher for a single (wallet, symbol) stream.

    Stateless between calls: every ``match`` builds its own queue, so the
    same instance can be shared across threads.

    Example:
        matcher = LotMatcher(MatchingPolicy())
        result = matcher.match("wallet", "BONK", legs)
        result.positions  # closed positions first, then the open one (if any)
    """

    def __init__(self, policy: MatchingPolicy | None = None) -> None:
        self.policy = policy or MatchingPolicy()

    def match(self, wallet_address: str, symbol: str, legs: list[TradeLeg]) -> SymbolMatchResult:
        """Replay chronologically ordered legs and reconstruct positions.

        Args:
            wallet_address: Wallet the legs belong to.
            symbol: Symbol the legs belong to.
            legs: Legs in processing order (block time, then sequence ascending).

        Returns:
            SymbolMatchResult with lots, positions, join records and warnings.

        Raises:
            InvalidTradeError: If legs are not in chronological order or
                belong to another wallet/symbol.
        """
        result = SymbolMatchResult(wallet_address=wallet_address, symbol=symbol)
        queue: deque[Lot] = deque()
        current: _PositionBuilder | None = None
        previous: tuple[datetime, int] | None = None

        for leg in legs:
            if leg.wallet_address != wallet_address or leg.symbol != symbol:
                raise InvalidTradeError(
                    f"Leg for {leg.wallet_address}/{leg.symbol} in {wallet_address}/{symbol} batch",
                    trade_id=leg.trade_id,
                )
            order = (leg.timestamp, leg.sequence)
            if previous is not None and order < previous:
                raise InvalidTradeError("Trades are not in chronological order", trade_id=leg.trade_id)
            previous = order

            match leg.role:
                case TradeRole.ENTRY:
                    if current is None:
                        current = _PositionBuilder(
                            id=position_id_for(wallet_address, symbol, leg.trade_id),
                            symbol=symbol,
                            token_address=leg.token_address,
                            wallet_address=wallet_address,
                            open_date=leg.timestamp,
                        )
                        log.debug("position_opened", symbol=symbol, position_id=current.id)
                    self._acquire(leg, current, queue, result)
                case TradeRole.EXIT:
                    if current is None:
                        result.warnings.append(self._oversell(leg, leg.quantity))
                        continue
                    self._dispose(leg, current, queue, result)
                    remaining = sum((lot.quantity for lot in queue), ZERO)
                    if self.policy.is_zero(remaining):
                        queue.clear()
                        result.positions.append(
                            current.build(ZERO, ZERO, PositionStatus.CLOSED, close_date=leg.timestamp)
                        )
                        log.debug(
                            "position_closed",
                            symbol=symbol,
                            position_id=current.id,
                            realized_pnl=str(current.realized_pnl),
                        )
                        current = None

        if current is not None:
            remaining = sum((lot.quantity for lot in queue), ZERO)
            priced = sum((lot.quantity for lot in queue if lot.price is not None), ZERO)
            result.positions.append(current.build(remaining, priced, PositionStatus.OPEN))

        return result

    def _acquire(
        self,
        leg: TradeLeg,
        position: _PositionBuilder,
        queue: deque[Lot],
        result: SymbolMatchResult,
    ) -> None:
        lot = Lot(
            quantity=leg.quantity,
            original_quantity=leg.quantity,
            price=leg.price,
            fees=leg.fees,
            source_trade_id=leg.trade_id,
            timestamp=leg.timestamp,
        )
        queue.append(lot)
        result.lots.append(lot)

        position.entry_quantity += leg.quantity
        if leg.price is not None:
            position.priced_entry_quantity += leg.quantity
            position.entry_cost += leg.quantity * leg.price
        position.fees += leg.fees
        position.touch(leg.trade_id)

        result.position_trades.append(
            PositionTrade(
                id=f"pt_entry_{leg.trade_id}_{position.id}",
                position_id=position.id,
                trade_id=leg.trade_id,
                role=TradeRole.ENTRY,
                quantity=leg.quantity,
                price=leg.price,
                fees=leg.fees,
                timestamp=leg.timestamp,
            )
        )

    def _dispose(
        self,
        leg: TradeLeg,
        position: _PositionBuilder,
        queue: deque[Lot],
        result: SymbolMatchResult,
    ) -> None:
        epsilon = self.policy.zero_epsilon
        remaining = leg.quantity
        slices: list[tuple[Lot, Decimal]] = []

        # Oldest lot first
        while remaining > epsilon and queue:
            lot = queue[0]
            take = min(remaining, lot.quantity)
            lot.quantity -= take
            remaining -= take
            slices.append((lot, take))
            if lot.quantity <= epsilon:
                queue.popleft()

        matched = leg.quantity - remaining
        if remaining > epsilon:
            result.warnings.append(self._oversell(leg, remaining))

        allocations = allocate_pro_rata(leg.fees, [take for _, take in slices], self.policy.fee_quantum)

        pnl = ZERO
        cost = ZERO
        priced_cost_quantity = ZERO
        for (lot, take), fee_share in zip(slices, allocations):
            if lot.price is not None:
                cost += take * lot.price
                priced_cost_quantity += take
            if leg.price is None or lot.price is None:
                continue
            entry_fee = lot.fee_per_unit * take if self.policy.include_entry_fees_in_cost_basis else ZERO
            pnl += take * (leg.price - lot.price) - fee_share - entry_fee

        position.exit_quantity += matched
        if leg.price is not None:
            position.priced_exit_quantity += matched
            position.exit_proceeds += matched * leg.price
        position.realized_pnl += pnl
        position.fees += leg.fees
        position.touch(leg.trade_id)

        result.position_trades.append(
            PositionTrade(
                id=f"pt_exit_{leg.trade_id}_{position.id}",
                position_id=position.id,
                trade_id=leg.trade_id,
                role=TradeRole.EXIT,
                quantity=matched,
                price=leg.price,
                fees=leg.fees,
                timestamp=leg.timestamp,
                cost_basis_price=cost / priced_cost_quantity if priced_cost_quantity else None,
                realized_pnl=pnl,
            )
        )

    def _oversell(self, leg: TradeLeg, unmatched: Decimal) -> DataQualityWarning:
        log.warning(
            "oversell_detected",
            trade_id=leg.trade_id,
            wallet=leg.wallet_address[:8] + "...",
            symbol=leg.symbol,
            requested=str(leg.quantity),
            unmatched=str(unmatched),
            message="Disposal exceeds open quantity - missing or out-of-order trades",
        )
        return DataQualityWarning(
            code=WarningCode.OVERSELL,
            message=(
                f"Sell of {leg.quantity} {leg.symbol} in trade {leg.trade_id} exceeds holdings; "
                f"{unmatched} unmatched"
            ),
            trade_id=leg.trade_id,
            wallet_address=leg.wallet_address,
            symbol=leg.symbol,
            unmatched_quantity=unmatched,
        )
