"""Position engine: trade log in, positions out.

Orchestrates a full recompute:
1. Validate the batch (fatal errors reject it before any processing)
2. Order trades by block time with a deterministic tie-break
3. Split trades into per-(wallet, symbol) leg streams
4. Replay each stream through the FIFO lot matcher (optionally in threads)
5. Value open positions with the injected current-price lookup

The engine performs no I/O and keeps no state between calls; replaying the
same trades always yields the same positions.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import structlog

from tradejournal.config.settings import get_settings
from tradejournal.core.exceptions import InvalidTradeError
from tradejournal.core.positions.grouping import SymbolKey, TokenRegistry, TradeLeg, group_trade_legs
from tradejournal.core.positions.lot_matcher import LotMatcher, SymbolMatchResult
from tradejournal.core.positions.policy import MatchingPolicy, TieBreakPolicy
from tradejournal.data.models.position import (
    DataQualityWarning,
    Position,
    PositionCalculationResult,
    PositionStatus,
    WarningCode,
)
from tradejournal.data.models.trade import Trade, TradeType
from tradejournal.services.pricing.price_lookup import PriceLookup

log = structlog.get_logger(__name__)

# Same-timestamp rank under TieBreakPolicy.ENTRIES_FIRST
_ENTRY_RANK = {TradeType.BUY: 0, TradeType.SWAP: 1, TradeType.SELL: 2}


def validate_trades(trades: Sequence[Trade]) -> None:
    """Reject a batch that cannot be replayed.

    Trades normally arrive validated by the model, but records built with
    ``model_construct`` skip validation, so the numeric checks are repeated.

    Raises:
        InvalidTradeError: On a missing block time, mixed naive/aware block
            times, or a negative quantity, price or fee.
    """
    aware: bool | None = None
    for trade in trades:
        if trade.block_time is None:
            raise InvalidTradeError(f"Trade {trade.id} has no block time", trade_id=trade.id)
        is_aware = trade.block_time.tzinfo is not None
        if aware is None:
            aware = is_aware
        elif aware != is_aware:
            raise InvalidTradeError(
                "Cannot order trades mixing naive and timezone-aware block times",
                trade_id=trade.id,
            )
        for name in ("amount_in", "amount_out", "fees", "price_in", "price_out"):
            value = getattr(trade, name)
            if value is not None and value < 0:
                raise InvalidTradeError(
                    f"Trade {trade.id} has negative {name}: {value}", trade_id=trade.id
                )


def order_trades(trades: Sequence[Trade], tie_break: TieBreakPolicy) -> list[Trade]:
    """Sort trades by block time; ties resolved by the tie-break policy.

    Input position is always the final key, so ordering is total and
    deterministic.
    """
    indexed = list(enumerate(trades))

    def sort_key(item: tuple[int, Trade]) -> tuple:
        index, trade = item
        rank = _ENTRY_RANK[trade.type] if tie_break == TieBreakPolicy.ENTRIES_FIRST else 0
        return (trade.block_time, rank, index)

    return [trade for _, trade in sorted(indexed, key=sort_key)]


class PositionEngine:
    """Stateless FIFO position engine.

    Example:
        engine = PositionEngine(MatchingPolicy())
        result = engine.calculate(trades, price_lookup=StaticPriceLookup({"BONK": "0.02"}))
        for position in result.open_positions:
            print(position.symbol, position.unrealized_pnl)
    """

    def __init__(
        self,
        policy: MatchingPolicy | None = None,
        registry: TokenRegistry | None = None,
    ) -> None:
        self.policy = policy or MatchingPolicy.from_settings(get_settings())
        self.registry = registry or TokenRegistry(self.policy.token_symbol_overrides)
        self._matcher = LotMatcher(self.policy)

    def calculate(
        self,
        trades: Iterable[Trade],
        price_lookup: PriceLookup | None = None,
    ) -> PositionCalculationResult:
        """Reconstruct positions for every (wallet, symbol) in the trade log.

        Args:
            trades: Trade records for one or more wallets, in any order.
            price_lookup: Optional USD price callable used for unrealized
                PnL, keyed by symbol (full mint address for unknown tokens).
                Unavailable prices and failing lookups value open positions
                at 0.

        Returns:
            PositionCalculationResult ordered by wallet, then symbol, then
            open date.

        Raises:
            InvalidTradeError: If the batch cannot be replayed.
        """
        batch = list(trades)
        validate_trades(batch)
        ordered = order_trades(batch, self.policy.tie_break)

        streams, warnings = group_trade_legs(ordered, self.registry, self.policy.quote_symbols)
        matched = self._match_streams(streams)

        result = PositionCalculationResult(warnings=list(warnings))
        for symbol_result in matched:
            result.positions.extend(symbol_result.positions)
            result.position_trades.extend(symbol_result.position_trades)
            result.warnings.extend(symbol_result.warnings)

        result.positions, valuation_warnings = self._value_open_positions(
            result.positions, price_lookup
        )
        result.warnings.extend(valuation_warnings)

        log.info(
            "positions_calculated",
            trades=len(batch),
            streams=len(streams),
            positions=len(result.positions),
            open_positions=len(result.open_positions),
            warnings=len(result.warnings),
        )
        return result

    def calculate_symbol(
        self,
        wallet_address: str,
        symbol: str,
        trades: Iterable[Trade],
        price_lookup: PriceLookup | None = None,
    ) -> PositionCalculationResult:
        """Recompute a single (wallet, symbol) pair, e.g. after a sync.

        Legs for other wallets or symbols are ignored; warnings raised while
        splitting trades are kept only when they concern this pair.
        """
        full = self.calculate(
            (t for t in trades if t.wallet_address == wallet_address), price_lookup
        )
        key = symbol.upper()
        positions = [p for p in full.positions if p.symbol.upper() == key]
        position_ids = {p.id for p in positions}
        return PositionCalculationResult(
            positions=positions,
            position_trades=[pt for pt in full.position_trades if pt.position_id in position_ids],
            warnings=[w for w in full.warnings if w.symbol is None or w.symbol.upper() == key],
        )

    def _match_streams(self, streams: dict[SymbolKey, list[TradeLeg]]) -> list[SymbolMatchResult]:
        keys = sorted(streams)
        if self.policy.max_workers > 1 and len(keys) > 1:
            with ThreadPoolExecutor(
                max_workers=min(self.policy.max_workers, len(keys)),
                thread_name_prefix="positions",
            ) as pool:
                return list(pool.map(lambda key: self._matcher.match(*key, streams[key]), keys))
        return [self._matcher.match(wallet, symbol, streams[(wallet, symbol)]) for wallet, symbol in keys]

    def _value_open_positions(
        self,
        positions: list[Position],
        price_lookup: PriceLookup | None,
    ) -> tuple[list[Position], list[DataQualityWarning]]:
        """Set current price and unrealized PnL on open positions.

        Only quantity held in priced lots is valued; holdings acquired
        without a price stay at zero unrealized PnL and are reported.
        """
        if price_lookup is None:
            return positions, []

        prices: dict[str, Decimal | None] = {}
        valued: list[Position] = []
        warnings: list[DataQualityWarning] = []
        for position in positions:
            if position.status != PositionStatus.OPEN:
                valued.append(position)
                continue

            key = self.registry.price_key(position.token_address)
            if key not in prices:
                prices[key] = self._lookup_price(price_lookup, key)
            price = prices[key]
            if price is None:
                log.debug("current_price_unavailable", symbol=position.symbol, price_key=key)
                valued.append(position)
                continue

            unpriced = position.total_quantity - position.priced_quantity
            if not self.policy.is_zero(unpriced):
                warnings.append(
                    DataQualityWarning(
                        code=WarningCode.MISSING_PRICE,
                        message=(
                            f"{unpriced} {position.symbol} in position {position.id} has no cost "
                            "basis; excluded from unrealized PnL"
                        ),
                        trade_id=position.trade_ids[0],
                        wallet_address=position.wallet_address,
                        symbol=position.symbol,
                        unmatched_quantity=unpriced,
                    )
                )

            unrealized = (price - position.avg_entry_price) * position.priced_quantity
            valued.append(
                position.model_copy(update={"current_price": price, "unrealized_pnl": unrealized})
            )
        return valued, warnings

    @staticmethod
    def _lookup_price(price_lookup: PriceLookup, key: str) -> Decimal | None:
        try:
            return price_lookup(key)
        except Exception as e:
            log.warning("price_lookup_failed", price_key=key, error=str(e))
            return None



def calculate_positions(
    trades: Iterable[Trade],
    price_lookup: PriceLookup | None = None,
    policy: MatchingPolicy | None = None,
) -> PositionCalculationResult:
    """Convenience wrapper: build an engine and run one recompute."""
    return PositionEngine(policy).calculate(trades, price_lookup)
