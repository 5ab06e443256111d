"""Symbol/token grouping for the position engine.

Splits each trade into the per-symbol legs the lot matcher consumes. A swap
between two tracked tokens becomes an exit leg on one symbol and an entry leg
on the other; both legs keep the trade id, timestamp and sequence number of
the source trade so wallet-level ordering survives the split.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

import structlog

from tradejournal.constants.positions import KNOWN_TOKEN_SYMBOLS, MIN_ADDRESS_LENGTH
from tradejournal.core.exceptions import InvalidTradeError
from tradejournal.data.models.position import DataQualityWarning, TradeRole, WarningCode
from tradejournal.data.models.trade import Trade, TradeType

log = structlog.get_logger(__name__)

SymbolKey = tuple[str, str]  # (wallet_address, symbol)


class TokenRegistry:
    """Resolves raw token identifiers (mint addresses or tickers) to symbols.

    Example:
        registry = TokenRegistry({"7xKX...": "WIF"})
        registry.resolve("So11111111111111111111111111111111111111112")  # "SOL"
        registry.resolve("bonk")  # "BONK"
    """

    def __init__(self, overrides: Mapping[str, str] | None = None) -> None:
        self._symbols: dict[str, str] = dict(KNOWN_TOKEN_SYMBOLS)
        if overrides:
            self._symbols.update({k: v.upper() for k, v in overrides.items()})

    def resolve(self, token: str) -> str | None:
        """Return the display symbol for a token, None if it is blank."""
        if not token or not token.strip():
            return None
        token = token.strip()
        known = self._symbols.get(token)
        if known:
            return known
        if len(token) >= MIN_ADDRESS_LENGTH:
            return f"{token[:4]}...{token[-4:]}"
        return token.upper()

    def price_key(self, token: str) -> str:
        """Key for current-price lookups.

        Known mints and tickers are priced by symbol; unknown mints by their
        full address, since abbreviated symbols are not unique.
        """
        token = token.strip()
        if token in self._symbols or len(token) < MIN_ADDRESS_LENGTH:
            return self.resolve(token) or token
        return token


@dataclass(frozen=True)
class TradeLeg:
    """One side of a trade, as seen by a single symbol's lot queue."""

    trade_id: str
    wallet_address: str
    symbol: str
    token_address: str
    role: TradeRole
    quantity: Decimal
    price: Decimal | None
    fees: Decimal
    timestamp: datetime
    sequence: int

    @property
    def is_priced(self) -> bool:
        return self.price is not None


def _ambiguous(trade: Trade, message: str, symbol: str | None = None) -> DataQualityWarning:
    log.warning(
        "ambiguous_symbol",
        trade_id=trade.id,
        wallet=trade.wallet_address[:8] + "...",
        detail=message,
    )
    return DataQualityWarning(
        code=WarningCode.AMBIGUOUS_SYMBOL,
        message=message,
        trade_id=trade.id,
        wallet_address=trade.wallet_address,
        symbol=symbol,
    )


def split_trade_legs(
    trade: Trade,
    sequence: int,
    registry: TokenRegistry,
    quote_symbols: Iterable[str] = (),
) -> tuple[list[TradeLeg], list[DataQualityWarning]]:
    """Split a trade into its tracked legs.

    Args:
        trade: Trade to split. Must already carry a block time.
        sequence: Wallet-level position of the trade after ordering.
        registry: Token symbol resolver.
        quote_symbols: Symbols treated as cash for swaps.

    Returns:
        Tracked legs (zero, one or two) and any data-quality warnings.
    """
    if trade.block_time is None:
        raise InvalidTradeError("Trade has no block time", trade_id=trade.id)
    quotes = {s.upper() for s in quote_symbols}
    warnings: list[DataQualityWarning] = []

    # (role, token, quantity, price)
    sides: list[tuple[TradeRole, str, Decimal, Decimal | None]]
    match trade.type:
        case TradeType.BUY:
            sides = [(TradeRole.ENTRY, trade.token_out, trade.amount_out, trade.price_out)]
        case TradeType.SELL:
            sides = [(TradeRole.EXIT, trade.token_in, trade.amount_in, trade.price_in)]
        case TradeType.SWAP:
            in_symbol = registry.resolve(trade.token_in)
            out_symbol = registry.resolve(trade.token_out)
            if in_symbol is None or out_symbol is None or in_symbol == out_symbol:
                warnings.append(
                    _ambiguous(
                        trade,
                        f"Swap {trade.signature or trade.id} has no distinct symbols "
                        f"({trade.token_in!r} -> {trade.token_out!r})",
                        symbol=in_symbol or out_symbol,
                    )
                )
                return [], warnings
            sides = [
                (TradeRole.EXIT, trade.token_in, trade.amount_in, trade.price_in),
                (TradeRole.ENTRY, trade.token_out, trade.amount_out, trade.price_out),
            ]
            sides = [s for s in sides if registry.resolve(s[1]) not in quotes]

    resolved: list[tuple[TradeRole, str, str, Decimal, Decimal | None]] = []
    for role, token, quantity, price in sides:
        symbol = registry.resolve(token)
        if symbol is None:
            warnings.append(
                _ambiguous(trade, f"Trade {trade.signature or trade.id} has a blank {role.value} token")
            )
            continue
        if quantity <= 0:
            log.debug("zero_quantity_leg_skipped", trade_id=trade.id, symbol=symbol)
            continue
        resolved.append((role, token.strip(), symbol, quantity, price))

    if not resolved:
        return [], warnings

    # Swap legs share the trade fee
    fee_share = trade.fees / len(resolved)
    legs: list[TradeLeg] = []
    for role, token, symbol, quantity, price in resolved:
        if price is None:
            warnings.append(
                DataQualityWarning(
                    code=WarningCode.MISSING_PRICE,
                    message=(
                        f"Trade {trade.signature or trade.id} has no {role.value} price for "
                        f"{symbol}; quantity is tracked but excluded from PnL"
                    ),
                    trade_id=trade.id,
                    wallet_address=trade.wallet_address,
                    symbol=symbol,
                )
            )
        legs.append(
            TradeLeg(
                trade_id=trade.id,
                wallet_address=trade.wallet_address,
                symbol=symbol,
                token_address=token,
                role=role,
                quantity=quantity,
                price=price,
                fees=fee_share,
                timestamp=trade.block_time,
                sequence=sequence,
            )
        )
    return legs, warnings


def group_trade_legs(
    trades: Iterable[Trade],
    registry: TokenRegistry,
    quote_symbols: Iterable[str] = (),
) -> tuple[dict[SymbolKey, list[TradeLeg]], list[DataQualityWarning]]:
    """Bucket already-ordered trades into per-(wallet, symbol) leg streams.

    Args:
        trades: Trades in processing order (see ``order_trades``).
        registry: Token symbol resolver.
        quote_symbols: Symbols treated as cash for swaps.

    Returns:
        Mapping of (wallet_address, symbol) to legs in trade order, plus
        warnings raised while splitting.
    """
    quotes = tuple(quote_symbols)
    buckets: dict[SymbolKey, list[TradeLeg]] = defaultdict(list)
    warnings: list[DataQualityWarning] = []

    for sequence, trade in enumerate(trades):
        if not trade.success:
            log.debug("failed_trade_skipped", trade_id=trade.id)
            continue
        legs, leg_warnings = split_trade_legs(trade, sequence, registry, quotes)
        warnings.extend(leg_warnings)
        for leg in legs:
            buckets[(leg.wallet_address, leg.symbol)].append(leg)

    return dict(buckets), warnings
