"""Trade and position filtering, and manual grouping validation."""

from collections import Counter
from collections.abc import Iterable, Mapping, Sequence

import structlog
from pydantic import BaseModel, Field

from tradejournal.data.models.position import Position, PositionFilter
from tradejournal.data.models.trade import Trade, TradeFilter

log = structlog.get_logger(__name__)


class GroupingValidation(BaseModel):
    """Outcome of checking a manual trade -> position grouping."""

    valid: bool
    errors: list[str] = Field(default_factory=list)


def filter_trades(trades: Iterable[Trade], trade_filter: TradeFilter | None = None) -> list[Trade]:
    """Apply a caller-side filter to a trade log.

    Trades without a block time pass the date range check.
    """
    trades = list(trades)
    if trade_filter is None:
        return trades

    selected: list[Trade] = []
    for trade in trades:
        if trade_filter.token and trade_filter.token not in (trade.token_in, trade.token_out):
            continue
        if trade_filter.trade_type and trade.type != trade_filter.trade_type:
            continue
        if trade.block_time is not None:
            if trade_filter.start_date and trade.block_time < trade_filter.start_date:
                continue
            if trade_filter.end_date and trade.block_time > trade_filter.end_date:
                continue
        selected.append(trade)
    return selected


def filter_positions(
    positions: Iterable[Position], position_filter: PositionFilter | None = None
) -> list[Position]:
    """Filter positions by wallet, symbol, status, open date and net PnL.

    Args:
        positions: Positions to filter (order is preserved).
        position_filter: Criteria; None returns everything.

    Returns:
        Matching positions after offset/limit paging.
    """
    positions = list(positions)
    if position_filter is None:
        return positions

    f = position_filter
    symbol = f.symbol.lower() if f.symbol else None
    selected = [
        p
        for p in positions
        if (f.wallet_address is None or p.wallet_address == f.wallet_address)
        and (symbol is None or p.symbol.lower() == symbol)
        and (f.status is None or p.status == f.status)
        and (f.start_date is None or p.open_date >= f.start_date)
        and (f.end_date is None or p.open_date <= f.end_date)
        and (f.min_pnl is None or p.net_pnl >= f.min_pnl)
        and (f.max_pnl is None or p.net_pnl <= f.max_pnl)
    ]

    selected = selected[f.offset :]
    if f.limit is not None:
        selected = selected[: f.limit]
    return selected


def validate_position_grouping(
    trades: Sequence[Trade], manual_grouping: Mapping[str, Sequence[str]]
) -> GroupingValidation:
    """Check a user-supplied grouping of trades into positions.

    Args:
        trades: The wallet's trades.
        manual_grouping: Position id -> trade ids assigned to it.

    Returns:
        GroupingValidation listing every problem found.
    """
    errors: list[str] = []
    by_id = {t.id: t for t in trades}
    grouped = [trade_id for ids in manual_grouping.values() for trade_id in ids]

    grouped_ids = set(grouped)
    missing = [t.id for t in trades if t.id not in grouped_ids]
    if missing:
        errors.append(f"Missing trades in grouping: {', '.join(missing)}")

    duplicates = sorted(trade_id for trade_id, count in Counter(grouped).items() if count > 1)
    if duplicates:
        errors.append(f"Duplicate trades in grouping: {', '.join(duplicates)}")

    unknown = sorted({trade_id for trade_id in grouped if trade_id not in by_id})
    if unknown:
        errors.append(f"Unknown trades in grouping: {', '.join(unknown)}")

    for position_id, trade_ids in manual_grouping.items():
        members = [by_id[t] for t in trade_ids if t in by_id]

        tokens = {token for t in members for token in (t.token_in, t.token_out)}
        if len(tokens) > 2:
            errors.append(
                f"Position {position_id} contains inconsistent tokens: {', '.join(sorted(tokens))}"
            )

        wallets = {t.wallet_address for t in members}
        if len(wallets) > 1:
            errors.append(f"Position {position_id} spans multiple wallets")

    if errors:
        log.info("manual_grouping_rejected", error_count=len(errors))

    return GroupingValidation(valid=not errors, errors=errors)
