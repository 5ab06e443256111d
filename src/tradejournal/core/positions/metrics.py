"""Position metrics aggregation.

Pure functions over already-reconstructed positions:
- calculate_position_metrics: dashboard metrics for one set of positions
- combine_position_metrics: merge per-wallet metrics with count weighting
- summarize_positions_by_symbol: per-symbol rollups

Win rate counts closed positions only. A closed position with exactly zero
net PnL is neither a win nor a loss and is left out of both numerator and
denominator.
"""

from collections import defaultdict
from collections.abc import Iterable, Sequence
from decimal import Decimal

import structlog

from tradejournal.data.models.position import (
    Position,
    PositionMetrics,
    PositionStatus,
    PositionSummary,
)

log = structlog.get_logger(__name__)

ZERO = Decimal(0)
HUNDRED = Decimal(100)


def _mean(total: Decimal, count: int) -> Decimal:
    return total / count if count else ZERO


def _win_loss(closed: Sequence[Position]) -> tuple[list[Position], list[Position]]:
    wins = [p for p in closed if p.net_pnl > 0]
    losses = [p for p in closed if p.net_pnl < 0]
    return wins, losses


def calculate_position_metrics(positions: Iterable[Position]) -> PositionMetrics:
    """Calculate aggregate metrics over a set of positions.

    Args:
        positions: Positions across any number of symbols and wallets.

    Returns:
        PositionMetrics. All fields are zero for an empty input.

    Example:
        metrics = calculate_position_metrics(result.positions)
        print(f"{metrics.position_win_rate:.1f}% of closed positions won")
    """
    positions = list(positions)
    if not positions:
        log.debug("no_positions_to_aggregate")
        return PositionMetrics()

    open_positions = [p for p in positions if p.status == PositionStatus.OPEN]
    closed = [p for p in positions if p.status == PositionStatus.CLOSED]
    wins, losses = _win_loss(closed)

    total_realized = sum((p.realized_pnl for p in positions), ZERO)
    total_unrealized = sum((p.unrealized_pnl for p in positions), ZERO)
    decided = len(wins) + len(losses)

    metrics = PositionMetrics(
        total_positions=len(positions),
        open_positions=len(open_positions),
        closed_positions=len(closed),
        winning_positions=len(wins),
        losing_positions=len(losses),
        total_realized_pnl=total_realized,
        total_unrealized_pnl=total_unrealized,
        total_net_pnl=total_realized + total_unrealized,
        position_win_rate=_mean(Decimal(len(wins)) * HUNDRED, decided),
        avg_position_duration=_mean(
            sum((p.duration_hours or ZERO for p in closed), ZERO), len(closed)
        ),
        avg_position_size=_mean(sum((p.entry_notional for p in positions), ZERO), len(positions)),
        largest_win=max((p.net_pnl for p in wins), default=ZERO),
        largest_loss=min((p.net_pnl for p in losses), default=ZERO),
        total_fees=sum((p.fees for p in positions), ZERO),
    )

    log.info(
        "position_metrics_calculated",
        total_positions=metrics.total_positions,
        closed_positions=metrics.closed_positions,
        win_rate=f"{metrics.position_win_rate:.1f}%",
        net_pnl=f"{metrics.total_net_pnl:.2f} USD",
    )
    return metrics


def combine_position_metrics(metrics_list: Iterable[PositionMetrics]) -> PositionMetrics:
    """Merge metrics computed separately (e.g. one per wallet).

    Rate-like fields are re-derived with count weighting: win rate from the
    pooled win/loss counts, duration weighted by closed positions, size
    weighted by total positions.
    """
    metrics_list = list(metrics_list)
    if not metrics_list:
        return PositionMetrics()

    total = sum(m.total_positions for m in metrics_list)
    closed = sum(m.closed_positions for m in metrics_list)
    wins = sum(m.winning_positions for m in metrics_list)
    losses = sum(m.losing_positions for m in metrics_list)
    realized = sum((m.total_realized_pnl for m in metrics_list), ZERO)
    unrealized = sum((m.total_unrealized_pnl for m in metrics_list), ZERO)

    return PositionMetrics(
        total_positions=total,
        open_positions=sum(m.open_positions for m in metrics_list),
        closed_positions=closed,
        winning_positions=wins,
        losing_positions=losses,
        total_realized_pnl=realized,
        total_unrealized_pnl=unrealized,
        total_net_pnl=realized + unrealized,
        position_win_rate=_mean(Decimal(wins) * HUNDRED, wins + losses),
        avg_position_duration=_mean(
            sum((m.avg_position_duration * m.closed_positions for m in metrics_list), ZERO), closed
        ),
        avg_position_size=_mean(
            sum((m.avg_position_size * m.total_positions for m in metrics_list), ZERO), total
        ),
        largest_win=max((m.largest_win for m in metrics_list), default=ZERO),
        largest_loss=min((m.largest_loss for m in metrics_list), default=ZERO),
        total_fees=sum((m.total_fees for m in metrics_list), ZERO),
    )


def summarize_positions_by_symbol(positions: Iterable[Position]) -> list[PositionSummary]:
    """Roll positions up per symbol, best net PnL first."""
    by_symbol: dict[str, list[Position]] = defaultdict(list)
    for position in positions:
        by_symbol[position.symbol].append(position)

    summaries: list[PositionSummary] = []
    for symbol, group in by_symbol.items():
        closed = [p for p in group if p.status == PositionStatus.CLOSED]
        wins, losses = _win_loss(closed)
        summaries.append(
            PositionSummary(
                symbol=symbol,
                token_address=group[0].token_address,
                total_positions=len(group),
                open_positions=len(group) - len(closed),
                total_realized_pnl=sum((p.realized_pnl for p in group), ZERO),
                total_unrealized_pnl=sum((p.unrealized_pnl for p in group), ZERO),
                win_rate=_mean(Decimal(len(wins)) * HUNDRED, len(wins) + len(losses)),
                avg_duration=_mean(sum((p.duration_hours or ZERO for p in closed), ZERO), len(closed)),
                total_volume=sum((p.entry_notional for p in group), ZERO),
            )
        )

    return sorted(summaries, key=lambda s: (-s.total_net_pnl, s.symbol))
