#!/usr/bin/env python3
"""
Script to rebuild positions from an exported trade log.

Reads a JSON array of trade records (the feed's export format, snake_case
fields as in ``tradejournal.data.models.trade.Trade``), replays them through
the FIFO position engine and prints positions, warnings and metrics.

Usage:
    # Replay every wallet in the export
    uv run python scripts/replay_positions.py trades.json

    # One wallet, valuing open positions at fixed prices
    uv run python scripts/replay_positions.py trades.json --wallet <ADDRESS> --price BONK=0.00002

    # Only closed positions
    uv run python scripts/replay_positions.py trades.json --status closed
"""

import argparse
import json
import sys
from decimal import Decimal
from pathlib import Path

from pydantic import TypeAdapter

from tradejournal.config.logging import configure_logging, get_logger
from tradejournal.config.settings import get_settings
from tradejournal.core.exceptions import TradeJournalError
from tradejournal.core.positions import (
    PositionEngine,
    calculate_position_metrics,
    filter_positions,
    summarize_positions_by_symbol,
)
from tradejournal.data.models import PositionFilter, PositionStatus, Trade
from tradejournal.services.pricing import CachedPriceLookup, StaticPriceLookup

log = get_logger(__name__)


def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Rebuild FIFO positions from a trade log")
    parser.add_argument("trades_file", type=Path, help="JSON file with an array of trades")
    parser.add_argument("--wallet", help="Only replay this wallet address")
    parser.add_argument(
        "--status", choices=[s.value for s in PositionStatus], help="Only show positions with this status"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log engine debug events")
    parser.add_argument(
        "--price",
        action="append",
        default=[],
        metavar="SYMBOL=USD",
        help="Current price for unrealized PnL (repeatable)",
    )
    return parser.parse_args()


def parse_prices(pairs: list[str]) -> dict[str, Decimal]:
    prices: dict[str, Decimal] = {}
    for pair in pairs:
        symbol, _, value = pair.partition("=")
        if not symbol or not value:
            raise ValueError(f"Invalid --price {pair!r}, expected SYMBOL=USD")
        prices[symbol.upper()] = Decimal(value)
    return prices


def main() -> int:
    """Main entry point."""
    args = parse_args()
    configure_logging("DEBUG" if args.verbose else None)

    try:
        raw = json.loads(args.trades_file.read_text(encoding="utf-8"))
        trades = TypeAdapter(list[Trade]).validate_python(raw)
        if args.wallet:
            trades = [t for t in trades if t.wallet_address == args.wallet]

        engine = PositionEngine()
        prices = CachedPriceLookup.from_settings(
            StaticPriceLookup(parse_prices(args.price)), get_settings()
        )
        result = engine.calculate(trades, price_lookup=prices)
        positions = filter_positions(
            result.positions,
            PositionFilter(status=PositionStatus(args.status) if args.status else None),
        )
    except (OSError, ValueError, TradeJournalError) as e:
        log.error("replay_failed", error=str(e))
        print(f"\n[ERROR] {e}")
        return 1

    print("\n" + "=" * 60)
    print(f"[POSITIONS] {len(positions)} of {len(result.positions)}")
    print("=" * 60)
    for p in positions:
        print(
            f"{p.open_date:%Y-%m-%d %H:%M} {p.symbol:<12} {p.status.value:<6} "
            f"qty={p.total_quantity:<14} entry={p.avg_entry_price:.6f} "
            f"realized={p.realized_pnl:+.2f} unrealized={p.unrealized_pnl:+.2f}"
        )

    if result.warnings:
        print(f"\n[WARN] {len(result.warnings)} data-quality warnings")
        for w in result.warnings:
            print(f"  - {w.code.value}: {w.message}")

    print("\n[SYMBOLS]")
    for s in summarize_positions_by_symbol(positions):
        print(f"  {s.symbol:<12} positions={s.total_positions} net={s.total_net_pnl:+.2f}")

    metrics = calculate_position_metrics(positions)
    print("\n[METRICS]")
    print(metrics.model_dump_json(indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
