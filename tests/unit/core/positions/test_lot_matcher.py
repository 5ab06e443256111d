"""Unit tests for the FIFO LotMatcher.

Tests cover:
- FIFO consumption order across lots, including partial fills
- Position segmentation at zero balance
- Realized PnL with disposal and acquisition fees
- Oversell handling and epsilon-guarded closing
- Rejection of out-of-order input
"""

from dataclasses import replace
from decimal import Decimal

import pytest

from tests.factories.trade import at
from tradejournal.core.exceptions import InvalidTradeError
from tradejournal.core.positions.grouping import TradeLeg
from tradejournal.core.positions.lot_matcher import (
    LotMatcher,
    allocate_pro_rata,
    position_id_for,
)
from tradejournal.core.positions.policy import MatchingPolicy
from tradejournal.data.models.position import PositionStatus, TradeRole, WarningCode

WALLET = "9xQeWvG816bUx9EPjHmaT23yvVM2ZWbrrpZb9PusVFin"
SYMBOL = "TOK"


def leg(
    role: TradeRole,
    quantity: str,
    price: str | None,
    hours: float,
    fees: str = "0",
    trade_id: str | None = None,
) -> TradeLeg:
    return TradeLeg(
        trade_id=trade_id or f"{role.value}-{hours}",
        wallet_address=WALLET,
        symbol=SYMBOL,
        token_address=SYMBOL,
        role=role,
        quantity=Decimal(quantity),
        price=Decimal(price) if price is not None else None,
        fees=Decimal(fees),
        timestamp=at(hours),
        sequence=int(hours * 10),
    )


def entry(quantity: str, price: str | None, hours: float, fees: str = "0") -> TradeLeg:
    return leg(TradeRole.ENTRY, quantity, price, hours, fees)


def exit_(quantity: str, price: str | None, hours: float, fees: str = "0") -> TradeLeg:
    return leg(TradeRole.EXIT, quantity, price, hours, fees)


@pytest.mark.unit
class TestFifoOrdering:
    """Oldest lots are consumed first."""

    def test_disposal_consumes_oldest_lot_first(self, matcher: LotMatcher) -> None:
        """
        Given: L1 = 10 @ $1 (t=0), L2 = 10 @ $2 (t=1)
        When: Selling 12 @ $3 at t=2
        Then: All of L1 and 2 units of L2 are consumed
        """
        result = matcher.match(
            WALLET, SYMBOL, [entry("10", "1", 0), entry("10", "2", 1), exit_("12", "3", 2)]
        )

        l1, l2 = result.lots
        assert l1.quantity == 0
        assert l2.quantity == Decimal("8")
        assert result.open_lots == [l2]

        position = result.positions[0]
        # 10 x (3 - 1) + 2 x (3 - 2)
        assert position.realized_pnl == Decimal("22")
        assert position.status == PositionStatus.OPEN
        assert position.total_quantity == Decimal("8")

    def test_exit_record_carries_weighted_matched_cost(self, matcher: LotMatcher) -> None:
        result = matcher.match(
            WALLET, SYMBOL, [entry("10", "1", 0), entry("10", "2", 1), exit_("12", "3", 2)]
        )

        exits = [pt for pt in result.position_trades if pt.role == TradeRole.EXIT]
        assert len(exits) == 1
        assert exits[0].quantity == Decimal("12")
        assert exits[0].price == Decimal("3")
        assert exits[0].cost_basis_price == Decimal(14) / Decimal(12)
        assert exits[0].realized_pnl == Decimal("22")

    def test_lot_price_is_not_changed_by_partial_fill(self, matcher: LotMatcher) -> None:
        result = matcher.match(WALLET, SYMBOL, [entry("10", "1.25", 0), exit_("3", "2", 1)])

        lot = result.lots[0]
        assert lot.quantity == Decimal("7")
        assert lot.original_quantity == Decimal("10")
        assert lot.price == Decimal("1.25")


@pytest.mark.unit
class TestSegmentation:
    """A return to zero closes the position; the next buy opens a new one."""

    def test_buy_after_close_opens_new_position(self, matcher: LotMatcher) -> None:
        result = matcher.match(
            WALLET,
            SYMBOL,
            [entry("5", "1", 0), exit_("5", "2", 1), entry("3", "3", 2)],
        )

        first, second = result.positions
        assert first.status == PositionStatus.CLOSED
        assert first.close_date == at(1)
        assert first.realized_pnl == Decimal("5")
        assert second.status == PositionStatus.OPEN
        assert second.id != first.id
        assert second.open_date == at(2)
        assert second.close_date is None
        assert second.total_quantity == Decimal("3")
        assert second.avg_entry_price == Decimal("3")

    def test_closed_position_conserves_quantity(self, matcher: LotMatcher) -> None:
        result = matcher.match(
            WALLET,
            SYMBOL,
            [
                entry("3", "1", 0),
                entry("4.5", "2", 1),
                exit_("2", "2", 2),
                exit_("5.5", "3", 3),
            ],
        )

        position = result.positions[0]
        assert position.status == PositionStatus.CLOSED
        assert position.entry_quantity == position.exit_quantity == Decimal("7.5")
        assert position.total_quantity == 0

    def test_position_id_is_deterministic(self, matcher: LotMatcher) -> None:
        result = matcher.match(WALLET, SYMBOL, [entry("1", "1", 0)])

        assert result.positions[0].id == position_id_for(WALLET, SYMBOL, "entry-0")

    def test_dust_below_epsilon_closes_position(self, matcher: LotMatcher) -> None:
        result = matcher.match(
            WALLET, SYMBOL, [entry("1", "1", 0), exit_("0.9999999999", "1", 1)]
        )

        position = result.positions[0]
        assert position.status == PositionStatus.CLOSED
        assert position.total_quantity == 0
        assert result.warnings == []

    def test_larger_epsilon_closes_earlier(self) -> None:
        matcher = LotMatcher(MatchingPolicy(zero_epsilon=Decimal("0.01")))

        result = matcher.match(WALLET, SYMBOL, [entry("1", "1", 0), exit_("0.995", "1", 1)])

        assert result.positions[0].status == PositionStatus.CLOSED


@pytest.mark.unit
class TestAveragePrices:
    """Quantity-weighted entry and exit prices."""

    def test_avg_prices_are_quantity_weighted(self, matcher: LotMatcher) -> None:
        result = matcher.match(
            WALLET,
            SYMBOL,
            [
                entry("10", "1", 0),
                entry("30", "2", 1),
                exit_("20", "3", 2),
                exit_("20", "1", 3),
            ],
        )

        position = result.positions[0]
        assert position.avg_entry_price == Decimal("1.75")
        assert position.avg_exit_price == Decimal("2")

    def test_avg_exit_price_absent_without_disposal(self, matcher: LotMatcher) -> None:
        result = matcher.match(WALLET, SYMBOL, [entry("10", "1", 0)])

        assert result.positions[0].avg_exit_price is None

    def test_unpriced_lot_is_excluded_from_pnl(self, matcher: LotMatcher) -> None:
        """Quantity still moves; the unpriced slice contributes nothing."""
        result = matcher.match(
            WALLET,
            SYMBOL,
            [entry("5", None, 0), entry("5", "1", 1), exit_("10", "2", 2)],
        )

        position = result.positions[0]
        assert position.status == PositionStatus.CLOSED
        assert position.realized_pnl == Decimal("5")
        assert position.avg_entry_price == Decimal("1")

    def test_unpriced_disposal_is_excluded_from_pnl(self, matcher: LotMatcher) -> None:
        result = matcher.match(WALLET, SYMBOL, [entry("5", "1", 0), exit_("5", None, 1)])

        position = result.positions[0]
        assert position.status == PositionStatus.CLOSED
        assert position.realized_pnl == 0
        assert position.avg_exit_price is None

    def test_priced_quantity_counts_only_lots_with_cost(self, matcher: LotMatcher) -> None:
        result = matcher.match(
            WALLET,
            SYMBOL,
            [entry("4", "1", 0), entry("6", None, 1), exit_("3", "2", 2)],
        )

        position = result.positions[0]
        assert position.total_quantity == Decimal("7")
        assert position.priced_quantity == Decimal("1")

    def test_closed_position_has_no_priced_quantity(self, matcher: LotMatcher) -> None:
        result = matcher.match(WALLET, SYMBOL, [entry("5", "1", 0), exit_("5", "2", 1)])

        assert result.positions[0].priced_quantity == 0


@pytest.mark.unit
class TestFees:
    """Fee allocation and its effect on realized PnL."""

    def test_disposal_and_entry_fees_reduce_realized_pnl(self, matcher: LotMatcher) -> None:
        result = matcher.match(
            WALLET, SYMBOL, [entry("10", "1", 0, fees="1"), exit_("10", "2", 1, fees="2")]
        )

        position = result.positions[0]
        assert position.realized_pnl == Decimal("7")  # 10 - 2 - 1
        assert position.fees == Decimal("3")

    def test_entry_fees_can_be_left_out_of_cost_basis(self) -> None:
        matcher = LotMatcher(MatchingPolicy(include_entry_fees_in_cost_basis=False))

        result = matcher.match(
            WALLET, SYMBOL, [entry("10", "1", 0, fees="1"), exit_("10", "2", 1, fees="2")]
        )

        assert result.positions[0].realized_pnl == Decimal("8")
        assert result.positions[0].fees == Decimal("3")

    def test_partial_exit_uses_pro_rata_entry_fee(self, matcher: LotMatcher) -> None:
        result = matcher.match(
            WALLET, SYMBOL, [entry("10", "1", 0, fees="1"), exit_("4", "2", 1)]
        )

        # 4 x (2 - 1) - 4/10 of the entry fee
        assert result.positions[0].realized_pnl == Decimal("3.6")

    def test_disposal_fee_spread_over_touched_lots(self) -> None:
        matcher = LotMatcher(MatchingPolicy(fee_decimal_places=2))

        result = matcher.match(
            WALLET,
            SYMBOL,
            [entry("1", "1", 0), entry("2", "1", 1), exit_("3", "1", 2, fees="1")],
        )

        exit_record = next(pt for pt in result.position_trades if pt.role == TradeRole.EXIT)
        assert exit_record.fees == Decimal("1")
        assert exit_record.realized_pnl == Decimal("-1")

    def test_allocate_pro_rata_assigns_remainder_to_last_share(self) -> None:
        shares = allocate_pro_rata(Decimal("1"), [Decimal(1)] * 3, Decimal("0.01"))

        assert shares == [Decimal("0.33"), Decimal("0.33"), Decimal("0.34")]
        assert sum(shares) == Decimal("1")

    def test_allocate_pro_rata_weights_by_quantity(self) -> None:
        shares = allocate_pro_rata(Decimal("1"), [Decimal(1), Decimal(2)], Decimal("0.01"))

        assert shares == [Decimal("0.33"), Decimal("0.67")]

    def test_allocate_pro_rata_with_no_weights(self) -> None:
        assert allocate_pro_rata(Decimal("1"), [], Decimal("0.01")) == []


@pytest.mark.unit
class TestOversell:
    """Disposals beyond the open quantity never crash the matcher."""

    def test_oversell_is_capped_and_warned(self, matcher: LotMatcher) -> None:
        result = matcher.match(WALLET, SYMBOL, [entry("5", "1", 0), exit_("8", "2", 1)])

        position = result.positions[0]
        assert position.status == PositionStatus.CLOSED
        assert position.realized_pnl == Decimal("5")
        assert position.exit_quantity == Decimal("5")

        assert len(result.warnings) == 1
        warning = result.warnings[0]
        assert warning.code == WarningCode.OVERSELL
        assert warning.unmatched_quantity == Decimal("3")
        assert all(lot.quantity >= 0 for lot in result.lots)

    def test_sell_without_holdings_only_warns(self, matcher: LotMatcher) -> None:
        result = matcher.match(WALLET, SYMBOL, [exit_("5", "2", 0), entry("1", "1", 1)])

        assert [w.code for w in result.warnings] == [WarningCode.OVERSELL]
        assert result.warnings[0].unmatched_quantity == Decimal("5")
        assert len(result.positions) == 1
        assert result.positions[0].total_quantity == Decimal("1")
        assert all(pt.role == TradeRole.ENTRY for pt in result.position_trades)


@pytest.mark.unit
class TestInputChecks:
    """The matcher refuses streams it cannot replay."""

    def test_out_of_order_legs_raise(self, matcher: LotMatcher) -> None:
        with pytest.raises(InvalidTradeError, match="chronological"):
            matcher.match(WALLET, SYMBOL, [entry("1", "1", 2), exit_("1", "1", 1)])

    def test_same_time_legs_out_of_sequence_raise(self, matcher: LotMatcher) -> None:
        first = entry("1", "1", 1)
        second = replace(exit_("1", "1", 1), sequence=first.sequence - 1)

        with pytest.raises(InvalidTradeError, match="chronological") as exc_info:
            matcher.match(WALLET, SYMBOL, [first, second])

        assert exc_info.value.trade_id == second.trade_id

    def test_foreign_symbol_raises(self, matcher: LotMatcher) -> None:
        with pytest.raises(InvalidTradeError):
            matcher.match(WALLET, "OTHER", [entry("1", "1", 0)])

    def test_empty_stream_yields_nothing(self, matcher: LotMatcher) -> None:
        result = matcher.match(WALLET, SYMBOL, [])

        assert result.positions == []
        assert result.position_trades == []
        assert result.lots == []
