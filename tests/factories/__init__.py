"""Test data factories using factory_boy.

These factories generate realistic test data for TradeJournal models.
"""

from tests.factories.trade import TradeFactory, at, buy, generate_valid_solana_address, sell

__all__ = [
    "TradeFactory",
    "at",
    "buy",
    "generate_valid_solana_address",
    "sell",
]
