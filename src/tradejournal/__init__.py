"""TradeJournal: FIFO position reconstruction and PnL analytics for wallet trades."""

__version__ = "0.1.0"
