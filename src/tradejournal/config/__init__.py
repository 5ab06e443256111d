"""Configuration module for TradeJournal.

Usage:
    from tradejournal.config import get_settings

    settings = get_settings()  # Cached singleton
    print(settings.zero_epsilon)
"""

from tradejournal.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
