"""Price lookup integration point for unrealized PnL."""

from tradejournal.services.pricing.price_lookup import (
    CachedPriceLookup,
    PriceLookup,
    StaticPriceLookup,
)

__all__ = ["CachedPriceLookup", "PriceLookup", "StaticPriceLookup"]
