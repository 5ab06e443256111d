"""Current-price lookups injected into the position engine.

The engine never fetches prices; callers hand it a callable mapping a price
key (symbol, or full mint address for unknown tokens) to a USD price (or None
when unavailable).
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Mapping
from decimal import Decimal
from typing import TYPE_CHECKING

import structlog
from cachetools import TTLCache

from tradejournal.constants.positions import (
    MIN_ADDRESS_LENGTH,
    PRICE_CACHE_MAX_SIZE,
    PRICE_CACHE_TTL_SECONDS,
)

if TYPE_CHECKING:
    from tradejournal.config.settings import Settings

logger = structlog.get_logger(__name__)

PriceLookup = Callable[[str], Decimal | None]


def normalize_price_key(key: str) -> str:
    """Upper-case tickers; mint addresses are case-sensitive base58."""
    key = key.strip()
    return key if len(key) >= MIN_ADDRESS_LENGTH else key.upper()


class StaticPriceLookup:
    """Serves prices from a fixed symbol -> price mapping."""

    def __init__(self, prices: Mapping[str, Decimal | float | str]) -> None:
        self._prices = {
            normalize_price_key(symbol): Decimal(str(price)) for symbol, price in prices.items()
        }

    def __call__(self, symbol: str) -> Decimal | None:
        return self._prices.get(normalize_price_key(symbol))


class CachedPriceLookup:
    """
    TTL-cached wrapper around another price lookup.

    Failures of the wrapped source are logged and reported as unavailable,
    so a flaky price feed degrades unrealized PnL to zero rather than
    failing a recompute. Unavailable results are not cached.
    """

    def __init__(
        self,
        source: PriceLookup,
        ttl_seconds: int = PRICE_CACHE_TTL_SECONDS,
        max_size: int = PRICE_CACHE_MAX_SIZE,
    ) -> None:
        self._source = source
        self._cache: TTLCache[str, Decimal] = TTLCache(maxsize=max_size, ttl=ttl_seconds)
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    @classmethod
    def from_settings(cls, source: PriceLookup, settings: Settings) -> CachedPriceLookup:
        """Wrap ``source`` with the cache TTL and capacity from settings."""
        return cls(
            source,
            ttl_seconds=settings.price_cache_ttl_seconds,
            max_size=settings.price_cache_max_size,
        )

    def __call__(self, symbol: str) -> Decimal | None:
        key = normalize_price_key(symbol)
        with self._lock:
            cached = self._cache.get(key)
            if cached is not None:
                self._hits += 1
                return cached
            self._misses += 1

        try:
            price = self._source(symbol)
        except Exception as e:
            logger.warning("price_lookup_failed", symbol=symbol, error=str(e))
            return None

        if price is None or price < 0:
            logger.debug("price_unavailable", symbol=symbol)
            return None

        price = Decimal(str(price))
        with self._lock:
            self._cache[key] = price
        return price

    def clear(self) -> None:
        """Drop all cached prices."""
        with self._lock:
            self._cache.clear()

    def get_stats(self) -> dict[str, int]:
        """Get cache statistics."""
        with self._lock:
            return {"size": len(self._cache), "hits": self._hits, "misses": self._misses}
