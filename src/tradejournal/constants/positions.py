"""Position engine constants."""

import uuid
from decimal import Decimal
from typing import Final

# Numeric policy
DEFAULT_ZERO_EPSILON: Final[Decimal] = Decimal("1e-9")
DEFAULT_FEE_DECIMAL_PLACES: Final[int] = 8
SECONDS_PER_HOUR: Final[Decimal] = Decimal(3600)

# Namespace for deterministic position ids
POSITION_ID_NAMESPACE: Final[uuid.UUID] = uuid.UUID("3b0f6c2e-5d1a-4e8b-9f27-6a4c1d8e0b53")

# Swap legs in these symbols are treated as cash and not tracked as positions
DEFAULT_QUOTE_SYMBOLS: Final[tuple[str, ...]] = ("USD", "USDC", "USDT")

# Current price cache
PRICE_CACHE_TTL_SECONDS: Final[int] = 300  # 5 minutes
PRICE_CACHE_MAX_SIZE: Final[int] = 5000

# Well-known Solana mints
KNOWN_TOKEN_SYMBOLS: Final[dict[str, str]] = {
    "So11111111111111111111111111111111111111112": "SOL",
    "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v": "USDC",
    "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB": "USDT",
    "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263": "BONK",
    "JUPyiwrYJFskUPiHa7hkeR8VUtAeFoSYbKedZNsDvCN": "JUP",
    "mSoLzYCxHdYgdzU16g5QSh3i5K3z3KZK7ytfqcJm7So": "MSOL",
}

# Addresses shorter than this are treated as symbols rather than mints
MIN_ADDRESS_LENGTH: Final[int] = 32
