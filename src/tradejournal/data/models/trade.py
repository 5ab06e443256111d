"""Trade-related Pydantic models.

This module defines the trade records supplied by the import/sync feed.
Trades are immutable once recorded; positions are always derived from them.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TradeType(str, Enum):
    """Trade type enum for wallet activity."""

    BUY = "buy"
    SELL = "sell"
    SWAP = "swap"


class Trade(BaseModel):
    """A single recorded trade from a linked wallet.

    Attributes:
        id: Unique trade identifier.
        signature: On-chain transaction signature (hash).
        wallet_address: Wallet that executed the trade.
        token_in: Token leaving the wallet (address or symbol).
        token_out: Token entering the wallet (address or symbol).
        amount_in: Quantity of token_in given up.
        amount_out: Quantity of token_out received.
        price_in: USD unit price of token_in at execution, if known.
        price_out: USD unit price of token_out at execution, if known.
        fees: Total fees paid in USD.
        type: buy, sell or swap.
        block_time: Execution time. Trades without one cannot be ordered.
        success: False for failed transactions, which carry no balance change.

    Example:
        trade = Trade(
            id="t1",
            signature="5j7s8k2d...",
            wallet_address="9xQeWvG816bUx9EPjHmaT23yvVM2ZWbrrpZb9PusVFin",
            token_in="USDC",
            token_out="BONK",
            amount_in=Decimal("10"),
            amount_out=Decimal("1000"),
            price_in=Decimal("1"),
            price_out=Decimal("0.01"),
            type=TradeType.BUY,
            block_time=datetime(2024, 1, 1, tzinfo=UTC),
        )
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Unique trade identifier")
    signature: str = Field(default="", description="Transaction signature")
    wallet_address: str = Field(description="Wallet that executed the trade")
    token_in: str = Field(description="Token leaving the wallet")
    token_out: str = Field(description="Token entering the wallet")
    amount_in: Decimal = Field(default=Decimal(0), description="Quantity of token_in")
    amount_out: Decimal = Field(default=Decimal(0), description="Quantity of token_out")
    price_in: Decimal | None = Field(default=None, description="USD unit price of token_in")
    price_out: Decimal | None = Field(default=None, description="USD unit price of token_out")
    fees: Decimal = Field(default=Decimal(0), description="Total fees in USD")
    type: TradeType = Field(description="buy, sell or swap")
    block_time: datetime | None = Field(default=None, description="Execution time")
    success: bool = Field(default=True, description="False for failed transactions")
    dex: str | None = Field(default=None, description="Venue the trade executed on")

    @field_validator("id", "wallet_address")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        """Validate identifiers are not empty.

        Raises:
            ValueError: If the value is empty.
        """
        if not v or not v.strip():
            msg = "Value cannot be empty"
            raise ValueError(msg)
        return v.strip()

    @field_validator("amount_in", "amount_out", "fees")
    @classmethod
    def validate_amounts(cls, v: Decimal) -> Decimal:
        """Validate amounts and fees are non-negative.

        Raises:
            ValueError: If amount is negative.
        """
        if v < 0:
            msg = f"Amount must be non-negative, got {v}"
            raise ValueError(msg)
        return v

    @field_validator("price_in", "price_out")
    @classmethod
    def validate_prices(cls, v: Decimal | None) -> Decimal | None:
        """Validate prices are non-negative when present.

        Raises:
            ValueError: If price is negative.
        """
        if v is not None and v < 0:
            msg = f"Price must be non-negative, got {v}"
            raise ValueError(msg)
        return v


class TradeFilter(BaseModel):
    """Caller-side filter applied to a trade log before position calculation."""

    token: str | None = Field(default=None, description="Matches token_in or token_out")
    start_date: datetime | None = Field(default=None)
    end_date: datetime | None = Field(default=None)
    trade_type: TradeType | None = Field(default=None)
