"""TradeJournal exception hierarchy.

This module defines the base exception class and specialized exceptions
for different error categories across the application.
"""


class TradeJournalError(Exception):
    """Base exception for all TradeJournal errors.

    All custom exceptions in TradeJournal should inherit from this class
    to enable consistent error handling and logging.
    """

    pass


class ConfigurationError(TradeJournalError):
    """Raised when configuration is invalid or missing.

    Example:
        raise ConfigurationError("fee_decimal_places must be non-negative")
    """

    pass


class ValidationError(TradeJournalError):
    """Raised when data validation fails.

    Use this for invalid input data or business rule violations.

    Example:
        raise ValidationError("Manual grouping references unknown trade")
    """

    pass


class InvalidTradeError(ValidationError):
    """Raised when a trade batch cannot be processed.

    A single invalid trade (missing block time, negative quantity, price or
    fee) rejects the whole (wallet, symbol) batch; no partial output is
    produced.

    Attributes:
        trade_id: Identifier of the offending trade (if available).

    Example:
        raise InvalidTradeError("Trade has no block time", trade_id="t-42")
    """

    def __init__(self, message: str, trade_id: str | None = None) -> None:
        super().__init__(message)
        self.trade_id = trade_id
