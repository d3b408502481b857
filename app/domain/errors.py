"""
DOMAIN ERRORS

Every failure the market engine reports to its callers.

Fatal:
- InitializationFailure: company roster unavailable, market never starts

Recoverable (background jobs log and skip the cycle):
- NewsGenerationFailure

Caller errors (trade entry points, no state change):
- InvalidQuantity, InsufficientFunds, InsufficientShares, NoPosition,
  UnknownTicker
"""


class MarketError(Exception):
    """Base class for market engine errors"""


class InitializationFailure(MarketError):
    """Market could not be initialized (roster unavailable or invalid)"""


class MarketNotReady(MarketError):
    """Market state requested before initialization completed"""


class NewsGenerationFailure(MarketError):
    """News producer failed and no fallback was available"""


class TradeError(MarketError):
    """Base class for rejected buy/sell requests"""

    def __init__(self, message: str, ticker: str | None = None):
        super().__init__(message)
        self.ticker = ticker


class InvalidQuantity(TradeError):
    def __init__(self, shares, ticker: str | None = None):
        super().__init__(f"Share quantity must be a positive integer, got {shares!r}", ticker)
        self.shares = shares


class InsufficientFunds(TradeError):
    def __init__(self, ticker: str, required: float, available: float):
        super().__init__(
            f"Insufficient cash to buy {ticker}: need {required:.2f}, have {available:.2f}",
            ticker,
        )
        self.required = required
        self.available = available


class InsufficientShares(TradeError):
    def __init__(self, ticker: str, requested: int, held: int):
        super().__init__(
            f"Cannot sell {requested} shares of {ticker}: only {held} held",
            ticker,
        )
        self.requested = requested
        self.held = held


class NoPosition(TradeError):
    def __init__(self, ticker: str):
        super().__init__(f"No open position in {ticker}", ticker)


class UnknownTicker(TradeError):
    def __init__(self, ticker: str):
        super().__init__(f"Unknown ticker: {ticker}", ticker)
