"""
Domain Models Package
Export all domain entities
"""

from .entities import (
    # Ranges
    MAGNITUDE_RANGE,
    SENTIMENT_RANGE,
    VOLATILITY_RANGE,

    # Entities
    Company,
    MarketState,
    NewsEvent,
    Portfolio,
    PortfolioValuation,
    Position,
    PositionValuation,
    PriceChange,
    PricePoint,
)

__all__ = [
    # Ranges
    "MAGNITUDE_RANGE",
    "SENTIMENT_RANGE",
    "VOLATILITY_RANGE",

    # Entities
    "Company",
    "MarketState",
    "NewsEvent",
    "Portfolio",
    "PortfolioValuation",
    "Position",
    "PositionValuation",
    "PriceChange",
    "PricePoint",
]
