"""
Domain Models - Entities
Pure domain objects with no infrastructure dependencies
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import TYPE_CHECKING, Mapping, Tuple

if TYPE_CHECKING:
    from app.domain.services.buffers import HistoryBuffer, NewsWindow


SENTIMENT_RANGE = (-1.0, 1.0)
MAGNITUDE_RANGE = (0.3, 1.0)
VOLATILITY_RANGE = (0.0, 1.0)


def _frozen_mapping(data: Mapping) -> Mapping:
    if isinstance(data, MappingProxyType):
        return data
    return MappingProxyType(dict(data))


@dataclass(frozen=True)
class Company:
    """Listed company - Immutable, created once at market start"""
    ticker: str
    name: str
    sector: str
    description: str
    base_price: float
    volatility: float

    def __post_init__(self):
        if not self.ticker:
            raise ValueError("Company ticker cannot be empty")
        if not (math.isfinite(self.base_price) and self.base_price > 0):
            raise ValueError(f"Base price must be positive for {self.ticker}")
        low, high = VOLATILITY_RANGE
        if not (math.isfinite(self.volatility) and low <= self.volatility <= high):
            raise ValueError(
                f"Volatility must be within [{low}, {high}] for {self.ticker}"
            )


@dataclass(frozen=True)
class PricePoint:
    """One tick of a ticker's price history"""
    ticker: str
    price: float
    timestamp: datetime


@dataclass(frozen=True)
class NewsEvent:
    """Market-moving headline for one company"""
    ticker: str
    headline: str
    body: str
    sentiment: float
    magnitude: float
    timestamp: datetime

    @property
    def impact(self) -> float:
        """Signed weight consumed by the price engine"""
        return self.sentiment * self.magnitude


@dataclass(frozen=True)
class Position:
    """Shares held in one ticker plus their acquisition basis"""
    shares: int
    average_cost: float

    def __post_init__(self):
        if self.shares <= 0:
            raise ValueError("Position must hold at least one share")
        if not (math.isfinite(self.average_cost) and self.average_cost > 0):
            raise ValueError("Average cost must be a positive finite number")


@dataclass(frozen=True)
class Portfolio:
    """
    Cash + open positions - Immutable snapshot.

    Every ticker in ``positions`` holds at least one share. Ledger
    operations return a new Portfolio instead of editing this one.
    """
    cash: float
    positions: Mapping[str, Position] = field(default_factory=dict)

    def __post_init__(self):
        if not (math.isfinite(self.cash) and self.cash >= 0):
            raise ValueError("Cash must be a non-negative finite number")
        object.__setattr__(self, "positions", _frozen_mapping(self.positions))

    def position(self, ticker: str) -> Position | None:
        return self.positions.get(ticker)


@dataclass(frozen=True)
class PositionValuation:
    ticker: str
    shares: int
    average_cost: float
    current_price: float

    @property
    def market_value(self) -> float:
        return self.shares * self.current_price

    @property
    def unrealized_pnl(self) -> float:
        return self.shares * (self.current_price - self.average_cost)

    @property
    def unrealized_pnl_pct(self) -> float:
        basis = self.shares * self.average_cost
        if basis <= 0:
            return 0.0
        return (self.unrealized_pnl / basis) * 100.0


@dataclass(frozen=True)
class PortfolioValuation:
    """Mark-to-market view of a portfolio"""
    cash: float
    positions: Tuple[PositionValuation, ...]

    @property
    def holdings_value(self) -> float:
        return sum(p.market_value for p in self.positions)

    @property
    def total_value(self) -> float:
        return self.cash + self.holdings_value

    @property
    def invested(self) -> float:
        return sum(p.shares * p.average_cost for p in self.positions)

    @property
    def unrealized_pnl(self) -> float:
        return sum(p.unrealized_pnl for p in self.positions)


@dataclass(frozen=True)
class PriceChange:
    """Move between the last two history points of a ticker"""
    ticker: str
    price: float
    change: float
    percent: float


@dataclass(frozen=True)
class MarketState:
    """
    Full market snapshot - Immutable.

    Owned by the market runtime; every update builds a new MarketState
    and swaps it in, so a reader never sees a half-applied tick.
    """
    companies: Tuple[Company, ...]
    prices: Mapping[str, float]
    price_history: Mapping[str, "HistoryBuffer"]
    news: "NewsWindow"
    portfolio: Portfolio
    started_at: datetime
    tick_count: int = 0
    last_tick_at: datetime | None = None
    last_news_at: datetime | None = None

    def __post_init__(self):
        object.__setattr__(self, "companies", tuple(self.companies))
        object.__setattr__(self, "prices", _frozen_mapping(self.prices))
        object.__setattr__(self, "price_history", _frozen_mapping(self.price_history))

    @property
    def tickers(self) -> Tuple[str, ...]:
        return tuple(c.ticker for c in self.companies)

    def get_company(self, ticker: str) -> Company | None:
        for company in self.companies:
            if company.ticker == ticker:
                return company
        return None
