"""
PORTFOLIO LEDGER

Pure accounting over immutable Portfolio values.

RESPONSIBILITIES:
- Buy: debit cash, merge position at weighted-average cost
- Sell: credit cash, reduce/close position
- Valuation: mark positions to current prices

RULES:
❌ Never mutate the input portfolio
❌ Cash never goes negative
✅ Positions with 0 shares are removed
✅ Average cost tracks acquisition basis (unchanged by sells)
"""

from __future__ import annotations

import logging
import math
from typing import Dict, Mapping

from app.domain.errors import (
    InsufficientFunds,
    InsufficientShares,
    InvalidQuantity,
    NoPosition,
)
from app.domain.models import Portfolio, PortfolioValuation, Position, PositionValuation

logger = logging.getLogger(__name__)

DEFAULT_STARTING_CASH = 100_000.0


def initial_portfolio(starting_cash: float = DEFAULT_STARTING_CASH) -> Portfolio:
    if starting_cash < 0:
        raise ValueError("Starting cash cannot be negative")
    return Portfolio(cash=float(starting_cash), positions={})


def validate_quantity(shares, ticker: str) -> None:
    # bool is an int subclass; True is not a share count
    if isinstance(shares, bool) or not isinstance(shares, int) or shares <= 0:
        raise InvalidQuantity(shares, ticker)


def validate_price(price: float, ticker: str) -> None:
    if not (math.isfinite(price) and price > 0):
        raise ValueError(f"Quote for {ticker} must be a positive finite price, got {price!r}")


def buy(portfolio: Portfolio, ticker: str, shares: int, price: float) -> Portfolio:
    """
    Buy shares at the quoted price.

    Raises:
        InvalidQuantity: shares <= 0
        InsufficientFunds: shares * price > cash
        ValueError: price is not a positive finite number
    """
    validate_quantity(shares, ticker)
    validate_price(price, ticker)

    cost = shares * price
    if cost > portfolio.cash:
        raise InsufficientFunds(ticker, required=cost, available=portfolio.cash)

    positions: Dict[str, Position] = dict(portfolio.positions)
    existing = portfolio.position(ticker)
    if existing is None:
        positions[ticker] = Position(shares=shares, average_cost=price)
    else:
        total_shares = existing.shares + shares
        average_cost = (existing.shares * existing.average_cost + cost) / total_shares
        positions[ticker] = Position(shares=total_shares, average_cost=average_cost)

    logger.debug("BUY %s x%d @ %.2f", ticker, shares, price)
    return Portfolio(cash=portfolio.cash - cost, positions=positions)


def sell(portfolio: Portfolio, ticker: str, shares: int, price: float) -> Portfolio:
    """
    Sell shares at the quoted price.

    Raises:
        InvalidQuantity: shares <= 0
        NoPosition: ticker not held
        InsufficientShares: shares > held shares
        ValueError: price is not a positive finite number
    """
    validate_quantity(shares, ticker)
    validate_price(price, ticker)

    existing = portfolio.position(ticker)
    if existing is None:
        raise NoPosition(ticker)
    if shares > existing.shares:
        raise InsufficientShares(ticker, requested=shares, held=existing.shares)

    positions: Dict[str, Position] = dict(portfolio.positions)
    remaining = existing.shares - shares
    if remaining == 0:
        del positions[ticker]
    else:
        positions[ticker] = Position(shares=remaining, average_cost=existing.average_cost)

    logger.debug("SELL %s x%d @ %.2f", ticker, shares, price)
    return Portfolio(cash=portfolio.cash + shares * price, positions=positions)


def valuation(portfolio: Portfolio, current_prices: Mapping[str, float]) -> PortfolioValuation:
    """
    Mark-to-market valuation.

    A position with no current quote is valued at its average cost
    (zero unrealized PnL) rather than dropped from the total.
    """
    rows = []
    for ticker in sorted(portfolio.positions):
        position = portfolio.positions[ticker]
        rows.append(
            PositionValuation(
                ticker=ticker,
                shares=position.shares,
                average_cost=position.average_cost,
                current_price=current_prices.get(ticker, position.average_cost),
            )
        )
    return PortfolioValuation(cash=portfolio.cash, positions=tuple(rows))
