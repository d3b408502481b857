from pydantic import BaseModel, Field
from typing import Dict, List

from app.domain.models import Portfolio, PortfolioValuation, Position


class TradeRequest(BaseModel):
    ticker: str = Field(..., min_length=1, description="Company ticker (e.g., TECH)")
    shares: int = Field(..., description="Whole shares to buy or sell")


class PositionSchema(BaseModel):
    shares: int = Field(..., gt=0)
    average_cost: float = Field(..., gt=0, allow_inf_nan=False)


class PortfolioSchema(BaseModel):
    """Raw ledger state (used for the snapshot cache)"""
    cash: float = Field(..., ge=0, allow_inf_nan=False)
    positions: Dict[str, PositionSchema]

    @classmethod
    def from_domain(cls, portfolio: Portfolio) -> "PortfolioSchema":
        return cls(
            cash=portfolio.cash,
            positions={
                ticker: PositionSchema(shares=p.shares, average_cost=p.average_cost)
                for ticker, p in portfolio.positions.items()
            },
        )

    def to_domain(self) -> Portfolio:
        return Portfolio(
            cash=self.cash,
            positions={
                ticker: Position(shares=p.shares, average_cost=p.average_cost)
                for ticker, p in self.positions.items()
            },
        )


class PositionValuationSchema(BaseModel):
    ticker: str
    shares: int
    average_cost: float
    current_price: float
    market_value: float
    unrealized_pnl: float
    unrealized_pnl_pct: float


class PortfolioValuationSchema(BaseModel):
    cash: float
    holdings_value: float
    total_value: float
    invested: float
    unrealized_pnl: float
    positions: List[PositionValuationSchema]

    @classmethod
    def from_domain(cls, valuation: PortfolioValuation) -> "PortfolioValuationSchema":
        return cls(
            cash=valuation.cash,
            holdings_value=valuation.holdings_value,
            total_value=valuation.total_value,
            invested=valuation.invested,
            unrealized_pnl=valuation.unrealized_pnl,
            positions=[
                PositionValuationSchema(
                    ticker=p.ticker,
                    shares=p.shares,
                    average_cost=p.average_cost,
                    current_price=p.current_price,
                    market_value=p.market_value,
                    unrealized_pnl=p.unrealized_pnl,
                    unrealized_pnl_pct=p.unrealized_pnl_pct,
                )
                for p in valuation.positions
            ],
        )
