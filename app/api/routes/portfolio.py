"""
Portfolio routes - valuation and trade entry points.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from app.api.dependencies import get_market
from app.domain.errors import (
    InsufficientFunds,
    InsufficientShares,
    InvalidQuantity,
    NoPosition,
    TradeError,
    UnknownTicker,
)
from app.domain.schemas.portfolio import PortfolioValuationSchema, TradeRequest
from app.domain.services import portfolio_ledger as ledger
from app.realtime.market_runtime import MarketOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter()


def _status_for(exc: TradeError) -> int:
    if isinstance(exc, InvalidQuantity):
        return 422
    if isinstance(exc, (InsufficientFunds, InsufficientShares)):
        return 409
    if isinstance(exc, (NoPosition, UnknownTicker)):
        return 404
    return 400


def _valuation(market: MarketOrchestrator) -> PortfolioValuationSchema:
    state = market.snapshot()
    return PortfolioValuationSchema.from_domain(ledger.valuation(state.portfolio, state.prices))


@router.get("", response_model=PortfolioValuationSchema)
async def get_portfolio(market: MarketOrchestrator = Depends(get_market)):
    """Cash, positions and mark-to-market totals at current prices."""
    return _valuation(market)


@router.post("/buy", response_model=PortfolioValuationSchema)
async def buy_shares(request: TradeRequest, market: MarketOrchestrator = Depends(get_market)):
    try:
        market.buy(request.ticker.upper(), request.shares)
    except TradeError as exc:
        logger.info("Buy rejected: %s", exc)
        raise HTTPException(status_code=_status_for(exc), detail=str(exc))
    return _valuation(market)


@router.post("/sell", response_model=PortfolioValuationSchema)
async def sell_shares(request: TradeRequest, market: MarketOrchestrator = Depends(get_market)):
    try:
        market.sell(request.ticker.upper(), request.shares)
    except TradeError as exc:
        logger.info("Sell rejected: %s", exc)
        raise HTTPException(status_code=_status_for(exc), detail=str(exc))
    return _valuation(market)
