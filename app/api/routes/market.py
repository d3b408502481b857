"""
Market routes - read-only views of the current market snapshot.
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Dict, List, Optional

from app.api.dependencies import get_market
from app.domain.models import MarketState
from app.domain.schemas.market import (
    CompanySchema,
    MarketSnapshotSchema,
    NewsEventSchema,
    PricePointSchema,
    QuoteSchema,
)
from app.domain.services.price_engine import price_change
from app.realtime.market_runtime import MarketOrchestrator

router = APIRouter()


def _quotes(state: MarketState) -> Dict[str, QuoteSchema]:
    return {
        ticker: QuoteSchema.from_domain(price_change(ticker, state.price_history[ticker].items))
        for ticker in state.tickers
    }


def _news(state: MarketState, ticker: Optional[str] = None, limit: Optional[int] = None) -> List[NewsEventSchema]:
    events = state.news.for_ticker(ticker) if ticker else state.news.items
    if limit is not None:
        events = events[-limit:] if limit > 0 else ()
    # Newest first for display
    return [NewsEventSchema.from_domain(e) for e in reversed(events)]


@router.get("/companies", response_model=List[CompanySchema])
async def list_companies(market: MarketOrchestrator = Depends(get_market)):
    """Company roster captured at market start."""
    return [CompanySchema.from_domain(c) for c in market.snapshot().companies]


@router.get("/prices", response_model=Dict[str, QuoteSchema])
async def current_prices(market: MarketOrchestrator = Depends(get_market)):
    """Latest price and last-tick change per ticker."""
    return _quotes(market.snapshot())


@router.get("/history/{ticker}", response_model=List[PricePointSchema])
async def price_history(
    ticker: str,
    limit: Optional[int] = Query(None, ge=1, le=100),
    market: MarketOrchestrator = Depends(get_market),
):
    state = market.snapshot()
    company = state.get_company(ticker.upper())
    if company is None:
        raise HTTPException(status_code=404, detail=f"Unknown ticker: {ticker}")
    return [PricePointSchema.from_domain(p) for p in state.price_history[company.ticker].latest(limit)]


@router.get("/news", response_model=List[NewsEventSchema])
async def recent_news(
    ticker: Optional[str] = None,
    limit: Optional[int] = Query(None, ge=1, le=50),
    market: MarketOrchestrator = Depends(get_market),
):
    """Rolling news window, newest first."""
    return _news(market.snapshot(), ticker.upper() if ticker else None, limit)


@router.get("/snapshot", response_model=MarketSnapshotSchema)
async def market_snapshot(market: MarketOrchestrator = Depends(get_market)):
    state = market.snapshot()
    return MarketSnapshotSchema(
        started_at=state.started_at,
        tick_count=state.tick_count,
        last_tick_at=state.last_tick_at,
        last_news_at=state.last_news_at,
        companies=[CompanySchema.from_domain(c) for c in state.companies],
        quotes=_quotes(state),
        news=_news(state),
    )
