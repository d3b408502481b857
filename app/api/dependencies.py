"""
Shared FastAPI dependencies.
"""

from fastapi import HTTPException, Request

from app.realtime.market_runtime import MarketOrchestrator


def get_market(request: Request) -> MarketOrchestrator:
    """Return the running market, or 503 while it is unavailable."""
    market = getattr(request.app.state, "market", None)
    if market is None or not market.is_ready:
        raise HTTPException(status_code=503, detail="Market is not ready")
    return market
