from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
async def health(request: Request):
    market = getattr(request.app.state, "market", None)
    ready = market is not None and market.is_ready
    return {
        "status": "ok" if ready else "degraded",
        "service": "TradeStreet Market",
        "services": {
            "api": "running",
            "market": "running" if ready and market.is_running else ("ready" if ready else "not_ready"),
        },
    }


@router.get("/health/market")
async def market_health(request: Request):
    """Simulation status: tick/news counters and last refresh times."""
    market = getattr(request.app.state, "market", None)
    if market is None:
        return {"ready": False, "running": False, "ts": None}
    return market.get_status()
