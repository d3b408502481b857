"""
FastAPI Main Application
Starts the market simulation and exposes it over HTTP
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from app.config import settings
from app.core.logging import get_logger, setup_logging
from app.domain.errors import InitializationFailure
from app.realtime.market_runtime import MarketOrchestrator

setup_logging(settings.LOG_LEVEL)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager
    Starts the market on startup and stops it on shutdown
    """
    logger.info("=" * 60)
    logger.info("🚀 Starting TradeStreet Market")
    logger.info("=" * 60)

    market = MarketOrchestrator.from_settings(settings)
    app.state.market = market

    if settings.MARKET_ENABLED:
        try:
            await market.start()
            logger.info("✅ Market started with %d companies", len(market.roster))
        except InitializationFailure as e:
            # Routes answer 503 until the process is restarted
            logger.error("❌ Market initialization failed: %s", e)
    else:
        logger.info("⏸️  Market disabled")

    logger.info("   ✅ API Server: http://%s:%s", settings.API_HOST, settings.API_PORT)
    logger.info("   ✅ API Docs: http://%s:%s/docs", settings.API_HOST, settings.API_PORT)

    yield

    logger.info("🛑 Shutting down TradeStreet Market...")
    await market.stop()
    logger.info("👋 Shutdown complete")


# Create FastAPI app
app = FastAPI(
    title="TradeStreet Market",
    description="Synthetic stock market with AI-generated news and a paper-trading portfolio",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "📈 TradeStreet Market",
        "version": "1.0.0",
        "docs": "/docs",
    }


# Import and include routers
from app.api.routes import health, market, portfolio

app.include_router(health.router, tags=["Health"])
app.include_router(market.router, prefix="/api/v1/market", tags=["Market"])
app.include_router(portfolio.router, prefix="/api/v1/portfolio", tags=["Portfolio"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host=settings.API_HOST, port=settings.API_PORT, reload=settings.DEBUG)
