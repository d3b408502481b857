import random
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, List

import pytest
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport

from app.api.routes import health, market, portfolio
from app.domain.models import Company, NewsEvent
from app.realtime.market_runtime import MarketOrchestrator


T0 = datetime(2026, 3, 2, 9, 30, 0, tzinfo=timezone.utc)


class FakeClock:
    """Deterministic clock; advance() moves it forward."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


class FakeTextClient:
    """Stands in for TextGenerationClient; returns queued responses or raises."""

    def __init__(self, responses=None, enabled: bool = True):
        self.enabled = enabled
        self._responses = list(responses or [])
        self.prompts: List[str] = []

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class StaticRoster:
    def __init__(self, companies):
        self.companies = list(companies)
        self.calls = 0

    async def generate_companies(self, count: int = 8):
        self.calls += 1
        return self.companies[:count]


class ScriptedNews:
    """News generator double: each call pops the next batch (or exception)."""

    def __init__(self, batches=None):
        self.batches = list(batches or [])
        self.calls = []

    async def generate_news(self, companies, count=2):
        self.calls.append((tuple(c.ticker for c in companies), count))
        if not self.batches:
            return []
        batch = self.batches.pop(0)
        if isinstance(batch, Exception):
            raise batch
        return list(batch)


def make_news(ticker: str, sentiment: float = 0.9, magnitude: float = 1.0, ts: datetime = T0) -> NewsEvent:
    return NewsEvent(
        ticker=ticker,
        headline=f"{ticker}: Test headline",
        body="Test body.",
        sentiment=sentiment,
        magnitude=magnitude,
        timestamp=ts,
    )


@pytest.fixture
def companies() -> List[Company]:
    return [
        Company("ACME", "Acme Corp", "Industrials", "Makes everything.", 100.0, 0.2),
        Company("BOLT", "Bolt Energy", "Energy", "Battery storage.", 50.0, 0.6),
        Company("CRUX", "Crux Bio", "Healthcare", "Gene therapy.", 200.0, 1.0),
    ]


@pytest.fixture
def rng() -> random.Random:
    return random.Random(42)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def news_source() -> ScriptedNews:
    return ScriptedNews()


@pytest.fixture
def orchestrator(companies, news_source, rng, clock) -> MarketOrchestrator:
    return MarketOrchestrator(
        roster_provider=StaticRoster(companies),
        news_generator=news_source,
        rng=rng,
        clock=clock,
    )


@pytest.fixture
async def app(orchestrator) -> FastAPI:
    app = FastAPI()
    app.include_router(health.router, tags=["Health"])
    app.include_router(market.router, prefix="/api/v1/market", tags=["Market"])
    app.include_router(portfolio.router, prefix="/api/v1/portfolio", tags=["Portfolio"])

    await orchestrator.initialize()
    app.state.market = orchestrator
    return app


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def news_factory():
    return make_news


@pytest.fixture
def text_client_factory():
    return FakeTextClient
