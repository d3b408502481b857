import pytest
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport

from app.api.routes import health, market, portfolio


@pytest.mark.integration
async def test_companies_and_prices(client):
    resp = await client.get("/api/v1/market/companies")
    assert resp.status_code == 200
    assert [c["ticker"] for c in resp.json()] == ["ACME", "BOLT", "CRUX"]

    resp = await client.get("/api/v1/market/prices")
    assert resp.status_code == 200
    quotes = resp.json()
    assert quotes["ACME"] == {"ticker": "ACME", "price": 100.0, "change": 0.0, "change_pct": 0.0}


@pytest.mark.integration
async def test_prices_reflect_last_tick(client, orchestrator, clock):
    clock.advance(4)
    state = orchestrator.tick()

    quotes = (await client.get("/api/v1/market/prices")).json()
    assert quotes["BOLT"]["price"] == pytest.approx(state.prices["BOLT"])
    assert quotes["BOLT"]["change"] == pytest.approx(state.prices["BOLT"] - 50.0)


@pytest.mark.integration
async def test_history(client, orchestrator, clock):
    for _ in range(3):
        clock.advance(4)
        orchestrator.tick()

    resp = await client.get("/api/v1/market/history/acme")
    assert resp.status_code == 200
    assert len(resp.json()) == 4

    resp = await client.get("/api/v1/market/history/ACME", params={"limit": 2})
    assert len(resp.json()) == 2

    resp = await client.get("/api/v1/market/history/NOPE")
    assert resp.status_code == 404


@pytest.mark.integration
async def test_news_newest_first_and_filtered(client, orchestrator, news_source, news_factory, clock):
    news_source.batches = [[news_factory("ACME", ts=clock.now), news_factory("BOLT", ts=clock.advance(1))]]
    await orchestrator.refresh_news()

    resp = await client.get("/api/v1/market/news")
    assert [n["ticker"] for n in resp.json()] == ["BOLT", "ACME"]

    resp = await client.get("/api/v1/market/news", params={"ticker": "acme"})
    assert [n["ticker"] for n in resp.json()] == ["ACME"]


@pytest.mark.integration
async def test_snapshot(client, orchestrator):
    orchestrator.tick()
    data = (await client.get("/api/v1/market/snapshot")).json()
    assert data["tick_count"] == 1
    assert set(data["quotes"]) == {"ACME", "BOLT", "CRUX"}
    assert data["news"] == []


@pytest.mark.integration
async def test_buy_sell_flow(client):
    resp = await client.post("/api/v1/portfolio/buy", json={"ticker": "acme", "shares": 10})
    assert resp.status_code == 200
    data = resp.json()
    assert data["cash"] == 99_000.0
    assert data["positions"][0]["ticker"] == "ACME"
    assert data["positions"][0]["shares"] == 10
    assert data["total_value"] == pytest.approx(100_000.0)

    resp = await client.post("/api/v1/portfolio/sell", json={"ticker": "ACME", "shares": 4})
    assert resp.status_code == 200
    assert resp.json()["positions"][0]["shares"] == 6

    resp = await client.get("/api/v1/portfolio")
    assert resp.json()["cash"] == pytest.approx(99_400.0)


@pytest.mark.integration
@pytest.mark.parametrize(
    "path,body,status",
    [
        ("/api/v1/portfolio/buy", {"ticker": "ACME", "shares": 0}, 422),
        ("/api/v1/portfolio/buy", {"ticker": "ACME", "shares": 1.5}, 422),
        ("/api/v1/portfolio/buy", {"ticker": "CRUX", "shares": 1_000}, 409),
        ("/api/v1/portfolio/buy", {"ticker": "NOPE", "shares": 1}, 404),
        ("/api/v1/portfolio/sell", {"ticker": "ACME", "shares": 1}, 404),
    ],
)
async def test_rejected_trades(client, orchestrator, path, body, status):
    before = orchestrator.snapshot().portfolio

    resp = await client.post(path, json=body)

    assert resp.status_code == status
    assert orchestrator.snapshot().portfolio is before


@pytest.mark.integration
async def test_oversell_conflict(client):
    await client.post("/api/v1/portfolio/buy", json={"ticker": "ACME", "shares": 2})
    resp = await client.post("/api/v1/portfolio/sell", json={"ticker": "ACME", "shares": 3})
    assert resp.status_code == 409


@pytest.mark.integration
async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"

    status = (await client.get("/health/market")).json()
    assert status["ready"] is True
    assert status["companies"] == 3


@pytest.mark.integration
async def test_routes_unavailable_until_ready(orchestrator):
    app = FastAPI()
    app.include_router(health.router)
    app.include_router(market.router, prefix="/api/v1/market")
    app.include_router(portfolio.router, prefix="/api/v1/portfolio")
    app.state.market = orchestrator

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        assert (await ac.get("/api/v1/market/prices")).status_code == 503
        assert (await ac.post("/api/v1/portfolio/buy", json={"ticker": "ACME", "shares": 1})).status_code == 503
        assert (await ac.get("/health")).json()["status"] == "degraded"
