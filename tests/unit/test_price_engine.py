import random
from datetime import timedelta

import pytest

from app.domain.models import Company, PricePoint
from app.domain.services.price_engine import (
    PRICE_FLOOR,
    SENTIMENT_SCALAR,
    PriceEngine,
    price_change,
)


@pytest.fixture
def acme():
    return Company("ACME", "Acme Corp", "Industrials", "Makes everything.", 100.0, 0.2)


@pytest.fixture
def engine():
    return PriceEngine(random.Random(7))


def test_positive_news_lifts_average_price(acme, engine, clock, news_factory):
    news = [news_factory("ACME", sentiment=0.9, magnitude=1.0, ts=clock.now)]

    impact = engine.sentiment_impact(acme, news, clock.now)
    assert impact == pytest.approx(0.2 * SENTIMENT_SCALAR * 0.9)

    prices = [engine.next_price(100.0, acme, news, now=clock.now) for _ in range(500)]
    assert sum(prices) / len(prices) > 100.0


def test_drift_only_without_news(acme, engine, clock):
    multiplier = engine.volatility_multiplier(acme)
    band = 0.01 * multiplier

    for _ in range(200):
        price = engine.next_price(100.0, acme, [], now=clock.now)
        assert 100.0 * (1 - band) <= price <= 100.0 * (1 + band)


def test_price_never_drops_below_floor(engine, clock, news_factory):
    crux = Company("CRUX", "Crux Bio", "Healthcare", "Gene therapy.", 200.0, 1.0)
    news = [news_factory("CRUX", sentiment=-1.0, magnitude=1.0, ts=clock.now)]

    price = engine.next_price(0.01, crux, news, now=clock.now)
    assert price == PRICE_FLOOR


def test_random_walk_stays_at_or_above_floor(clock, news_factory):
    rand = random.Random(11)
    crux = Company("CRUX", "Crux Bio", "Healthcare", "Gene therapy.", 200.0, 1.0)
    engine = PriceEngine(random.Random(3))
    price = 0.5

    for _ in range(1_000):
        news = [news_factory("CRUX", sentiment=rand.uniform(-1.0, 0.2), magnitude=rand.uniform(0.3, 1.0), ts=clock.now)]
        price = engine.next_price(price, crux, news, now=clock.now)
        assert price >= PRICE_FLOOR


def test_only_recent_news_for_the_company_counts(acme, clock, news_factory):
    stale = news_factory("ACME", ts=clock.now - timedelta(seconds=121))
    other = news_factory("BOLT", ts=clock.now)
    fresh = news_factory("ACME", ts=clock.now - timedelta(seconds=30))

    relevant = PriceEngine.relevant_news(acme, [stale, other, fresh], clock.now)
    assert relevant == [fresh]
    assert PriceEngine.sentiment_impact(acme, [stale, other], clock.now) == 0.0


def test_seeded_engines_agree(acme, clock):
    a = PriceEngine(random.Random(99))
    b = PriceEngine(random.Random(99))
    assert [a.next_price(100.0, acme, [], now=clock.now) for _ in range(5)] == [
        b.next_price(100.0, acme, [], now=clock.now) for _ in range(5)
    ]


class TestPriceChange:
    def test_change_from_last_two_points(self, clock):
        history = [
            PricePoint("ACME", 100.0, clock.now),
            PricePoint("ACME", 110.0, clock.advance(4)),
        ]
        change = price_change("ACME", history)
        assert change.price == 110.0
        assert change.change == pytest.approx(10.0)
        assert change.percent == pytest.approx(10.0)

    def test_single_point_has_no_change(self, clock):
        change = price_change("ACME", [PricePoint("ACME", 100.0, clock.now)])
        assert change.price == 100.0
        assert change.change == 0.0
        assert change.percent == 0.0

    def test_empty_history(self):
        assert price_change("ACME", []).price == 0.0
