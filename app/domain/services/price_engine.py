"""
PRICE ENGINE

Computes the next price of one company from:
- Random drift (uniform, ±1% per unit time)
- Sentiment impact from that company's recent news
- Volatility weight amplifying both

RULES:
❌ No state, no I/O
✅ Only side effect is consuming the injected RNG
✅ Result is always >= PRICE_FLOOR
"""

from __future__ import annotations

import random
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Sequence

from app.domain.models import Company, NewsEvent, PriceChange, PricePoint
from app.utils.time import ensure_utc, now_utc

# Tunable constants
DRIFT_BAND = 0.02                       # total width of the uniform draw -> ±1%
SENTIMENT_WINDOW = timedelta(seconds=120)
SENTIMENT_SCALAR = 0.08                 # caps one tick's sentiment move at ±8% before volatility
VOLATILITY_WEIGHT = 0.5
PRICE_FLOOR = 0.01


class PriceEngine:
    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()

    def draw_drift(self, time_delta_seconds: float = 1) -> float:
        return (self._rng.random() - 0.5) * DRIFT_BAND * max(1, time_delta_seconds)

    @staticmethod
    def relevant_news(
        company: Company,
        recent_news: Iterable[NewsEvent],
        now: datetime,
    ) -> List[NewsEvent]:
        """News for this company published within the sentiment window."""
        return [
            n for n in recent_news
            if n.ticker == company.ticker
            and now - ensure_utc(n.timestamp) < SENTIMENT_WINDOW
        ]

    @classmethod
    def sentiment_impact(
        cls,
        company: Company,
        recent_news: Iterable[NewsEvent],
        now: datetime,
    ) -> float:
        events = cls.relevant_news(company, recent_news, now)
        if not events:
            return 0.0
        total = sum(n.impact for n in events)
        return total * company.volatility * SENTIMENT_SCALAR

    @staticmethod
    def volatility_multiplier(company: Company) -> float:
        return 1 + company.volatility * VOLATILITY_WEIGHT

    def next_price(
        self,
        current_price: float,
        company: Company,
        recent_news: Iterable[NewsEvent],
        time_delta_seconds: float = 1,
        now: Optional[datetime] = None,
    ) -> float:
        now = ensure_utc(now) if now is not None else now_utc()

        drift = self.draw_drift(time_delta_seconds)
        impact = self.sentiment_impact(company, recent_news, now)
        change_pct = (drift + impact) * self.volatility_multiplier(company)

        new_price = current_price * (1 + change_pct)
        return max(new_price, PRICE_FLOOR)


def price_change(ticker: str, history: Sequence[PricePoint]) -> PriceChange:
    """Change between the last two points of a history (0 when fewer than two)."""
    if not history:
        return PriceChange(ticker=ticker, price=0.0, change=0.0, percent=0.0)
    current = history[-1].price
    if len(history) < 2:
        return PriceChange(ticker=ticker, price=current, change=0.0, percent=0.0)

    previous = history[-2].price
    change = current - previous
    percent = (change / previous) * 100 if previous != 0 else 0.0
    return PriceChange(ticker=ticker, price=current, change=change, percent=percent)
