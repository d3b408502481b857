"""
Template-based news synthesizer used when text generation is unavailable.
"""

from __future__ import annotations

import random
from datetime import datetime, timedelta
from typing import List, Optional, Sequence, Tuple

from app.domain.models import Company, NewsEvent
from app.utils.time import now_utc

# (headline, sentiment, magnitude)
POSITIVE_TEMPLATES: Tuple[Tuple[str, float, float], ...] = (
    ("Reports Strong Quarterly Earnings, Beats Estimates", 0.8, 0.7),
    ("Signs Major Partnership Deal Worth Millions", 0.7, 0.6),
    ("Regulator Approves New Product for Market", 0.9, 0.8),
    ("Analyst Upgrades Stock to Buy Rating", 0.6, 0.5),
    ("Announces Breakthrough Innovation", 0.85, 0.75),
)

NEGATIVE_TEMPLATES: Tuple[Tuple[str, float, float], ...] = (
    ("Reports Earnings Miss, Stock Drops", -0.7, 0.7),
    ("Faces Regulatory Investigation", -0.8, 0.8),
    ("Product Recall Announced", -0.9, 0.9),
    ("Key Executive Resigns Unexpectedly", -0.6, 0.6),
    ("Loses Major Contract to Competitor", -0.75, 0.7),
)

BODY_TEMPLATES: Tuple[str, ...] = (
    "The {sector} sector company's stock is moving in response to market developments.",
    "Investors are reacting to breaking news affecting the company's valuation.",
    "Market analysts are closely watching the impact of this development.",
    "The announcement is expected to significantly influence trading activity.",
)

EVENT_SPACING = timedelta(milliseconds=100)


class FallbackNewsSynthesizer:
    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()

    def generate(
        self,
        companies: Sequence[Company],
        count: int,
        now: Optional[datetime] = None,
    ) -> List[NewsEvent]:
        """Fabricate up to ``count`` events (never more than the roster size)."""
        if not companies or count <= 0:
            return []
        now = now or now_utc()

        events: List[NewsEvent] = []
        for i in range(min(count, len(companies))):
            company = self._rng.choice(companies)
            templates = POSITIVE_TEMPLATES if self._rng.random() > 0.5 else NEGATIVE_TEMPLATES
            headline, sentiment, magnitude = self._rng.choice(templates)
            body = self._rng.choice(BODY_TEMPLATES).format(sector=company.sector)

            events.append(
                NewsEvent(
                    ticker=company.ticker,
                    headline=f"{company.ticker}: {headline}",
                    body=body,
                    sentiment=sentiment,
                    magnitude=magnitude,
                    timestamp=now + i * EVENT_SPACING,
                )
            )
        return events
