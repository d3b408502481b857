"""
News generator: LLM-produced market news with template fallback.

Output contract:
- Only events whose ticker is in the supplied roster
- sentiment clamped to [-1, 1], magnitude clamped to [0.3, 1.0]
- Malformed items are dropped, never raised
"""

from __future__ import annotations

import json
import logging
import math
import re
from datetime import datetime
from typing import Any, List, Optional, Sequence

from app.domain.errors import NewsGenerationFailure
from app.domain.models import MAGNITUDE_RANGE, SENTIMENT_RANGE, Company, NewsEvent
from app.infrastructure.llm.text_client import TextGenerationClient, TextGenerationError
from app.infrastructure.news.fallback_news import FallbackNewsSynthesizer
from app.utils.time import now_utc

logger = logging.getLogger(__name__)

_JSON_ARRAY = re.compile(r"\[[\s\S]*\]")
_REQUIRED_FIELDS = ("ticker", "headline", "body", "sentiment", "magnitude")


def build_news_prompt(companies: Sequence[Company], count: int) -> str:
    company_list = ", ".join(f"{c.ticker} ({c.name} - {c.sector})" for c in companies)
    return (
        f"Generate {count} realistic, impactful financial news events for these companies: {company_list}\n\n"
        "For each news event, provide:\n"
        "- ticker: the stock ticker symbol of the affected company\n"
        "- headline: a compelling news headline (max 80 characters)\n"
        "- body: a 1-2 sentence story explaining the event and its market impact\n"
        "- sentiment: a number between -1 and +1 (-1 very negative, +1 very positive)\n"
        "- magnitude: a number between 0.3 and 1.0 (0.3 moderate, 1.0 major impact)\n\n"
        "Mix positive and negative events. Use higher magnitude (0.6-1.0) for major events.\n"
        "Return ONLY a JSON array of objects with exactly these fields. No markdown."
    )


def _clamp(value: float, bounds: tuple) -> float:
    low, high = bounds
    return max(low, min(high, value))


def parse_news_payload(
    text: str,
    companies: Sequence[Company],
    count: int,
    now: Optional[datetime] = None,
) -> List[NewsEvent]:
    """Extract well-formed, in-roster events from raw LLM text."""
    match = _JSON_ARRAY.search(text or "")
    if not match:
        raise ValueError("No JSON array found in response")
    raw = json.loads(match.group(0))
    if not isinstance(raw, list):
        raise ValueError("News payload is not a JSON array")

    known = {c.ticker for c in companies}
    now = now or now_utc()
    events: List[NewsEvent] = []
    for item in raw:
        event = _to_event(item, known, now)
        if event is not None:
            events.append(event)
        if len(events) >= count:
            break
    return events


def _to_event(item: Any, known: set, now: datetime) -> Optional[NewsEvent]:
    if not isinstance(item, dict):
        return None
    if any(item.get(name) in (None, "") for name in _REQUIRED_FIELDS):
        return None
    ticker = str(item["ticker"]).strip().upper()
    if ticker not in known:
        logger.debug("Dropping news for unknown ticker %s", ticker)
        return None
    try:
        sentiment = float(item["sentiment"])
        magnitude = float(item["magnitude"])
    except (TypeError, ValueError):
        return None
    if not (math.isfinite(sentiment) and math.isfinite(magnitude)):
        return None
    return NewsEvent(
        ticker=ticker,
        headline=str(item["headline"]).strip(),
        body=str(item["body"]).strip(),
        sentiment=_clamp(sentiment, SENTIMENT_RANGE),
        magnitude=_clamp(magnitude, MAGNITUDE_RANGE),
        timestamp=now,
    )


class NewsGenerator:
    def __init__(
        self,
        client: Optional[TextGenerationClient] = None,
        fallback: Optional[FallbackNewsSynthesizer] = None,
        fallback_enabled: bool = True,
    ):
        self._client = client or TextGenerationClient()
        self._fallback = fallback or FallbackNewsSynthesizer()
        self._fallback_enabled = fallback_enabled
        self.last_source: Optional[str] = None

    async def generate_news(self, companies: Sequence[Company], count: int = 2) -> List[NewsEvent]:
        """
        Produce up to ``count`` news events for the given roster.

        Raises:
            NewsGenerationFailure: LLM failed and fallback is disabled
        """
        if not companies or count <= 0:
            return []

        error: Optional[Exception] = None
        if self._client.enabled:
            try:
                text = await self._client.complete(build_news_prompt(companies, count))
                events = parse_news_payload(text, companies, count)
                self.last_source = "llm"
                return events
            except (TextGenerationError, ValueError) as exc:
                error = exc
                logger.warning("LLM news generation failed: %s", exc)

        if not self._fallback_enabled:
            raise NewsGenerationFailure(
                f"News generation unavailable: {error or 'text generation disabled'}"
            )

        self.last_source = "fallback"
        return self._fallback.generate(companies, count)

