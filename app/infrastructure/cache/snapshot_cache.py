"""
Market snapshot cache (restart warm-up, not a source of truth).

Stores prices, price history and the portfolio under one redis key. A
cached snapshot is only restored when its ticker set matches the current
roster exactly.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Annotated, Dict, List, Optional, Protocol, Sequence

from pydantic import BaseModel, Field, ValidationError

from app.domain.models import MarketState
from app.domain.schemas.market import PricePointSchema
from app.domain.schemas.portfolio import PortfolioSchema
from app.utils.time import now_utc

logger = logging.getLogger(__name__)

SNAPSHOT_KEY = "snapshot"

CachedPrice = Annotated[float, Field(gt=0, allow_inf_nan=False)]


class JsonCache(Protocol):
    async def get_json(self, key: str):
        ...

    async def set_json(self, key: str, value, ttl_seconds: int) -> None:
        ...

    async def close(self) -> None:
        ...


class CachedSnapshot(BaseModel):
    saved_at: datetime
    tick_count: int = Field(..., ge=0)
    prices: Dict[str, CachedPrice]
    history: Dict[str, List[PricePointSchema]]
    portfolio: PortfolioSchema

    @classmethod
    def from_state(cls, state: MarketState) -> "CachedSnapshot":
        return cls(
            saved_at=now_utc(),
            tick_count=state.tick_count,
            prices=dict(state.prices),
            history={
                ticker: [PricePointSchema.from_domain(p) for p in buffer]
                for ticker, buffer in state.price_history.items()
            },
            portfolio=PortfolioSchema.from_domain(state.portfolio),
        )

    def matches(self, tickers: Sequence[str]) -> bool:
        expected = set(tickers)
        return set(self.prices) == expected and set(self.history) == expected


class SnapshotCache:
    def __init__(self, cache: JsonCache, ttl_seconds: int = 3600):
        self._cache = cache
        self._ttl_seconds = ttl_seconds

    async def save(self, state: MarketState) -> None:
        payload = CachedSnapshot.from_state(state).model_dump(mode="json")
        await self._cache.set_json(SNAPSHOT_KEY, payload, self._ttl_seconds)

    async def load(self, tickers: Sequence[str]) -> Optional[CachedSnapshot]:
        raw = await self._cache.get_json(SNAPSHOT_KEY)
        if not raw:
            return None
        try:
            snapshot = CachedSnapshot.model_validate(raw)
        except ValidationError as exc:
            logger.warning("Ignoring malformed cached snapshot: %s", exc)
            return None
        if not snapshot.matches(tickers):
            logger.info("Cached snapshot roster differs from current roster; ignoring")
            return None
        return snapshot

    async def close(self) -> None:
        await self._cache.close()
