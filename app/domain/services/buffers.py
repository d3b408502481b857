"""
BOUNDED SERIES (HISTORY + NEWS)

Fixed-capacity FIFO sequences backed by tuples.

RULES:
✅ Append-only (append / extend), ordered by arrival
✅ Oldest items evicted first once capacity is exceeded
✅ Every append returns a NEW series (copy-on-write snapshots)
❌ No random-access mutation, no reordering
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Generic, Iterable, Iterator, Tuple, TypeVar

from app.domain.models import NewsEvent, PricePoint

HISTORY_CAPACITY = 100
NEWS_CAPACITY = 50

T = TypeVar("T")


@dataclass(frozen=True)
class BoundedSeries(Generic[T]):
    capacity: int
    items: Tuple[T, ...] = ()

    def __post_init__(self):
        if self.capacity < 1:
            raise ValueError("Capacity must be at least 1")
        if len(self.items) > self.capacity:
            object.__setattr__(self, "items", tuple(self.items)[-self.capacity:])

    def append(self, item: T):
        return self.extend((item,))

    def extend(self, new_items: Iterable[T]):
        window = deque(self.items, maxlen=self.capacity)
        window.extend(new_items)
        return type(self)(capacity=self.capacity, items=tuple(window))

    def latest(self, limit: int | None = None) -> Tuple[T, ...]:
        if limit is None:
            return self.items
        if limit <= 0:
            return ()
        return self.items[-limit:]

    @property
    def last(self) -> T | None:
        return self.items[-1] if self.items else None

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[T]:
        return iter(self.items)

    def __bool__(self) -> bool:
        return bool(self.items)


class HistoryBuffer(BoundedSeries[PricePoint]):
    """Per-ticker price history (100 points)"""

    @classmethod
    def start(
        cls,
        ticker: str,
        base_price: float,
        ts: datetime,
        capacity: int = HISTORY_CAPACITY,
    ) -> "HistoryBuffer":
        return cls(
            capacity=capacity,
            items=(PricePoint(ticker=ticker, price=base_price, timestamp=ts),),
        )

    @property
    def prices(self) -> Tuple[float, ...]:
        return tuple(p.price for p in self.items)


class NewsWindow(BoundedSeries[NewsEvent]):
    """Global rolling news window (50 events)"""

    @classmethod
    def empty(cls, capacity: int = NEWS_CAPACITY) -> "NewsWindow":
        return cls(capacity=capacity)

    def for_ticker(self, ticker: str) -> Tuple[NewsEvent, ...]:
        return tuple(n for n in self.items if n.ticker == ticker)
