"""
Market runtime: owns the simulation state and drives it on two schedules.

- Price tick (every MARKET_TICK_SECONDS): all companies advance together
  from one shared snapshot
- News refresh (immediately, then every NEWS_REFRESH_SECONDS): merges new
  events into the rolling news window
- Trade entry points (buy / sell): synchronous ledger calls against the
  current price snapshot

State is a frozen MarketState replaced wholesale under a lock; readers
always get a consistent snapshot.
"""

from __future__ import annotations

import asyncio
import logging
import random
import threading
from dataclasses import replace
from datetime import datetime
from typing import Callable, Dict, List, Optional, Set, Tuple

import pytz
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.config import Settings, settings as app_settings
from app.domain.errors import (
    InitializationFailure,
    MarketNotReady,
    NoPosition,
    UnknownTicker,
)
from app.domain.models import Company, MarketState, NewsEvent, Portfolio, PricePoint
from app.domain.services import portfolio_ledger as ledger
from app.domain.services.buffers import (
    HISTORY_CAPACITY,
    NEWS_CAPACITY,
    HistoryBuffer,
    NewsWindow,
)
from app.domain.services.price_engine import PriceEngine
from app.infrastructure.cache.redis_cache import RedisCache
from app.infrastructure.cache.snapshot_cache import CachedSnapshot, SnapshotCache
from app.infrastructure.news.fallback_news import FallbackNewsSynthesizer
from app.infrastructure.news.news_generator import NewsGenerator
from app.infrastructure.roster.company_roster import CompanyRosterProvider
from app.infrastructure.llm.text_client import TextGenerationClient
from app.utils.time import now_utc, to_iso

logger = logging.getLogger(__name__)

PRICE_TICK_JOB_ID = "market_price_tick"
NEWS_REFRESH_JOB_ID = "market_news_refresh"


class MarketOrchestrator:
    def __init__(
        self,
        roster_provider: CompanyRosterProvider,
        news_generator: NewsGenerator,
        price_engine: Optional[PriceEngine] = None,
        rng: Optional[random.Random] = None,
        snapshot_cache: Optional[SnapshotCache] = None,
        company_count: int = 8,
        starting_cash: float = ledger.DEFAULT_STARTING_CASH,
        tick_seconds: float = 4.0,
        news_refresh_seconds: float = 30.0,
        news_events_range: Tuple[int, int] = (1, 3),
        snapshot_every_ticks: int = 5,
        history_capacity: int = HISTORY_CAPACITY,
        news_capacity: int = NEWS_CAPACITY,
        timezone: str = "UTC",
        clock: Callable[[], datetime] = now_utc,
    ):
        low, high = news_events_range
        if low < 1 or high < low:
            raise ValueError("news_events_range must satisfy 1 <= low <= high")

        self._roster_provider = roster_provider
        self._news_generator = news_generator
        self._rng = rng or random.Random()
        self._price_engine = price_engine or PriceEngine(self._rng)
        self._snapshot_cache = snapshot_cache
        self._company_count = company_count
        self._starting_cash = starting_cash
        self._tick_seconds = tick_seconds
        self._news_refresh_seconds = news_refresh_seconds
        self._news_events_range = (low, high)
        self._snapshot_every_ticks = max(1, snapshot_every_ticks)
        self._history_capacity = history_capacity
        self._news_capacity = news_capacity
        self._timezone = timezone
        self._clock = clock

        self._lock = threading.Lock()
        self._state: Optional[MarketState] = None
        self._roster: Tuple[Company, ...] = ()
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._background: Set[asyncio.Task] = set()
        # Bumped on stop(); news results fetched under an older generation are discarded
        self._generation = 0
        self._stopped = False
        self._last_news_error: Optional[str] = None

    @classmethod
    def from_settings(cls, cfg: Settings = app_settings) -> "MarketOrchestrator":
        rng = random.Random(cfg.MARKET_SEED)
        client = TextGenerationClient()

        snapshot_cache = None
        if cfg.REDIS_ENABLED:
            snapshot_cache = SnapshotCache(
                RedisCache(url=cfg.REDIS_URL, prefix=cfg.REDIS_PREFIX, enabled=True),
                ttl_seconds=cfg.SNAPSHOT_TTL_SECONDS,
            )

        return cls(
            roster_provider=CompanyRosterProvider(client=client),
            news_generator=NewsGenerator(
                client=client,
                fallback=FallbackNewsSynthesizer(rng),
                fallback_enabled=cfg.NEWS_FALLBACK_ENABLED,
            ),
            rng=rng,
            snapshot_cache=snapshot_cache,
            company_count=cfg.MARKET_COMPANY_COUNT,
            starting_cash=cfg.STARTING_CASH,
            tick_seconds=cfg.MARKET_TICK_SECONDS,
            news_refresh_seconds=cfg.NEWS_REFRESH_SECONDS,
            news_events_range=(cfg.NEWS_MIN_EVENTS, cfg.NEWS_MAX_EVENTS),
            snapshot_every_ticks=cfg.SNAPSHOT_EVERY_TICKS,
            timezone=cfg.TIMEZONE,
        )

    # ------------------------------------------------------------------
    # STATE ACCESS
    # ------------------------------------------------------------------

    @property
    def is_ready(self) -> bool:
        return self._state is not None

    @property
    def is_running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    @property
    def roster(self) -> Tuple[Company, ...]:
        return self._roster

    def snapshot(self) -> MarketState:
        state = self._state
        if state is None:
            raise MarketNotReady("Market has not been initialized")
        return state

    # ------------------------------------------------------------------
    # INITIALIZATION
    # ------------------------------------------------------------------

    async def initialize(self) -> MarketState:
        """
        Build the initial market state.

        Raises:
            InitializationFailure: roster unavailable or invalid
        """
        try:
            companies = await self._roster_provider.generate_companies(self._company_count)
        except InitializationFailure:
            raise
        except Exception as exc:
            raise InitializationFailure(f"Company roster unavailable: {exc}") from exc

        tickers = [c.ticker for c in companies]
        if not tickers or len(tickers) != len(set(tickers)):
            raise InitializationFailure("Company roster must be non-empty with unique tickers")

        started_at = self._clock()
        state = MarketState(
            companies=tuple(companies),
            prices={c.ticker: c.base_price for c in companies},
            price_history={
                c.ticker: HistoryBuffer.start(
                    c.ticker, c.base_price, started_at, capacity=self._history_capacity
                )
                for c in companies
            },
            news=NewsWindow.empty(capacity=self._news_capacity),
            portfolio=ledger.initial_portfolio(self._starting_cash),
            started_at=started_at,
        )
        state = await self._restore_cached(state)

        with self._lock:
            self._roster = state.companies
            self._state = state
            self._stopped = False

        logger.info("Market initialized with %d companies: %s", len(tickers), ", ".join(tickers))
        return state

    async def _restore_cached(self, state: MarketState) -> MarketState:
        if self._snapshot_cache is None:
            return state
        try:
            cached = await self._snapshot_cache.load(state.tickers)
        except Exception as exc:
            logger.warning("Snapshot restore failed: %s", exc)
            return state
        if cached is None:
            return state
        try:
            restored = self._apply_cached(state, cached)
        except ValueError as exc:
            logger.warning("Cached snapshot rejected, starting fresh: %s", exc)
            return state
        logger.info("Restored market snapshot saved at %s", cached.saved_at.isoformat())
        return restored

    def _apply_cached(self, state: MarketState, cached: CachedSnapshot) -> MarketState:
        history: Dict[str, HistoryBuffer] = {}
        for ticker, points in cached.history.items():
            items = tuple(p.to_domain() for p in points)
            if not items:
                items = state.price_history[ticker].items
            history[ticker] = HistoryBuffer(capacity=self._history_capacity, items=items)
        return replace(
            state,
            prices=dict(cached.prices),
            price_history=history,
            portfolio=cached.portfolio.to_domain(),
            tick_count=cached.tick_count,
        )

    # ------------------------------------------------------------------
    # PRICE TICK
    # ------------------------------------------------------------------

    def tick(self) -> MarketState:
        """Advance every company one step from a single shared snapshot."""
        with self._lock:
            state = self._require_state()
            now = self._clock()

            prices: Dict[str, float] = {}
            history: Dict[str, HistoryBuffer] = {}
            for company in state.companies:
                ticker = company.ticker
                new_price = self._price_engine.next_price(
                    state.prices[ticker], company, state.news, now=now
                )
                prices[ticker] = new_price
                history[ticker] = state.price_history[ticker].append(
                    PricePoint(ticker=ticker, price=new_price, timestamp=now)
                )

            new_state = replace(
                state,
                prices=prices,
                price_history=history,
                tick_count=state.tick_count + 1,
                last_tick_at=now,
            )
            self._state = new_state

        if new_state.tick_count % self._snapshot_every_ticks == 0:
            self._schedule_snapshot_save()
        return new_state

    async def _price_tick_job(self) -> None:
        if self._stopped:
            return
        try:
            self.tick()
        except Exception as exc:
            logger.error("Price tick failed: %s", exc, exc_info=True)

    # ------------------------------------------------------------------
    # NEWS REFRESH
    # ------------------------------------------------------------------

    async def refresh_news(self) -> List[NewsEvent]:
        """
        Fetch 1-3 events for the roster captured at start and merge them.

        Returns the events applied (empty if discarded or none usable).
        Raises whatever the news generator raises.
        """
        self._require_state()
        roster = self._roster
        generation = self._generation
        low, high = self._news_events_range
        count = self._rng.randint(low, high)

        events = await self._news_generator.generate_news(roster, count)

        if self._stopped or generation != self._generation:
            logger.info("Discarding %d news events fetched before shutdown", len(events))
            return []

        known = {c.ticker for c in roster}
        accepted = [e for e in events if e.ticker in known]
        if len(accepted) != len(events):
            logger.debug("Dropped %d news events for unknown tickers", len(events) - len(accepted))
        if not accepted:
            return []

        with self._lock:
            state = self._require_state()
            self._state = replace(
                state,
                news=state.news.extend(accepted),
                last_news_at=self._clock(),
            )

        for event in accepted:
            logger.info("📰 %s (sentiment=%+.2f, magnitude=%.2f)", event.headline, event.sentiment, event.magnitude)
        return accepted

    async def _news_refresh_job(self) -> None:
        if self._stopped:
            return
        try:
            await self.refresh_news()
            self._last_news_error = None
        except Exception as exc:
            self._last_news_error = str(exc)
            logger.warning("News refresh skipped: %s", exc)

    # ------------------------------------------------------------------
    # TRADES
    # ------------------------------------------------------------------

    def buy(self, ticker: str, shares: int) -> Portfolio:
        with self._lock:
            state = self._require_state()
            price = state.prices.get(ticker)
            if price is None:
                raise UnknownTicker(ticker)
            portfolio = ledger.buy(state.portfolio, ticker, shares, price)
            self._state = replace(state, portfolio=portfolio)

        logger.info("BUY %s x%d @ %.2f (cash %.2f)", ticker, shares, price, portfolio.cash)
        self._schedule_snapshot_save()
        return portfolio

    def sell(self, ticker: str, shares: int) -> Portfolio:
        with self._lock:
            state = self._require_state()
            price = state.prices.get(ticker)
            if price is None:
                ledger.validate_quantity(shares, ticker)
                # Tickers outside the roster can never be held
                raise NoPosition(ticker)
            portfolio = ledger.sell(state.portfolio, ticker, shares, price)
            self._state = replace(state, portfolio=portfolio)

        logger.info("SELL %s x%d @ %.2f (cash %.2f)", ticker, shares, price, portfolio.cash)
        self._schedule_snapshot_save()
        return portfolio

    # ------------------------------------------------------------------
    # LIFECYCLE
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Initialize (if needed) and schedule both periodic jobs."""
        if self._state is None:
            await self.initialize()
        if self.is_running:
            return

        self._stopped = False
        scheduler = AsyncIOScheduler(
            timezone=pytz.timezone(self._timezone),
            event_loop=asyncio.get_running_loop(),
        )
        scheduler.add_job(
            self._price_tick_job,
            trigger=IntervalTrigger(seconds=self._tick_seconds),
            id=PRICE_TICK_JOB_ID,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        scheduler.add_job(
            self._news_refresh_job,
            trigger=IntervalTrigger(seconds=self._news_refresh_seconds),
            id=NEWS_REFRESH_JOB_ID,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
            next_run_time=datetime.now(pytz.timezone(self._timezone)),
        )
        scheduler.start()
        self._scheduler = scheduler
        logger.info(
            "Market running: tick every %ss, news every %ss",
            self._tick_seconds,
            self._news_refresh_seconds,
        )

    async def stop(self) -> None:
        self._stopped = True
        self._generation += 1

        if self._scheduler is not None:
            if self._scheduler.running:
                self._scheduler.shutdown(wait=False)
            self._scheduler = None

        for task in list(self._background):
            task.cancel()
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
        self._background.clear()

        if self._snapshot_cache is not None:
            await self._snapshot_cache.close()
        logger.info("Market stopped")

    def get_status(self) -> Dict[str, object]:
        state = self._state
        status: Dict[str, object] = {
            "ready": state is not None,
            "running": self.is_running,
            "companies": len(self._roster),
            "tick_count": 0,
            "news_count": 0,
            "last_tick_at": None,
            "last_news_at": None,
            "last_news_error": self._last_news_error,
            "ts": to_iso(now_utc()),
        }
        if state is not None:
            status["tick_count"] = state.tick_count
            status["news_count"] = len(state.news)
            status["last_tick_at"] = to_iso(state.last_tick_at) if state.last_tick_at else None
            status["last_news_at"] = to_iso(state.last_news_at) if state.last_news_at else None
        return status

    # ------------------------------------------------------------------
    # INTERNALS
    # ------------------------------------------------------------------

    def _require_state(self) -> MarketState:
        if self._state is None:
            raise MarketNotReady("Market has not been initialized")
        return self._state

    def _schedule_snapshot_save(self) -> None:
        if self._snapshot_cache is None or self._stopped:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Called outside the event loop (e.g. from a worker thread)
            return
        task = loop.create_task(self._save_snapshot())
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _save_snapshot(self) -> None:
        try:
            await self._snapshot_cache.save(self.snapshot())
        except Exception as exc:
            logger.warning("Snapshot save failed: %s", exc)

