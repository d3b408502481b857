"""
Redis-backed JSON store behind the market snapshot cache.

Best effort only: the market never waits on redis. After a failed call the
store stays quiet for RETRY_AFTER_SECONDS, so a missing redis costs one
warning per outage instead of one per tick.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Callable, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

RETRY_AFTER_SECONDS = 60.0


class RedisCache:
    def __init__(
        self,
        url: str,
        prefix: str = "tradestreet:",
        enabled: bool = True,
        client: Optional[redis.Redis] = None,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self._url = url
        self._prefix = prefix
        self._enabled = enabled
        self._client = client
        self._monotonic = monotonic
        self._down = False
        self._retry_at = 0.0

    @property
    def client(self) -> redis.Redis:
        # Connections are opened on first command, not here
        if self._client is None:
            self._client = redis.Redis.from_url(self._url, decode_responses=True)
        return self._client

    @property
    def available(self) -> bool:
        return self._enabled and self._monotonic() >= self._retry_at

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def _mark_down(self, operation: str, exc: Exception) -> None:
        if not self._down:
            logger.warning(
                "Redis %s failed; snapshot cache paused for %.0fs: %s",
                operation,
                RETRY_AFTER_SECONDS,
                exc,
            )
        self._down = True
        self._retry_at = self._monotonic() + RETRY_AFTER_SECONDS

    def _mark_up(self) -> None:
        if self._down:
            logger.info("Redis reachable again; snapshot cache resumed")
        self._down = False
        self._retry_at = 0.0

    async def get_json(self, key: str) -> Optional[Any]:
        if not self.available:
            return None
        try:
            raw = await self.client.get(self._key(key))
        except RedisError as exc:
            self._mark_down("GET", exc)
            return None
        self._mark_up()
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError as exc:
            logger.debug("Ignoring non-JSON value at %s: %s", self._key(key), exc)
            return None

    async def set_json(self, key: str, value: Any, ttl_seconds: int) -> None:
        if not self.available:
            return
        try:
            await self.client.set(self._key(key), json.dumps(value), ex=ttl_seconds)
        except RedisError as exc:
            self._mark_down("SET", exc)
            return
        self._mark_up()

    async def close(self) -> None:
        if self._client is None:
            return
        try:
            await self._client.aclose()
        except RedisError as exc:
            logger.debug("Redis close failed: %s", exc)
        self._client = None
