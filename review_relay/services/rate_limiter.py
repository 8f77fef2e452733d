"""
Sliding-window rate limiting.

The limiter depends on a ``CounterStore`` capability (counting with expiry)
so the in-process store can be swapped for the Redis one without touching
call sites. Each process limits independently unless they share Redis.
"""

import time
import uuid
from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, Optional, Protocol

import redis.asyncio as redis
from redis.exceptions import RedisError

from review_relay.utils.logging import get_logger

logger = get_logger(__name__)


class CounterStore(Protocol):
    """Counts hits per key within a trailing time window."""

    async def hit(self, key: str, window_seconds: float, now: float, cap: int) -> int:
        """
        Record a hit at ``now`` and return the hits within the window.

        At most ``cap`` hits are kept per key; once the window holds that many,
        further hits are counted as ``cap`` without being stored.
        """
        ...

    async def oldest(self, key: str, window_seconds: float, now: float) -> Optional[float]:
        """Timestamp of the oldest hit still inside the window, if any."""
        ...

    async def ping(self) -> bool:
        ...


class InMemoryCounterStore:
    """Per-process store keeping a timestamp log per key."""

    def __init__(self):
        self._hits: Dict[str, Deque[float]] = {}
        self._next_sweep = 0.0

    def _trim(self, key: str, window_seconds: float, now: float) -> Deque[float]:
        hits = self._hits.setdefault(key, deque())
        cutoff = now - window_seconds
        while hits and hits[0] <= cutoff:
            hits.popleft()
        return hits

    async def hit(self, key: str, window_seconds: float, now: float, cap: int) -> int:
        hits = self._trim(key, window_seconds, now)
        if len(hits) < cap:
            hits.append(now)
        count = len(hits)
        if now >= self._next_sweep:
            self._evict_idle(window_seconds, now)
            self._next_sweep = now + window_seconds
        return count

    async def oldest(self, key: str, window_seconds: float, now: float) -> Optional[float]:
        hits = self._trim(key, window_seconds, now)
        return hits[0] if hits else None

    async def ping(self) -> bool:
        return True

    def _evict_idle(self, window_seconds: float, now: float) -> None:
        cutoff = now - window_seconds
        idle = [key for key, hits in self._hits.items() if not hits or hits[-1] <= cutoff]
        for key in idle:
            del self._hits[key]


class RedisCounterStore:
    """
    Shared store backed by Redis sorted sets.

    Each key is a sorted set of hit ids scored by timestamp; entries older
    than the window are pruned on every hit and the key expires with it.
    """

    KEY_PREFIX = "rate_limit:{key}"

    def __init__(self, client: redis.Redis):
        self._client = client

    @classmethod
    def from_url(cls, redis_url: str) -> "RedisCounterStore":
        return cls(redis.Redis.from_url(redis_url, decode_responses=True))

    async def hit(self, key: str, window_seconds: float, now: float, cap: int) -> int:
        redis_key = self.KEY_PREFIX.format(key=key)
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.zremrangebyscore(redis_key, "-inf", now - window_seconds)
            pipe.zcard(redis_key)
            results = await pipe.execute()
        count = int(results[1])
        if count >= cap:
            return cap

        member = f"{now}:{uuid.uuid4().hex}"
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.zadd(redis_key, {member: now})
            pipe.expire(redis_key, max(1, int(window_seconds) + 1))
            await pipe.execute()
        return count + 1

    async def oldest(self, key: str, window_seconds: float, now: float) -> Optional[float]:
        redis_key = self.KEY_PREFIX.format(key=key)
        entries = await self._client.zrangebyscore(
            redis_key, f"({now - window_seconds}", "+inf", start=0, num=1, withscores=True
        )
        return float(entries[0][1]) if entries else None

    async def ping(self) -> bool:
        try:
            return bool(await self._client.ping())
        except RedisError as e:
            logger.error(f"Redis ping failed: {e}")
            return False

    async def close(self) -> None:
        await self._client.aclose()


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of one rate-limit check."""

    allowed: bool
    limit: int
    remaining: int
    reset_after: float


class SlidingWindowRateLimiter:
    """Allows ``limit`` requests per key in any trailing ``window_seconds``."""

    def __init__(self, store: CounterStore, limit: int, window_seconds: float, clock=time.time):
        self.store = store
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock

    async def check(self, key: str) -> RateLimitDecision:
        now = self._clock()
        # one past the limit is enough to reject
        count = await self.store.hit(key, self.window_seconds, now, cap=self.limit + 1)
        allowed = count <= self.limit

        oldest = await self.store.oldest(key, self.window_seconds, now)
        reset_after = self.window_seconds if oldest is None else max(0.0, oldest + self.window_seconds - now)

        if not allowed:
            logger.warning(
                "Rate limit exceeded",
                extra={"client": key, "count": count, "limit": self.limit},
            )

        return RateLimitDecision(
            allowed=allowed,
            limit=self.limit,
            remaining=max(0, self.limit - count),
            reset_after=reset_after,
        )


def build_counter_store(redis_url: Optional[str]) -> CounterStore:
    """Pick the Redis store when a URL is configured, else the in-process one."""
    if redis_url:
        logger.info("Using Redis rate-limit store")
        return RedisCounterStore.from_url(redis_url)
    return InMemoryCounterStore()
