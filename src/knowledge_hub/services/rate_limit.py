"""Per-user vote rate limiting."""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable
from threading import Lock

import redis

from knowledge_hub.core.errors import RateLimited
from knowledge_hub.core.settings import settings

logger = logging.getLogger(__name__)


class VoteRateLimiter:
    """Fixed-window counters for minute, hour and day vote quotas.

    Counters live in Redis when `REDIS_URL` is configured and in process
    memory otherwise; a Redis failure falls back to memory for the lifetime
    of the limiter.
    """

    def __init__(
        self,
        limits: dict[str, tuple[int, int]] | None = None,
        redis_url: str | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.limits = limits if limits is not None else settings.vote_rate_limits
        self._clock = clock
        self._counters: dict[str, list[float]] = {}
        self._lock = Lock()
        self._redis: redis.Redis | None = None
        url = redis_url if redis_url is not None else settings.redis_url
        if url:
            self._redis = redis.Redis.from_url(url)

    def hit(self, user_id: int) -> list[str]:
        """Record one vote attempt for `user_id` and return the counter keys it used.

        Raises:
            RateLimited: If any window is already full; nothing is recorded then.
        """
        now = self._clock()
        buckets = {
            name: (_bucket_key(user_id, name, window, now), limit, window)
            for name, (limit, window) in self.limits.items()
        }

        keys = [key for key, _limit, _window in buckets.values()]
        if self._redis is not None:
            try:
                self._hit_redis(self._redis, buckets, now)
                return keys
            except redis.RedisError as err:
                logger.warning("Vote rate limiter falling back to memory: %s", err)
                self._redis = None

        self._hit_memory(buckets, now)
        return keys

    def release(self, keys: list[str]) -> None:
        """Give back an attempt recorded by `hit` whose vote was never applied."""
        if self._redis is not None:
            try:
                pipe = self._redis.pipeline()
                for key in keys:
                    pipe.decr(key)
                pipe.execute()
                return
            except redis.RedisError as err:
                logger.warning("Vote rate limiter could not release %s: %s", keys, err)
                self._redis = None

        with self._lock:
            for key in keys:
                entry = self._counters.get(key)
                if entry is not None and entry[0] > 0:
                    entry[0] -= 1

    @staticmethod
    def _hit_redis(
        client: redis.Redis, buckets: dict[str, tuple[str, int, int]], now: float
    ) -> None:
        names = list(buckets)
        counts = client.mget([buckets[name][0] for name in names])
        for name, raw in zip(names, counts, strict=True):
            _key, limit, window = buckets[name]
            if raw is not None and int(raw) >= limit:
                raise _limited(name, window, now)

        # INCR and EXPIRE go out together so a bucket never outlives its window.
        pipe = client.pipeline()
        for key, _limit, window in buckets.values():
            pipe.incr(key)
            pipe.expire(key, window)
        pipe.execute()

    def _hit_memory(self, buckets: dict[str, tuple[str, int, int]], now: float) -> None:
        with self._lock:
            expired = [key for key, (_count, expires_at) in self._counters.items() if expires_at <= now]
            for key in expired:
                del self._counters[key]

            for name, (key, limit, window) in buckets.items():
                entry = self._counters.get(key)
                if entry is not None and entry[0] >= limit:
                    raise _limited(name, window, now)
            for key, _limit, window in buckets.values():
                entry = self._counters.setdefault(key, [0, _bucket_start(now, window) + window])
                entry[0] += 1


def _bucket_key(user_id: int, name: str, window: int, now: float) -> str:
    return f"votes:{user_id}:{name}:{int(now // window)}"


def _bucket_start(now: float, window: int) -> int:
    return int(now // window) * window


def _limited(name: str, window: int, now: float) -> RateLimited:
    retry_after = max(1, math.ceil(_bucket_start(now, window) + window - now))
    return RateLimited(f"Vote limit per {name} exceeded", retry_after=retry_after)


_vote_rate_limiter: VoteRateLimiter | None = None


def get_vote_rate_limiter() -> VoteRateLimiter:
    """Return the shared vote rate limiter."""
    global _vote_rate_limiter
    if _vote_rate_limiter is None:
        _vote_rate_limiter = VoteRateLimiter()
    return _vote_rate_limiter
