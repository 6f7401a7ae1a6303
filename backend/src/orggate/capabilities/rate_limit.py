"""Per-organization global rate limiting.

Sliding-window counters in Redis sorted sets, one per (org, window). The
limits come from the org's security policy. When Redis is unavailable the
limiter degrades open: invocations are allowed and a warning is logged.

check() and record() are separate so only invocations that pass
authorization consume the org's budget.
"""

import time
import uuid
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional
from uuid import UUID

from redis import Redis, RedisError

from ..config import get_settings
from ..observability.logging_config import get_logger
from ..observability.metrics import rate_limit_rejections_total

logger = get_logger(__name__)

MINUTE_WINDOW_SECONDS = 60
DAY_WINDOW_SECONDS = 86_400


@dataclass
class RateLimitResult:
    limited: bool
    window: Optional[str] = None  # "minute" | "day"


def get_redis_client() -> Redis:
    """Get Redis client for rate limiting.

    The client connects lazily and reconnects on its own; outages surface
    as RedisError on individual commands.
    """
    return Redis.from_url(get_settings().REDIS_URL, decode_responses=True, socket_connect_timeout=1)


def _key(org_id: UUID, window: str) -> str:
    return f"org_rate_limit:{window}:{org_id}"


def _windows(per_minute: Optional[int], per_day: Optional[int]):
    return (
        ("minute", per_minute, MINUTE_WINDOW_SECONDS),
        ("day", per_day, DAY_WINDOW_SECONDS),
    )


class OrgRateLimiter:
    """Sliding-window limiter for capability invocations per organization."""

    def __init__(self, client: Optional[Redis] = None):
        self.redis = client if client is not None else get_redis_client()

    def _window_count(self, key: str, window_seconds: int, now: float) -> int:
        self.redis.zremrangebyscore(key, 0, now - window_seconds)
        return self.redis.zcard(key)

    def check(
        self,
        org_id: UUID,
        per_minute: Optional[int],
        per_day: Optional[int],
        now: Optional[float] = None,
    ) -> RateLimitResult:
        """Report whether a window is already full, without recording."""
        now = now if now is not None else time.time()
        try:
            for name, limit, seconds in _windows(per_minute, per_day):
                if limit is not None and self._window_count(_key(org_id, name), seconds, now) >= limit:
                    rate_limit_rejections_total.labels(window=name).inc()
                    return RateLimitResult(limited=True, window=name)
        except RedisError as e:
            logger.warning(f"Rate limiter unavailable, allowing: {e}", extra={"org_id": org_id})
        return RateLimitResult(limited=False)

    def record(
        self,
        org_id: UUID,
        per_minute: Optional[int],
        per_day: Optional[int],
        now: Optional[float] = None,
    ) -> None:
        """Count one invocation in every configured window."""
        now = now if now is not None else time.time()
        member = f"{now}:{uuid.uuid4().hex}"
        try:
            for name, limit, seconds in _windows(per_minute, per_day):
                if limit is None:
                    continue
                key = _key(org_id, name)
                self.redis.zadd(key, {member: now})
                self.redis.expire(key, seconds)
        except RedisError as e:
            logger.warning(f"Rate limiter unavailable, invocation not counted: {e}", extra={"org_id": org_id})

    def check_and_record(
        self,
        org_id: UUID,
        per_minute: Optional[int],
        per_day: Optional[int],
        now: Optional[float] = None,
    ) -> RateLimitResult:
        """Record one invocation unless a window is already full."""
        result = self.check(org_id, per_minute, per_day, now=now)
        if not result.limited:
            self.record(org_id, per_minute, per_day, now=now)
        return result


@lru_cache()
def get_rate_limiter() -> OrgRateLimiter:
    return OrgRateLimiter()
