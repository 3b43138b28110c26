from __future__ import annotations

import time
import typing as t

from redis.asyncio import Redis

from .types import RateLimitDecision, RateLimitOutcome, validate_limits

# Returns {allowed, count, ttl_ms}. A rejected attempt performs no writes.
_CHECK_AND_INCREMENT = """
local current = redis.call('GET', KEYS[1])
local max_requests = tonumber(ARGV[1])
local window_ms = tonumber(ARGV[2])
local ttl = redis.call('PTTL', KEYS[1])
if (not current) or ttl < 0 then
  redis.call('SET', KEYS[1], 1, 'PX', window_ms)
  return {1, 1, window_ms}
end
current = tonumber(current)
if current >= max_requests then
  return {0, current, ttl}
end
current = redis.call('INCR', KEYS[1])
return {1, current, ttl}
"""


class RedisRateLimiter:
    """Fixed-window limiter whose windows live in Redis.

    - Windows are stored as integer counters at `{prefix}:ratelimit:{subject}:{operation}`
    - Window expiry is a native key TTL, so there is nothing to sweep locally
    - Check and increment run in a single Lua script, atomically on the server
    """

    def __init__(
        self,
        url: str = "redis://localhost:6379/0",
        *,
        prefix: str = "rankpilot",
        client: t.Optional[Redis] = None,
        clock: t.Callable[[], float] = time.time,
    ) -> None:
        self._prefix = prefix.rstrip(":")
        self._redis = client if client is not None else Redis.from_url(url, decode_responses=True)
        self._clock = clock

    def _window_key(self, subject_id: str, operation: str) -> str:
        return f"{self._prefix}:ratelimit:{subject_id}:{operation}"

    async def check_and_increment(
        self,
        subject_id: str,
        operation: str,
        max_requests: int,
        window_seconds: float,
    ) -> RateLimitDecision:
        validate_limits(max_requests, window_seconds)
        window_ms = max(1, int(window_seconds * 1000))
        allowed, count, ttl_ms = await self._redis.eval(  # type: ignore[misc]
            _CHECK_AND_INCREMENT,
            1,
            self._window_key(subject_id, operation),
            max_requests,
            window_ms,
        )
        ttl_seconds = int(ttl_ms) / 1000.0
        reset_at = self._clock() + ttl_seconds
        if int(allowed):
            return RateLimitDecision(RateLimitOutcome.ALLOWED, int(count), max_requests, reset_at)
        return RateLimitDecision(
            RateLimitOutcome.RATE_LIMITED,
            int(count),
            max_requests,
            reset_at,
            retry_after_seconds=ttl_seconds,
        )

    def cleanup_expired_windows(self) -> int:
        return 0

    async def reset(self, subject_id: str, operation: str) -> None:
        await self._redis.delete(self._window_key(subject_id, operation))

    async def is_healthy(self) -> bool:
        try:
            return bool(await self._redis.ping())
        except Exception:
            return False

    async def close(self) -> None:
        await self._redis.aclose()
