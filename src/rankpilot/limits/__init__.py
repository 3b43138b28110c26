from .inmemory import FixedWindowRateLimiter
from .redis import RedisRateLimiter
from .types import RateLimitDecision, RateLimitOutcome, RateLimitPolicy, RateWindow

__all__ = [
    "FixedWindowRateLimiter",
    "RedisRateLimiter",
    "RateLimitDecision",
    "RateLimitOutcome",
    "RateLimitPolicy",
    "RateWindow",
]
