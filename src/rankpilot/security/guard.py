from __future__ import annotations

import inspect
import logging
import typing as t

from rankpilot.core.errors import RateLimitExceededError
from rankpilot.limits.types import RateLimitDecision, RateLimitPolicy
from rankpilot.monitoring.metrics import rate_limit_decisions_total
from rankpilot.utils.config import RateLimitConfig

logger = logging.getLogger(__name__)


class RateLimitGuard:
    """Applies per-operation rate-limit policies on behalf of request handlers.

    The limiter may be the in-process `FixedWindowRateLimiter` (synchronous) or
    a `RedisRateLimiter` (returns an awaitable); both are accepted.
    """

    def __init__(self, limiter: t.Any, config: t.Optional[RateLimitConfig] = None) -> None:
        self._limiter = limiter
        self._config = config or RateLimitConfig()

    def policy_for(self, operation: str, tier: t.Optional[str] = None) -> RateLimitPolicy:
        override = self._config.operations.get(operation, {})
        max_requests = int(override.get("max_requests", self._config.default_max_requests))
        window_seconds = float(override.get("window_seconds", self._config.default_window_seconds))
        if tier is not None:
            tier_limit = self._config.tier_max_requests.get(tier)
            if tier_limit is None:
                logger.warning("Unknown user tier %s; applying free tier limits", tier)
                tier_limit = self._config.tier_max_requests.get("free", max_requests)
            max_requests = int(tier_limit)
        return RateLimitPolicy(max_requests=max_requests, window_seconds=window_seconds)

    async def check(self, subject_id: str, operation: str, tier: t.Optional[str] = None) -> RateLimitDecision:
        policy = self.policy_for(operation, tier)
        decision = self._limiter.check_and_increment(
            subject_id, operation, policy.max_requests, policy.window_seconds
        )
        if inspect.isawaitable(decision):
            decision = await decision
        rate_limit_decisions_total.inc(operation=operation, outcome=decision.outcome.value)
        return decision

    async def enforce(self, subject_id: str, operation: str, tier: t.Optional[str] = None) -> RateLimitDecision:
        decision = await self.check(subject_id, operation, tier)
        if not decision.allowed:
            logger.warning(
                "Rate limit exceeded subject=%s operation=%s count=%d retry_after=%.1fs",
                subject_id,
                operation,
                decision.count,
                decision.retry_after_seconds,
            )
            raise RateLimitExceededError(
                f"Too many requests for {operation}; retry in {decision.retry_after_seconds:.0f}s",
                operation=operation,
                retry_after_seconds=decision.retry_after_seconds,
            )
        return decision
