from __future__ import annotations

import logging
import time
import typing as t
from dataclasses import dataclass

from rankpilot.ai.client_manager import AIClientManager
from rankpilot.cache.expiring_cache import ExpiringCache
from rankpilot.keywords.service import KeywordSuggestionService
from rankpilot.limits.inmemory import FixedWindowRateLimiter
from rankpilot.limits.redis import RedisRateLimiter
from rankpilot.scheduling.sweeper import BackgroundSweeper
from rankpilot.security.guard import RateLimitGuard
from rankpilot.security.middleware import SecurityMiddleware
from rankpilot.utils.config import RuntimeConfig

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class RuntimeContext:
    """Process-wide runtime state, built once at startup and handed to handlers.

    Owns the keyword cache, the AI client pool, the rate limiter and the one
    background sweeper that maintains all of them. Nothing here is durable;
    a restart simply starts from empty structures.
    """

    config: RuntimeConfig
    keyword_cache: ExpiringCache
    ai: AIClientManager
    rate_limiter: t.Any
    guard: RateLimitGuard
    keywords: KeywordSuggestionService
    sweeper: BackgroundSweeper

    @classmethod
    def create(
        cls,
        config: t.Optional[RuntimeConfig] = None,
        *,
        clock: t.Callable[[], float] = time.time,
        ai: t.Optional[AIClientManager] = None,
        rate_limiter: t.Any = None,
    ) -> "RuntimeContext":
        config = config or RuntimeConfig()

        keyword_cache: ExpiringCache = ExpiringCache(config.keyword_cache.ttl_seconds, clock=clock)
        if ai is None:
            ai = AIClientManager(config.ai, config.resilience, clock=clock)
        if rate_limiter is None:
            rate_limiter = _build_rate_limiter(config, clock)
        guard = RateLimitGuard(rate_limiter, config.rate_limit)
        keywords = KeywordSuggestionService(
            ai,
            keyword_cache,
            guard,
            ttl_seconds=config.keyword_cache.ttl_seconds,
        )

        sweeper = BackgroundSweeper(config.scheduler.misfire_grace_seconds, clock=clock)
        sweeper.register("keyword-cache", keyword_cache.sweep, config.keyword_cache.sweep_interval_seconds)
        sweeper.register("ai-client-pool", ai.cleanup, config.ai.pool_cleanup_interval_seconds)
        sweeper.register(
            "rate-limit-windows",
            rate_limiter.cleanup_expired_windows,
            config.rate_limit.cleanup_interval_seconds,
        )

        return cls(
            config=config,
            keyword_cache=keyword_cache,
            ai=ai,
            rate_limiter=rate_limiter,
            guard=guard,
            keywords=keywords,
            sweeper=sweeper,
        )

    def security_middleware(self, **kwargs: t.Any) -> SecurityMiddleware:
        return SecurityMiddleware(self.guard, **kwargs)

    async def start(self) -> None:
        await self.sweeper.start()

    async def stop(self) -> None:
        """Stop all background work and release the rate limiter's connections."""
        await self.sweeper.stop()
        close = getattr(self.rate_limiter, "close", None)
        if close is not None:
            await close()

    async def __aenter__(self) -> "RuntimeContext":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: t.Any) -> None:
        await self.stop()


def _build_rate_limiter(config: RuntimeConfig, clock: t.Callable[[], float]) -> t.Any:
    backend = config.rate_limit.backend
    if backend == "memory":
        return FixedWindowRateLimiter(clock=clock)
    if backend == "redis":
        if not config.rate_limit.redis_url:
            raise ConfigurationError("rate_limit.redis_url is required for the redis backend")
        logger.info("Using shared Redis rate limiter")
        return RedisRateLimiter(config.rate_limit.redis_url, clock=clock)
    raise ConfigurationError(f"Unknown rate limit backend: {backend}")
