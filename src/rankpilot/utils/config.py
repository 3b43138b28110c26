from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any, Dict, List, Optional


@dataclass
class KeywordCacheConfig:
    ttl_seconds: float = 3600.0
    sweep_interval_seconds: float = 300.0


@dataclass
class AIClientConfig:
    default_model: str = "gemini-2.0-flash"
    pool_max_size: int = 10
    pool_cleanup_interval_seconds: float = 1800.0
    request_timeout_seconds: float = 60.0
    # Explicit keys win over the provider's environment variable.
    api_keys: Dict[str, str] = dataclasses.field(default_factory=dict)


@dataclass
class RateLimitConfig:
    backend: str = "memory"  # memory | redis
    redis_url: Optional[str] = None
    default_max_requests: int = 100
    default_window_seconds: float = 60.0
    cleanup_interval_seconds: float = 300.0
    # operation -> {"max_requests": int, "window_seconds": float}
    operations: Dict[str, Dict[str, float]] = dataclasses.field(
        default_factory=lambda: {"keyword_suggestions": {"max_requests": 30, "window_seconds": 60.0}}
    )
    # tier -> requests per window; overrides the operation ceiling when a tier is given
    tier_max_requests: Dict[str, int] = dataclasses.field(
        default_factory=lambda: {
            "free": 5,
            "starter": 20,
            "agency": 60,
            "enterprise": 200,
            "admin": 1000,
        }
    )


@dataclass
class ResilienceConfig:
    circuit_breaker_enabled: bool = True
    failure_threshold: int = 5
    reset_timeout_seconds: float = 30.0
    retry_max_attempts: int = 2
    retry_backoff_ms: List[int] = dataclasses.field(default_factory=lambda: [200, 1000])


@dataclass
class SchedulerConfig:
    misfire_grace_seconds: float = 30.0


@dataclass
class RuntimeConfig:
    keyword_cache: KeywordCacheConfig = dataclasses.field(default_factory=KeywordCacheConfig)
    ai: AIClientConfig = dataclasses.field(default_factory=AIClientConfig)
    rate_limit: RateLimitConfig = dataclasses.field(default_factory=RateLimitConfig)
    resilience: ResilienceConfig = dataclasses.field(default_factory=ResilienceConfig)
    scheduler: SchedulerConfig = dataclasses.field(default_factory=SchedulerConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RuntimeConfig":
        def build(dc_cls, key):
            values = data.get(key, {})
            return dc_cls(**values)

        return cls(
            keyword_cache=build(KeywordCacheConfig, "keyword_cache"),
            ai=build(AIClientConfig, "ai"),
            rate_limit=build(RateLimitConfig, "rate_limit"),
            resilience=build(ResilienceConfig, "resilience"),
            scheduler=build(SchedulerConfig, "scheduler"),
        )
