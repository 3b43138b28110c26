"""rankpilot

In-process runtime state for the RankPilot Functions tier: an expiring cache,
a bounded instance pool, a fixed-window rate limiter, and the call sites that
use them (keyword suggestions, pooled AI clients, security middleware).
"""

from .ai.client_manager import AIClientManager
from .cache.expiring_cache import ExpiringCache
from .cache.instance_pool import InstancePool
from .core.errors import (
    CircuitOpenError,
    ConfigurationError,
    InternalError,
    InvalidArgumentError,
    RankPilotError,
    RateLimitExceededError,
    UnauthenticatedError,
)
from .core.runtime import RuntimeContext
from .keywords import (
    KeywordSuggestion,
    KeywordSuggestionService,
    KeywordSuggestionsRequest,
    KeywordSuggestionsResponse,
)
from .limits import (
    FixedWindowRateLimiter,
    RateLimitDecision,
    RateLimitOutcome,
    RateLimitPolicy,
    RateWindow,
    RedisRateLimiter,
)
from .scheduling import BackgroundSweeper
from .security import RateLimitGuard, SecurityMiddleware
from .utils.config import RuntimeConfig

__all__ = [
    "RuntimeContext",
    "RuntimeConfig",
    "ExpiringCache",
    "InstancePool",
    "FixedWindowRateLimiter",
    "RedisRateLimiter",
    "RateLimitDecision",
    "RateLimitOutcome",
    "RateLimitPolicy",
    "RateWindow",
    "BackgroundSweeper",
    "AIClientManager",
    "KeywordSuggestionService",
    "KeywordSuggestion",
    "KeywordSuggestionsRequest",
    "KeywordSuggestionsResponse",
    "RateLimitGuard",
    "SecurityMiddleware",
    "RankPilotError",
    "InvalidArgumentError",
    "UnauthenticatedError",
    "RateLimitExceededError",
    "ConfigurationError",
    "CircuitOpenError",
    "InternalError",
]

__version__ = "0.1.0"
