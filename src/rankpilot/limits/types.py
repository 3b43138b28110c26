from __future__ import annotations

import enum
from dataclasses import dataclass


class RateLimitOutcome(str, enum.Enum):
    ALLOWED = "ALLOWED"
    RATE_LIMITED = "RATE_LIMITED"


@dataclass
class RateWindow:
    count: int
    window_reset_at: float


@dataclass(frozen=True)
class RateLimitPolicy:
    max_requests: int
    window_seconds: float


@dataclass(frozen=True)
class RateLimitDecision:
    outcome: RateLimitOutcome
    count: int
    max_requests: int
    reset_at: float
    retry_after_seconds: float = 0.0

    @property
    def allowed(self) -> bool:
        return self.outcome is RateLimitOutcome.ALLOWED

    @property
    def remaining(self) -> int:
        return max(0, self.max_requests - self.count)


def validate_limits(max_requests: int, window_seconds: float) -> None:
    if max_requests < 1:
        raise ValueError("max_requests must be at least 1")
    if window_seconds <= 0:
        raise ValueError("window_seconds must be positive")
