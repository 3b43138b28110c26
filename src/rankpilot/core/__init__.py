"""Core module: runtime ownership and error types."""

from .errors import (
    CircuitOpenError,
    ConfigurationError,
    InternalError,
    InvalidArgumentError,
    RankPilotError,
    RateLimitExceededError,
    UnauthenticatedError,
)

__all__ = [
    "RankPilotError",
    "InvalidArgumentError",
    "UnauthenticatedError",
    "RateLimitExceededError",
    "ConfigurationError",
    "CircuitOpenError",
    "InternalError",
]
