from __future__ import annotations

import typing as t


class RankPilotError(Exception):
    """Base error for request handlers.

    Each subclass carries a stable `code` that callers can branch on, and an
    HTTP status used when the error is rendered by the ASGI layer.
    """

    code = "internal"
    http_status = 500

    def __init__(self, message: str, *, details: t.Optional[t.Dict[str, t.Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> t.Dict[str, t.Any]:
        return {"code": self.code, "message": self.message, "details": dict(self.details)}


class InvalidArgumentError(RankPilotError):
    code = "invalid-argument"
    http_status = 400


class UnauthenticatedError(RankPilotError):
    code = "unauthenticated"
    http_status = 401


class ConfigurationError(RankPilotError):
    code = "failed-precondition"
    http_status = 412


class CircuitOpenError(RankPilotError):
    code = "unavailable"
    http_status = 503


class InternalError(RankPilotError):
    code = "internal"
    http_status = 500


class RateLimitExceededError(RankPilotError):
    """Raised when a subject exhausts its request window for an operation."""

    code = "resource-exhausted"
    http_status = 429

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        *,
        operation: t.Optional[str] = None,
        retry_after_seconds: float = 0.0,
    ) -> None:
        super().__init__(
            message,
            details={"operation": operation, "retryAfterSeconds": retry_after_seconds},
        )
        self.operation = operation
        self.retry_after_seconds = retry_after_seconds
