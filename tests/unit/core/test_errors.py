"""Unit tests for the error hierarchy."""

import pytest

from rankpilot.core.errors import (
    CircuitOpenError,
    ConfigurationError,
    InternalError,
    InvalidArgumentError,
    RankPilotError,
    RateLimitExceededError,
    UnauthenticatedError,
)


class TestErrors:
    @pytest.mark.parametrize(
        "error_cls, code, status",
        [
            (InvalidArgumentError, "invalid-argument", 400),
            (UnauthenticatedError, "unauthenticated", 401),
            (ConfigurationError, "failed-precondition", 412),
            (CircuitOpenError, "unavailable", 503),
            (InternalError, "internal", 500),
        ],
    )
    def test_codes_and_statuses(self, error_cls, code, status):
        err = error_cls("message")

        assert isinstance(err, RankPilotError)
        assert err.code == code
        assert err.http_status == status
        assert err.to_dict() == {"code": code, "message": "message", "details": {}}

    def test_rate_limit_error_is_distinct_and_actionable(self):
        err = RateLimitExceededError(operation="keyword_suggestions", retry_after_seconds=12.5)

        assert err.code == "resource-exhausted"
        assert err.http_status == 429
        assert err.retry_after_seconds == 12.5
        assert err.to_dict()["details"] == {"operation": "keyword_suggestions", "retryAfterSeconds": 12.5}
        assert not isinstance(err, InternalError)
