"""Unit tests for resilience utilities."""

from unittest.mock import AsyncMock

import pytest

from rankpilot.core.errors import CircuitOpenError
from rankpilot.utils.resilience import CircuitBreaker, CircuitBreakerConfig, CircuitState, with_retries


@pytest.mark.asyncio
class TestWithRetries:
    """Test with_retries retry functionality."""

    async def test_retry_success_first_attempt(self):
        mock_func = AsyncMock(return_value="success")

        result = await with_retries(mock_func, attempts=3)

        assert result == "success"
        assert mock_func.call_count == 1

    async def test_retry_transient_failure_then_success(self):
        call_count = 0

        async def func_with_failures():
            nonlocal call_count
            call_count += 1
            if call_count < 3:
                raise Exception(f"Temporary error {call_count}")
            return "success"

        result = await with_retries(func_with_failures, attempts=3, backoff_ms=[1, 1])

        assert result == "success"
        assert call_count == 3

    async def test_retry_max_attempts_exceeded(self):
        mock_func = AsyncMock(side_effect=Exception("Persistent error"))

        with pytest.raises(Exception, match="Persistent error"):
            await with_retries(mock_func, attempts=3, backoff_ms=[1, 1])

        assert mock_func.call_count == 3

    async def test_non_retryable_error_raises_immediately(self):
        mock_func = AsyncMock(side_effect=KeyError("bad"))

        with pytest.raises(KeyError):
            await with_retries(mock_func, attempts=3, backoff_ms=[1], retry_on=(ConnectionError,))

        assert mock_func.call_count == 1


@pytest.mark.asyncio
class TestCircuitBreaker:
    """Test CircuitBreaker state transitions."""

    async def test_circuit_initially_closed(self, clock):
        breaker = CircuitBreaker(CircuitBreakerConfig(failure_threshold=3), clock=clock)
        mock_func = AsyncMock(return_value="result")

        assert await breaker.run(mock_func) == "result"
        assert breaker.state == CircuitState.CLOSED

    async def test_circuit_opens_after_threshold(self, clock):
        breaker = CircuitBreaker(CircuitBreakerConfig(failure_threshold=3), clock=clock)
        failing_func = AsyncMock(side_effect=Exception("fail"))

        for _ in range(3):
            with pytest.raises(Exception, match="fail"):
                await breaker.run(failing_func)

        with pytest.raises(CircuitOpenError):
            await breaker.run(failing_func)
        assert failing_func.call_count == 3
        assert breaker.state == CircuitState.OPEN

    async def test_half_open_after_timeout_then_closes(self, clock):
        breaker = CircuitBreaker(
            CircuitBreakerConfig(failure_threshold=1, reset_timeout_seconds=30), clock=clock
        )
        with pytest.raises(Exception):
            await breaker.run(AsyncMock(side_effect=Exception("fail")))

        clock.advance(30)
        assert await breaker.run(AsyncMock(return_value="ok")) == "ok"
        assert breaker.state == CircuitState.CLOSED

    async def test_half_open_failure_reopens(self, clock):
        breaker = CircuitBreaker(
            CircuitBreakerConfig(failure_threshold=2, reset_timeout_seconds=30), clock=clock
        )
        failing = AsyncMock(side_effect=Exception("fail"))
        for _ in range(2):
            with pytest.raises(Exception):
                await breaker.run(failing)

        clock.advance(30)
        with pytest.raises(Exception, match="fail"):
            await breaker.run(failing)

        assert breaker.state == CircuitState.OPEN
        with pytest.raises(CircuitOpenError):
            await breaker.run(failing)

    async def test_success_resets_failure_count(self, clock):
        breaker = CircuitBreaker(CircuitBreakerConfig(failure_threshold=2), clock=clock)
        failing = AsyncMock(side_effect=Exception("fail"))

        with pytest.raises(Exception):
            await breaker.run(failing)
        await breaker.run(AsyncMock(return_value="ok"))
        with pytest.raises(Exception, match="fail"):
            await breaker.run(failing)

        assert breaker.state == CircuitState.CLOSED
