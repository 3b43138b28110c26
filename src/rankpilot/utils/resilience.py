from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, List, Optional, Tuple, Type, TypeVar

from rankpilot.core.errors import CircuitOpenError

T = TypeVar("T")

_logger = logging.getLogger(__name__)


@dataclass
class CircuitBreakerConfig:
    failure_threshold: int = 5
    reset_timeout_seconds: float = 30.0


class CircuitState:
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """Fails fast once an upstream has produced `failure_threshold` errors in a row."""

    def __init__(
        self,
        config: Optional[CircuitBreakerConfig] = None,
        *,
        name: str = "upstream",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config or CircuitBreakerConfig()
        self._name = name
        self._clock = clock
        self._state = CircuitState.CLOSED
        self._failures = 0
        self._opened_at = 0.0

    @property
    def state(self) -> str:
        return self._state

    def _can_attempt(self) -> bool:
        if self._state == CircuitState.OPEN:
            if (self._clock() - self._opened_at) >= self._config.reset_timeout_seconds:
                self._state = CircuitState.HALF_OPEN
                _logger.info("Circuit %s half-open; allowing a trial call", self._name)
                return True
            return False
        return True

    def _on_success(self) -> None:
        if self._state != CircuitState.CLOSED:
            _logger.info("Circuit %s closed", self._name)
        self._state = CircuitState.CLOSED
        self._failures = 0

    def _on_failure(self) -> None:
        self._failures += 1
        if self._state == CircuitState.HALF_OPEN or self._failures >= self._config.failure_threshold:
            if self._state != CircuitState.OPEN:
                _logger.warning("Circuit %s opened after %d failures", self._name, self._failures)
            self._state = CircuitState.OPEN
            self._opened_at = self._clock()

    async def run(self, fn: Callable[[], Awaitable[T]]) -> T:
        if not self._can_attempt():
            raise CircuitOpenError(f"{self._name} is temporarily unavailable", details={"circuit": self._name})
        try:
            result = await fn()
        except Exception:
            self._on_failure()
            raise
        else:
            self._on_success()
            return result


async def with_retries(
    coro_factory: Callable[[], Awaitable[T]],
    attempts: int = 3,
    backoff_ms: Optional[Iterable[int]] = None,
    *,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
) -> T:
    backoff_seq: List[int] = list(backoff_ms or [100, 500, 2000])
    last_exc: BaseException | None = None
    for attempt in range(attempts):
        try:
            return await coro_factory()
        except retry_on as exc:
            last_exc = exc
            if attempt == attempts - 1:
                break
            delay_ms = backoff_seq[min(attempt, len(backoff_seq) - 1)]
            _logger.debug("Attempt %d/%d failed (%s); retrying in %dms", attempt + 1, attempts, exc, delay_ms)
            await asyncio.sleep(delay_ms / 1000.0)
    assert last_exc is not None
    raise last_exc
