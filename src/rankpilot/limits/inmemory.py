from __future__ import annotations

import logging
import time
import typing as t

from .types import RateLimitDecision, RateLimitOutcome, RateWindow, validate_limits

_logger = logging.getLogger(__name__)

WindowKey = t.Tuple[str, str]


class FixedWindowRateLimiter:
    """Fixed-window request counter keyed by (subject, operation).

    Bursts straddling a window boundary can reach twice `max_requests`; that
    is accepted for abuse deterrence. `check_and_increment` never awaits, so
    the read and the write happen in the same event-loop step.
    """

    def __init__(self, *, clock: t.Callable[[], float] = time.time) -> None:
        self._windows: t.Dict[WindowKey, RateWindow] = {}
        self._clock = clock

    def check_and_increment(
        self,
        subject_id: str,
        operation: str,
        max_requests: int,
        window_seconds: float,
    ) -> RateLimitDecision:
        validate_limits(max_requests, window_seconds)
        now = self._clock()
        key = (subject_id, operation)
        window = self._windows.get(key)

        if window is None or now >= window.window_reset_at:
            window = RateWindow(count=1, window_reset_at=now + window_seconds)
            self._windows[key] = window
            return RateLimitDecision(RateLimitOutcome.ALLOWED, 1, max_requests, window.window_reset_at)

        if window.count >= max_requests:
            # Rejections leave the window untouched; only its expiry lets the subject back in.
            return RateLimitDecision(
                RateLimitOutcome.RATE_LIMITED,
                window.count,
                max_requests,
                window.window_reset_at,
                retry_after_seconds=window.window_reset_at - now,
            )

        window.count += 1
        return RateLimitDecision(RateLimitOutcome.ALLOWED, window.count, max_requests, window.window_reset_at)

    def get_window(self, subject_id: str, operation: str) -> t.Optional[RateWindow]:
        return self._windows.get((subject_id, operation))

    def cleanup_expired_windows(self) -> int:
        now = self._clock()
        expired = [key for key, window in self._windows.items() if window.window_reset_at <= now]
        for key in expired:
            del self._windows[key]
        if expired:
            _logger.debug("Removed %d expired rate-limit windows", len(expired))
        return len(expired)

    def reset(self) -> None:
        self._windows.clear()

    def __len__(self) -> int:
        return len(self._windows)
