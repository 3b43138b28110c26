from __future__ import annotations

import logging
import time
import typing as t

from rankpilot.monitoring.metrics import pool_events_total

K = t.TypeVar("K", bound=t.Hashable)
V = t.TypeVar("V")

_logger = logging.getLogger(__name__)


class InstancePool(t.Generic[K, V]):
    """Bounded pool of constructed instances keyed by a logical name.

    When a new key would push the pool past `max_size` the whole pool is
    dropped before the new instance is stored; there is no per-entry recency
    tracking. The pool is also flushed whenever `cleanup_interval_seconds`
    has passed since the last flush, checked on each `acquire`.
    """

    def __init__(
        self,
        max_size: int = 10,
        cleanup_interval_seconds: float = 1800.0,
        *,
        name: str = "pool",
        clock: t.Callable[[], float] = time.time,
    ) -> None:
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self._instances: t.Dict[K, V] = {}
        self._max_size = max_size
        self._cleanup_interval = cleanup_interval_seconds
        self._name = name
        self._clock = clock
        self._last_cleanup_at = clock()
        self._created = 0
        self._resets = 0
        self._cleanups = 0

    @property
    def max_size(self) -> int:
        return self._max_size

    def acquire(self, key: K, factory: t.Callable[[], V]) -> V:
        now = self._clock()
        if now - self._last_cleanup_at >= self._cleanup_interval:
            _logger.info("%s: periodic cleanup of %d instances", self._name, len(self._instances))
            self.cleanup()

        if key in self._instances:
            return self._instances[key]

        if len(self._instances) >= self._max_size:
            _logger.info(
                "%s: reached max_size=%d, dropping all instances", self._name, self._max_size
            )
            self._instances.clear()
            self._resets += 1
            pool_events_total.inc(pool=self._name, event="reset")

        # A failing factory leaves nothing behind under this key.
        instance = factory()
        self._instances[key] = instance
        self._created += 1
        pool_events_total.inc(pool=self._name, event="created")
        return instance

    def cleanup(self) -> None:
        self._instances.clear()
        self._last_cleanup_at = self._clock()
        self._cleanups += 1
        pool_events_total.inc(pool=self._name, event="cleanup")

    def stats(self) -> t.Dict[str, int]:
        return {
            "size": len(self._instances),
            "created": self._created,
            "resets": self._resets,
            "cleanups": self._cleanups,
        }

    def __contains__(self, key: object) -> bool:
        return key in self._instances

    def __len__(self) -> int:
        return len(self._instances)
