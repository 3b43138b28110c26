from __future__ import annotations

import logging
import time
import typing as t
from dataclasses import dataclass

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

_logger = logging.getLogger(__name__)

SweepCallback = t.Callable[[], t.Any]


@dataclass
class _Registration:
    name: str
    callback: SweepCallback
    interval_seconds: float
    last_run_at: float


class BackgroundSweeper:
    """One shared scheduler that drives every registered maintenance callback.

    Each callback becomes an interval job on an `AsyncIOScheduler`, keyed by its
    name. Callbacks are synchronous and must not block; jobs run them on the
    event loop. `run_pending()` runs whatever is due by the injected clock
    without the scheduler. `stop()` is the one call that tears down all
    background work for the process.
    """

    def __init__(
        self,
        misfire_grace_seconds: float = 30.0,
        *,
        clock: t.Callable[[], float] = time.time,
        scheduler: t.Optional[AsyncIOScheduler] = None,
    ) -> None:
        if misfire_grace_seconds <= 0:
            raise ValueError("misfire_grace_seconds must be positive")
        self._clock = clock
        self._registrations: t.Dict[str, _Registration] = {}
        self._scheduler = scheduler or AsyncIOScheduler(
            job_defaults={
                "coalesce": True,
                "max_instances": 1,
                "misfire_grace_time": max(1, int(misfire_grace_seconds)),
            }
        )

    @property
    def scheduler(self) -> AsyncIOScheduler:
        return self._scheduler

    def register(self, name: str, callback: SweepCallback, interval_seconds: float) -> None:
        if self._scheduler.get_job(name) is not None:
            raise ValueError(f"sweep callback {name!r} is already registered")
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._registrations[name] = _Registration(name, callback, interval_seconds, self._clock())
        self._scheduler.add_job(
            self._run_job,
            trigger=IntervalTrigger(seconds=interval_seconds),
            args=[name],
            id=name,
            name=f"sweep:{name}",
            replace_existing=True,
        )

    def unregister(self, name: str) -> None:
        self._registrations.pop(name, None)
        if self._scheduler.get_job(name) is not None:
            self._scheduler.remove_job(name)

    @property
    def registered(self) -> t.List[str]:
        return list(self._registrations)

    @property
    def is_running(self) -> bool:
        return self._scheduler.running

    def run_pending(self) -> t.List[str]:
        now = self._clock()
        ran: t.List[str] = []
        for reg in list(self._registrations.values()):
            if now - reg.last_run_at < reg.interval_seconds:
                continue
            if self._execute(reg, now):
                ran.append(reg.name)
        return ran

    def _execute(self, reg: _Registration, now: float) -> bool:
        reg.last_run_at = now
        try:
            result = reg.callback()
        except Exception:
            _logger.exception("Sweep callback %s failed", reg.name)
            return False
        if result:
            _logger.debug("Sweep %s: %s", reg.name, result)
        return True

    async def _run_job(self, name: str) -> None:
        # Coroutine jobs run on the loop rather than in the executor's thread pool
        reg = self._registrations.get(name)
        if reg is not None:
            self._execute(reg, self._clock())

    async def start(self) -> None:
        if self.is_running:
            return
        self._scheduler.start()
        _logger.info("Background sweeper started with %d callbacks", len(self._registrations))

    async def stop(self) -> None:
        if not self.is_running:
            return
        self._scheduler.shutdown(wait=False)
        _logger.info("Background sweeper stopped")
