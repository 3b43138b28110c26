from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple


@dataclass
class Counter:
    name: str
    help: str
    values: Dict[Tuple, float] = field(default_factory=dict)

    def inc(self, value: float = 1.0, **labels: Any) -> None:
        key = tuple(sorted(labels.items()))
        self.values[key] = self.values.get(key, 0.0) + value

    def get(self, **labels: Any) -> float:
        return self.values.get(tuple(sorted(labels.items())), 0.0)

    def reset(self) -> None:
        self.values.clear()


@dataclass
class Histogram:
    name: str
    help: str
    buckets: List[float]
    counts: Dict[Tuple, List[int]] = field(default_factory=dict)

    def observe(self, val: float, **labels: Any) -> None:
        key = tuple(sorted(labels.items()))
        if key not in self.counts:
            # trailing slot collects values above the last bucket
            self.counts[key] = [0 for _ in range(len(self.buckets) + 1)]
        for i, b in enumerate(self.buckets):
            if val <= b:
                self.counts[key][i] += 1
                break
        else:
            self.counts[key][-1] += 1

    def total(self, **labels: Any) -> int:
        return sum(self.counts.get(tuple(sorted(labels.items())), []))

    def reset(self) -> None:
        self.counts.clear()


# Predefined metrics
cache_requests_total = Counter("rankpilot_cache_requests_total", "Keyword cache lookups by result")
pool_events_total = Counter("rankpilot_pool_events_total", "Instance pool creations, resets and cleanups")
rate_limit_decisions_total = Counter(
    "rankpilot_rate_limit_decisions_total", "Rate limiter decisions by operation and outcome"
)
llm_fallbacks_total = Counter("rankpilot_llm_fallbacks_total", "LLM calls replaced by a local fallback")
llm_latency_seconds = Histogram(
    "rankpilot_llm_latency_seconds",
    "Outbound LLM call latency",
    buckets=[0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0],
)


def reset_all() -> None:
    for metric in (
        cache_requests_total,
        pool_events_total,
        rate_limit_decisions_total,
        llm_fallbacks_total,
        llm_latency_seconds,
    ):
        metric.reset()
