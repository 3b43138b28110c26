from __future__ import annotations

import asyncio
import time
import typing as t

K = t.TypeVar("K", bound=t.Hashable)
V = t.TypeVar("V")

Clock = t.Callable[[], float]


class ExpiringCache(t.Generic[K, V]):
    """Per-process TTL cache.

    Expired entries are never returned: `get` deletes them on the way out, and
    `sweep` removes whatever is left behind by keys that are never read again.
    Insertion order carries no meaning and there is no size bound; the owner is
    expected to call `sweep` on some cadence.
    """

    def __init__(self, ttl_seconds: float = 3600.0, *, clock: Clock = time.time) -> None:
        self._store: t.Dict[K, t.Tuple[float, V]] = {}
        self._ttl = ttl_seconds
        self._clock = clock
        self._inflight: t.Dict[K, "asyncio.Future[V]"] = {}
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def get(self, key: K, default: t.Optional[V] = None) -> t.Optional[V]:
        item = self._store.get(key)
        if item is None:
            self._misses += 1
            return default
        expires_at, value = item
        if expires_at <= self._clock():
            del self._store[key]
            self._evictions += 1
            self._misses += 1
            return default
        self._hits += 1
        return value

    def set(self, key: K, value: V, ttl_seconds: t.Optional[float] = None) -> None:
        ttl = self._ttl if ttl_seconds is None else ttl_seconds
        self._store[key] = (self._clock() + ttl, value)

    def sweep(self) -> int:
        now = self._clock()
        expired = [key for key, (expires_at, _) in self._store.items() if expires_at <= now]
        for key in expired:
            del self._store[key]
        self._evictions += len(expired)
        return len(expired)

    def delete(self, key: K) -> None:
        self._store.pop(key, None)

    def clear(self) -> None:
        self._store.clear()

    async def get_or_compute(
        self,
        key: K,
        compute: t.Callable[[], t.Awaitable[V]],
        ttl_seconds: t.Optional[float] = None,
    ) -> t.Tuple[V, bool]:
        """Return `(value, hit)`, running `compute` at most once per key at a time.

        Callers that arrive while a computation for the same key is in flight
        wait for it and are reported as hits. If `compute` raises, every waiter
        sees the exception and nothing is stored. If the computing caller is
        cancelled, one of the waiters takes over the computation.
        """
        while True:
            item = self._store.get(key)
            if item is not None and item[0] > self._clock():
                self._hits += 1
                return item[1], True

            pending = self._inflight.get(key)
            if pending is None:
                break
            # asyncio.wait never cancels the awaited future
            await asyncio.wait((pending,))
            if pending.cancelled():
                continue
            self._hits += 1
            return pending.result(), True

        # Counts the miss and evicts a stale entry, if any.
        self.get(key)
        future: "asyncio.Future[V]" = asyncio.get_running_loop().create_future()
        self._inflight[key] = future
        try:
            value = await compute()
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as exc:
            future.set_exception(exc)
            # Mark retrieved so an unobserved failure does not warn at GC time.
            future.exception()
            raise
        else:
            self.set(key, value, ttl_seconds)
            future.set_result(value)
            return value, False
        finally:
            self._inflight.pop(key, None)

    def stats(self) -> t.Dict[str, int]:
        return {
            "hits": self._hits,
            "misses": self._misses,
            "evictions": self._evictions,
            "size": len(self._store),
        }

    def __contains__(self, key: object) -> bool:
        item = self._store.get(key)  # type: ignore[call-overload]
        return item is not None and item[0] > self._clock()

    def __len__(self) -> int:
        return len(self._store)
