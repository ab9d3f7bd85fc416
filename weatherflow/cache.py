from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, replace
from typing import Any, Awaitable, Callable, Dict, Generic, List, Optional, TypeVar

from .entities import CANONICAL_UNITS, GeoPoint, location_key

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueryPolicy:
    stale_time: float
    cache_time: float


CURRENT_POLICY = QueryPolicy(stale_time=8 * 60, cache_time=15 * 60)
FORECAST_POLICY = QueryPolicy(stale_time=30 * 60, cache_time=60 * 60)


@dataclass(frozen=True)
class QueryKey:
    """Cache identity. ``units`` is always the canonical unit system."""

    operation: str
    lat: float
    lon: float
    units: str = CANONICAL_UNITS

    @classmethod
    def for_point(cls, operation: str, point: GeoPoint) -> "QueryKey":
        return cls(operation, round(point.lat, 4), round(point.lon, 4), CANONICAL_UNITS)

    @property
    def location_key(self) -> str:
        return location_key(self.lat, self.lon)


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    key: QueryKey
    value: T
    fetched_at: float
    stale_after: float
    expires_after: float

    def __post_init__(self) -> None:
        if not self.fetched_at <= self.stale_after <= self.expires_after:
            raise ValueError("expected fetched_at <= stale_after <= expires_after")

    @classmethod
    def create(cls, key: QueryKey, value: T, now: float, policy: QueryPolicy) -> "CacheEntry[T]":
        stale_after = now + policy.stale_time
        return cls(
            key=key,
            value=value,
            fetched_at=now,
            stale_after=stale_after,
            expires_after=max(stale_after, now + policy.cache_time),
        )

    def is_fresh(self, now: float) -> bool:
        return now < self.stale_after

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_after


class _InFlight:
    def __init__(self, task: "asyncio.Task[Any]", background: bool) -> None:
        self.task = task
        self.background = background
        self.waiters = 0


Observer = Callable[[CacheEntry[Any]], None]


class QueryCache:
    """Keyed, time bounded cache with per-key request sharing.

    Fresh entries are served as is; stale entries are served while one
    background refresh runs; missing or expired entries are fetched before
    returning. A fetch that is cancelled never writes into the cache.
    """

    def __init__(self, time_func: Callable[[], float] = time.time) -> None:
        self._time_func = time_func
        self._entries: Dict[QueryKey, CacheEntry[Any]] = {}
        self._inflight: Dict[QueryKey, _InFlight] = {}
        self._observers: Dict[QueryKey, List[Observer]] = {}
        self._hits = 0
        self._misses = 0

    # Public API ---------------------------------------------------------
    async def fetch(self, key: QueryKey, fetcher: Callable[[], Awaitable[T]], policy: QueryPolicy) -> T:
        self.prune()
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            logger.debug("Cache miss for %s", key)
            return await self._await_shared(key, fetcher, policy)
        self._hits += 1
        if not entry.is_fresh(self._time_func()):
            logger.debug("Serving stale %s while revalidating", key)
            self._start(key, fetcher, policy, background=True)
        return entry.value

    async def refetch(self, key: QueryKey, fetcher: Callable[[], Awaitable[T]], policy: QueryPolicy) -> T:
        """Fetch now, keeping the current value visible until the result lands."""
        self.invalidate(key)
        return await self._await_shared(key, fetcher, policy)

    def get_entry(self, key: QueryKey) -> Optional[CacheEntry[Any]]:
        entry = self._entries.get(key)
        if entry is not None and entry.is_expired(self._time_func()):
            self._entries.pop(key, None)
            return None
        return entry

    def invalidate(self, key: QueryKey) -> bool:
        entry = self._entries.get(key)
        if entry is None:
            return False
        now = self._time_func()
        stale_after = max(entry.fetched_at, min(entry.stale_after, now))
        self._entries[key] = replace(entry, stale_after=stale_after)
        return True

    def invalidate_where(self, predicate: Callable[[QueryKey], bool]) -> int:
        return sum(1 for key in list(self._entries) if predicate(key) and self.invalidate(key))

    def cancel(self, key: QueryKey) -> bool:
        flight = self._inflight.get(key)
        if flight is None or flight.task.done():
            return False
        flight.task.cancel()
        return True

    def cancel_where(self, predicate: Callable[[QueryKey], bool]) -> int:
        return sum(1 for key in list(self._inflight) if predicate(key) and self.cancel(key))

    def is_fetching(self, key: QueryKey) -> bool:
        return key in self._inflight

    def subscribe(self, key: QueryKey, callback: Observer) -> Callable[[], None]:
        self._observers.setdefault(key, []).append(callback)

        def unsubscribe() -> None:
            callbacks = self._observers.get(key, [])
            if callback in callbacks:
                callbacks.remove(callback)

        return unsubscribe

    def prune(self) -> int:
        now = self._time_func()
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def stats(self) -> Dict[str, int]:
        return {"hits": self._hits, "misses": self._misses, "keys": len(self._entries)}

    async def drain(self) -> None:
        """Wait for every in-flight fetch, including background refreshes."""
        while self._inflight:
            tasks = [flight.task for flight in self._inflight.values()]
            await asyncio.gather(*tasks, return_exceptions=True)
            await asyncio.sleep(0)

    def clear(self) -> None:
        self._entries.clear()

    async def close(self) -> None:
        for flight in list(self._inflight.values()):
            flight.task.cancel()
        await self.drain()
        self._entries.clear()
        self._observers.clear()

    # Helpers ------------------------------------------------------------
    def _start(
        self,
        key: QueryKey,
        fetcher: Callable[[], Awaitable[Any]],
        policy: QueryPolicy,
        *,
        background: bool,
    ) -> _InFlight:
        flight = self._inflight.get(key)
        if flight is not None:
            return flight
        task = asyncio.ensure_future(self._run(key, fetcher, policy))
        flight = _InFlight(task, background)
        self._inflight[key] = flight

        def done(finished: "asyncio.Task[Any]") -> None:
            if self._inflight.get(key) is flight:
                del self._inflight[key]
            if finished.cancelled():
                logger.debug("Fetch for %s cancelled", key)
                return
            exc = finished.exception()
            if exc is not None and flight.background and flight.waiters == 0:
                logger.warning("Background refresh for %s failed: %s", key, exc)

        task.add_done_callback(done)
        return flight

    async def _await_shared(self, key: QueryKey, fetcher: Callable[[], Awaitable[T]], policy: QueryPolicy) -> T:
        flight = self._start(key, fetcher, policy, background=False)
        flight.waiters += 1
        try:
            return await asyncio.shield(flight.task)
        except asyncio.CancelledError:
            if flight.waiters == 1 and not flight.task.done():
                flight.task.cancel()
            raise
        finally:
            flight.waiters -= 1

    async def _run(self, key: QueryKey, fetcher: Callable[[], Awaitable[T]], policy: QueryPolicy) -> T:
        value = await fetcher()
        entry = CacheEntry.create(key, value, self._time_func(), policy)
        self._entries[key] = entry
        self._notify(key, entry)
        return value

    def _notify(self, key: QueryKey, entry: CacheEntry[Any]) -> None:
        for callback in list(self._observers.get(key, [])):
            try:
                callback(entry)
            except Exception:  # noqa: BLE001
                logger.exception("Cache observer for %s failed", key)


__all__ = [
    "QueryPolicy",
    "QueryKey",
    "CacheEntry",
    "QueryCache",
    "CURRENT_POLICY",
    "FORECAST_POLICY",
]
