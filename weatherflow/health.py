"""In-memory health registry for the weather data layer.

Collects provider error counters, query cache statistics and snapshot store
degradations so the health endpoint can report them.
"""
from __future__ import annotations

from dataclasses import dataclass
from threading import Lock
from typing import Dict, Mapping, Optional


@dataclass(frozen=True)
class CacheStats:
    """Simple container for cache related counters."""

    hits: int = 0
    misses: int = 0
    keys: int = 0

    def as_dict(self) -> Dict[str, int]:
        return {"hits": self.hits, "misses": self.misses, "keys": self.keys}


class HealthRegistry:
    """Stores provider error counters, cache stats and storage degradations."""

    def __init__(self) -> None:
        self._provider_errors: Dict[str, int] = {}
        self._cache_stats: CacheStats = CacheStats()
        self._storage_unavailable = 0
        self._lock = Lock()

    # -- Provider errors ----------------------------------------------------
    def record_provider_error(self, provider: str, increment: int = 1) -> None:
        if not provider:
            raise ValueError("provider must be provided")
        if increment <= 0:
            raise ValueError("increment must be positive")
        with self._lock:
            self._provider_errors[provider] = (
                self._provider_errors.get(provider, 0) + increment
            )

    # -- Storage ------------------------------------------------------------
    def record_storage_unavailable(self, _error: Optional[Exception] = None) -> None:
        with self._lock:
            self._storage_unavailable += 1

    # -- Cache stats --------------------------------------------------------
    def set_cache_stats(self, stats: Optional[Mapping[str, int]]) -> None:
        if not stats:
            self._cache_stats = CacheStats()
            return
        hits = int(stats.get("hits", 0))
        misses = int(stats.get("misses", 0))
        keys = int(stats.get("keys", 0))
        self._cache_stats = CacheStats(hits=hits, misses=misses, keys=keys)

    # -- Snapshot -----------------------------------------------------------
    def snapshot(self) -> Dict[str, object]:
        with self._lock:
            providers = dict(self._provider_errors)
            cache = self._cache_stats.as_dict()
            storage = {"unavailable": self._storage_unavailable}
        return {"providers": providers, "cache": cache, "storage": storage}


__all__ = ["CacheStats", "HealthRegistry"]
