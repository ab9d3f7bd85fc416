"""Application object wiring provider, orchestrator, snapshot store and cache.

One instance is created at start-up and passed to whatever issues requests;
``close()`` tears it down.
"""
from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Optional, Tuple

from .api import HealthAPI
from .cache import CURRENT_POLICY, FORECAST_POLICY, QueryCache, QueryKey
from .entities import CANONICAL_UNITS, CanonicalForecast, CanonicalWeather, GeoPoint
from .health import HealthRegistry
from .providers import WeatherProvider, build_provider
from .services.orchestrator import FetchOrchestrator
from .settings import Settings
from .snapshot import FileStore, KeyValueStore, MemoryStore, SnapshotStore
from .units import Record, convert


logger = logging.getLogger(__name__)

CURRENT = "current"
FORECAST = "forecast"


class WeatherApp:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        provider: Optional[WeatherProvider] = None,
        medium: Optional[KeyValueStore] = None,
        registry: Optional[HealthRegistry] = None,
        time_func: Callable[[], float] = time.time,
        now_func: Optional[Callable[[], datetime]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.settings = settings or Settings()
        self.registry = registry or HealthRegistry()
        self.provider = provider or build_provider(self.settings)
        if medium is None:
            medium = FileStore(self.settings.snapshot_dir) if self.settings.snapshot_dir else MemoryStore()
        self.snapshots = SnapshotStore(
            medium,
            now_func=now_func or (lambda: datetime.fromtimestamp(time_func(), tz=timezone.utc)),
            on_unavailable=self.registry.record_storage_unavailable,
        )
        self.orchestrator = FetchOrchestrator(
            self.provider,
            self.snapshots,
            sleep=sleep,
            max_retries=self.settings.max_retries,
            registry=self.registry,
        )
        self.cache = QueryCache(time_func=time_func)
        self.health_api = HealthAPI(self.registry)

    async def __aenter__(self) -> "WeatherApp":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # Queries ------------------------------------------------------------
    async def current(self, point: GeoPoint, units: str = CANONICAL_UNITS) -> CanonicalWeather:
        key = QueryKey.for_point(CURRENT, point)
        record = await self.cache.fetch(key, lambda: self.orchestrator.fetch_current(point), CURRENT_POLICY)
        self._sync_stats()
        return self.convert(record, units)

    async def forecast(self, point: GeoPoint, units: str = CANONICAL_UNITS) -> CanonicalForecast:
        key = QueryKey.for_point(FORECAST, point)
        record = await self.cache.fetch(key, lambda: self.orchestrator.fetch_forecast(point), FORECAST_POLICY)
        self._sync_stats()
        return self.convert(record, units)

    async def search(self, query: str) -> List[GeoPoint]:
        return await self.orchestrator.search_locations(query)

    def convert(self, record: Record, units: str) -> Record:
        """Re-express a canonical record in display units. Never fetches."""
        return convert(record, CANONICAL_UNITS, units)

    # UI events ----------------------------------------------------------
    def select_location(self, point: GeoPoint) -> int:
        """Cancel in-flight fetches for every location other than ``point``."""
        cancelled = self.cache.cancel_where(lambda key: key.location_key != point.key)
        if cancelled:
            logger.info("Cancelled %s in-flight fetches after switching to %s", cancelled, point.key)
        return cancelled

    async def retry(
        self, point: GeoPoint, units: str = CANONICAL_UNITS
    ) -> Tuple[CanonicalWeather, CanonicalForecast]:
        current_key = QueryKey.for_point(CURRENT, point)
        forecast_key = QueryKey.for_point(FORECAST, point)
        current, forecast = await asyncio.gather(
            self.cache.refetch(current_key, lambda: self.orchestrator.fetch_current(point), CURRENT_POLICY),
            self.cache.refetch(forecast_key, lambda: self.orchestrator.fetch_forecast(point), FORECAST_POLICY),
        )
        self._sync_stats()
        return self.convert(current, units), self.convert(forecast, units)

    def clear_snapshot(self) -> bool:
        return self.snapshots.clear()

    async def close(self) -> None:
        await self.cache.close()
        self.provider.close()

    def _sync_stats(self) -> None:
        self.registry.set_cache_stats(self.cache.stats())


def create_app(settings: Optional[Settings] = None, **kwargs) -> WeatherApp:
    return WeatherApp(settings or Settings.from_env(), **kwargs)


__all__ = ["WeatherApp", "create_app", "CURRENT", "FORECAST"]
