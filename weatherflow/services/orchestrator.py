"""Retry, error classification and offline fallback around a provider."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Awaitable, Callable, List, Optional, TypeVar

import requests

from ..entities import CANONICAL_UNITS, CanonicalForecast, CanonicalWeather, GeoPoint
from ..errors import ClientError, ProviderError, QuotaExceeded, TransientError
from ..health import HealthRegistry
from ..providers.base import WeatherProvider
from ..snapshot import SnapshotStore

T = TypeVar("T")

BASE_DELAY = 1.0
MAX_DELAY = 30.0


def retry_delay(attempt: int) -> float:
    """Exponential backoff in seconds, capped at 30s."""
    return min(BASE_DELAY * 2 ** attempt, MAX_DELAY)


def classify(exc: BaseException) -> ProviderError:
    """Translate a transport level failure into the provider error taxonomy."""
    if isinstance(exc, ProviderError):
        return exc
    if isinstance(exc, requests.HTTPError):
        response = exc.response
        status = response.status_code if response is not None else None
        if status == 429:
            return QuotaExceeded("quota exceeded", status=status)
        if status is not None and 400 <= status < 500:
            return ClientError(f"HTTP {status}", status=status)
        return TransientError(f"HTTP {status}", status=status)
    if isinstance(exc, requests.Timeout):
        return TransientError("timeout")
    if isinstance(exc, requests.RequestException):
        return TransientError(f"network error: {exc}")
    return TransientError(str(exc))


class FetchOrchestrator:
    def __init__(
        self,
        provider: WeatherProvider,
        snapshots: SnapshotStore,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        max_retries: int = 1,
        registry: Optional[HealthRegistry] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.provider = provider
        self.snapshots = snapshots
        self.max_retries = max_retries
        self.registry = registry
        self._sleep = sleep
        self._log = logger or logging.getLogger(self.__class__.__name__)

    # Public API ---------------------------------------------------------
    async def fetch_current(self, point: GeoPoint) -> CanonicalWeather:
        return await self._with_retry("current", lambda: self.provider.fetch_current(point, CANONICAL_UNITS))

    async def fetch_forecast(self, point: GeoPoint) -> CanonicalForecast:
        try:
            forecast = await self._with_retry("forecast", lambda: self.provider.fetch_forecast(point, CANONICAL_UNITS))
        except ClientError:
            raise
        except TransientError:
            fallback = self._recover(point)
            if fallback is None:
                raise
            return fallback
        self.snapshots.save(forecast, point.key, CANONICAL_UNITS)
        return forecast

    async def search_locations(self, query: str) -> List[GeoPoint]:
        return await self._with_retry("search", lambda: self.provider.search_locations(query))

    # Helpers ------------------------------------------------------------
    async def _with_retry(self, operation: str, call: Callable[[], Awaitable[T]]) -> T:
        attempt = 0
        while True:
            try:
                return await call()
            except (ProviderError, requests.RequestException) as exc:
                error = classify(exc)
                self._record(error)
                if isinstance(error, ClientError):
                    self._log.error("Provider %s rejected %s: %s", self.provider.name, operation, error)
                    if error is exc:
                        raise
                    raise error from exc
                if attempt >= self.max_retries:
                    self._log.error(
                        "Provider %s failed %s after %s attempts: %s",
                        self.provider.name,
                        operation,
                        attempt + 1,
                        error,
                    )
                    if error is exc:
                        raise
                    raise error from exc
                delay = retry_delay(attempt)
                self._log.warning(
                    "Provider %s %s attempt %s failed (%s), retrying in %.1fs",
                    self.provider.name,
                    operation,
                    attempt + 1,
                    error,
                    delay,
                )
                await self._sleep(delay)
                attempt += 1

    def _recover(self, point: GeoPoint) -> Optional[CanonicalForecast]:
        snapshot = self.snapshots.load()
        if snapshot is None:
            return None
        if snapshot.units != CANONICAL_UNITS:
            self._log.info("Snapshot in %s units cannot be served", snapshot.units)
            return None
        if not self.snapshots.is_recent(snapshot):
            self._log.info("Snapshot from %s is too old to serve", snapshot.timestamp)
            return None
        if snapshot.location_key != point.key:
            self._log.warning("Serving snapshot for %s while %s is unavailable", snapshot.location_key, point.key)
        self._log.warning("Using cached forecast data from %s due to network error", snapshot.timestamp)
        return replace(
            snapshot.data,
            cached=True,
            cached_at=snapshot.timestamp,
            cached_location=snapshot.location_key,
        )

    def _record(self, error: ProviderError) -> None:
        if self.registry is not None:
            self.registry.record_provider_error(self.provider.name)


__all__ = ["FetchOrchestrator", "classify", "retry_delay", "BASE_DELAY", "MAX_DELAY"]
