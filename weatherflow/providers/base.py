from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests
from requests import Response

from ..entities import CANONICAL_UNITS, CanonicalForecast, CanonicalWeather, GeoPoint
from ..errors import DataShapeError


logger = logging.getLogger(__name__)

# Substituted when a provider has no barometric pressure.
STANDARD_PRESSURE_HPA = 1013.0


@dataclass
class RequestConfig:
    timeout: float = 10.0
    search_limit: int = 5
    language: str = "en"


class WeatherProvider:
    """Base class for HTTP weather providers.

    Subclasses implement the blocking ``_current``, ``_forecast`` and
    ``_search`` methods; the public coroutines run them in a worker thread so
    the caller's task is suspended instead of the event loop.
    """

    name = "base"

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        request_config: Optional[RequestConfig] = None,
    ) -> None:
        self.request_config = request_config or RequestConfig()
        self.session = session or requests.Session()
        self._log = logging.getLogger(self.__class__.__name__)

    # Public API ---------------------------------------------------------
    async def fetch_current(self, point: GeoPoint, units: str = CANONICAL_UNITS) -> CanonicalWeather:
        self._require_canonical(units)
        return await asyncio.to_thread(self._current, point)

    async def fetch_forecast(self, point: GeoPoint, units: str = CANONICAL_UNITS) -> CanonicalForecast:
        self._require_canonical(units)
        return await asyncio.to_thread(self._forecast, point)

    async def search_locations(self, query: str) -> List[GeoPoint]:
        if not query or not query.strip():
            return []
        return await asyncio.to_thread(self._search, query.strip())

    def close(self) -> None:
        self.session.close()

    # Provider hooks -----------------------------------------------------
    def _current(self, point: GeoPoint) -> CanonicalWeather:
        raise NotImplementedError

    def _forecast(self, point: GeoPoint) -> CanonicalForecast:
        raise NotImplementedError

    def _search(self, query: str) -> List[GeoPoint]:
        raise NotImplementedError

    # Helpers ------------------------------------------------------------
    def _require_canonical(self, units: str) -> None:
        if units != CANONICAL_UNITS:
            raise ValueError(f"providers only fetch canonical units, got {units!r}")

    def _handle_response(self, response: Response) -> Response:
        if response.status_code >= 400:
            self._log.error("Provider returned %s: %s", response.status_code, response.text[:500])
            response.raise_for_status()
        return response

    def _request(self, method: str, url: str, **kwargs) -> Response:
        try:
            response = self.session.request(
                method,
                url,
                timeout=self.request_config.timeout,
                **kwargs,
            )
        except requests.Timeout:
            self._log.error("Request to %s timed out", url)
            raise
        except requests.RequestException as exc:
            self._log.error("Request to %s failed: %s", url, exc)
            raise
        return self._handle_response(response)

    def _get_json(self, url: str, params: Dict[str, Any]) -> Any:
        response = self._request("GET", url, params=params)
        try:
            return response.json()
        except ValueError as exc:
            self._log.error("Failed to decode JSON", exc_info=exc)
            raise DataShapeError("invalid json", status=response.status_code) from exc


def safe_float(value: Optional[object]) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def safe_int(value: Optional[object]) -> Optional[int]:
    number = safe_float(value)
    return None if number is None else int(number)


def safe_index(values: Optional[List[Any]], index: int) -> Optional[float]:
    try:
        value = values[index]  # type: ignore[index]
    except (IndexError, TypeError):
        return None
    return safe_float(value)


def mapping(value: Any, what: str) -> Dict[str, Any]:
    """Nested JSON object, empty when absent. Anything else is a shape error."""
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise DataShapeError(f"{what} is not an object")
    return value


def sequence(value: Any, what: str) -> List[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise DataShapeError(f"{what} is not a list")
    return value


def require_float(payload: Dict[str, Any], field: str) -> float:
    value = safe_float(payload.get(field))
    if value is None:
        raise DataShapeError(f"missing {field}")
    return value


__all__ = [
    "WeatherProvider",
    "RequestConfig",
    "STANDARD_PRESSURE_HPA",
    "safe_float",
    "safe_int",
    "safe_index",
    "require_float",
    "mapping",
    "sequence",
]
