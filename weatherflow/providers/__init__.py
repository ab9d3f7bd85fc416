from __future__ import annotations

from typing import Optional

import requests

from .base import RequestConfig, WeatherProvider
from .openmeteo import OpenMeteoProvider
from .openweather import OpenWeatherProvider
from ..errors import ConfigurationError
from ..settings import Settings


def build_provider(settings: Settings, session: Optional[requests.Session] = None) -> WeatherProvider:
    """Construct the single provider configured for this process."""
    config = RequestConfig(timeout=settings.http_timeout)
    if settings.provider == OpenMeteoProvider.name:
        return OpenMeteoProvider(session=session, request_config=config)
    if settings.provider == OpenWeatherProvider.name:
        if not settings.api_key:
            raise ConfigurationError("WEATHERFLOW_API_KEY is required for the openweather provider")
        return OpenWeatherProvider(api_key=settings.api_key, session=session, request_config=config)
    raise ConfigurationError(f"Unsupported weather provider: {settings.provider}")


__all__ = [
    "WeatherProvider",
    "RequestConfig",
    "OpenMeteoProvider",
    "OpenWeatherProvider",
    "build_provider",
]
