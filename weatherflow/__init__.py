from .app import WeatherApp, create_app
from .entities import CANONICAL_UNITS, CanonicalForecast, CanonicalWeather, GeoPoint, Snapshot

__all__ = [
    "WeatherApp",
    "create_app",
    "CANONICAL_UNITS",
    "CanonicalForecast",
    "CanonicalWeather",
    "GeoPoint",
    "Snapshot",
]
