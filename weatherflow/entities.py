from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

METRIC = "metric"
IMPERIAL = "imperial"
CANONICAL_UNITS = METRIC
SUPPORTED_UNITS = (METRIC, IMPERIAL)


@dataclass(frozen=True)
class GeoPoint:
    """A location. Only ``lat``/``lon`` take part in cache identity."""

    lat: float
    lon: float
    name: Optional[str] = None
    country: Optional[str] = None

    @property
    def key(self) -> str:
        return location_key(self.lat, self.lon)

    @property
    def label(self) -> str:
        if self.name and self.country:
            return f"{self.name}, {self.country}"
        return self.name or f"{self.lat:.2f}, {self.lon:.2f}"


def location_key(lat: float, lon: float) -> str:
    return f"{lat:.4f}:{lon:.4f}"


@dataclass(frozen=True)
class Condition:
    code: Optional[int]
    main: str
    description: str
    icon: str


@dataclass(frozen=True)
class CanonicalWeather:
    """Normalized current conditions.

    Values are always metric so providers are interchangeable:
    - temperature in Celsius
    - wind speed in km/h, direction in degrees
    - pressure in hectopascal (hPa)
    - humidity in percent
    """

    lat: float
    lon: float
    name: str
    observed_at: int
    utc_offset: int
    temp: float
    feels_like: float
    pressure: float
    condition: Condition
    humidity: Optional[float] = None
    wind_speed: Optional[float] = None
    wind_deg: Optional[float] = None
    source: str = ""


@dataclass(frozen=True)
class DailyForecast:
    date: str
    dt: int
    temp_min: float
    temp_max: float
    condition: Condition


@dataclass(frozen=True)
class HourlyPoint:
    time: int
    temperature: float


@dataclass(frozen=True)
class CanonicalForecast:
    """Six calendar days starting today plus a 24 point hourly series."""

    daily: List[DailyForecast]
    hourly: List[HourlyPoint]
    utc_offset: int
    hourly_source: str = "upstream"
    source: str = ""
    cached: bool = False
    cached_at: Optional[str] = None
    # Location key of the snapshot served as a fallback.
    cached_location: Optional[str] = None

    def outlook(self) -> List[DailyForecast]:
        """Days after today, as shown in the five day list."""
        return list(self.daily[1:])


@dataclass(frozen=True)
class Snapshot:
    data: CanonicalForecast
    timestamp: str
    location_key: str
    units: str

    @property
    def saved_at(self) -> datetime:
        return parse_iso(self.timestamp)

    def age(self, now: datetime) -> timedelta:
        return now - self.saved_at

    def formatted_time(self) -> str:
        return self.saved_at.strftime("%m/%d/%Y, %H:%M")


def parse_iso(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# serialization ----------------------------------------------------------
def forecast_to_dict(forecast: CanonicalForecast) -> Dict[str, Any]:
    return asdict(forecast)


def _condition_from_dict(payload: Dict[str, Any]) -> Condition:
    return Condition(
        code=payload.get("code"),
        main=payload["main"],
        description=payload["description"],
        icon=payload["icon"],
    )


def forecast_from_dict(payload: Dict[str, Any]) -> CanonicalForecast:
    daily = [
        DailyForecast(
            date=item["date"],
            dt=int(item["dt"]),
            temp_min=item["temp_min"],
            temp_max=item["temp_max"],
            condition=_condition_from_dict(item["condition"]),
        )
        for item in payload["daily"]
    ]
    hourly = [HourlyPoint(time=int(item["time"]), temperature=item["temperature"]) for item in payload["hourly"]]
    return CanonicalForecast(
        daily=daily,
        hourly=hourly,
        utc_offset=int(payload.get("utc_offset", 0)),
        hourly_source=payload.get("hourly_source", "upstream"),
        source=payload.get("source", ""),
        cached=bool(payload.get("cached", False)),
        cached_at=payload.get("cached_at"),
        cached_location=payload.get("cached_location"),
    )


def snapshot_to_dict(snapshot: Snapshot) -> Dict[str, Any]:
    return {
        "data": forecast_to_dict(snapshot.data),
        "timestamp": snapshot.timestamp,
        "locationKey": snapshot.location_key,
        "units": snapshot.units,
    }


def snapshot_from_dict(payload: Dict[str, Any]) -> Snapshot:
    return Snapshot(
        data=forecast_from_dict(payload["data"]),
        timestamp=payload["timestamp"],
        location_key=payload["locationKey"],
        units=payload["units"],
    )


__all__ = [
    "METRIC",
    "IMPERIAL",
    "CANONICAL_UNITS",
    "SUPPORTED_UNITS",
    "GeoPoint",
    "Condition",
    "CanonicalWeather",
    "DailyForecast",
    "HourlyPoint",
    "CanonicalForecast",
    "Snapshot",
    "location_key",
    "parse_iso",
    "forecast_to_dict",
    "forecast_from_dict",
    "snapshot_to_dict",
    "snapshot_from_dict",
]
