from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .base import (
    STANDARD_PRESSURE_HPA,
    WeatherProvider,
    mapping,
    require_float,
    safe_float,
    safe_index,
    safe_int,
    sequence,
)
from ..conditions import is_daytime, wmo_condition
from ..entities import CanonicalForecast, CanonicalWeather, DailyForecast, GeoPoint, HourlyPoint
from ..errors import DataShapeError
from ..hourly import HOURS, synthetic_hourly

FORECAST_DAYS = 6


class OpenMeteoProvider(WeatherProvider):
    """Keyless provider backed by the Open-Meteo forecast and geocoding APIs."""

    name = "open-meteo"
    base_url = "https://api.open-meteo.com/v1/forecast"
    geocoding_url = "https://geocoding-api.open-meteo.com/v1/search"

    def __init__(
        self,
        base_url: Optional[str] = None,
        geocoding_url: Optional[str] = None,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.base_url = base_url or self.base_url
        self.geocoding_url = geocoding_url or self.geocoding_url
        self._log = logging.getLogger(self.__class__.__name__)

    def _current(self, point: GeoPoint) -> CanonicalWeather:
        params = self._params(point)
        params["current"] = ",".join(
            [
                "temperature_2m",
                "relative_humidity_2m",
                "apparent_temperature",
                "pressure_msl",
                "wind_speed_10m",
                "wind_direction_10m",
                "weathercode",
            ]
        )
        data = self._object(self._get_json(self.base_url, params))
        current = data.get("current") or data.get("current_weather")
        if not isinstance(current, dict):
            raise DataShapeError("missing current weather")

        temp = safe_float(current.get("temperature_2m"))
        if temp is None:
            temp = require_float(current, "temperature")
        observed_at = safe_int(current.get("time")) or int(time.time())
        feels_like = safe_float(current.get("apparent_temperature"))
        pressure = safe_float(current.get("pressure_msl"))
        code = safe_int(_first(current, "weathercode", "weather_code"))
        return CanonicalWeather(
            lat=point.lat,
            lon=point.lon,
            name=point.label,
            observed_at=observed_at,
            utc_offset=safe_int(data.get("utc_offset_seconds")) or 0,
            temp=temp,
            # No real feels-like figure without apparent_temperature.
            feels_like=temp if feels_like is None else feels_like,
            pressure=STANDARD_PRESSURE_HPA if pressure is None else pressure,
            humidity=safe_float(current.get("relative_humidity_2m")),
            wind_speed=safe_float(_first(current, "wind_speed_10m", "windspeed")),
            wind_deg=safe_float(_first(current, "wind_direction_10m", "winddirection")),
            condition=wmo_condition(code, is_day=is_daytime(observed_at, point.lat, point.lon)),
            source=f"{self.name}:current",
        )

    def _forecast(self, point: GeoPoint) -> CanonicalForecast:
        params = self._params(point)
        params.update(
            {
                "current": "temperature_2m",
                "daily": "weathercode,temperature_2m_max,temperature_2m_min",
                "hourly": "temperature_2m",
                "forecast_days": FORECAST_DAYS,
            }
        )
        data = self._object(self._get_json(self.base_url, params))
        utc_offset = safe_int(data.get("utc_offset_seconds")) or 0

        daily = mapping(data.get("daily"), "daily")
        dates = sequence(daily.get("time"), "daily.time")
        if not dates:
            raise DataShapeError("missing daily data")
        temps_max = sequence(daily.get("temperature_2m_max"), "daily.temperature_2m_max")
        temps_min = sequence(daily.get("temperature_2m_min"), "daily.temperature_2m_min")
        codes = sequence(_first(daily, "weathercode", "weather_code"), "daily.weathercode")
        days: List[DailyForecast] = []
        for idx, raw_dt in enumerate(dates[:FORECAST_DAYS]):
            dt = safe_int(raw_dt)
            temp_min = safe_index(temps_min, idx)
            temp_max = safe_index(temps_max, idx)
            if dt is None or temp_min is None or temp_max is None:
                raise DataShapeError(f"incomplete daily entry {idx}")
            code = safe_index(codes, idx)
            days.append(
                DailyForecast(
                    date=_local_date(dt, utc_offset),
                    dt=dt,
                    temp_min=temp_min,
                    temp_max=temp_max,
                    condition=wmo_condition(None if code is None else int(code)),
                )
            )

        current = mapping(data.get("current"), "current")
        observed_at = safe_int(current.get("time")) or int(time.time())
        hourly = self._hourly(mapping(data.get("hourly"), "hourly"), observed_at)
        hourly_source = "upstream"
        if len(hourly) < HOURS:
            self._log.warning("Upstream hourly series has %s points, using synthetic trend", len(hourly))
            hourly = synthetic_hourly(safe_float(current.get("temperature_2m")), observed_at, point.lat, point.lon)
            hourly_source = "synthetic"

        return CanonicalForecast(
            daily=days,
            hourly=hourly,
            utc_offset=utc_offset,
            hourly_source=hourly_source,
            source=f"{self.name}:forecast",
        )

    def _search(self, query: str) -> List[GeoPoint]:
        params = {
            "name": query,
            "count": self.request_config.search_limit,
            "language": self.request_config.language,
            "format": "json",
        }
        data = self._get_json(self.geocoding_url, params)
        results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(results, list):
            return []
        points: List[GeoPoint] = []
        for result in results:
            if not isinstance(result, dict):
                continue
            lat = safe_float(result.get("latitude"))
            lon = safe_float(result.get("longitude"))
            if lat is None or lon is None:
                continue
            points.append(GeoPoint(lat=lat, lon=lon, name=result.get("name"), country=result.get("country")))
        return points

    # helpers ------------------------------------------------------------
    def _params(self, point: GeoPoint) -> Dict[str, Any]:
        return {
            "latitude": point.lat,
            "longitude": point.lon,
            "timezone": "auto",
            "timeformat": "unixtime",
            "temperature_unit": "celsius",
            "wind_speed_unit": "kmh",
        }

    def _object(self, data: Any) -> Dict[str, Any]:
        if not isinstance(data, dict):
            raise DataShapeError("unexpected payload")
        return data

    def _hourly(self, hourly: Dict[str, Any], observed_at: int) -> List[HourlyPoint]:
        times = sequence(hourly.get("time"), "hourly.time")
        temps = sequence(hourly.get("temperature_2m"), "hourly.temperature_2m")
        hour_start = observed_at - observed_at % 3600
        points: List[HourlyPoint] = []
        for idx, raw_ts in enumerate(times):
            ts = safe_int(raw_ts)
            if ts is None or ts < hour_start:
                continue
            temperature = safe_index(temps, idx)
            if temperature is None:
                continue
            points.append(HourlyPoint(time=ts, temperature=temperature))
            if len(points) == HOURS:
                break
        return points


def _first(payload: Dict[str, Any], *fields: str) -> Optional[Any]:
    for field in fields:
        if payload.get(field) is not None:
            return payload[field]
    return None


def _local_date(dt: int, utc_offset: int) -> str:
    return datetime.fromtimestamp(dt + utc_offset, tz=timezone.utc).date().isoformat()


__all__ = ["OpenMeteoProvider", "FORECAST_DAYS"]
