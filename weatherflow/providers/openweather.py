"""OpenWeather weather provider."""
from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, List, Optional

from .base import (
    STANDARD_PRESSURE_HPA,
    WeatherProvider,
    mapping,
    require_float,
    safe_float,
    safe_int,
    sequence,
)
from .openmeteo import FORECAST_DAYS
from ..conditions import is_daytime, is_daytime_between, owm_condition
from ..entities import CanonicalForecast, CanonicalWeather, Condition, DailyForecast, GeoPoint, HourlyPoint
from ..errors import DataShapeError
from ..hourly import HOURS, synthetic_hourly


def _ms_to_kmh(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    return value * 3.6


class OpenWeatherProvider(WeatherProvider):
    """Integration with the OpenWeather current weather, One Call and geocoding endpoints."""

    name = "openweather"
    base_url = "https://api.openweathermap.org"

    def __init__(self, *, api_key: str, base_url: Optional[str] = None, **kwargs) -> None:
        super().__init__(**kwargs)
        self.api_key = api_key
        self.base_url = (base_url or self.base_url).rstrip("/")
        self._log = logging.getLogger(self.__class__.__name__)

    @property
    def current_url(self) -> str:
        return f"{self.base_url}/data/2.5/weather"

    @property
    def onecall_url(self) -> str:
        return f"{self.base_url}/data/3.0/onecall"

    @property
    def geocoding_url(self) -> str:
        return f"{self.base_url}/geo/1.0/direct"

    def _current(self, point: GeoPoint) -> CanonicalWeather:
        params = {
            "lat": point.lat,
            "lon": point.lon,
            "appid": self.api_key,
            "units": "metric",
            "lang": self.request_config.language,
        }
        data = self._get_json(self.current_url, params)
        if not isinstance(data, dict):
            raise DataShapeError("unexpected payload")
        main = data.get("main")
        if not isinstance(main, dict):
            raise DataShapeError("Response missing 'main' block")
        temp = require_float(main, "temp")
        feels_like = safe_float(main.get("feels_like"))
        pressure = safe_float(main.get("pressure"))
        wind = mapping(data.get("wind"), "wind")
        sys_block = mapping(data.get("sys"), "sys")

        observed_at = safe_int(data.get("dt")) or int(time.time())
        is_day = is_daytime_between(observed_at, safe_int(sys_block.get("sunrise")), safe_int(sys_block.get("sunset")))
        if is_day is None:
            is_day = is_daytime(observed_at, point.lat, point.lon)

        return CanonicalWeather(
            lat=point.lat,
            lon=point.lon,
            name=point.name or data.get("name") or point.label,
            observed_at=observed_at,
            utc_offset=safe_int(data.get("timezone")) or 0,
            temp=temp,
            feels_like=temp if feels_like is None else feels_like,
            pressure=STANDARD_PRESSURE_HPA if pressure is None else pressure,
            humidity=safe_float(main.get("humidity")),
            wind_speed=_ms_to_kmh(safe_float(wind.get("speed"))),
            wind_deg=safe_float(wind.get("deg")),
            condition=self._condition(data.get("weather"), is_day=is_day),
            source=f"{self.name}:current",
        )

    def _forecast(self, point: GeoPoint) -> CanonicalForecast:
        params = {
            "lat": point.lat,
            "lon": point.lon,
            "appid": self.api_key,
            "units": "metric",
            "exclude": "minutely,alerts",
            "lang": self.request_config.language,
        }
        data = self._get_json(self.onecall_url, params)
        if not isinstance(data, dict):
            raise DataShapeError("unexpected payload")
        utc_offset = safe_int(data.get("timezone_offset")) or 0
        daily = sequence(data.get("daily"), "daily")
        if not daily:
            raise DataShapeError("missing daily data")

        days: List[DailyForecast] = []
        for idx, entry in enumerate(daily[:FORECAST_DAYS]):
            entry = mapping(entry, f"daily[{idx}]")
            temps = mapping(entry.get("temp"), f"daily[{idx}].temp")
            dt = safe_int(entry.get("dt"))
            temp_min = safe_float(temps.get("min"))
            temp_max = safe_float(temps.get("max"))
            if dt is None or temp_min is None or temp_max is None:
                raise DataShapeError(f"incomplete daily entry {idx}")
            days.append(
                DailyForecast(
                    date=datetime.fromtimestamp(dt + utc_offset, tz=timezone.utc).date().isoformat(),
                    dt=dt,
                    temp_min=temp_min,
                    temp_max=temp_max,
                    condition=self._condition(entry.get("weather")),
                )
            )

        hourly: List[HourlyPoint] = []
        for idx, entry in enumerate(sequence(data.get("hourly"), "hourly")):
            entry = mapping(entry, f"hourly[{idx}]")
            ts = safe_int(entry.get("dt"))
            temperature = safe_float(entry.get("temp"))
            if ts is None or temperature is None:
                continue
            hourly.append(HourlyPoint(time=ts, temperature=temperature))
            if len(hourly) == HOURS:
                break

        hourly_source = "upstream"
        if len(hourly) < HOURS:
            current = mapping(data.get("current"), "current")
            observed_at = safe_int(current.get("dt")) or int(time.time())
            self._log.warning("Upstream hourly series has %s points, using synthetic trend", len(hourly))
            hourly = synthetic_hourly(safe_float(current.get("temp")), observed_at, point.lat, point.lon)
            hourly_source = "synthetic"

        return CanonicalForecast(
            daily=days,
            hourly=hourly,
            utc_offset=utc_offset,
            hourly_source=hourly_source,
            source=f"{self.name}:forecast",
        )

    def _search(self, query: str) -> List[GeoPoint]:
        params = {"q": query, "limit": self.request_config.search_limit, "appid": self.api_key}
        data = self._get_json(self.geocoding_url, params)
        if not isinstance(data, list):
            return []
        points: List[GeoPoint] = []
        for result in data:
            if not isinstance(result, dict):
                continue
            lat = safe_float(result.get("lat"))
            lon = safe_float(result.get("lon"))
            if lat is None or lon is None:
                continue
            points.append(GeoPoint(lat=lat, lon=lon, name=result.get("name"), country=result.get("country")))
        return points

    def _condition(self, weather: Any, *, is_day: bool = True) -> Condition:
        entries = sequence(weather, "weather")
        entry = mapping(entries[0], "weather[0]") if entries else {}
        return owm_condition(safe_int(entry.get("id")), entry.get("description"), is_day=is_day)


__all__ = ["OpenWeatherProvider"]
