from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, List, Optional

import pytest

from weatherflow.conditions import wmo_condition
from weatherflow.entities import (
    CanonicalForecast,
    CanonicalWeather,
    DailyForecast,
    GeoPoint,
    HourlyPoint,
)

EPOCH = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


class TimeController:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def __call__(self) -> float:
        return self.now

    def datetime(self) -> datetime:
        return EPOCH + timedelta(seconds=self.now)


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def make_weather(point: GeoPoint, temp: float = 15.0) -> CanonicalWeather:
    return CanonicalWeather(
        lat=point.lat,
        lon=point.lon,
        name=point.label,
        observed_at=int(EPOCH.timestamp()),
        utc_offset=3600,
        temp=temp,
        feels_like=temp - 1,
        pressure=1013.0,
        humidity=70.0,
        wind_speed=16.09344,
        wind_deg=180.0,
        condition=wmo_condition(3),
        source="fake:current",
    )


def make_forecast(temp: float = 10.0) -> CanonicalForecast:
    start = int(EPOCH.timestamp())
    daily = [
        DailyForecast(
            date=f"2024-06-0{i + 1}",
            dt=start + i * 86400,
            temp_min=temp - 5 + i,
            temp_max=temp + 5 + i,
            condition=wmo_condition(61),
        )
        for i in range(6)
    ]
    hourly = [HourlyPoint(time=start + i * 3600, temperature=temp + i / 10) for i in range(24)]
    return CanonicalForecast(daily=daily, hourly=hourly, utc_offset=3600, source="fake:forecast")


class FakeProvider:
    """Async provider double. Queued results are returned in order; exceptions are raised."""

    name = "fake"

    def __init__(self) -> None:
        self.current_calls = 0
        self.forecast_calls = 0
        self.search_calls = 0
        self.current_results: List[Any] = []
        self.forecast_results: List[Any] = []
        self.gate: Optional[asyncio.Event] = None
        self.closed = False

    async def _pass_gate(self) -> None:
        await asyncio.sleep(0)
        if self.gate is not None:
            await self.gate.wait()

    def _next(self, queue: List[Any], default: Any) -> Any:
        result = queue.pop(0) if queue else default
        if isinstance(result, BaseException):
            raise result
        return result

    async def fetch_current(self, point: GeoPoint, units: str = "metric") -> CanonicalWeather:
        self.current_calls += 1
        await self._pass_gate()
        return self._next(self.current_results, make_weather(point))

    async def fetch_forecast(self, point: GeoPoint, units: str = "metric") -> CanonicalForecast:
        self.forecast_calls += 1
        await self._pass_gate()
        return self._next(self.forecast_results, make_forecast())

    async def search_locations(self, query: str) -> List[GeoPoint]:
        self.search_calls += 1
        return [GeoPoint(lat=51.5, lon=-0.12, name=query, country="United Kingdom")]

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def clock() -> TimeController:
    return TimeController()


@pytest.fixture()
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture()
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture()
def london() -> GeoPoint:
    return GeoPoint(lat=51.5, lon=-0.12, name="London", country="United Kingdom")


@pytest.fixture()
def forecast_factory():
    return make_forecast


@pytest.fixture()
def weather_factory():
    return make_weather
