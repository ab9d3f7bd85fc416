"""Display unit conversion for already fetched canonical records.

Nothing here performs I/O: a unit toggle re-renders from the metric record
held in memory.
"""
from __future__ import annotations

from dataclasses import replace
from typing import Optional, TypeVar, Union

from .entities import (
    IMPERIAL,
    METRIC,
    SUPPORTED_UNITS,
    CanonicalForecast,
    CanonicalWeather,
)

KMH_PER_MPH = 1.609344

Record = TypeVar("Record", CanonicalWeather, CanonicalForecast)


def celsius_to_fahrenheit(value: float) -> float:
    return value * 9.0 / 5.0 + 32.0


def fahrenheit_to_celsius(value: float) -> float:
    return (value - 32.0) * 5.0 / 9.0


def kmh_to_mph(value: float) -> float:
    return value / KMH_PER_MPH


def mph_to_kmh(value: float) -> float:
    return value * KMH_PER_MPH


def _check(units: str) -> None:
    if units not in SUPPORTED_UNITS:
        raise ValueError(f"unsupported units: {units!r}")


def _temperature(value: float, from_units: str, to_units: str) -> float:
    if from_units == to_units:
        return value
    if to_units == IMPERIAL:
        return celsius_to_fahrenheit(value)
    return fahrenheit_to_celsius(value)


def _speed(value: Optional[float], from_units: str, to_units: str) -> Optional[float]:
    if value is None or from_units == to_units:
        return value
    if to_units == IMPERIAL:
        return kmh_to_mph(value)
    return mph_to_kmh(value)


def convert_weather(record: CanonicalWeather, from_units: str, to_units: str) -> CanonicalWeather:
    _check(from_units)
    _check(to_units)
    if from_units == to_units:
        return record
    return replace(
        record,
        temp=_temperature(record.temp, from_units, to_units),
        feels_like=_temperature(record.feels_like, from_units, to_units),
        wind_speed=_speed(record.wind_speed, from_units, to_units),
    )


def convert_forecast(record: CanonicalForecast, from_units: str, to_units: str) -> CanonicalForecast:
    _check(from_units)
    _check(to_units)
    if from_units == to_units:
        return record
    daily = [
        replace(
            day,
            temp_min=_temperature(day.temp_min, from_units, to_units),
            temp_max=_temperature(day.temp_max, from_units, to_units),
        )
        for day in record.daily
    ]
    hourly = [replace(point, temperature=_temperature(point.temperature, from_units, to_units)) for point in record.hourly]
    return replace(record, daily=daily, hourly=hourly)


def convert(record: Record, from_units: str = METRIC, to_units: str = METRIC) -> Record:
    if isinstance(record, CanonicalForecast):
        return convert_forecast(record, from_units, to_units)
    if isinstance(record, CanonicalWeather):
        return convert_weather(record, from_units, to_units)
    raise TypeError(f"cannot convert {type(record).__name__}")


__all__ = [
    "KMH_PER_MPH",
    "celsius_to_fahrenheit",
    "fahrenheit_to_celsius",
    "kmh_to_mph",
    "mph_to_kmh",
    "convert",
    "convert_weather",
    "convert_forecast",
]
