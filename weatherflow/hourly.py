"""Deterministic hourly trend used when a provider has no usable hourly data.

Upstream hourly temperatures are always preferred. This generator only
fills the 24 point series so the trend display is never empty; forecasts
built from it carry ``hourly_source="synthetic"``.
"""
from __future__ import annotations

import math
from typing import List, Optional

from .entities import HourlyPoint

HOURS = 24
AMPLITUDE_C = 3.0
DEFAULT_BASE_C = 20.0


def synthetic_hourly(
    base_temp: Optional[float],
    observed_at: int,
    lat: float,
    lon: float,
    hours: int = HOURS,
) -> List[HourlyPoint]:
    base = DEFAULT_BASE_C if base_temp is None else base_temp
    seed = math.sin((observed_at + round(lat * 100) + round(lon * 100)) % 10000)
    phase = (observed_at % 86400) / 3600.0
    start = observed_at - observed_at % 3600
    points: List[HourlyPoint] = []
    for i in range(hours):
        diurnal = math.cos(((i + (24 - phase)) / 24.0) * math.pi * 2) * AMPLITUDE_C
        noise = math.sin(seed * 100 + i * 1.7) * 0.8
        points.append(HourlyPoint(time=start + i * 3600, temperature=round(base + diurnal + noise, 1)))
    return points


__all__ = ["synthetic_hourly", "HOURS"]
