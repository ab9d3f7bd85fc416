"""Condition code tables shared by all providers.

Every provider translates its own condition codes into the same
``Condition`` triple (category, description, icon). Codes that are not in a
table map to the ``"Unknown"`` category.
"""
from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Dict, Mapping, Optional

from .entities import Condition

UNKNOWN = "Unknown"
DEFAULT_ICON = "01"

# WMO weather interpretation codes (Open-Meteo) --------------------------
WMO_CATEGORIES: Dict[int, str] = {
    0: "Clear",
    1: "Clear", 2: "Clear", 3: "Clear",
    45: "Fog", 48: "Fog",
    51: "Drizzle", 53: "Drizzle", 55: "Drizzle",
    56: "Drizzle", 57: "Drizzle",
    61: "Rain", 63: "Rain", 65: "Rain",
    66: "Rain", 67: "Rain",
    71: "Snow", 73: "Snow", 75: "Snow",
    77: "Snow",
    80: "Rain", 81: "Rain", 82: "Rain",
    85: "Snow", 86: "Snow",
    95: "Thunderstorm",
    96: "Thunderstorm", 99: "Thunderstorm",
}

WMO_DESCRIPTIONS: Dict[int, str] = {
    0: "Clear sky",
    1: "Mainly clear", 2: "Partly cloudy", 3: "Overcast",
    45: "Fog", 48: "Depositing rime fog",
    51: "Light drizzle", 53: "Moderate drizzle", 55: "Dense drizzle",
    56: "Light freezing drizzle", 57: "Dense freezing drizzle",
    61: "Slight rain", 63: "Moderate rain", 65: "Heavy rain",
    66: "Light freezing rain", 67: "Heavy freezing rain",
    71: "Slight snow", 73: "Moderate snow", 75: "Heavy snow",
    77: "Snow grains",
    80: "Slight rain showers", 81: "Moderate rain showers", 82: "Violent rain showers",
    85: "Slight snow showers", 86: "Heavy snow showers",
    95: "Thunderstorm",
    96: "Thunderstorm with slight hail", 99: "Thunderstorm with heavy hail",
}

WMO_ICONS: Dict[int, str] = {
    0: "01",
    1: "02", 2: "03", 3: "04",
    45: "50", 48: "50",
    51: "09", 53: "09", 55: "09",
    56: "09", 57: "09",
    61: "10", 63: "10", 65: "10",
    66: "10", 67: "10",
    71: "13", 73: "13", 75: "13",
    77: "13",
    80: "09", 81: "09", 82: "09",
    85: "13", 86: "13",
    95: "11",
    96: "11", 99: "11",
}

# OpenWeather condition ids ----------------------------------------------
OWM_CATEGORIES: Dict[int, str] = {
    200: "Thunderstorm", 201: "Thunderstorm", 202: "Thunderstorm",
    210: "Thunderstorm", 211: "Thunderstorm", 212: "Thunderstorm",
    221: "Thunderstorm", 230: "Thunderstorm", 231: "Thunderstorm", 232: "Thunderstorm",
    300: "Drizzle", 301: "Drizzle", 302: "Drizzle",
    310: "Drizzle", 311: "Drizzle", 312: "Drizzle",
    313: "Drizzle", 314: "Drizzle", 321: "Drizzle",
    500: "Rain", 501: "Rain", 502: "Rain", 503: "Rain", 504: "Rain",
    511: "Rain", 520: "Rain", 521: "Rain", 522: "Rain", 531: "Rain",
    600: "Snow", 601: "Snow", 602: "Snow",
    611: "Snow", 612: "Snow", 613: "Snow",
    615: "Snow", 616: "Snow",
    620: "Snow", 621: "Snow", 622: "Snow",
    701: "Fog", 711: "Fog", 721: "Fog", 731: "Fog", 741: "Fog",
    751: "Fog", 761: "Fog", 762: "Fog", 771: "Fog", 781: "Fog",
    800: "Clear",
    801: "Clouds", 802: "Clouds", 803: "Clouds", 804: "Clouds",
}

OWM_ICONS: Dict[int, str] = {
    **{code: "11" for code in (200, 201, 202, 210, 211, 212, 221, 230, 231, 232)},
    **{code: "09" for code in (300, 301, 302, 310, 311, 312, 313, 314, 321, 520, 521, 522, 531)},
    **{code: "10" for code in (500, 501, 502, 503, 504)},
    511: "13",
    **{code: "13" for code in (600, 601, 602, 611, 612, 613, 615, 616, 620, 621, 622)},
    **{code: "50" for code in (701, 711, 721, 731, 741, 751, 761, 762, 771, 781)},
    800: "01",
    801: "02", 802: "03", 803: "04", 804: "04",
}


def lookup(
    code: Optional[int],
    *,
    categories: Mapping[int, str],
    icons: Mapping[int, str],
    descriptions: Optional[Mapping[int, str]] = None,
    description: Optional[str] = None,
    is_day: bool = True,
) -> Condition:
    """Build a ``Condition`` from a provider code using the given tables.

    ``description`` overrides the table text when the provider sends its own.
    """
    main = categories.get(code, UNKNOWN) if code is not None else UNKNOWN
    if not description:
        description = (descriptions or {}).get(code, UNKNOWN) if code is not None else UNKNOWN
    base_icon = icons.get(code, DEFAULT_ICON) if code is not None else DEFAULT_ICON
    return Condition(code=code, main=main, description=description, icon=base_icon + ("d" if is_day else "n"))


def wmo_condition(code: Optional[int], *, is_day: bool = True) -> Condition:
    return lookup(code, categories=WMO_CATEGORIES, icons=WMO_ICONS, descriptions=WMO_DESCRIPTIONS, is_day=is_day)


def owm_condition(code: Optional[int], description: Optional[str] = None, *, is_day: bool = True) -> Condition:
    if description:
        description = description[:1].upper() + description[1:]
    return lookup(code, categories=OWM_CATEGORIES, icons=OWM_ICONS, description=description, is_day=is_day)


# day / night ------------------------------------------------------------
_SUNRISE_ALTITUDE = math.radians(-0.833)


def is_daytime(observed_at: int, lat: float, lon: float) -> bool:
    """Approximate whether the sun is up at ``observed_at`` (epoch seconds).

    Uses the solar declination for the day of year and the sunrise hour
    angle, with solar noon taken at ``12 - lon / 15`` UTC.
    """
    day_of_year = datetime.fromtimestamp(observed_at, tz=timezone.utc).timetuple().tm_yday
    declination = math.radians(23.44) * math.sin(math.radians(360.0 / 365.0 * (284 + day_of_year)))
    phi = math.radians(max(-89.9, min(89.9, lat)))
    cos_h0 = (math.sin(_SUNRISE_ALTITUDE) - math.sin(phi) * math.sin(declination)) / (
        math.cos(phi) * math.cos(declination)
    )
    if cos_h0 >= 1.0:
        return False  # polar night
    if cos_h0 <= -1.0:
        return True  # midnight sun
    half_day_hours = math.degrees(math.acos(cos_h0)) / 15.0
    solar_noon = 12.0 - lon / 15.0
    utc_hours = (observed_at % 86400) / 3600.0
    offset = (utc_hours - solar_noon + 12.0) % 24.0 - 12.0
    return abs(offset) < half_day_hours


def is_daytime_between(observed_at: int, sunrise: Optional[int], sunset: Optional[int]) -> Optional[bool]:
    if sunrise is None or sunset is None:
        return None
    return sunrise <= observed_at < sunset


__all__ = [
    "UNKNOWN",
    "WMO_CATEGORIES",
    "WMO_DESCRIPTIONS",
    "WMO_ICONS",
    "OWM_CATEGORIES",
    "OWM_ICONS",
    "lookup",
    "wmo_condition",
    "owm_condition",
    "is_daytime",
    "is_daytime_between",
]
