from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest
import requests

from weatherflow.entities import GeoPoint
from weatherflow.errors import ConfigurationError, DataShapeError
from weatherflow.providers import OpenMeteoProvider, OpenWeatherProvider, build_provider
from weatherflow.providers.base import STANDARD_PRESSURE_HPA
from weatherflow.settings import Settings

FORECAST_URL = "https://openmeteo.test/forecast"
GEOCODING_URL = "https://openmeteo.test/search"
OWM_URL = "https://owm.test"

NOON = int(datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc).timestamp())
MIDNIGHT = int(datetime(2024, 6, 1, 0, 0, tzinfo=timezone.utc).timestamp())
LOCAL_MIDNIGHT = NOON - 13 * 3600  # 2024-06-01T00:00 at UTC+1


@pytest.fixture()
def point() -> GeoPoint:
    return GeoPoint(lat=51.5, lon=-0.12)


@pytest.fixture()
def openmeteo() -> OpenMeteoProvider:
    return OpenMeteoProvider(base_url=FORECAST_URL, geocoding_url=GEOCODING_URL)


@pytest.fixture()
def openweather() -> OpenWeatherProvider:
    return OpenWeatherProvider(api_key="test", base_url=OWM_URL)


def openmeteo_forecast_payload(hourly_points: int = 30) -> dict:
    hourly_start = NOON - 3 * 3600
    return {
        "latitude": 51.5,
        "longitude": -0.12,
        "utc_offset_seconds": 3600,
        "current": {"time": NOON + 900, "temperature_2m": 18.0},
        "daily": {
            "time": [LOCAL_MIDNIGHT + i * 86400 for i in range(6)],
            "weathercode": [0, 3, 61, 95, 71, 42],
            "temperature_2m_max": [20.0, 21.0, 19.0, 17.0, 5.0, 22.0],
            "temperature_2m_min": [10.0, 11.0, 12.0, 9.0, -1.0, 13.0],
        },
        "hourly": {
            "time": [hourly_start + i * 3600 for i in range(hourly_points)],
            "temperature_2m": [10.0 + i for i in range(hourly_points)],
        },
    }


def test_openmeteo_current_normalization(requests_mock, openmeteo, point):
    requests_mock.get(
        FORECAST_URL,
        json={
            "latitude": 51.5,
            "longitude": -0.12,
            "utc_offset_seconds": 3600,
            "current": {"time": NOON, "temperature_2m": 15.2, "weathercode": 3},
        },
    )

    weather = asyncio.run(openmeteo.fetch_current(point))

    assert weather.temp == 15.2
    assert weather.condition.main == "Clear"
    assert weather.condition.description == "Overcast"
    assert weather.condition.icon == "04d"
    assert weather.feels_like == 15.2
    assert weather.pressure == STANDARD_PRESSURE_HPA
    assert weather.observed_at == NOON
    assert weather.utc_offset == 3600
    assert weather.humidity is None
    assert weather.source == "open-meteo:current"


def test_openmeteo_current_requests_canonical_units(requests_mock, openmeteo, point):
    requests_mock.get(FORECAST_URL, json={"current": {"time": MIDNIGHT, "temperature_2m": 9.0, "weathercode": 61}})

    weather = asyncio.run(openmeteo.fetch_current(point))

    query = requests_mock.last_request.qs
    assert query["temperature_unit"] == ["celsius"]
    assert query["wind_speed_unit"] == ["kmh"]
    assert weather.condition.icon == "10n"


def test_openmeteo_current_uses_real_figures_when_present(requests_mock, openmeteo, point):
    requests_mock.get(
        FORECAST_URL,
        json={
            "current": {
                "time": NOON,
                "temperature_2m": 15.2,
                "apparent_temperature": 13.9,
                "pressure_msl": 1002.5,
                "relative_humidity_2m": 81,
                "wind_speed_10m": 22.3,
                "wind_direction_10m": 250,
                "weathercode": 80,
            }
        },
    )

    weather = asyncio.run(openmeteo.fetch_current(point))

    assert weather.feels_like == 13.9
    assert weather.pressure == 1002.5
    assert weather.humidity == 81
    assert weather.wind_speed == 22.3
    assert weather.wind_deg == 250
    assert weather.condition.main == "Rain"


def test_openmeteo_current_missing_temperature(requests_mock, openmeteo, point):
    requests_mock.get(FORECAST_URL, json={"current": {"time": NOON}})

    with pytest.raises(DataShapeError):
        asyncio.run(openmeteo.fetch_current(point))


def test_openmeteo_http_error_preserves_status(requests_mock, openmeteo, point):
    requests_mock.get(FORECAST_URL, status_code=404, text="not found")

    with pytest.raises(requests.HTTPError) as excinfo:
        asyncio.run(openmeteo.fetch_current(point))

    assert excinfo.value.response.status_code == 404


def test_openmeteo_invalid_json(requests_mock, openmeteo, point):
    requests_mock.get(FORECAST_URL, text="<html>oops</html>")

    with pytest.raises(DataShapeError):
        asyncio.run(openmeteo.fetch_current(point))


def test_openmeteo_forecast_normalization(requests_mock, openmeteo, point):
    requests_mock.get(FORECAST_URL, json=openmeteo_forecast_payload())

    forecast = asyncio.run(openmeteo.fetch_forecast(point))

    assert len(forecast.daily) == 6
    assert forecast.daily[0].date == "2024-06-01"
    assert forecast.daily[5].date == "2024-06-06"
    assert forecast.daily[2].condition.main == "Rain"
    assert forecast.daily[5].condition.main == "Unknown"
    assert forecast.daily[4].temp_min == -1.0
    assert [day.date for day in forecast.outlook()] == [
        "2024-06-02",
        "2024-06-03",
        "2024-06-04",
        "2024-06-05",
        "2024-06-06",
    ]
    assert forecast.hourly_source == "upstream"
    assert len(forecast.hourly) == 24
    assert forecast.hourly[0].time == NOON
    assert forecast.hourly[0].temperature == 13.0
    assert requests_mock.last_request.qs["forecast_days"] == ["6"]


def test_openmeteo_forecast_synthetic_hourly_fallback(requests_mock, openmeteo, point):
    requests_mock.get(FORECAST_URL, json=openmeteo_forecast_payload(hourly_points=5))

    first = asyncio.run(openmeteo.fetch_forecast(point))
    second = asyncio.run(openmeteo.fetch_forecast(point))

    assert first.hourly_source == "synthetic"
    assert len(first.hourly) == 24
    assert first.hourly == second.hourly
    assert all(abs(p.temperature - 18.0) <= 3.8 + 0.05 for p in first.hourly)


def test_openmeteo_forecast_missing_daily(requests_mock, openmeteo, point):
    requests_mock.get(FORECAST_URL, json={"hourly": {}})

    with pytest.raises(DataShapeError):
        asyncio.run(openmeteo.fetch_forecast(point))


def test_openmeteo_search(requests_mock, openmeteo):
    requests_mock.get(
        GEOCODING_URL,
        json={
            "results": [
                {"name": "London", "latitude": 51.50853, "longitude": -0.12574, "country": "United Kingdom"},
                {"name": "London", "latitude": 42.98339, "longitude": -81.23304, "country": "Canada"},
                {"name": "Broken"},
            ]
        },
    )

    results = asyncio.run(openmeteo.search_locations("London"))

    assert [(r.name, r.country) for r in results] == [("London", "United Kingdom"), ("London", "Canada")]
    assert results[0].lat == 51.50853
    assert requests_mock.last_request.qs["count"] == ["5"]


def test_openmeteo_search_without_results_is_empty(requests_mock, openmeteo):
    requests_mock.get(GEOCODING_URL, json={"generationtime_ms": 0.5})

    assert asyncio.run(openmeteo.search_locations("Atlantis")) == []


def test_blank_search_skips_request(requests_mock, openmeteo):
    assert asyncio.run(openmeteo.search_locations("   ")) == []
    assert requests_mock.call_count == 0


def test_provider_rejects_display_units(openmeteo, point):
    with pytest.raises(ValueError):
        asyncio.run(openmeteo.fetch_current(point, "imperial"))


def test_openweather_current_normalization(requests_mock, openweather, point):
    requests_mock.get(
        f"{OWM_URL}/data/2.5/weather",
        json={
            "name": "London",
            "dt": NOON,
            "timezone": 3600,
            "weather": [{"id": 500, "main": "Rain", "description": "light rain", "icon": "10d"}],
            "main": {"temp": 14.0, "feels_like": 13.1, "humidity": 77, "pressure": 1008},
            "wind": {"speed": 5.0, "deg": 200},
            "sys": {"sunrise": NOON - 8 * 3600, "sunset": NOON + 8 * 3600},
        },
    )

    weather = asyncio.run(openweather.fetch_current(point))

    assert weather.name == "London"
    assert weather.temp == 14.0
    assert weather.feels_like == 13.1
    assert weather.pressure == 1008
    assert weather.wind_speed == pytest.approx(18.0)
    assert weather.condition.main == "Rain"
    assert weather.condition.description == "Light rain"
    assert weather.condition.icon == "10d"
    assert requests_mock.last_request.qs["units"] == ["metric"]


def test_openweather_current_missing_main(requests_mock, openweather, point):
    requests_mock.get(f"{OWM_URL}/data/2.5/weather", json={"weather": []})

    with pytest.raises(DataShapeError):
        asyncio.run(openweather.fetch_current(point))


def test_openweather_unauthorized(requests_mock, openweather, point):
    requests_mock.get(f"{OWM_URL}/data/2.5/weather", status_code=401, json={"cod": 401, "message": "Invalid API key"})

    with pytest.raises(requests.HTTPError) as excinfo:
        asyncio.run(openweather.fetch_current(point))

    assert excinfo.value.response.status_code == 401


def test_openweather_forecast_normalization(requests_mock, openweather, point):
    requests_mock.get(
        f"{OWM_URL}/data/3.0/onecall",
        json={
            "timezone_offset": 3600,
            "current": {"dt": NOON, "temp": 16.0},
            "daily": [
                {
                    "dt": LOCAL_MIDNIGHT + i * 86400 + 11 * 3600,
                    "temp": {"min": 8.0 + i, "max": 18.0 + i},
                    "weather": [{"id": 800, "description": "clear sky"}],
                }
                for i in range(8)
            ],
            "hourly": [{"dt": NOON + i * 3600, "temp": 16.0 + i / 2} for i in range(48)],
        },
    )

    forecast = asyncio.run(openweather.fetch_forecast(point))

    assert len(forecast.daily) == 6
    assert forecast.daily[0].date == "2024-06-01"
    assert forecast.daily[0].condition.main == "Clear"
    assert len(forecast.hourly) == 24
    assert forecast.hourly_source == "upstream"
    assert forecast.source == "openweather:forecast"


def test_openweather_search(requests_mock, openweather):
    requests_mock.get(
        f"{OWM_URL}/geo/1.0/direct",
        json=[{"name": "Paris", "lat": 48.8589, "lon": 2.32, "country": "FR"}],
    )

    results = asyncio.run(openweather.search_locations("Paris"))

    assert results == [GeoPoint(lat=48.8589, lon=2.32, name="Paris", country="FR")]


def test_build_provider_selects_configured_provider():
    assert isinstance(build_provider(Settings(provider="open-meteo")), OpenMeteoProvider)
    provider = build_provider(Settings(provider="openweather", api_key="k", http_timeout=3.0))
    assert isinstance(provider, OpenWeatherProvider)
    assert provider.request_config.timeout == 3.0


def test_build_provider_rejects_bad_configuration():
    with pytest.raises(ConfigurationError):
        build_provider(Settings(provider="openweather"))
    with pytest.raises(ConfigurationError):
        build_provider(Settings(provider="yandex"))


@pytest.mark.parametrize(
    "payload",
    [
        {"daily": [1, 2]},
        {"daily": {"time": "2024-06-01"}},
        {"daily": {"time": [LOCAL_MIDNIGHT], "temperature_2m_max": {"0": 1}, "temperature_2m_min": [1.0]}},
        {**openmeteo_forecast_payload(), "hourly": [1, 2]},
        {**openmeteo_forecast_payload(), "current": "now"},
    ],
)
def test_openmeteo_forecast_malformed_nested_blocks(requests_mock, openmeteo, point, payload):
    requests_mock.get(FORECAST_URL, json=payload)

    with pytest.raises(DataShapeError):
        asyncio.run(openmeteo.fetch_forecast(point))


def test_openmeteo_search_skips_non_object_results(requests_mock, openmeteo):
    requests_mock.get(
        GEOCODING_URL,
        json={"results": ["London", {"name": "Leeds", "latitude": 53.8, "longitude": -1.55}]},
    )

    results = asyncio.run(openmeteo.search_locations("L"))

    assert [r.name for r in results] == ["Leeds"]


@pytest.mark.parametrize(
    "payload",
    [
        {"daily": {"dt": NOON}},
        {"daily": [7]},
        {"daily": [{"dt": NOON, "temp": [1, 2]}]},
        {"daily": [{"dt": NOON, "temp": {"min": 1.0, "max": 2.0}, "weather": {"id": 800}}]},
        {"daily": [{"dt": NOON, "temp": {"min": 1.0, "max": 2.0}}], "hourly": ["warm"]},
    ],
)
def test_openweather_forecast_malformed_nested_blocks(requests_mock, openweather, point, payload):
    requests_mock.get(f"{OWM_URL}/data/3.0/onecall", json=payload)

    with pytest.raises(DataShapeError):
        asyncio.run(openweather.fetch_forecast(point))


def test_openweather_current_malformed_wind(requests_mock, openweather, point):
    requests_mock.get(f"{OWM_URL}/data/2.5/weather", json={"main": {"temp": 10.0}, "wind": 5})

    with pytest.raises(DataShapeError):
        asyncio.run(openweather.fetch_current(point))


def test_openweather_search_skips_non_object_results(requests_mock, openweather):
    requests_mock.get(f"{OWM_URL}/geo/1.0/direct", json=[None, {"name": "Nice", "lat": 43.7, "lon": 7.27}])

    results = asyncio.run(openweather.search_locations("Nice"))

    assert [r.name for r in results] == ["Nice"]
