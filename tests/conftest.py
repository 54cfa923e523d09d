from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from weatherpage.adapters.weather import WeatherAdapterError, parse_current_weather
from weatherpage.domain.models import WeatherSnapshot
from weatherpage.settings import AppSettings, EnvSettings, WeatherPageYamlSettings


def make_payload(**overrides: Any) -> dict[str, Any]:
    """Build an OpenWeatherMap current-weather payload with sensible defaults."""
    payload: dict[str, Any] = {
        "name": "New York",
        "sys": {"country": "US", "sunrise": 1_700_000_000, "sunset": 1_700_040_000},
        "dt": 1_700_020_000,
        "weather": [{"main": "Clear", "description": "clear sky"}],
        "main": {"temp": 293.15, "feels_like": 292.0, "humidity": 40},
        "wind": {"speed": 3.6},
    }
    payload.update(overrides)
    return payload


def make_snapshot(name: str = "New York", **overrides: Any) -> WeatherSnapshot:
    return parse_current_weather(make_payload(name=name, **overrides))


class StubWeatherAdapter:
    """In-memory adapter keyed by lookup; unknown lookups fail like a 404."""

    def __init__(
        self,
        *,
        cities: dict[str, WeatherSnapshot] | None = None,
        zips: dict[str, WeatherSnapshot] | None = None,
        coordinates: dict[tuple[float, float], WeatherSnapshot] | None = None,
    ) -> None:
        self.cities = dict(cities or {})
        self.zips = dict(zips or {})
        self.coordinates = dict(coordinates or {})
        self.calls: list[tuple[str, Any]] = []

    def get_weather_by_city(self, name: str) -> WeatherSnapshot:
        self.calls.append(("city", name))
        if name not in self.cities:
            raise WeatherAdapterError("OpenWeatherMap returned HTTP 404")
        return self.cities[name]

    def get_weather_by_zip(self, code: str, country: str) -> WeatherSnapshot:
        self.calls.append(("zip", f"{code},{country}"))
        if f"{code},{country}" not in self.zips:
            raise WeatherAdapterError("OpenWeatherMap returned HTTP 404")
        return self.zips[f"{code},{country}"]

    def get_weather_by_coordinates(self, lat: float, lon: float) -> WeatherSnapshot:
        self.calls.append(("coordinates", (lat, lon)))
        if (lat, lon) not in self.coordinates:
            raise WeatherAdapterError("Failed to fetch weather data from OpenWeatherMap")
        return self.coordinates[(lat, lon)]


@pytest.fixture
def app_settings(tmp_path: Path) -> AppSettings:
    return AppSettings(
        env=EnvSettings(_env_file=None, weather_api_key="test-key", weatherpage_env="test"),
        yaml=WeatherPageYamlSettings(),
        project_root=tmp_path,
        config_path=tmp_path / "weatherpage.yaml",
    )


@pytest.fixture
def stub_adapter() -> StubWeatherAdapter:
    return StubWeatherAdapter(
        cities={
            "New York": make_snapshot("New York"),
            "London": make_snapshot(
                "London",
                sys={"country": "GB", "sunrise": 1_700_000_000, "sunset": 1_700_010_000},
                weather=[{"main": "Clouds", "description": "broken clouds"}],
            ),
        },
        zips={"10001,us": make_snapshot("New York")},
        coordinates={(40.7, -74.0): make_snapshot("Manhattan")},
    )
