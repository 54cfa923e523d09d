from __future__ import annotations

from typing import Protocol

from ...domain.models import WeatherSnapshot


class WeatherAdapterError(RuntimeError):
    """Raised when a weather provider request cannot be completed."""


class WeatherAdapter(Protocol):
    def get_weather_by_city(self, name: str) -> WeatherSnapshot:
        """Fetch normalized current weather for a free-text city name."""

    def get_weather_by_zip(self, code: str, country: str) -> WeatherSnapshot:
        """Fetch normalized current weather for a postal code within one country."""

    def get_weather_by_coordinates(self, lat: float, lon: float) -> WeatherSnapshot:
        """Fetch normalized current weather for the provided coordinates."""
