from __future__ import annotations

import json
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from ...domain.conditions import condition_category, is_daytime
from ...domain.models import WeatherSnapshot
from .base import WeatherAdapterError

OPENWEATHER_CURRENT_URL = "https://api.openweathermap.org/data/2.5/weather"
DEFAULT_TIMEOUT_SECONDS = 10


def _coerce_float(value: Any, *, field_name: str) -> float:
    if isinstance(value, bool):
        raise WeatherAdapterError(f"Invalid numeric value for {field_name}")
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise WeatherAdapterError(f"Invalid numeric value for {field_name}") from exc


def _coerce_int(value: Any, *, field_name: str) -> int:
    if isinstance(value, bool):
        raise WeatherAdapterError(f"Invalid integer value for {field_name}")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise WeatherAdapterError(f"Invalid integer value for {field_name}") from exc


def _coerce_optional_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _coerce_optional_float(value: Any, *, default: float = 0.0) -> float:
    if value is None or isinstance(value, bool):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _section(payload: dict[str, Any], key: str) -> dict[str, Any]:
    value = payload.get(key)
    return value if isinstance(value, dict) else {}


def _fetch_json(url: str, *, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> dict[str, Any]:
    request = Request(url, headers={"User-Agent": "weatherpage/0.1"})
    try:
        with urlopen(request, timeout=timeout) as response:
            payload = json.loads(response.read().decode("utf-8"))
    except HTTPError as exc:
        raise WeatherAdapterError(f"OpenWeatherMap returned HTTP {exc.code}") from exc
    except (URLError, TimeoutError, OSError, json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise WeatherAdapterError("Failed to fetch weather data from OpenWeatherMap") from exc

    if not isinstance(payload, dict):
        raise WeatherAdapterError("Unexpected OpenWeatherMap response shape")
    return payload


def parse_current_weather(payload: dict[str, Any]) -> WeatherSnapshot:
    """Normalize an OpenWeatherMap current-weather payload.

    Temperatures are kept in Kelvin as received; the condition keyword is
    folded into a ConditionCategory, splitting "clear" on daylight.
    """
    weather_items = payload.get("weather")
    if not isinstance(weather_items, list) or not weather_items or not isinstance(weather_items[0], dict):
        raise WeatherAdapterError("OpenWeatherMap response did not include weather conditions")
    primary = weather_items[0]
    keyword = primary.get("main")
    if not isinstance(keyword, str) or not keyword.strip():
        raise WeatherAdapterError("OpenWeatherMap response did not include weather[0].main")

    main = payload.get("main")
    if not isinstance(main, dict):
        raise WeatherAdapterError("OpenWeatherMap response did not include main readings")

    sys_data = _section(payload, "sys")
    wind = _section(payload, "wind")

    observed_at = _coerce_int(payload.get("dt"), field_name="dt")
    sunrise = _coerce_optional_int(sys_data.get("sunrise"))
    sunset = _coerce_optional_int(sys_data.get("sunset"))

    humidity = min(max(_coerce_optional_int(main.get("humidity")) or 0, 0), 100)

    return WeatherSnapshot(
        name=_text(payload.get("name")),
        country=_text(sys_data.get("country")),
        condition=condition_category(keyword, is_day=is_daytime(observed_at, sunrise, sunset)),
        description=_text(primary.get("description")),
        temp_kelvin=_coerce_float(main.get("temp"), field_name="main.temp"),
        feels_like_kelvin=_coerce_float(main.get("feels_like"), field_name="main.feels_like"),
        wind_speed=_coerce_optional_float(wind.get("speed")),
        humidity=humidity,
        observed_at=observed_at,
        sunrise=sunrise,
        sunset=sunset,
    )


class OpenWeatherAdapter:
    def __init__(
        self,
        *,
        api_key: str,
        base_url: str = OPENWEATHER_CURRENT_URL,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url
        self._timeout_seconds = timeout_seconds

    def get_weather_by_city(self, name: str) -> WeatherSnapshot:
        return self._get_weather({"q": name})

    def get_weather_by_zip(self, code: str, country: str) -> WeatherSnapshot:
        return self._get_weather({"zip": f"{code},{country}"})

    def get_weather_by_coordinates(self, lat: float, lon: float) -> WeatherSnapshot:
        return self._get_weather({"lat": f"{lat:.5f}", "lon": f"{lon:.5f}"})

    def build_url(self, params: dict[str, str]) -> str:
        query = urlencode({**params, "appid": self._api_key}, safe=",")
        return f"{self._base_url}?{query}"

    def _get_weather(self, params: dict[str, str]) -> WeatherSnapshot:
        payload = _fetch_json(self.build_url(params), timeout=self._timeout_seconds)
        return parse_current_weather(payload)
