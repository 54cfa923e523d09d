from .base import WeatherAdapter, WeatherAdapterError
from .openweather import OpenWeatherAdapter, parse_current_weather

__all__ = ["WeatherAdapter", "WeatherAdapterError", "OpenWeatherAdapter", "parse_current_weather"]
