from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal
from urllib.parse import urlparse

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .domain.models import FallbackReason

PROJECT_ROOT = Path(__file__).resolve().parents[2]

DEFAULT_FALLBACK_NOTICES: dict[FallbackReason, str | None] = {
    FallbackReason.GEOLOCATION_UNAVAILABLE: None,
    FallbackReason.COORDINATES_FAILED: "Couldn't get local weather",
}


class UiSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str = "Weather App"
    header_phrases: list[str] = Field(default_factory=lambda: ["Real-time Weather"])
    type_speed_ms: int = Field(default=50, ge=1, le=1000)
    icon_color: str = "#4a90e2"
    icon_size: int = Field(default=150, ge=16, le=512)

    @field_validator("header_phrases")
    @classmethod
    def validate_header_phrases(cls, values: list[str]) -> list[str]:
        phrases = [value.strip() for value in values if isinstance(value, str) and value.strip()]
        if not phrases:
            raise ValueError("ui.header_phrases must contain at least one phrase")
        return phrases


class LocationSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    default_city: str = "New York"
    zip_country: str = "us"

    @field_validator("default_city")
    @classmethod
    def validate_default_city(cls, value: str) -> str:
        text = value.strip()
        if not text:
            raise ValueError("location.default_city must not be empty")
        return text

    @field_validator("zip_country")
    @classmethod
    def validate_zip_country(cls, value: str) -> str:
        text = value.strip().lower()
        if len(text) != 2 or not text.isalpha():
            raise ValueError("location.zip_country must be a two-letter country code like 'us'")
        return text


class WeatherSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    base_url: str = "https://api.openweathermap.org/data/2.5/weather"
    timeout_seconds: int = Field(default=10, ge=1, le=60)

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, value: str) -> str:
        text = value.strip()
        parsed = urlparse(text)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError("weather.base_url must be an absolute http(s) URL")
        return text


class SessionSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    idle_ttl_minutes: int = Field(default=60, ge=1, le=24 * 60)
    prune_interval_minutes: int = Field(default=10, ge=1, le=60)
    jitter_seconds: int = Field(default=15, ge=0, le=300)


class MessageSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    not_found: str = "Couldn't find {scope}. Try again."
    fallback_notices: dict[FallbackReason, str | None] = Field(
        default_factory=lambda: dict(DEFAULT_FALLBACK_NOTICES)
    )

    @field_validator("not_found")
    @classmethod
    def validate_not_found(cls, value: str) -> str:
        if "{scope}" not in value:
            raise ValueError("messages.not_found must contain a '{scope}' placeholder")
        return value

    @field_validator("fallback_notices")
    @classmethod
    def validate_fallback_notices(
        cls, values: dict[FallbackReason, str | None]
    ) -> dict[FallbackReason, str | None]:
        normalized: dict[FallbackReason, str | None] = dict(DEFAULT_FALLBACK_NOTICES)
        for reason, text in values.items():
            normalized[reason] = text.strip() if isinstance(text, str) and text.strip() else None
        return normalized

    def not_found_message(self, scope: str) -> str:
        return self.not_found.format(scope=scope)

    def fallback_notice(self, reason: FallbackReason) -> str | None:
        return self.fallback_notices.get(reason)


class WeatherPageYamlSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    ui: UiSettings = Field(default_factory=UiSettings)
    location: LocationSettings = Field(default_factory=LocationSettings)
    weather: WeatherSettings = Field(default_factory=WeatherSettings)
    sessions: SessionSettings = Field(default_factory=SessionSettings)
    messages: MessageSettings = Field(default_factory=MessageSettings)


class EnvSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    weather_api_key: str = ""
    weatherpage_env: Literal["dev", "test", "prod"] = "dev"
    weatherpage_config_path: Path = Path("config/weatherpage.yaml")
    weatherpage_log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    @field_validator("weatherpage_log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().upper()
        return value


class AppSettings(BaseModel):
    env: EnvSettings
    yaml: WeatherPageYamlSettings
    project_root: Path
    config_path: Path


def _resolve_project_path(path: Path) -> Path:
    if path.is_absolute():
        return path
    return (PROJECT_ROOT / path).resolve()


def _load_yaml_settings(path: Path) -> WeatherPageYamlSettings:
    if not path.exists():
        raise FileNotFoundError(f"Weather page config file not found: {path}")

    raw_config = yaml.safe_load(path.read_text(encoding="utf-8"))
    if raw_config is None:
        raw_config = {}
    if not isinstance(raw_config, dict):
        raise ValueError("Weather page config must be a YAML mapping/object at the top level")
    return WeatherPageYamlSettings.model_validate(raw_config)


@lru_cache(maxsize=1)
def load_settings() -> AppSettings:
    env = EnvSettings()
    config_path = _resolve_project_path(env.weatherpage_config_path)
    yaml_settings = _load_yaml_settings(config_path)
    return AppSettings(
        env=env,
        yaml=yaml_settings,
        project_root=PROJECT_ROOT,
        config_path=config_path,
    )
